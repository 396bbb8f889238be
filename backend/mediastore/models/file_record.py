"""FileRecord model - file metadata (actual bytes live under the storage root)."""
from typing import Optional
from sqlalchemy import BigInteger, Boolean, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from mediastore.models.base import Base, CreatedAtMixin


class FileRecord(Base, CreatedAtMixin):
    __tablename__ = "files"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    uuid: Mapped[str] = mapped_column(String(36), unique=True, index=True, nullable=False)
    original_name: Mapped[str] = mapped_column(String(500), nullable=False)
    stored_name: Mapped[str] = mapped_column(String(100), nullable=False)
    # Relative to the storage root, always with forward slashes
    path: Mapped[str] = mapped_column(String(1000), nullable=False)
    size: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    mime_type: Mapped[str] = mapped_column(String(255), nullable=False)
    download_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Image metadata: width, height and thumbnail_path are set together or not at all
    is_image: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    width: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    height: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    thumbnail_path: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)
    alt_text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<FileRecord id={self.id} uuid={self.uuid} path={self.path}>"
