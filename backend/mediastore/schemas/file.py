"""File upload/response schemas."""
from datetime import datetime
from typing import Optional

from pydantic import field_validator

from mediastore.schemas.base import CamelModel, CamelORMModel


class UploadHeader(CamelModel):
    """What the transport layer knows about an upload before reading its body."""
    filename: str = "unnamed"
    size: Optional[int] = None
    content_type: Optional[str] = None

    @field_validator("filename", mode="before")
    @classmethod
    def empty_to_unnamed(cls, v):
        return v or "unnamed"


class FileResponse(CamelORMModel):
    """Public view of a FileRecord. The storage root is never included."""
    uuid: str
    original_name: str
    size: int
    mime_type: str
    download_count: int = 0
    created_at: datetime
    is_image: bool = False
    width: Optional[int] = None
    height: Optional[int] = None
    alt_text: Optional[str] = None
    download_url: str = ""
    thumbnail_url: Optional[str] = None

    @classmethod
    def from_record(cls, record, url_prefix: str = "/files/") -> "FileResponse":
        response = cls.model_validate(record)
        response.download_url = f"{url_prefix}{record.uuid}"
        if record.is_image and record.thumbnail_path:
            response.thumbnail_url = f"{url_prefix}{record.uuid}/thumbnail"
        return response

