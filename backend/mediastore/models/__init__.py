"""Import all models so SQLAlchemy metadata knows about them."""
from mediastore.models.base import Base
from mediastore.models.file_record import FileRecord

__all__ = ["Base", "FileRecord"]
