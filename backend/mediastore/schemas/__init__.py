from mediastore.schemas.common import PaginationParams
from mediastore.schemas.file import FileResponse, UploadHeader

__all__ = ["PaginationParams", "UploadHeader", "FileResponse"]
