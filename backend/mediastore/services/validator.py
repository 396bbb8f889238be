"""Upload validation: declared size and content-type allowlist."""
from typing import Optional

from mediastore.errors import ValidationError

DOCUMENT_TYPES = frozenset({
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/vnd.ms-powerpoint",
    "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "text/plain",
    "text/csv",
    "application/zip",
    "application/x-zip-compressed",
    "application/json",
    "application/xml",
    "text/xml",
    "application/rtf",
    "application/x-tar",
    "application/gzip",
    "application/x-rar-compressed",
    "application/x-7z-compressed",
})

IMAGE_TYPES = frozenset({
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/gif",
    "image/webp",
    "image/bmp",
    "image/tiff",
})

DEFAULT_MIME_TYPE = "application/octet-stream"


def normalize_mime_type(mime_type: Optional[str]) -> str:
    """Lowercase and drop parameters: 'Text/Plain; charset=utf-8' -> 'text/plain'."""
    if not mime_type:
        return ""
    return mime_type.split(";", 1)[0].strip().lower()


def is_image_file(mime_type: Optional[str]) -> bool:
    return normalize_mime_type(mime_type) in IMAGE_TYPES


def is_allowed_file_type(mime_type: Optional[str], image_support: bool = True) -> bool:
    """Empty content type is allowed (treated as opaque binary); everything else must be listed."""
    normalized = normalize_mime_type(mime_type)
    if not normalized:
        return True
    if normalized in DOCUMENT_TYPES:
        return True
    return image_support and normalized in IMAGE_TYPES


def validate_upload(
    size: Optional[int],
    mime_type: Optional[str],
    *,
    max_size: int,
    image_support: bool = True,
    require_content_type: bool = False,
) -> None:
    """Raise ValidationError if the upload must be rejected. No side effects.

    A size of None means the caller could not declare it; the storage writer
    enforces max_size while streaming in that case.
    """
    if size is not None and size < 0:
        raise ValidationError(f"invalid file size {size}", operation="validate")
    if size is not None and size > max_size:
        raise ValidationError(
            f"file size {size} exceeds maximum allowed size {max_size}",
            operation="validate",
        )

    if not normalize_mime_type(mime_type):
        if require_content_type:
            raise ValidationError("content type is required", operation="validate")
        return

    if not is_allowed_file_type(mime_type, image_support=image_support):
        raise ValidationError(f"file type {mime_type} is not allowed", operation="validate")
