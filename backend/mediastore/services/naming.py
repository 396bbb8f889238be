"""Stored filenames: never derived from the uploader's name beyond a short lowercase suffix."""
import re
import uuid
from pathlib import PurePosixPath

DEFAULT_EXTENSION = ".bin"
THUMBNAIL_MARKER = "_thumb"

_SAFE_EXTENSION = re.compile(r"^\.[a-z0-9]{1,16}$")


def new_file_uuid() -> str:
    return str(uuid.uuid4())


def sanitize_extension(original_name: str) -> str:
    """Lowercase extension of the last path component, or DEFAULT_EXTENSION."""
    # Browsers on Windows may send full client paths
    name = (original_name or "").replace("\\", "/")
    ext = PurePosixPath(name).suffix.lower()
    if not ext or not _SAFE_EXTENSION.match(ext):
        return DEFAULT_EXTENSION
    return ext


def derive_stored_name(file_uuid: str, original_name: str) -> str:
    return f"{file_uuid}{sanitize_extension(original_name)}"


def thumbnail_name(stored_name: str) -> str:
    """'<uuid>.png' -> '<uuid>_thumb.png'"""
    stored = PurePosixPath(stored_name)
    return f"{stored.stem}{THUMBNAIL_MARKER}{stored.suffix}"
