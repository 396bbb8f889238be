"""Date/type-partitioned directory tree under the storage root.

    <root>/files/<YYYY>/<MM>/documents/
    <root>/files/<YYYY>/<MM>/images/
    <root>/files/<YYYY>/<MM>/thumbnails/
"""
import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Optional

from mediastore.errors import FilesystemError
from mediastore.models.base import utcnow
from mediastore.services.path_guard import validate_path

logger = logging.getLogger(__name__)

FILES_DIR = "files"
DOCUMENTS_DIR = "documents"
IMAGES_DIR = "images"
THUMBNAILS_DIR = "thumbnails"
SUBDIRECTORIES = (DOCUMENTS_DIR, IMAGES_DIR, THUMBNAILS_DIR)

DIR_MODE = 0o750


def year_month(now: Optional[datetime] = None) -> str:
    now = now or utcnow()
    return f"{now.year:04d}/{now.month:02d}"


def relative_path(now: datetime, subdir: str, name: str) -> str:
    """Relative POSIX path: files/YYYY/MM/<subdir>/<name>."""
    return f"{FILES_DIR}/{year_month(now)}/{subdir}/{name}"


def ensure_directory(root: Path, directory: Path) -> None:
    """Create directory (and parents) if missing, after confirming it stays under root."""
    guarded = validate_path(root, directory)
    try:
        os.makedirs(guarded, mode=DIR_MODE, exist_ok=True)
    except OSError as e:
        raise FilesystemError("failed to create directory", operation="ensure_directory",
                              identifier=str(directory), cause=e)


def ensure_upload_directories(root: Path, now: Optional[datetime] = None) -> Path:
    """Create files/ and the current month's subdirectories. Idempotent.

    Returns the month directory (<root>/files/YYYY/MM).
    """
    root = Path(root)
    try:
        os.makedirs(root, mode=DIR_MODE, exist_ok=True)
    except OSError as e:
        raise FilesystemError("failed to create upload directory", operation="ensure_directories",
                              identifier=str(root), cause=e)

    ensure_directory(root, root / FILES_DIR)
    month_dir = root / FILES_DIR / year_month(now)
    for subdir in SUBDIRECTORIES:
        ensure_directory(root, month_dir / subdir)

    logger.debug(f"Upload directories ready under {month_dir}")
    return month_dir
