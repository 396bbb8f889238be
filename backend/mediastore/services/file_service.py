"""Upload/delete façade over validation, naming, storage, image processing and metadata.

The filesystem and the metadata store share no transaction. Uploads keep an
ordered stack of undo actions (AsyncExitStack) as side effects happen; any
failure unwinds it in reverse, so a failed upload leaves neither bytes nor a
row behind. The row is written last, and only when every file exists.

Deletes run the other way round: files first, row last. A crash between the
two leaves a row pointing at missing files; get_file_path reports that as
NotFoundError.
"""
import logging
import os
from contextlib import AsyncExitStack
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Optional, Union

from mediastore.config import Settings, settings as default_settings
from mediastore.errors import (
    FileServiceError,
    FilesystemError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from mediastore.models.base import utcnow
from mediastore.models.file_record import FileRecord
from mediastore.schemas.common import PaginationParams
from mediastore.schemas.file import UploadHeader
from mediastore.services import directories
from mediastore.services.file_repository import FileRepository
from mediastore.services.file_storage import FileStorageService, file_storage
from mediastore.services.image_processor import ImageProcessor
from mediastore.services.naming import derive_stored_name, new_file_uuid, thumbnail_name
from mediastore.services.path_guard import resolve_under_root
from mediastore.services.validator import (
    DEFAULT_MIME_TYPE,
    is_image_file,
    normalize_mime_type,
    validate_upload,
)

logger = logging.getLogger(__name__)

ALT_TEXT_MAX_LENGTH = 500


class FileService:
    """Entry point for callers. Holds no mutable state of its own."""

    def __init__(
        self,
        repository: FileRepository,
        settings: Optional[Settings] = None,
        storage: Optional[FileStorageService] = None,
        image_processor: Optional[ImageProcessor] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.settings = settings or default_settings
        self.repository = repository
        self.storage = storage or file_storage
        self.image_processor = image_processor or ImageProcessor(
            thumbnail_size=self.settings.THUMBNAIL_SIZE,
            jpeg_quality=self.settings.THUMBNAIL_JPEG_QUALITY,
        )
        self.clock = clock
        self.root = Path(os.path.abspath(self.settings.FILE_STORAGE_PATH))

    # ── Directories / type checks ────────────────────────────────

    def ensure_upload_directories(self, now: Optional[datetime] = None) -> Path:
        return directories.ensure_upload_directories(self.root, now or self.clock())

    def is_image_file(self, mime_type: Optional[str]) -> bool:
        return is_image_file(mime_type)

    # ── Upload ───────────────────────────────────────────────────

    async def upload_file(self, reader: Any, header: Union[UploadHeader, dict]) -> FileRecord:
        """Validate, store and (for images) process an upload, then record it.

        `reader` is any object with read(n) returning bytes (or an awaitable of bytes).
        """
        if not isinstance(header, UploadHeader):
            header = UploadHeader.model_validate(header)

        declared_type = (header.content_type or "").strip()
        validate_upload(
            header.size,
            declared_type,
            max_size=self.settings.MAX_FILE_SIZE,
            image_support=self.settings.IMAGE_SUPPORT_ENABLED,
            require_content_type=self.settings.REQUIRE_CONTENT_TYPE,
        )

        file_uuid = new_file_uuid()
        try:
            return await self._store(file_uuid, reader, header.filename, declared_type)
        except FileServiceError as e:
            logger.warning(f"Upload {file_uuid} ({header.filename!r}) failed: {e}",
                           extra={"error": e.to_dict()})
            raise
        except Exception as e:
            logger.exception(f"Upload {file_uuid} ({header.filename!r}) failed unexpectedly")
            raise FileServiceError("upload failed", operation="upload_file", identifier=file_uuid, cause=e)

    async def _store(self, file_uuid: str, reader: Any, original_name: str, declared_type: str) -> FileRecord:
        now = self.clock()
        stored_name = derive_stored_name(file_uuid, original_name)
        is_image = self.settings.IMAGE_SUPPORT_ENABLED and is_image_file(declared_type)
        subdir = directories.IMAGES_DIR if is_image else directories.DOCUMENTS_DIR

        self.ensure_upload_directories(now)
        rel_path = directories.relative_path(now, subdir, stored_name)
        target = resolve_under_root(self.root, rel_path)

        async with AsyncExitStack() as undo:
            size = await self.storage.write_stream(target, reader, max_bytes=self.settings.MAX_FILE_SIZE)
            undo.push_async_callback(self._discard, target, file_uuid)

            record = FileRecord(
                uuid=file_uuid,
                original_name=original_name,
                stored_name=stored_name,
                path=rel_path,
                size=size,
                mime_type=declared_type or DEFAULT_MIME_TYPE,
                download_count=0,
                created_at=now,
                is_image=False,
            )

            if is_image:
                # Keeps the stored extension; non-PNG sources are still encoded as JPEG
                thumb_rel = directories.relative_path(now, directories.THUMBNAILS_DIR, thumbnail_name(stored_name))
                thumb_target = resolve_under_root(self.root, thumb_rel)
                info = self.image_processor.process(target, thumb_target)
                undo.push_async_callback(self._discard, thumb_target, file_uuid)

                record.is_image = True
                record.width = info.width
                record.height = info.height
                record.thumbnail_path = thumb_rel

            await self.repository.create_file(record)
            undo.pop_all()

        logger.info(
            f"Stored file {file_uuid} ({record.size} bytes, {record.mime_type}) at {record.path}"
            + (f", image {record.width}x{record.height}" if record.is_image else "")
        )
        return record

    async def _discard(self, path: Path, file_uuid: str) -> None:
        """Undo action: remove a file written by a failed upload. Never raises."""
        try:
            await self.storage.remove(path)
        except OSError as e:
            logger.error(f"Rollback of upload {file_uuid} could not remove {path.name}: {e}")

    # ── Lookup ───────────────────────────────────────────────────

    async def get_file(self, file_uuid: str) -> FileRecord:
        return await self.repository.get_file_by_uuid(file_uuid)

    async def get_file_by_id(self, file_id: int) -> FileRecord:
        return await self.repository.get_file(file_id)

    async def list_files(self, limit: Optional[int] = None, offset: int = 0) -> list[FileRecord]:
        """Newest first. Negative values clamp to 0, limit is capped, limit 0 returns nothing."""
        params = PaginationParams(
            limit=self.settings.LIST_DEFAULT_LIMIT if limit is None else limit,
            offset=offset or 0,
        ).capped(self.settings.LIST_MAX_LIMIT)
        if params.limit == 0:
            return []
        return await self.repository.list_files(params.limit, params.offset)

    async def count_files(self) -> int:
        return await self.repository.count_files()

    async def get_file_path(self, file_uuid: str) -> Path:
        """Absolute path of the original. NotFoundError if the row or the bytes are gone."""
        record = await self.get_file(file_uuid)
        return self._existing(record.path, file_uuid, "get_file_path")

    async def get_thumbnail_path(self, file_uuid: str) -> Path:
        record = await self.get_file(file_uuid)
        if not (record.is_image and record.thumbnail_path):
            raise NotFoundError("file has no thumbnail", operation="get_thumbnail_path", identifier=file_uuid)
        return self._existing(record.thumbnail_path, file_uuid, "get_thumbnail_path")

    def _existing(self, rel_path: str, file_uuid: str, operation: str) -> Path:
        path = resolve_under_root(self.root, rel_path)
        if not path.is_file():
            raise NotFoundError("file content missing", operation=operation, identifier=file_uuid)
        return path

    async def record_download(self, file_uuid: str) -> tuple[FileRecord, Path]:
        """Resolve the original for serving and count the download.

        Only originals are counted. A failed increment is logged and does not
        block serving.
        """
        record = await self.get_file(file_uuid)
        path = self._existing(record.path, file_uuid, "record_download")
        try:
            await self.repository.increment_download_count(record.id)
            record.download_count += 1
        except PersistenceError as e:
            logger.error(f"Failed to increment download count for file {file_uuid}: {e}")
        return record, path

    # ── Mutation ─────────────────────────────────────────────────

    async def update_alt_text(self, file_uuid: str, alt_text: Optional[str]) -> FileRecord:
        record = await self.get_file(file_uuid)
        if not record.is_image:
            raise ValidationError("alt text can only be set for images",
                                  operation="update_alt_text", identifier=file_uuid)
        value = (alt_text or "").strip()[:ALT_TEXT_MAX_LENGTH] or None
        await self.repository.update_alt_text(file_uuid, value)
        record.alt_text = value
        return record

    async def delete_file(self, file_uuid: str) -> None:
        """Remove original, then thumbnail, then the row."""
        record = await self.get_file(file_uuid)

        original = resolve_under_root(self.root, record.path)
        try:
            removed = await self.storage.remove(original)
        except OSError as e:
            raise FilesystemError("failed to delete file from filesystem", operation="delete_file",
                                  identifier=file_uuid, cause=e)
        if not removed:
            logger.warning(f"Original of file {file_uuid} was already absent: {record.path}")

        if record.thumbnail_path:
            try:
                thumbnail = resolve_under_root(self.root, record.thumbnail_path)
                await self.storage.remove(thumbnail)
            except (OSError, FilesystemError) as e:
                logger.warning(f"Failed to delete thumbnail {record.thumbnail_path} of file {file_uuid}: {e}")

        await self.repository.delete_file(record.id)
        logger.info(f"Deleted file {file_uuid}")
