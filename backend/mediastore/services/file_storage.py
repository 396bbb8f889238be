"""File storage on the local filesystem. Streams payloads to guarded paths."""
import inspect
import logging
from pathlib import Path
from typing import Any, Optional

import aiofiles
import aiofiles.os

from mediastore.errors import FileServiceError, FilesystemError, ValidationError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024


async def _read_chunk(reader: Any, size: int) -> bytes:
    """Read from a sync file object or an async one (e.g. an upload spool)."""
    chunk = reader.read(size)
    if inspect.isawaitable(chunk):
        chunk = await chunk
    return chunk


class FileStorageService:
    """Handles file write/remove on local disk. Paths must already be guarded."""

    def __init__(self, chunk_size: int = CHUNK_SIZE):
        self.chunk_size = chunk_size

    async def write_stream(self, path: Path, reader: Any, *, max_bytes: Optional[int] = None) -> int:
        """Copy the whole reader into a new file at path. Returns bytes written.

        The file is created exclusively. On any failure the partial file is
        removed before the error propagates.
        """
        written = 0
        created = False
        try:
            async with aiofiles.open(path, "xb") as f:
                created = True
                while True:
                    chunk = await _read_chunk(reader, self.chunk_size)
                    if not chunk:
                        break
                    written += len(chunk)
                    if max_bytes is not None and written > max_bytes:
                        raise ValidationError(
                            f"file size exceeds maximum allowed size {max_bytes}",
                            operation="write_stream",
                            identifier=path.name,
                        )
                    await f.write(chunk)
        except BaseException as e:
            if created:
                await self._remove_partial(path)
            if isinstance(e, FileServiceError) or not isinstance(e, Exception):
                raise
            raise FilesystemError("failed to write file content", operation="write_stream",
                                  identifier=path.name, cause=e)
        return written

    async def _remove_partial(self, path: Path) -> None:
        try:
            await aiofiles.os.remove(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.error(f"Failed to remove partial file {path.name} after write error: {e}")

    async def remove(self, path: Path, missing_ok: bool = True) -> bool:
        """Delete a file. Returns False if it was already absent."""
        try:
            await aiofiles.os.remove(path)
        except FileNotFoundError:
            if missing_ok:
                return False
            raise
        return True


file_storage = FileStorageService()
