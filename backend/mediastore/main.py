"""Service bootstrap: logging, tables, upload directories.

Usage from a transport layer:
    async with lifespan() as file_service:
        record = await file_service.upload_file(upload.file, {
            "filename": upload.filename,
            "size": upload.size,
            "content_type": upload.content_type,
        })
"""
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from mediastore.config import Settings, settings as default_settings
from mediastore.database import build_engine, build_session_factory, init_models
from mediastore.errors import FilesystemError
from mediastore.services.file_repository import FileRepository
from mediastore.services.file_service import FileService

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """No-op if the host application already configured the root logger."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


@asynccontextmanager
async def lifespan(settings: Optional[Settings] = None) -> AsyncIterator[FileService]:
    """Create tables on startup, ensure directories, dispose the engine on exit."""
    settings = settings or default_settings
    configure_logging(settings.LOG_LEVEL)

    engine = build_engine(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)
    await init_models(engine)

    service = FileService(FileRepository(build_session_factory(engine)), settings=settings)
    try:
        service.ensure_upload_directories()
    except FilesystemError as e:
        # Retried before every write anyway
        logger.warning(f"Failed to create upload directories: {e}")

    try:
        yield service
    finally:
        await engine.dispose()
