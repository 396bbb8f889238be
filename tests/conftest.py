"""
Shared fixtures: isolated storage root, file-backed SQLite metadata store,
and in-memory image payloads.
"""

import io
from collections.abc import AsyncGenerator, Callable
from pathlib import Path

import pytest
import pytest_asyncio
from PIL import Image
from sqlalchemy.ext.asyncio import AsyncEngine

from mediastore.config import Settings
from mediastore.database import build_engine, build_session_factory, init_models
from mediastore.services.file_repository import FileRepository
from mediastore.services.file_service import FileService

# =============================================================================
# Path / Config Fixtures
# =============================================================================


@pytest.fixture
def storage_root(tmp_path: Path) -> Path:
    """Storage root (created lazily by the service)."""
    return tmp_path / "uploads"


@pytest.fixture
def test_settings(tmp_path: Path, storage_root: Path) -> Settings:
    """Settings pointing at tmp_path. 1MB upload limit."""
    return Settings(
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'metadata.db'}",
        FILE_STORAGE_PATH=str(storage_root),
        MAX_FILE_SIZE=1024 * 1024,
        LOG_LEVEL="DEBUG",
    )


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def engine(test_settings: Settings) -> AsyncGenerator[AsyncEngine, None]:
    engine = build_engine(test_settings.DATABASE_URL)
    await init_models(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def repository(engine: AsyncEngine) -> FileRepository:
    return FileRepository(build_session_factory(engine))


@pytest.fixture
def file_service(repository: FileRepository, test_settings: Settings) -> FileService:
    return FileService(repository, settings=test_settings)


# =============================================================================
# Payload Fixtures
# =============================================================================


@pytest.fixture
def image_bytes() -> Callable[..., bytes]:
    """Factory: encoded image of the given size/format with a two-tone pattern."""

    def _make(width: int, height: int, fmt: str = "JPEG", mode: str = "RGB") -> bytes:
        image = Image.new(mode, (width, height))
        if mode == "RGB" and width >= 2:
            # Two halves in different colours so resampling has something to sample
            image.paste((200, 30, 30), (0, 0, width // 2, height))
            image.paste((30, 30, 200), (width // 2, 0, width, height))
        buf = io.BytesIO()
        image.save(buf, format=fmt)
        return buf.getvalue()

    return _make


def list_files_under(root: Path) -> list[Path]:
    """All regular files under root (empty if root does not exist)."""
    if not root.exists():
        return []
    return sorted(p for p in root.rglob("*") if p.is_file())


@pytest.fixture
def files_under() -> Callable[[Path], list[Path]]:
    return list_files_under
