"""
test_lifespan.py - service bootstrap against a file-backed SQLite store
"""

import io
from pathlib import Path

import pytest

from mediastore.config import Settings
from mediastore.main import lifespan
from mediastore.services.directories import SUBDIRECTORIES, year_month
from mediastore.models.base import utcnow


class TestLifespan:

    @pytest.mark.asyncio
    async def test_creates_tables_and_directories(self, test_settings: Settings, storage_root: Path):
        async with lifespan(test_settings) as service:
            month_dir = storage_root / "files" / year_month(utcnow())
            for subdir in SUBDIRECTORIES:
                assert (month_dir / subdir).is_dir()

            record = await service.upload_file(
                io.BytesIO(b"hello"), {"filename": "hello.txt", "size": 5, "content_type": "text/plain"}
            )
            assert (await service.get_file(record.uuid)).size == 5

    @pytest.mark.asyncio
    async def test_data_survives_restart(self, test_settings: Settings):
        async with lifespan(test_settings) as service:
            record = await service.upload_file(
                io.BytesIO(b"hello"), {"filename": "hello.txt", "content_type": "text/plain"}
            )

        async with lifespan(test_settings) as service:
            assert await service.count_files() == 1
            assert (await service.get_file_path(record.uuid)).read_bytes() == b"hello"

    @pytest.mark.asyncio
    async def test_unwritable_root_does_not_block_startup(self, test_settings: Settings, tmp_path: Path):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("file")
        settings = test_settings.model_copy(update={"FILE_STORAGE_PATH": str(blocker)})

        async with lifespan(settings) as service:
            assert await service.count_files() == 0
