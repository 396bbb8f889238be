"""
test_file_repository.py - FileRecord persistence (SQLite via aiosqlite)
"""

from datetime import datetime, timedelta, timezone

import pytest

from mediastore.errors import NotFoundError, PersistenceError
from mediastore.models.file_record import FileRecord
from mediastore.services.file_repository import FileRepository
from mediastore.services.naming import new_file_uuid

BASE_TIME = datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc)


def make_record(name: str = "doc.pdf", created_at: datetime | None = None, **overrides) -> FileRecord:
    file_uuid = overrides.pop("uuid", None) or new_file_uuid()
    values = dict(
        uuid=file_uuid,
        original_name=name,
        stored_name=f"{file_uuid}.pdf",
        path=f"files/2024/05/documents/{file_uuid}.pdf",
        size=123,
        mime_type="application/pdf",
        created_at=created_at or BASE_TIME,
    )
    values.update(overrides)
    return FileRecord(**values)


class TestCreateAndGet:

    @pytest.mark.asyncio
    async def test_create_assigns_id_and_defaults(self, repository: FileRepository):
        record = make_record()

        file_id = await repository.create_file(record)

        assert file_id == record.id
        assert file_id > 0
        loaded = await repository.get_file(file_id)
        assert loaded.uuid == record.uuid
        assert loaded.download_count == 0
        assert loaded.is_image is False
        assert loaded.width is None
        assert loaded.thumbnail_path is None

    @pytest.mark.asyncio
    async def test_ids_monotonic(self, repository: FileRepository):
        first = await repository.create_file(make_record())
        second = await repository.create_file(make_record())

        assert second > first

    @pytest.mark.asyncio
    async def test_get_by_uuid(self, repository: FileRepository):
        record = make_record(name="notes.txt")
        await repository.create_file(record)

        loaded = await repository.get_file_by_uuid(record.uuid)

        assert loaded.id == record.id
        assert loaded.original_name == "notes.txt"

    @pytest.mark.asyncio
    async def test_unknown_id_and_uuid(self, repository: FileRepository):
        with pytest.raises(NotFoundError):
            await repository.get_file(9999)
        with pytest.raises(NotFoundError) as exc_info:
            await repository.get_file_by_uuid("missing-uuid")
        assert exc_info.value.identifier == "missing-uuid"

    @pytest.mark.asyncio
    async def test_duplicate_uuid_rejected(self, repository: FileRepository):
        record = make_record()
        await repository.create_file(record)

        with pytest.raises(PersistenceError):
            await repository.create_file(make_record(uuid=record.uuid))

        assert await repository.count_files() == 1


class TestListFiles:

    @pytest.mark.asyncio
    async def test_newest_first(self, repository: FileRepository):
        for i in range(3):
            await repository.create_file(make_record(name=f"f{i}", created_at=BASE_TIME + timedelta(minutes=i)))

        names = [r.original_name for r in await repository.list_files(10, 0)]

        assert names == ["f2", "f1", "f0"]

    @pytest.mark.asyncio
    async def test_same_timestamp_ordered_by_id(self, repository: FileRepository):
        for i in range(3):
            await repository.create_file(make_record(name=f"f{i}"))

        names = [r.original_name for r in await repository.list_files(10, 0)]

        assert names == ["f2", "f1", "f0"]

    @pytest.mark.asyncio
    async def test_pages_partition_records(self, repository: FileRepository):
        for i in range(4):
            await repository.create_file(make_record(name=f"f{i}", created_at=BASE_TIME + timedelta(seconds=i)))

        page1 = await repository.list_files(2, 0)
        page2 = await repository.list_files(2, 2)

        ids1 = {r.id for r in page1}
        ids2 = {r.id for r in page2}
        assert len(ids1) == len(ids2) == 2
        assert ids1.isdisjoint(ids2)
        assert len(ids1 | ids2) == 4

    @pytest.mark.asyncio
    async def test_offset_past_end(self, repository: FileRepository):
        await repository.create_file(make_record())
        assert await repository.list_files(10, 5) == []


class TestIncrementDownloadCount:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("n", [1, 5, 100])
    async def test_monotonic(self, repository: FileRepository, n: int):
        record = make_record()
        await repository.create_file(record)

        for _ in range(n):
            await repository.increment_download_count(record.id)

        assert (await repository.get_file(record.id)).download_count == n

    @pytest.mark.asyncio
    async def test_only_target_row(self, repository: FileRepository):
        a, b = make_record(), make_record()
        await repository.create_file(a)
        await repository.create_file(b)

        await repository.increment_download_count(a.id)

        assert (await repository.get_file(b.id)).download_count == 0


class TestUpdateAndDelete:

    @pytest.mark.asyncio
    async def test_update_alt_text(self, repository: FileRepository):
        record = make_record()
        await repository.create_file(record)

        assert await repository.update_alt_text(record.uuid, "A red square") == 1
        assert (await repository.get_file(record.id)).alt_text == "A red square"

    @pytest.mark.asyncio
    async def test_delete(self, repository: FileRepository):
        record = make_record()
        await repository.create_file(record)

        assert await repository.delete_file(record.id) == 1
        with pytest.raises(NotFoundError):
            await repository.get_file(record.id)

    @pytest.mark.asyncio
    async def test_delete_unknown_is_not_an_error(self, repository: FileRepository):
        assert await repository.delete_file(424242) == 0
