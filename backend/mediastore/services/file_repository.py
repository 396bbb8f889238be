"""Metadata repository for FileRecord rows (async SQLAlchemy)."""
import logging
from typing import Optional

from sqlalchemy import delete, desc, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from mediastore.errors import NotFoundError, PersistenceError
from mediastore.models.file_record import FileRecord

logger = logging.getLogger(__name__)


class FileRepository:
    """One short-lived session per operation; returned records are detached."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def create_file(self, record: FileRecord) -> int:
        """Insert the record and return its new id. uuid uniqueness is enforced by the store."""
        try:
            async with self.session_factory() as db:
                db.add(record)
                await db.commit()
                await db.refresh(record)
                db.expunge(record)
        except SQLAlchemyError as e:
            raise PersistenceError("failed to save file record", operation="create_file",
                                   identifier=record.uuid, cause=e)
        return record.id

    async def get_file(self, file_id: int) -> FileRecord:
        return await self._get_one(FileRecord.id == file_id, "get_file", str(file_id))

    async def get_file_by_uuid(self, file_uuid: str) -> FileRecord:
        return await self._get_one(FileRecord.uuid == file_uuid, "get_file_by_uuid", file_uuid)

    async def _get_one(self, clause, operation: str, identifier: str) -> FileRecord:
        try:
            async with self.session_factory() as db:
                result = await db.execute(select(FileRecord).where(clause))
                record = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise PersistenceError("failed to load file record", operation=operation,
                                   identifier=identifier, cause=e)
        if record is None:
            raise NotFoundError("file not found", operation=operation, identifier=identifier)
        return record

    async def list_files(self, limit: int, offset: int) -> list[FileRecord]:
        """Newest first; id breaks ties between rows created in the same instant."""
        try:
            async with self.session_factory() as db:
                result = await db.execute(
                    select(FileRecord)
                    .order_by(desc(FileRecord.created_at), desc(FileRecord.id))
                    .limit(limit)
                    .offset(offset)
                )
                return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise PersistenceError("failed to list files", operation="list_files", cause=e)

    async def count_files(self) -> int:
        try:
            async with self.session_factory() as db:
                result = await db.execute(select(func.count()).select_from(FileRecord))
                return result.scalar_one()
        except SQLAlchemyError as e:
            raise PersistenceError("failed to count files", operation="count_files", cause=e)

    async def increment_download_count(self, file_id: int) -> None:
        """Atomic in the store: a single UPDATE ... SET download_count = download_count + 1."""
        try:
            async with self.session_factory() as db:
                await db.execute(
                    update(FileRecord)
                    .where(FileRecord.id == file_id)
                    .values(download_count=FileRecord.download_count + 1)
                )
                await db.commit()
        except SQLAlchemyError as e:
            raise PersistenceError("failed to increment download count",
                                   operation="increment_download_count", identifier=str(file_id), cause=e)

    async def update_alt_text(self, file_uuid: str, alt_text: Optional[str]) -> int:
        """Returns the number of rows updated."""
        try:
            async with self.session_factory() as db:
                result = await db.execute(
                    update(FileRecord)
                    .where(FileRecord.uuid == file_uuid)
                    .values(alt_text=alt_text)
                )
                await db.commit()
                return result.rowcount
        except SQLAlchemyError as e:
            raise PersistenceError("failed to update alt text", operation="update_alt_text",
                                   identifier=file_uuid, cause=e)

    async def delete_file(self, file_id: int) -> int:
        """Remove the row. Deleting an unknown id is not an error (returns 0)."""
        try:
            async with self.session_factory() as db:
                result = await db.execute(delete(FileRecord).where(FileRecord.id == file_id))
                await db.commit()
                return result.rowcount
        except SQLAlchemyError as e:
            raise PersistenceError("failed to delete file record", operation="delete_file",
                                   identifier=str(file_id), cause=e)
