"""SQLite-backed mapping store."""

from __future__ import annotations

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession as SQLModelAsyncSession

from animap.core.database import retry_db_operation
from animap.core.exceptions import PersistenceError
from animap.core.models import ResolutionMapping
from animap.db.models import ResolutionMappingRecord

logger = structlog.get_logger("animap.resolution.store")


def _to_mapping(record: ResolutionMappingRecord) -> ResolutionMapping:
    return ResolutionMapping(
        source=record.source,
        canonical_id=record.canonical_id,
        source_id=record.source_id,
        matched_title=record.matched_title,
        resolved_at=record.resolved_at,
    )


class SqlMappingStore:
    """MappingStore persisted in the resolution_mappings table.

    Each call uses its own session so concurrent resolutions never share one.
    Lock errors are retried; anything else surfaces as PersistenceError.
    """

    def __init__(self, session_factory: async_sessionmaker[SQLModelAsyncSession]) -> None:
        self.session_factory = session_factory

    async def get(self, source: str, canonical_id: str) -> ResolutionMapping | None:
        try:
            async with self.session_factory() as session:
                record = await retry_db_operation(
                    lambda: session.get(ResolutionMappingRecord, (source, canonical_id)),
                    session=session,
                    operation_type="query",
                )
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to read mapping {source}:{canonical_id}: {exc}") from exc
        return _to_mapping(record) if record else None

    async def find_by_source_id(self, source: str, source_id: str) -> ResolutionMapping | None:
        statement = (
            select(ResolutionMappingRecord)
            .where(ResolutionMappingRecord.source == source)
            .where(ResolutionMappingRecord.source_id == source_id)
            .order_by(ResolutionMappingRecord.resolved_at.desc())  # type: ignore[attr-defined]
        )
        try:
            async with self.session_factory() as session:
                result = await retry_db_operation(
                    lambda: session.exec(statement),
                    session=session,
                    operation_type="query",
                )
                record = result.first()
        except SQLAlchemyError as exc:
            raise PersistenceError(
                f"Failed to find mapping for {source} source id {source_id}: {exc}"
            ) from exc
        return _to_mapping(record) if record else None

    async def set(self, mapping: ResolutionMapping) -> None:
        """Upsert a mapping keyed by (source, canonical_id)."""
        record = ResolutionMappingRecord(
            source=mapping.source,
            canonical_id=mapping.canonical_id,
            source_id=mapping.source_id,
            matched_title=mapping.matched_title,
            resolved_at=mapping.resolved_at,
        )

        async def upsert() -> None:
            await session.merge(record)
            await session.commit()

        try:
            async with self.session_factory() as session:
                await retry_db_operation(upsert, session=session, operation_type="upsert")
        except SQLAlchemyError as exc:
            raise PersistenceError(
                f"Failed to store mapping {mapping.source}:{mapping.canonical_id}: {exc}"
            ) from exc

        logger.debug(
            "Stored resolution mapping",
            source=mapping.source,
            canonical_id=mapping.canonical_id,
            source_id=mapping.source_id,
        )

    async def delete(self, source: str, canonical_id: str) -> None:
        async def remove() -> None:
            record = await session.get(ResolutionMappingRecord, (source, canonical_id))
            if record is not None:
                await session.delete(record)
                await session.commit()

        try:
            async with self.session_factory() as session:
                await retry_db_operation(remove, session=session, operation_type="delete")
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to delete mapping {source}:{canonical_id}: {exc}") from exc
