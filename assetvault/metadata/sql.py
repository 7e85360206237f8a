"""SQLAlchemy-backed metadata registry."""

from __future__ import annotations

import copy
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from assetvault.db.models import ASSET_SCOPE, MetadataRecord
from assetvault.errors import BackendError, NotFoundError


class SQLMetadataRegistry:
    """Keep one row per (asset, scope): the asset-level record and one per version."""

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        engine: AsyncEngine | None = None,
    ) -> None:
        self._session_maker = session_maker
        self._engine = engine

    async def put(self, asset_id: str, version_id: str | None, metadata: dict[str, Any]) -> dict[str, Any]:
        scope = version_id or ASSET_SCOPE
        data = copy.deepcopy(dict(metadata))
        try:
            async with self._session_maker() as session:
                result = await session.execute(
                    select(MetadataRecord).where(
                        MetadataRecord.asset_id == asset_id,
                        MetadataRecord.version_scope == scope,
                    )
                )
                record = result.scalar_one_or_none()
                if record is None:
                    record = MetadataRecord(asset_id=asset_id, version_scope=scope, data=data)
                    session.add(record)
                else:
                    record.data = data
                await session.commit()
        except SQLAlchemyError as exc:
            raise BackendError(f"Failed to store metadata for {asset_id}: {exc}") from exc
        return copy.deepcopy(data)

    async def get(self, asset_id: str, version_id: str | None = None) -> dict[str, Any]:
        scope = version_id or ASSET_SCOPE
        try:
            async with self._session_maker() as session:
                result = await session.execute(
                    select(MetadataRecord.data).where(
                        MetadataRecord.asset_id == asset_id,
                        MetadataRecord.version_scope == scope,
                    )
                )
                data = result.scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise BackendError(f"Failed to read metadata for {asset_id}: {exc}") from exc
        if data is None:
            label = f"{asset_id}@{version_id}" if version_id else asset_id
            raise NotFoundError(f"No metadata for {label}")
        return copy.deepcopy(data)

    async def delete(self, asset_id: str) -> int:
        try:
            async with self._session_maker() as session:
                result = await session.execute(
                    delete(MetadataRecord).where(MetadataRecord.asset_id == asset_id)
                )
                await session.commit()
        except SQLAlchemyError as exc:
            raise BackendError(f"Failed to delete metadata for {asset_id}: {exc}") from exc
        return result.rowcount or 0

    async def asset_ids(self) -> list[str]:
        try:
            async with self._session_maker() as session:
                result = await session.execute(
                    select(MetadataRecord.asset_id).distinct().order_by(MetadataRecord.asset_id)
                )
                return list(result.scalars().all())
        except SQLAlchemyError as exc:
            raise BackendError(f"Failed to list metadata: {exc}") from exc

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
