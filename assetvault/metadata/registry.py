"""Metadata registry protocol and the in-process implementation."""

from __future__ import annotations

import copy
from typing import Any, Protocol, runtime_checkable

from assetvault.errors import NotFoundError


@runtime_checkable
class MetadataRegistry(Protocol):
    """Structured metadata per asset, optionally scoped to a version.

    ``version_id=None`` addresses the asset-level record (latest wins).
    """

    async def put(self, asset_id: str, version_id: str | None, metadata: dict[str, Any]) -> dict[str, Any]: ...
    async def get(self, asset_id: str, version_id: str | None = None) -> dict[str, Any]: ...
    async def delete(self, asset_id: str) -> int: ...
    async def asset_ids(self) -> list[str]: ...
    async def close(self) -> None: ...


class InMemoryMetadataRegistry:
    """Dict-based registry. Records are deep-copied in and out."""

    def __init__(self) -> None:
        self._records: dict[tuple[str, str | None], dict[str, Any]] = {}

    async def put(self, asset_id: str, version_id: str | None, metadata: dict[str, Any]) -> dict[str, Any]:
        self._records[(asset_id, version_id)] = copy.deepcopy(dict(metadata))
        return copy.deepcopy(self._records[(asset_id, version_id)])

    async def get(self, asset_id: str, version_id: str | None = None) -> dict[str, Any]:
        record = self._records.get((asset_id, version_id))
        if record is None:
            scope = f"{asset_id}@{version_id}" if version_id else asset_id
            raise NotFoundError(f"No metadata for {scope}")
        return copy.deepcopy(record)

    async def delete(self, asset_id: str) -> int:
        keys = [key for key in self._records if key[0] == asset_id]
        for key in keys:
            del self._records[key]
        return len(keys)

    async def asset_ids(self) -> list[str]:
        return sorted({asset_id for asset_id, _ in self._records})

    async def close(self) -> None:
        pass
