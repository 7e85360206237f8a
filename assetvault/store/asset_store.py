"""Versioned, access-controlled asset store.

Content lives in a ``BackendAdapter`` at ``{prefix}/{asset_id}/{version}``;
every version is written to a fresh path, so the backend's create-only
put is what orders concurrent writers. Metadata lives in a
``MetadataRegistry`` as one asset-level record (latest wins) plus a
snapshot per version. Access is decided by an ``AccessController`` before
the backend is touched.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from assetvault.access import Operation, Principal
from assetvault.access.controller import AccessController
from assetvault.config import AssetStoreConfig
from assetvault.errors import (
    AccessDeniedError,
    AssetVaultError,
    BackendError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from assetvault.lib.hooks import (
    AFTER_ASSET_DELETE,
    AFTER_ASSET_STORE,
    AFTER_METADATA_UPDATE,
    ASSET_METADATA,
    BEFORE_ASSET_DELETE,
    BEFORE_ASSET_STORE,
    HookRegistry,
)
from assetvault.lib.observability import span
from assetvault.metadata.registry import MetadataRegistry
from assetvault.results import enveloped
from assetvault.storage.base import BackendAdapter, ObjectEntry, StoredObject
from assetvault.storage.codec import interpret as interpret_content
from assetvault.storage.codec import serialize
from assetvault.store.ids import (
    FIRST_VERSION,
    VERSION_ID_PATTERN,
    generate_asset_id,
    next_version,
    validate_asset_id,
    validate_version_id,
)

logger = logging.getLogger(__name__)

ANONYMOUS = Principal(id="anonymous")

CLASSIFICATION_KEY = "accessClassification"
PROVENANCE_KEYS = {"createdAt", "createdBy", "updatedAt", "updatedBy"}
SYSTEM_KEYS = {"version", "fingerprint", "size", "versionCreatedAt", "versionCreatedBy"}


def _now() -> str:
    return datetime.now(UTC).isoformat()


class AssetStore:
    """Façade over a content backend, an access controller and a metadata registry.

    Every public operation returns an ``OperationResult``; errors are
    reported in the envelope rather than raised.
    """

    def __init__(
        self,
        backend: BackendAdapter,
        access: AccessController,
        registry: MetadataRegistry,
        config: AssetStoreConfig | None = None,
        hooks: HookRegistry | None = None,
    ) -> None:
        self._backend = backend
        self._access = access
        self._registry = registry
        self._config = config or AssetStoreConfig()
        self._hooks = hooks or HookRegistry()

        if self._config.default_classification not in self._config.classifications:
            raise ValueError(
                f"Default classification {self._config.default_classification!r} "
                f"is not one of {self._config.classifications}"
            )

    @property
    def hooks(self) -> HookRegistry:
        return self._hooks

    @property
    def backend(self) -> BackendAdapter:
        return self._backend

    @property
    def registry(self) -> MetadataRegistry:
        return self._registry

    async def close(self) -> None:
        await self._backend.close()
        await self._registry.close()

    # -- public operations --

    @enveloped
    async def store(
        self,
        principal: Principal | None,
        content: Any,
        metadata: Mapping[str, Any] | None = None,
        options: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Store ``content`` as a new asset, or as the next version of ``options['assetId']``.

        Options: ``assetId``, ``expectedFingerprint`` (latest version the
        caller observed), ``accessClassification``, ``versioningHint``,
        ``message``.
        """
        principal = principal or ANONYMOUS
        options = dict(options or {})
        data = self._content_bytes(content)
        supplied = self._caller_metadata(metadata)
        classification = options.get("accessClassification")
        if classification is not None:
            self._validate_classification(classification)
        expected = options.get("expectedFingerprint")
        asset_id = options.get("assetId")
        if expected is not None and asset_id is None:
            raise ValidationError("expectedFingerprint is only valid together with assetId")

        with span("asset.store", asset_id=asset_id, principal=principal.id):
            if asset_id is None:
                asset_id = generate_asset_id()
                existing = None
                classification = classification or self._config.default_classification
                self._authorize(principal, asset_id, Operation.WRITE, {CLASSIFICATION_KEY: classification})
            else:
                asset_id = validate_asset_id(asset_id)
                existing = await self._find_metadata(asset_id)
                if existing is None:
                    raise NotFoundError(f"Asset {asset_id} not found")
                self._authorize(principal, asset_id, Operation.WRITE, existing)
                classification = classification or existing.get(
                    CLASSIFICATION_KEY, self._config.default_classification
                )

            await self._hooks.do_action(BEFORE_ASSET_STORE, asset_id, principal)

            stored, version_id = await self._write_version(
                asset_id,
                data,
                expected_fingerprint=expected,
                is_new=existing is None,
                message=options.get("message"),
            )

            now = _now()
            record = {**(existing or {}), **supplied}
            record.update(
                {
                    CLASSIFICATION_KEY: classification,
                    "version": version_id,
                    "fingerprint": stored.fingerprint,
                    "size": stored.size,
                    "createdAt": existing.get("createdAt", now) if existing else now,
                    "createdBy": existing.get("createdBy", principal.id) if existing else principal.id,
                }
            )
            if existing:
                record["updatedAt"] = now
                record["updatedBy"] = principal.id
            if options.get("versioningHint") is not None:
                record["versioningHint"] = options["versioningHint"]
            record = await self._hooks.apply_filters(ASSET_METADATA, record, asset_id, principal)

            snapshot = {**record, "versionCreatedAt": now, "versionCreatedBy": principal.id}
            try:
                stored_metadata = await self._registry.put(asset_id, None, record)
                await self._registry.put(asset_id, version_id, snapshot)
            except AssetVaultError as exc:
                raise BackendError(
                    f"Stored {asset_id} version {version_id} but failed to record metadata: {exc.message}"
                ) from exc

            logger.info("Stored %s version %s (%d bytes)", asset_id, version_id, stored.size)
            await self._hooks.do_action(AFTER_ASSET_STORE, asset_id, version_id, principal)

        return {
            "assetId": asset_id,
            "versionId": version_id,
            "fingerprint": stored.fingerprint,
            "metadata": stored_metadata,
        }

    @enveloped
    async def retrieve(
        self,
        principal: Principal | None,
        asset_id: str,
        version_id: str | None = None,
        interpret: bool = False,
    ) -> dict[str, Any]:
        """Return a version's content and metadata; the latest when ``version_id`` is omitted."""
        principal = principal or ANONYMOUS
        asset_id = validate_asset_id(asset_id)
        if version_id is not None:
            version_id = validate_version_id(version_id)

        with span("asset.retrieve", asset_id=asset_id, version_id=version_id):
            metadata = await self._registry.get(asset_id)
            self._authorize(principal, asset_id, Operation.READ, metadata)

            if version_id is None:
                versions = await self._versions(asset_id)
                if not versions:
                    raise NotFoundError(f"Asset {asset_id} has no stored versions")
                version_id = versions[-1].name
            else:
                try:
                    metadata = await self._registry.get(asset_id, version_id)
                except NotFoundError:
                    pass

            try:
                content, fingerprint = await self._backend.get(self._version_path(asset_id, version_id))
            except NotFoundError:
                raise NotFoundError(f"Version {version_id} of {asset_id} not found") from None

        payload = {
            "assetId": asset_id,
            "versionId": version_id,
            "content": content,
            "fingerprint": fingerprint,
            "metadata": metadata,
            "accessInfo": {
                "lastAccessed": _now(),
                "accessedBy": principal.id,
            },
        }
        if interpret:
            payload["data"] = interpret_content(content)
        return payload

    @enveloped
    async def list(
        self,
        principal: Principal | None,
        filter: Mapping[str, Any] | None = None,
        sort: Mapping[str, Any] | None = None,
        pagination: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        """List assets with metadata equality filters, sorting and offset pagination."""
        principal = principal or ANONYMOUS
        offset, limit = self._page_window(pagination)
        sort_field, descending = self._sort_spec(sort)
        if filter is not None and not isinstance(filter, Mapping):
            raise ValidationError("filter must be a mapping")

        with span("asset.list", principal=principal.id):
            self._authorize(principal, None, Operation.LIST, None)

            items = []
            for asset_id in await self._content_asset_ids():
                metadata = await self._find_metadata(asset_id)
                items.append(
                    {
                        "assetId": asset_id,
                        "latestVersion": metadata.get("version") if metadata else None,
                        "metadata": metadata,
                        "consistent": metadata is not None,
                    }
                )

        if filter:
            items = [
                item
                for item in items
                if item["metadata"] is not None
                and all(item["metadata"].get(key) == value for key, value in filter.items())
            ]

        def sort_key(item: dict[str, Any]):
            if sort_field == "assetId":
                value = item["assetId"]
            else:
                value = (item["metadata"] or {}).get(sort_field)
            return (value is None, value if value is not None else "")

        try:
            items.sort(key=sort_key, reverse=descending)
        except TypeError:
            raise ValidationError(f"Cannot sort by {sort_field!r}: values are not comparable") from None

        total = len(items)
        page = items[offset:offset + limit]
        return {
            "assets": page,
            "pagination": {
                "total": total,
                "offset": offset,
                "limit": limit,
                "hasMore": offset + len(page) < total,
            },
        }

    @enveloped
    async def delete(self, principal: Principal | None, asset_id: str) -> dict[str, Any]:
        """Remove every version and every metadata record of an asset."""
        principal = principal or ANONYMOUS
        asset_id = validate_asset_id(asset_id)

        with span("asset.delete", asset_id=asset_id):
            metadata = await self._find_metadata(asset_id)
            if metadata is None:
                # Content left without metadata is only cleaned up by principals who manage every asset
                if not self._access.check_access(principal, asset_id, Operation.DELETE):
                    raise NotFoundError(f"Asset {asset_id} not found")
            else:
                self._authorize(principal, asset_id, Operation.DELETE, metadata)

            versions = await self._versions(asset_id)
            if metadata is None and not versions:
                raise NotFoundError(f"Asset {asset_id} not found")

            await self._hooks.do_action(BEFORE_ASSET_DELETE, asset_id, principal)

            removed = 0
            failures = []
            transient = False
            for entry in versions:
                try:
                    await self._backend.delete(
                        self._version_path(asset_id, entry.name),
                        entry.fingerprint,
                        message=f"Delete {asset_id} version {entry.name}",
                    )
                    removed += 1
                except AssetVaultError as exc:
                    failures.append(f"version {entry.name}: {exc.message}")
                    transient = transient or exc.retryable
            if failures:
                raise BackendError(
                    f"Removed {removed} of {len(versions)} versions of {asset_id}, "
                    f"metadata kept; failed {'; '.join(failures)}",
                    transient=transient,
                )

            try:
                await self._registry.delete(asset_id)
            except AssetVaultError as exc:
                raise BackendError(
                    f"Removed all {removed} versions of {asset_id} but failed to remove metadata: {exc.message}",
                    transient=exc.retryable,
                ) from exc

            logger.info("Deleted %s (%d versions)", asset_id, removed)
            await self._hooks.do_action(AFTER_ASSET_DELETE, asset_id, principal)

        return {
            "assetId": asset_id,
            "deletedAt": _now(),
            "deletedBy": principal.id,
            "versionsRemoved": removed,
        }

    @enveloped
    async def update_metadata(
        self,
        principal: Principal | None,
        asset_id: str,
        metadata: Mapping[str, Any] | None,
    ) -> dict[str, Any]:
        """Merge fields into an asset's metadata without creating a version."""
        principal = principal or ANONYMOUS
        asset_id = validate_asset_id(asset_id)
        if not isinstance(metadata, Mapping):
            raise ValidationError("Asset ID and metadata are required")
        supplied = self._caller_metadata(metadata)
        if CLASSIFICATION_KEY in supplied:
            self._validate_classification(supplied[CLASSIFICATION_KEY])

        with span("asset.update_metadata", asset_id=asset_id):
            existing = await self._registry.get(asset_id)
            self._authorize(principal, asset_id, Operation.UPDATE, existing)

            merged = {**existing, **supplied, "updatedAt": _now(), "updatedBy": principal.id}
            merged = await self._hooks.apply_filters(ASSET_METADATA, merged, asset_id, principal)
            stored = await self._registry.put(asset_id, None, merged)
            await self._hooks.do_action(AFTER_METADATA_UPDATE, asset_id, principal)

        return {"assetId": asset_id, "metadata": stored}

    @enveloped
    async def check_consistency(self, principal: Principal | None) -> dict[str, Any]:
        """Report assets left half-deleted: content without metadata, or metadata without content."""
        principal = principal or ANONYMOUS
        self._authorize(principal, None, Operation.LIST, None)

        with span("asset.check_consistency"):
            content_ids = set(await self._content_asset_ids())
            metadata_ids = set(await self._registry.asset_ids())

        return {
            "orphanedContent": sorted(content_ids - metadata_ids),
            "orphanedMetadata": sorted(metadata_ids - content_ids),
        }

    # -- internal helpers --

    def _version_path(self, asset_id: str, version_id: str) -> str:
        return f"{self._asset_path(asset_id)}/{version_id}"

    def _asset_path(self, asset_id: str) -> str:
        prefix = self._config.content_prefix.strip("/")
        return f"{prefix}/{asset_id}" if prefix else asset_id

    def _authorize(
        self,
        principal: Principal,
        asset_id: str | None,
        operation: Operation,
        metadata: Mapping[str, Any] | None,
    ) -> None:
        classification = metadata.get(CLASSIFICATION_KEY) if metadata else None
        owner = metadata.get("createdBy") if metadata else None
        decision = self._access.check_access(principal, asset_id, operation, classification, owner)
        if not decision.allowed:
            target = asset_id or "assets"
            raise AccessDeniedError(
                f"{principal.id} may not {operation.value} {target}: {decision.reason}"
            )

    async def _find_metadata(self, asset_id: str) -> dict[str, Any] | None:
        try:
            return await self._registry.get(asset_id)
        except NotFoundError:
            return None

    async def _versions(self, asset_id: str) -> list[ObjectEntry]:
        """Stored versions of an asset, oldest first."""
        try:
            entries = await self._backend.list(self._asset_path(asset_id))
        except NotFoundError:
            return []
        versions = [e for e in entries if not e.is_dir and VERSION_ID_PATTERN.match(e.name)]
        return sorted(versions, key=lambda e: int(e.name))

    async def _content_asset_ids(self) -> list[str]:
        try:
            entries = await self._backend.list(self._config.content_prefix)
        except NotFoundError:
            return []
        return sorted(e.name for e in entries if e.is_dir)

    async def _write_version(
        self,
        asset_id: str,
        data: bytes,
        expected_fingerprint: str | None,
        is_new: bool,
        message: str | None,
    ) -> tuple[StoredObject, str]:
        """Write the next version at a fresh path.

        A pinned ``expected_fingerprint`` must match the latest version and is
        never retried; an unpinned write that loses the race re-reads the
        version list and retries with backoff.
        """
        if is_new:
            path = self._version_path(asset_id, FIRST_VERSION)
            try:
                stored = await self._backend.put(
                    path, data, None, message=message or f"Store {asset_id} version {FIRST_VERSION}"
                )
            except ConflictError:
                raise ConflictError(f"Asset ID {asset_id} collided with an existing asset") from None
            return stored, FIRST_VERSION

        attempt = 0
        while True:
            versions = await self._versions(asset_id)
            latest = versions[-1] if versions else None
            if expected_fingerprint is not None:
                current = latest.fingerprint if latest else None
                if expected_fingerprint != current:
                    raise ConflictError(
                        f"Asset {asset_id} changed: expected fingerprint {expected_fingerprint}, "
                        f"latest version has {current}"
                    )

            version_id = next_version(latest.name if latest else None)
            try:
                stored = await self._backend.put(
                    self._version_path(asset_id, version_id),
                    data,
                    None,
                    message=message or f"Store {asset_id} version {version_id}",
                )
                return stored, version_id
            except ConflictError:
                if expected_fingerprint is not None or attempt >= self._config.conflict_retries:
                    raise
                attempt += 1
                logger.info(
                    "Version %s of %s was taken concurrently, retrying (%d/%d)",
                    version_id,
                    asset_id,
                    attempt,
                    self._config.conflict_retries,
                )
                await asyncio.sleep(self._config.retry_backoff * 2 ** (attempt - 1))

    def _content_bytes(self, content: Any) -> bytes:
        if content is None:
            raise ValidationError("Content is required")
        try:
            data = serialize(content)
        except (TypeError, ValueError) as exc:
            raise ValidationError(f"Content cannot be serialized: {exc}") from exc
        if not data:
            raise ValidationError("Content is required")
        return data

    @staticmethod
    def _caller_metadata(metadata: Mapping[str, Any] | None) -> dict[str, Any]:
        """Caller fields minus the ones the store owns."""
        if metadata is None:
            return {}
        if not isinstance(metadata, Mapping):
            raise ValidationError("metadata must be a mapping")
        return {
            str(key): value
            for key, value in metadata.items()
            if key not in PROVENANCE_KEYS and key not in SYSTEM_KEYS
        }

    def _validate_classification(self, classification: Any) -> None:
        if classification not in self._config.classifications:
            raise ValidationError(
                f"Unknown access classification {classification!r}; "
                f"expected one of {self._config.classifications}"
            )

    def _page_window(self, pagination: Mapping[str, Any] | None) -> tuple[int, int]:
        pagination = pagination or {}
        offset = pagination.get("offset", 0)
        limit = pagination.get("limit", self._config.default_page_size)
        if not isinstance(offset, int) or isinstance(offset, bool) or offset < 0:
            raise ValidationError("pagination.offset must be a non-negative integer")
        if not isinstance(limit, int) or isinstance(limit, bool) or not 1 <= limit <= self._config.max_page_size:
            raise ValidationError(f"pagination.limit must be between 1 and {self._config.max_page_size}")
        return offset, limit

    @staticmethod
    def _sort_spec(sort: Mapping[str, Any] | None) -> tuple[str, bool]:
        sort = sort or {}
        field = sort.get("field", "assetId")
        order = sort.get("order", "asc")
        if not isinstance(field, str) or not field:
            raise ValidationError("sort.field must be a non-empty string")
        if order not in ("asc", "desc"):
            raise ValidationError("sort.order must be 'asc' or 'desc'")
        return field, order == "desc"
