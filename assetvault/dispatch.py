"""Named-operation dispatch over an ``AssetStore``.

``build_dispatch_table`` maps operation names to handlers taking
``(principal, params)``; whatever RPC layer sits in front (the HTTP
controller, the CLI) calls ``dispatch`` with the raw params mapping.
"""

from __future__ import annotations

import base64
import binascii
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from assetvault.access import Principal
from assetvault.errors import UnsupportedOperationError, ValidationError
from assetvault.results import OperationResult
from assetvault.store import AssetStore

Handler = Callable[[Principal, Mapping[str, Any]], Awaitable[OperationResult]]


class _Params(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class StoreOptions(_Params):
    asset_id: str | None = None
    expected_fingerprint: str | None = None
    access_classification: str | None = None
    versioning_hint: Any = None
    message: str | None = None


class StoreParams(_Params):
    content: Any = None
    content_encoding: Literal["utf-8", "base64"] | None = None
    metadata: dict[str, Any] | None = None
    options: StoreOptions = Field(default_factory=StoreOptions)


class RetrieveParams(_Params):
    asset_id: str
    version_id: str | int | None = None
    interpret: bool = False


class ListParams(_Params):
    filter: dict[str, Any] | None = None
    sort: dict[str, Any] | None = None
    pagination: dict[str, Any] | None = None


class DeleteParams(_Params):
    asset_id: str


class UpdateMetadataParams(_Params):
    asset_id: str
    metadata: dict[str, Any]


def _parse(model: type[_Params], params: Mapping[str, Any]) -> _Params:
    try:
        return model.model_validate(dict(params or {}))
    except PydanticValidationError as exc:
        details = "; ".join(
            f"{'.'.join(str(part) for part in error['loc']) or 'params'}: {error['msg']}"
            for error in exc.errors()
        )
        raise ValidationError(f"Invalid parameters: {details}") from exc


def _decode_content(params: StoreParams) -> Any:
    if params.content_encoding != "base64":
        return params.content
    if not isinstance(params.content, str):
        raise ValidationError("base64 content must be a string")
    try:
        return base64.b64decode(params.content, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValidationError(f"Malformed base64 content: {exc}") from exc


def build_dispatch_table(store: AssetStore) -> dict[str, Handler]:
    """Construct the operation name → handler table for ``store``."""

    async def handle_store(principal: Principal, params: Mapping[str, Any]) -> OperationResult:
        try:
            parsed = _parse(StoreParams, params)
            content = _decode_content(parsed)
        except ValidationError as exc:
            return OperationResult.fail(exc)
        options = parsed.options.model_dump(by_alias=True, exclude_none=True)
        return await store.store(principal, content, parsed.metadata, options)

    async def handle_retrieve(principal: Principal, params: Mapping[str, Any]) -> OperationResult:
        try:
            parsed = _parse(RetrieveParams, params)
        except ValidationError as exc:
            return OperationResult.fail(exc)
        version_id = str(parsed.version_id) if parsed.version_id is not None else None
        return await store.retrieve(principal, parsed.asset_id, version_id, interpret=parsed.interpret)

    async def handle_list(principal: Principal, params: Mapping[str, Any]) -> OperationResult:
        try:
            parsed = _parse(ListParams, params)
        except ValidationError as exc:
            return OperationResult.fail(exc)
        return await store.list(principal, parsed.filter, parsed.sort, parsed.pagination)

    async def handle_delete(principal: Principal, params: Mapping[str, Any]) -> OperationResult:
        try:
            parsed = _parse(DeleteParams, params)
        except ValidationError as exc:
            return OperationResult.fail(exc)
        return await store.delete(principal, parsed.asset_id)

    async def handle_update_metadata(principal: Principal, params: Mapping[str, Any]) -> OperationResult:
        try:
            parsed = _parse(UpdateMetadataParams, params)
        except ValidationError as exc:
            return OperationResult.fail(exc)
        return await store.update_metadata(principal, parsed.asset_id, parsed.metadata)

    async def handle_check_consistency(principal: Principal, params: Mapping[str, Any]) -> OperationResult:
        return await store.check_consistency(principal)

    return {
        "store": handle_store,
        "retrieve": handle_retrieve,
        "list": handle_list,
        "delete": handle_delete,
        "update-metadata": handle_update_metadata,
        "check-consistency": handle_check_consistency,
    }


async def dispatch(
    table: Mapping[str, Handler],
    operation: str,
    principal: Principal,
    params: Mapping[str, Any] | None = None,
) -> OperationResult:
    """Run ``operation`` from ``table``; unknown names fail as unsupported."""
    handler = table.get(operation)
    if handler is None:
        return OperationResult.fail(UnsupportedOperationError(f"Unsupported operation: {operation!r}"))
    return await handler(principal, params or {})
