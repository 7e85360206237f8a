"""Success/failure envelope returned by every public store operation."""

from __future__ import annotations

import functools
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from assetvault.errors import AssetVaultError

logger = logging.getLogger(__name__)

INTERNAL_ERROR_KIND = "internal"


@dataclass
class OperationResult:
    """Outcome of a store operation, propagated by value."""

    success: bool
    payload: dict[str, Any] = field(default_factory=dict)
    error: str | None = None
    error_kind: str | None = None
    retryable: bool = False

    @classmethod
    def ok(cls, **payload: Any) -> OperationResult:
        return cls(success=True, payload=payload)

    @classmethod
    def fail(cls, exc: BaseException) -> OperationResult:
        if isinstance(exc, AssetVaultError):
            return cls(
                success=False,
                error=exc.message or exc.__class__.__name__,
                error_kind=exc.kind,
                retryable=exc.retryable,
            )
        return cls(success=False, error=str(exc) or exc.__class__.__name__, error_kind=INTERNAL_ERROR_KIND)

    def __getitem__(self, key: str) -> Any:
        return self.payload[key]

    def to_dict(self) -> dict[str, Any]:
        """Flatten into the ``{success, ...payload}`` / ``{success, error}`` wire shape."""
        if self.success:
            return {"success": True, **self.payload}
        return {
            "success": False,
            "error": self.error,
            "errorKind": self.error_kind,
            "retryable": self.retryable,
        }


def enveloped(
    func: Callable[..., Awaitable[dict[str, Any]]],
) -> Callable[..., Awaitable[OperationResult]]:
    """Wrap an async operation so it always returns an ``OperationResult``.

    The wrapped coroutine returns its payload dict; known errors become
    failures with their kind, anything else is logged and reported as an
    internal failure so batch callers can continue.
    """

    @functools.wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> OperationResult:
        try:
            payload = await func(*args, **kwargs)
        except AssetVaultError as exc:
            logger.debug("%s failed: %s (%s)", func.__name__, exc.message, exc.kind)
            return OperationResult.fail(exc)
        except Exception as exc:
            logger.exception("Unexpected error in %s", func.__name__)
            return OperationResult.fail(exc)
        return OperationResult.ok(**payload)

    return wrapper
