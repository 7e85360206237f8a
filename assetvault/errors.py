"""Error taxonomy shared by the store, backends and registries."""

from __future__ import annotations


class AssetVaultError(Exception):
    """Base class for every error the asset store reports by kind."""

    kind = "error"
    retryable = False

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message


class ValidationError(AssetVaultError):
    """Missing or malformed required input. Never retried."""

    kind = "validation"


class NotFoundError(AssetVaultError):
    """Asset, version, metadata record or backend path is absent."""

    kind = "not_found"


class ConflictError(AssetVaultError):
    """A fingerprint did not match, or a concurrent writer won the race."""

    kind = "conflict"
    retryable = True


class AccessDeniedError(AssetVaultError):
    """The access controller refused the operation. Never retried."""

    kind = "access_denied"


class BackendError(AssetVaultError):
    """Transport or remote-system failure.

    ``transient`` marks failures worth retrying (timeouts, connection
    resets, throttling, 5xx); ``status`` carries the remote status code
    when there was a response at all.
    """

    kind = "backend"

    def __init__(
        self,
        message: str = "",
        *,
        status: int | None = None,
        transient: bool = False,
    ) -> None:
        super().__init__(message)
        self.status = status
        self.transient = transient

    @property
    def retryable(self) -> bool:  # type: ignore[override]
        return self.transient


class UnsupportedOperationError(AssetVaultError):
    """An unknown operation kind was requested."""

    kind = "unsupported"
