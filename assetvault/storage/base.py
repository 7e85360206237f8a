"""Backend adapter protocol and common types."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from assetvault.errors import BackendError, ConflictError, NotFoundError, ValidationError


class ProbeState(enum.Enum):
    EXISTS = "exists"
    ABSENT = "absent"
    ERROR = "error"


@dataclass(frozen=True)
class Probe:
    """Tri-state result of an existence check on a path.

    ``ABSENT`` is the create branch and is never an error; ``ERROR`` carries
    the ``BackendError`` that prevented an answer.
    """

    state: ProbeState
    fingerprint: str | None = None
    error: BackendError | None = None

    @classmethod
    def exists(cls, fingerprint: str) -> Probe:
        return cls(ProbeState.EXISTS, fingerprint=fingerprint)

    @classmethod
    def absent(cls) -> Probe:
        return cls(ProbeState.ABSENT)

    @classmethod
    def failed(cls, error: BackendError) -> Probe:
        return cls(ProbeState.ERROR, error=error)

    def raise_for_error(self) -> None:
        if self.state is ProbeState.ERROR and self.error is not None:
            raise self.error


@dataclass(frozen=True)
class StoredObject:
    """Descriptor returned by a successful put."""

    path: str
    fingerprint: str
    size: int
    revision: str | None = None


@dataclass(frozen=True)
class ObjectEntry:
    """One item of a directory listing."""

    name: str
    path: str
    kind: str
    fingerprint: str | None = None
    size: int = 0

    @property
    def is_dir(self) -> bool:
        return self.kind == "dir"


@runtime_checkable
class BackendAdapter(Protocol):
    """Content-addressed byte storage with compare-and-swap writes."""

    async def probe(self, path: str) -> Probe:
        """Report whether ``path`` exists and, if so, its fingerprint."""
        ...

    async def put(
        self,
        path: str,
        data: bytes,
        expected_fingerprint: str | None = None,
        *,
        message: str | None = None,
    ) -> StoredObject:
        """Write ``data`` at ``path`` if the path is in the expected state."""
        ...

    async def get(self, path: str) -> tuple[bytes, str]:
        """Return the bytes stored at ``path`` and their fingerprint."""
        ...

    async def delete(
        self,
        path: str,
        expected_fingerprint: str,
        *,
        message: str | None = None,
    ) -> None:
        """Remove ``path`` if its fingerprint still matches."""
        ...

    async def list(self, path: str = "") -> list[ObjectEntry]:
        """List ``path``; a file yields a one-element list."""
        ...

    async def close(self) -> None:
        """Release held resources."""
        ...


def check_put_precondition(path: str, probe: Probe, expected_fingerprint: str | None) -> None:
    """Enforce the CAS rules for a write given the observed state of ``path``."""
    probe.raise_for_error()
    if probe.state is ProbeState.ABSENT:
        if expected_fingerprint is not None:
            raise ConflictError(f"{path} no longer exists (expected {expected_fingerprint})")
        return
    if expected_fingerprint is None:
        raise ConflictError(f"{path} already exists; a fingerprint is required to overwrite it")
    if expected_fingerprint != probe.fingerprint:
        raise ConflictError(
            f"{path} changed: expected {expected_fingerprint}, found {probe.fingerprint}"
        )


def check_delete_precondition(path: str, probe: Probe, expected_fingerprint: str | None) -> None:
    """Enforce the CAS rules for a delete given the observed state of ``path``."""
    if not expected_fingerprint:
        raise ValidationError(f"Deleting {path} requires its current fingerprint")
    probe.raise_for_error()
    if probe.state is ProbeState.ABSENT:
        raise NotFoundError(f"{path} not found")
    if expected_fingerprint != probe.fingerprint:
        raise ConflictError(
            f"{path} changed: expected {expected_fingerprint}, found {probe.fingerprint}"
        )


def normalize_path(path: str) -> str:
    """Strip surrounding slashes and reject traversal segments."""
    cleaned = path.strip().strip("/")
    parts = [p for p in cleaned.split("/") if p]
    if any(p in (".", "..") for p in parts):
        raise ValidationError(f"Invalid path: {path!r}")
    return "/".join(parts)
