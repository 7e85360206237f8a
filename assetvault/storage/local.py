"""Local filesystem storage backend."""

from __future__ import annotations

import asyncio
import hashlib
import os
import tempfile
from pathlib import Path

from assetvault.errors import BackendError, NotFoundError
from assetvault.storage.base import (
    ObjectEntry,
    Probe,
    StoredObject,
    check_delete_precondition,
    check_put_precondition,
    normalize_path,
)


class LocalBackend:
    """Store objects as files under a base directory, fingerprinted by sha256.

    Compare-and-write is serialized by an in-process lock; two processes
    sharing one directory are not coordinated.
    """

    def __init__(self, base_path: Path) -> None:
        self._base_path = Path(base_path)
        self._lock = asyncio.Lock()

    async def probe(self, path: str) -> Probe:
        target = self._key_to_path(path)
        try:
            data = await asyncio.to_thread(self._read, target)
        except OSError as exc:
            return Probe.failed(BackendError(f"Cannot read {path}: {exc}"))
        if data is None:
            return Probe.absent()
        return Probe.exists(_fingerprint(data))

    async def put(
        self,
        path: str,
        data: bytes,
        expected_fingerprint: str | None = None,
        *,
        message: str | None = None,
    ) -> StoredObject:
        key = normalize_path(path)
        target = self._key_to_path(key)
        async with self._lock:
            check_put_precondition(key, await self.probe(key), expected_fingerprint)
            try:
                await asyncio.to_thread(self._write_file, target, data)
            except OSError as exc:
                raise BackendError(f"Cannot write {key}: {exc}") from exc
        return StoredObject(path=key, fingerprint=_fingerprint(data), size=len(data))

    async def get(self, path: str) -> tuple[bytes, str]:
        key = normalize_path(path)
        try:
            data = await asyncio.to_thread(self._read, self._key_to_path(key))
        except OSError as exc:
            raise BackendError(f"Cannot read {key}: {exc}") from exc
        if data is None:
            raise NotFoundError(f"{key} not found")
        return data, _fingerprint(data)

    async def delete(
        self,
        path: str,
        expected_fingerprint: str,
        *,
        message: str | None = None,
    ) -> None:
        key = normalize_path(path)
        target = self._key_to_path(key)
        async with self._lock:
            check_delete_precondition(key, await self.probe(key), expected_fingerprint)
            try:
                await asyncio.to_thread(self._unlink, target)
            except OSError as exc:
                raise BackendError(f"Cannot delete {key}: {exc}") from exc

    async def list(self, path: str = "") -> list[ObjectEntry]:
        key = normalize_path(path)
        target = self._key_to_path(key)
        try:
            return await asyncio.to_thread(self._scan, key, target)
        except OSError as exc:
            raise BackendError(f"Cannot list {key}: {exc}") from exc

    async def close(self) -> None:
        """No persistent resources to clean up."""

    # -- internal helpers --

    def _key_to_path(self, key: str) -> Path:
        key = normalize_path(key)
        return self._base_path / key if key else self._base_path

    @staticmethod
    def _read(path: Path) -> bytes | None:
        if not path.is_file():
            return None
        return path.read_bytes()

    @staticmethod
    def _write_file(path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=".tmp-")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.replace(tmp, path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    def _unlink(self, path: Path) -> None:
        path.unlink()
        # Prune directories emptied by the delete, never the base itself
        parent = path.parent
        while parent != self._base_path and not any(parent.iterdir()):
            try:
                parent.rmdir()
            except OSError:
                break
            parent = parent.parent

    def _scan(self, key: str, target: Path) -> list[ObjectEntry]:
        if target.is_file():
            return [self._entry(key, target)]
        if not target.is_dir():
            raise NotFoundError(f"{key or '/'} not found")
        entries = []
        for child in sorted(target.iterdir()):
            if child.name.startswith(".tmp-"):
                continue
            child_key = f"{key}/{child.name}" if key else child.name
            if child.is_dir():
                entries.append(ObjectEntry(name=child.name, path=child_key, kind="dir"))
            else:
                entries.append(self._entry(child_key, child))
        return entries

    @staticmethod
    def _entry(key: str, path: Path) -> ObjectEntry:
        data = path.read_bytes()
        return ObjectEntry(
            name=path.name,
            path=key,
            kind="file",
            fingerprint=_fingerprint(data),
            size=len(data),
        )


def _fingerprint(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()
