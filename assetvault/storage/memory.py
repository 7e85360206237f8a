"""In-process storage backend."""

from __future__ import annotations

import asyncio
import hashlib

from assetvault.errors import NotFoundError
from assetvault.storage.base import (
    ObjectEntry,
    Probe,
    StoredObject,
    check_delete_precondition,
    check_put_precondition,
    normalize_path,
)


class MemoryBackend:
    """Dict-based storage with sha256 fingerprints. Default backend.

    A single lock makes each compare-and-write atomic within the process.
    """

    def __init__(self) -> None:
        self._objects: dict[str, bytes] = {}
        self._lock = asyncio.Lock()

    async def probe(self, path: str) -> Probe:
        path = normalize_path(path)
        return self._probe(path)

    async def put(
        self,
        path: str,
        data: bytes,
        expected_fingerprint: str | None = None,
        *,
        message: str | None = None,
    ) -> StoredObject:
        path = normalize_path(path)
        async with self._lock:
            check_put_precondition(path, self._probe(path), expected_fingerprint)
            self._objects[path] = bytes(data)
        return StoredObject(path=path, fingerprint=_fingerprint(data), size=len(data))

    async def get(self, path: str) -> tuple[bytes, str]:
        path = normalize_path(path)
        data = self._objects.get(path)
        if data is None:
            raise NotFoundError(f"{path} not found")
        return data, _fingerprint(data)

    async def delete(
        self,
        path: str,
        expected_fingerprint: str,
        *,
        message: str | None = None,
    ) -> None:
        path = normalize_path(path)
        async with self._lock:
            check_delete_precondition(path, self._probe(path), expected_fingerprint)
            del self._objects[path]

    async def list(self, path: str = "") -> list[ObjectEntry]:
        path = normalize_path(path)
        if path in self._objects:
            return [self._file_entry(path)]

        prefix = f"{path}/" if path else ""
        entries: dict[str, ObjectEntry] = {}
        for key in sorted(self._objects):
            if not key.startswith(prefix):
                continue
            name, _, rest = key[len(prefix):].partition("/")
            if rest:
                entries.setdefault(name, ObjectEntry(name=name, path=prefix + name, kind="dir"))
            else:
                entries[name] = self._file_entry(key)
        if not entries and path:
            raise NotFoundError(f"{path} not found")
        return list(entries.values())

    async def close(self) -> None:
        pass

    # -- internal helpers --

    def _probe(self, path: str) -> Probe:
        data = self._objects.get(path)
        if data is None:
            return Probe.absent()
        return Probe.exists(_fingerprint(data))

    def _file_entry(self, path: str) -> ObjectEntry:
        data = self._objects[path]
        return ObjectEntry(
            name=path.rsplit("/", 1)[-1],
            path=path,
            kind="file",
            fingerprint=_fingerprint(data),
            size=len(data),
        )


def _fingerprint(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()
