"""Pluggable content backends with compare-and-swap writes."""

from assetvault.storage.base import BackendAdapter, ObjectEntry, Probe, ProbeState, StoredObject
from assetvault.storage.factory import create_storage_backend
from assetvault.storage.local import LocalBackend
from assetvault.storage.memory import MemoryBackend

__all__ = [
    "BackendAdapter",
    "LocalBackend",
    "MemoryBackend",
    "ObjectEntry",
    "Probe",
    "ProbeState",
    "StoredObject",
    "create_storage_backend",
]
