"""Backend construction from configuration."""

from __future__ import annotations

import importlib
from pathlib import Path
from typing import TYPE_CHECKING

from assetvault.storage.local import LocalBackend
from assetvault.storage.memory import MemoryBackend

if TYPE_CHECKING:
    from assetvault.config import StorageConfig
    from assetvault.storage.base import BackendAdapter


def create_storage_backend(config: StorageConfig) -> BackendAdapter:
    """Instantiate the content backend named by ``config.backend``."""
    backend_type = config.backend

    if backend_type == "memory":
        return MemoryBackend()

    if backend_type == "local":
        return LocalBackend(base_path=Path(config.local.path))

    if backend_type == "github":
        from assetvault.storage.github import GitHubContentsBackend

        if not config.github.owner or not config.github.repo:
            raise ValueError("GitHub storage requires 'owner' and 'repo'")
        return GitHubContentsBackend(config.github)

    # Dynamic import: "module:ClassName"
    if ":" in backend_type:
        parts = backend_type.split(":")
        if len(parts) != 2:
            raise ValueError(
                f"Invalid backend spec '{backend_type}': must contain exactly one colon"
            )
        module_path, class_name = parts
        module = importlib.import_module(module_path)
        cls = getattr(module, class_name)
        return cls(config)

    raise ValueError(
        f"Unknown storage backend '{backend_type}'. "
        "Use 'memory', 'local', 'github', or 'module:ClassName'."
    )
