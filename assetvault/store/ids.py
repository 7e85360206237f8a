"""Asset and version identifiers."""

from __future__ import annotations

import re
import secrets
import string
import time

from assetvault.errors import ValidationError

_BASE36 = string.digits + string.ascii_lowercase
ASSET_ID_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]{0,127}$")
VERSION_ID_PATTERN = re.compile(r"^[1-9][0-9]*$")

FIRST_VERSION = "1"


def generate_asset_id() -> str:
    """Return ``asset-<epoch ms>-<9 random base36 chars>``.

    Uniqueness is probabilistic; a collision shows up as a conflict on the
    first version's path.
    """
    suffix = "".join(secrets.choice(_BASE36) for _ in range(9))
    return f"asset-{int(time.time() * 1000)}-{suffix}"


def validate_asset_id(asset_id) -> str:
    if not isinstance(asset_id, str) or not asset_id:
        raise ValidationError("Asset ID is required")
    if not ASSET_ID_PATTERN.match(asset_id):
        raise ValidationError(f"Invalid asset ID: {asset_id!r}")
    return asset_id


def validate_version_id(version_id) -> str:
    if isinstance(version_id, int) and not isinstance(version_id, bool):
        version_id = str(version_id)
    if not isinstance(version_id, str) or not VERSION_ID_PATTERN.match(version_id):
        raise ValidationError(f"Invalid version ID: {version_id!r}")
    return version_id


def next_version(version_id: str | None) -> str:
    return str(int(version_id) + 1) if version_id else FIRST_VERSION
