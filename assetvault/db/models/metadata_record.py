"""Metadata record model for asset and version metadata."""

from __future__ import annotations

from typing import Any

from sqlalchemy import JSON, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from assetvault.db.base import Base

# Scope value of the asset-level record
ASSET_SCOPE = ""


class MetadataRecord(Base):
    """Structured metadata for an asset, or for one of its versions."""

    __tablename__ = "asset_metadata"
    __table_args__ = (
        UniqueConstraint("asset_id", "version_scope", name="uq_asset_metadata_asset_version"),
        Index("ix_asset_metadata_asset_id", "asset_id"),
    )

    asset_id: Mapped[str] = mapped_column(String(128), nullable=False)
    version_scope: Mapped[str] = mapped_column(String(64), nullable=False, default=ASSET_SCOPE)
    data: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
