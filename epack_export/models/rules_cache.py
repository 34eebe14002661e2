"""
ePack Export — Rules Cache Model

Local persisted copy of the last successfully fetched serial rules table.
One row per cache key; the payload mirrors the remote rules.json shape
exactly so it can be re-validated on read.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import TIMESTAMP, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from epack_export.models.base import Base


class RulesCacheEntry(Base):
    """Persisted rules table keyed by a fixed cache key."""

    __tablename__ = "rules_cache"

    cache_key: Mapped[str] = mapped_column(
        String(64),
        primary_key=True,
        comment="Fixed cache key (settings.RULES_CACHE_KEY)",
    )
    version: Mapped[str] = mapped_column(
        String(64),
        default="",
        comment="Rules table version string as published",
    )
    payload: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Raw JSON document: {version, display, rules}",
    )
    fetched_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        comment="When the payload was last refreshed from the remote source",
    )

    def __repr__(self) -> str:
        return f"<RulesCacheEntry cache_key={self.cache_key!r} version={self.version!r}>"
