"""Snapshot document -- the versioned JSON backup of all persisted data.

Wire format:
    {
      "meta": {"version": 5, "timestamp": "<ISO-8601>", "app": "WealthAggregator"},
      "data": {"<table>": [<row>, ...], ...},
      "storage": {"<setting key>": "<string value>", ...}
    }
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class SnapshotMeta(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    version: int = 5
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    app_id: str = Field(default="WealthAggregator", alias="app")


class SnapshotDocument(BaseModel):
    """Point-in-time export of every table plus allow-listed settings."""

    model_config = ConfigDict(populate_by_name=True)

    meta: SnapshotMeta = Field(default_factory=SnapshotMeta)
    tables: dict[str, list[dict[str, Any]]] = Field(default_factory=dict, alias="data")
    settings: dict[str, str] = Field(default_factory=dict, alias="storage")

    def to_json(self) -> str:
        """Serialize using the on-disk key names (`data`, `storage`, `app`)."""
        return self.model_dump_json(by_alias=True, indent=2)

    @property
    def row_count(self) -> int:
        return sum(len(rows) for rows in self.tables.values())
