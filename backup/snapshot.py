"""Snapshot builder -- read every table and allow-listed setting into one document.

Read-only: nothing in the store or the settings is modified.
"""

from __future__ import annotations

import copy
import json
import logging
from datetime import datetime, timezone
from typing import Any

from pydantic import ValidationError

from core.config import DEFAULT_SETTINGS_KEYS
from core.errors import InvalidSnapshotFormat
from core.models.snapshot import SnapshotDocument, SnapshotMeta
from core.protocols import KeyValueStore, PersistenceAdapter

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 5
APP_ID = "WealthAggregator"


def backup_filename(now: datetime | None = None) -> str:
    now = now or datetime.now(timezone.utc)
    return f"WealthBackup_{now.date().isoformat()}.json"


def build_snapshot(
    store: PersistenceAdapter,
    settings: KeyValueStore,
    settings_keys: list[str] | None = None,
    app_id: str = APP_ID,
    version: int = SCHEMA_VERSION,
    now: datetime | None = None,
) -> SnapshotDocument:
    """Export every table the store knows about plus the allow-listed settings."""
    tables: dict[str, list[dict[str, Any]]] = {}
    for name in store.list_tables():
        tables[name] = copy.deepcopy(store.read_all(name))

    stored: dict[str, str] = {}
    for key in DEFAULT_SETTINGS_KEYS if settings_keys is None else settings_keys:
        value = settings.get(key)
        if value:
            stored[key] = value

    document = SnapshotDocument(
        meta=SnapshotMeta(
            version=version,
            timestamp=now or datetime.now(timezone.utc),
            app_id=app_id,
        ),
        tables=tables,
        settings=stored,
    )
    logger.info(
        "Built snapshot: %d tables, %d rows, %d settings",
        len(tables), document.row_count, len(stored),
    )
    return document


def parse_snapshot(raw: str | bytes | dict | SnapshotDocument) -> SnapshotDocument:
    """Validate a backup document from text or a decoded dict.

    Only the `data` object is required. Table entries that are not lists
    are dropped and non-string settings are ignored, so older and newer
    backups load as long as their rows are objects.
    """
    if isinstance(raw, SnapshotDocument):
        return raw

    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise InvalidSnapshotFormat(f"Invalid backup file format: not JSON ({exc})") from exc

    if not isinstance(raw, dict) or not isinstance(raw.get("data"), dict):
        raise InvalidSnapshotFormat("Invalid backup file format: Missing 'data' object.")

    tables = {}
    for name, rows in raw["data"].items():
        if not isinstance(rows, list):
            logger.warning("Skipping table %s in backup: rows are not a list", name)
            continue
        tables[name] = rows

    storage = raw.get("storage")
    settings = {}
    if isinstance(storage, dict):
        settings = {k: v for k, v in storage.items() if isinstance(v, str)}

    try:
        meta = SnapshotMeta.model_validate(raw.get("meta") or {})
    except ValidationError:
        logger.warning("Backup has unreadable meta block; restoring data anyway")
        meta = SnapshotMeta()

    try:
        return SnapshotDocument.model_validate({"meta": meta, "data": tables, "storage": settings})
    except ValidationError as exc:
        raise InvalidSnapshotFormat(f"Invalid backup file format: {exc}") from exc
