"""Restore executor -- atomic wipe-and-reload from a snapshot document.

1. Validate the document (nothing is touched if it is malformed).
2. In ONE transaction: clear every table the store knows, then bulk-upsert
   the rows of each table present in the document.
3. After commit, write the document's settings back (best effort, outside
   the transaction).

Every table is cleared, including tables the document does not mention.
Restoring a backup taken before a table existed therefore empties it;
callers should confirm with the user first (see `tables_without_data`).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from backup.snapshot import parse_snapshot
from core.errors import RestoreTransactionError
from core.models.snapshot import SnapshotDocument
from core.protocols import KeyValueStore, PersistenceAdapter

logger = logging.getLogger(__name__)


@dataclass
class RestoreReport:
    """What a successful restore did."""

    tables_cleared: list[str] = field(default_factory=list)
    rows_restored: dict[str, int] = field(default_factory=dict)
    skipped_tables: list[str] = field(default_factory=list)
    settings_restored: list[str] = field(default_factory=list)
    settings_failed: list[str] = field(default_factory=list)

    @property
    def total_rows(self) -> int:
        return sum(self.rows_restored.values())


def tables_without_data(document: SnapshotDocument, store: PersistenceAdapter) -> list[str]:
    """Tables that a restore of `document` would leave empty."""
    return [
        name for name in store.list_tables()
        if not document.tables.get(name)
    ]


def restore_snapshot(
    raw: str | bytes | dict | SnapshotDocument,
    store: PersistenceAdapter,
    settings: KeyValueStore,
) -> RestoreReport:
    """Replace all persisted data with the contents of a backup.

    Raises InvalidSnapshotFormat before any write if the document is
    malformed, and RestoreTransactionError (after rollback) if any table
    write fails.
    """
    document = parse_snapshot(raw)
    logger.info(
        "Starting restore: backup v%d from %s (%d tables, %d rows)",
        document.meta.version,
        document.meta.timestamp.isoformat(),
        len(document.tables),
        document.row_count,
    )

    report = RestoreReport()
    known = store.list_tables()
    current_table: str | None = None

    try:
        with store.transaction():
            logger.info("Clearing all %d tables", len(known))
            for name in known:
                current_table = name
                store.clear(name)
            report.tables_cleared = list(known)

            for name, rows in document.tables.items():
                if name not in known:
                    logger.warning("Skipping table %s: not known to this store", name)
                    report.skipped_tables.append(name)
                    continue
                if not rows:
                    continue
                current_table = name
                logger.info("Restoring %d rows to %s", len(rows), name)
                report.rows_restored[name] = store.bulk_upsert(name, rows)
    except Exception as exc:
        logger.exception("Restore failed on table %s; all changes rolled back", current_table)
        raise RestoreTransactionError(
            f"Restore failed on table '{current_table}': {exc}", table=current_table
        ) from exc

    logger.info("Database restore complete (%d rows)", report.total_rows)

    for key, value in document.settings.items():
        try:
            settings.set(key, value)
        except Exception:
            logger.exception("Failed to restore setting %s; table data is already committed", key)
            report.settings_failed.append(key)
            continue
        report.settings_restored.append(key)
    if report.settings_restored:
        logger.info("Restored %d settings", len(report.settings_restored))

    return report
