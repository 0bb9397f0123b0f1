"""SQLite storage layer.

Every user table holds one JSON document per row, keyed by the value of the
table's key path (e.g. `id` for investments, `date` for history). A small
registry table records the key path of each table so the schema can grow
without code that enumerates tables having to change.
"""

from __future__ import annotations

import json
import logging
import re
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

from pydantic import ValidationError

from core.models.holdings import Holding

logger = logging.getLogger(__name__)

HOLDINGS_TABLE = "investments"

# name -> (key path, auto increment)
DEFAULT_TABLES: dict[str, tuple[str, bool]] = {
    "trades": ("id", True),
    "dividends": ("id", True),
    "ipo_applications": ("id", True),
    "investments": ("id", False),
    "history": ("date", False),
    "tax_records": ("id", True),
    "strategies": ("id", True),
    "daily_reviews": ("date", False),
    "life_events": ("id", True),
    "paper_trades": ("id", True),
    "beneficiaries": ("id", True),
    "conversations": ("id", True),
    "chat_messages": ("id", True),
    "alerts": ("id", True),
    "transactions": ("id", False),
    "goals": ("id", True),
    "friends": ("id", True),
    "quiz_progress": ("id", True),
}

_IDENT_RE = re.compile(r"^[A-Za-z][A-Za-z0-9_]*$")


def _check_identifier(name: str) -> str:
    if not _IDENT_RE.match(name):
        raise ValueError(f"Invalid table name: {name!r}")
    return name


class Store:
    """Table store backed by a single SQLite file.

    Implements the PersistenceAdapter protocol. Writes outside of
    `transaction()` are committed immediately.
    """

    def __init__(self, db_path: Path, tables: dict[str, tuple[str, bool]] | None = None) -> None:
        self._db_path = db_path
        self._db: sqlite3.Connection | None = None
        self._in_transaction = False
        self._init_sqlite(DEFAULT_TABLES if tables is None else tables)

    # ------------------------------------------------------------------
    # SQLite
    # ------------------------------------------------------------------

    def _init_sqlite(self, tables: dict[str, tuple[str, bool]]) -> None:
        """Open the database and create the registry plus default tables."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._db = sqlite3.connect(str(self._db_path), isolation_level=None)
        self._db.row_factory = sqlite3.Row
        self._db.execute("PRAGMA journal_mode=WAL")

        self._db.execute("""
            CREATE TABLE IF NOT EXISTS _table_registry (
                name TEXT PRIMARY KEY,
                key_path TEXT NOT NULL,
                auto_increment INTEGER NOT NULL DEFAULT 0
            )
        """)
        for name, (key_path, auto_increment) in tables.items():
            self.register_table(name, key_path, auto_increment)
        logger.info("SQLite initialized at %s", self._db_path)

    @property
    def db(self) -> sqlite3.Connection:
        if self._db is None:
            raise RuntimeError("Store not initialized")
        return self._db

    def close(self) -> None:
        """Close the SQLite connection."""
        if self._db:
            self._db.close()
            self._db = None

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Run the enclosed writes as one unit; roll back on any exception.

        Nested calls join the outer transaction.
        """
        if self._in_transaction:
            yield
            return

        self.db.execute("BEGIN IMMEDIATE")
        self._in_transaction = True
        try:
            yield
        except BaseException:
            self.db.execute("ROLLBACK")
            logger.warning("Transaction rolled back")
            raise
        else:
            self.db.execute("COMMIT")
        finally:
            self._in_transaction = False

    # ------------------------------------------------------------------
    # Schema registry
    # ------------------------------------------------------------------

    def register_table(self, name: str, key_path: str, auto_increment: bool = False) -> None:
        """Create a document table (if needed) and record its key path."""
        _check_identifier(name)
        self.db.execute(
            f"""CREATE TABLE IF NOT EXISTS "{name}" (
                    pk TEXT PRIMARY KEY,
                    int_key INTEGER,
                    doc TEXT NOT NULL
                )"""
        )
        self.db.execute(
            """INSERT OR REPLACE INTO _table_registry (name, key_path, auto_increment)
               VALUES (?, ?, ?)""",
            (name, key_path, int(auto_increment)),
        )

    def list_tables(self) -> list[str]:
        rows = self.db.execute("SELECT name FROM _table_registry ORDER BY name").fetchall()
        return [row["name"] for row in rows]

    def has_table(self, name: str) -> bool:
        row = self.db.execute(
            "SELECT 1 FROM _table_registry WHERE name = ?", (name,)
        ).fetchone()
        return row is not None

    def _schema(self, table: str) -> tuple[str, bool]:
        row = self.db.execute(
            "SELECT key_path, auto_increment FROM _table_registry WHERE name = ?",
            (table,),
        ).fetchone()
        if row is None:
            raise KeyError(f"Unknown table: {table}")
        return row["key_path"], bool(row["auto_increment"])

    # ------------------------------------------------------------------
    # Row operations
    # ------------------------------------------------------------------

    def read_all(self, table: str) -> list[dict[str, Any]]:
        """Return every row of a table in insertion order."""
        self._schema(table)
        rows = self.db.execute(f'SELECT doc FROM "{table}" ORDER BY rowid').fetchall()
        return [json.loads(row["doc"]) for row in rows]

    def count(self, table: str) -> int:
        self._schema(table)
        return self.db.execute(f'SELECT COUNT(*) FROM "{table}"').fetchone()[0]

    def clear(self, table: str) -> None:
        self._schema(table)
        self.db.execute(f'DELETE FROM "{table}"')

    def bulk_upsert(self, table: str, rows: list[dict[str, Any]]) -> int:
        """Insert or replace rows by key.

        Rows without a key get the next integer key when the table
        auto-increments; otherwise a missing key is a ValueError.
        """
        key_path, auto_increment = self._schema(table)
        with self.transaction():
            next_key: int | None = None
            for row in rows:
                key = row.get(key_path)
                if key is None:
                    if not auto_increment:
                        raise ValueError(f"Row in {table} is missing key '{key_path}'")
                    if next_key is None:
                        current = self.db.execute(
                            f'SELECT COALESCE(MAX(int_key), 0) FROM "{table}"'
                        ).fetchone()[0]
                        next_key = int(current) + 1
                    key = next_key
                    next_key += 1
                    row = {**row, key_path: key}
                elif auto_increment and isinstance(key, int) and next_key is not None:
                    next_key = max(next_key, key + 1)

                self.db.execute(
                    f'INSERT OR REPLACE INTO "{table}" (pk, int_key, doc) VALUES (?, ?, ?)',
                    (
                        json.dumps(key),
                        key if isinstance(key, int) and not isinstance(key, bool) else None,
                        json.dumps(row),
                    ),
                )
        return len(rows)

    # ------------------------------------------------------------------
    # Holdings
    # ------------------------------------------------------------------

    def list_holdings(self) -> list[Holding]:
        """Parse every investments row as a Holding, skipping malformed rows."""
        results = []
        for row in self.read_all(HOLDINGS_TABLE):
            try:
                results.append(Holding.model_validate(row))
            except ValidationError:
                logger.exception("Failed to parse holding row %s", row.get("id"))
        return results

    def save_holdings(self, holdings: list[Holding]) -> int:
        rows = [h.model_dump(mode="json", by_alias=True, exclude_none=True) for h in holdings]
        return self.bulk_upsert(HOLDINGS_TABLE, rows)
