"""Core protocols -- the extension points the services depend on.

The core imports these protocols. Storage backends, pickers and rules
implement them. All protocols use structural subtyping (typing.Protocol):
if your class has the right methods, it implements the protocol.
No inheritance required.
"""

from __future__ import annotations

from contextlib import AbstractContextManager
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from core.models.holdings import Holding
from core.models.risk import HoldingVerdict, RiskContext


# ---------------------------------------------------------------------------
# 1. PersistenceAdapter -- the table store backups read and restores rewrite
# ---------------------------------------------------------------------------

@runtime_checkable
class PersistenceAdapter(Protocol):
    """Table-oriented storage that can be enumerated, wiped and bulk-loaded.

    Default implementation: Store (SQLite, one JSON document per row).
    Backup code never assumes a storage engine; it only uses these methods.
    """

    def list_tables(self) -> list[str]:
        """Names of every table currently known to the store."""
        ...

    def read_all(self, table: str) -> list[dict[str, Any]]:
        """Full contents of a table, as plain dicts."""
        ...

    def clear(self, table: str) -> None:
        """Delete every row in a table."""
        ...

    def bulk_upsert(self, table: str, rows: list[dict[str, Any]]) -> int:
        """Insert-or-replace rows by primary key. Returns the number written."""
        ...

    def transaction(self) -> AbstractContextManager[None]:
        """Context manager: all writes inside commit together or roll back together."""
        ...


# ---------------------------------------------------------------------------
# 2. KeyValueStore -- small string settings outside the table store
# ---------------------------------------------------------------------------

@runtime_checkable
class KeyValueStore(Protocol):
    def get(self, key: str) -> str | None:
        ...

    def set(self, key: str, value: str) -> None:
        ...


# ---------------------------------------------------------------------------
# 3. SavePicker -- the interactive "save as" step of an export
# ---------------------------------------------------------------------------

@runtime_checkable
class SavePicker(Protocol):
    """Asks the user where to save a file.

    Returns the chosen path, or None when the user cancelled. Raising any
    exception means the picker is unavailable and the caller falls back.
    """

    @property
    def name(self) -> str:
        ...

    def choose(self, suggested_filename: str) -> Path | None:
        ...


class DeliveryResult:
    """Result of delivering an export."""

    def __init__(self, status: str, adapter: str, path: Path | None = None, message: str = ""):
        self.status = status
        self.adapter = adapter
        self.path = path
        self.message = message

    @property
    def delivered(self) -> bool:
        return self.status == "delivered"

    @property
    def cancelled(self) -> bool:
        return self.status == "cancelled"

    def __repr__(self) -> str:
        return f"DeliveryResult({self.status}, {self.adapter}, {self.path})"


# ---------------------------------------------------------------------------
# 4. HoldingRule -- one protocol in the ordered per-holding rule pass
# ---------------------------------------------------------------------------

@runtime_checkable
class HoldingRule(Protocol):
    """A single heuristic checked against one holding.

    Rules run in a fixed order. A rule that matches returns a new verdict
    which replaces the running one; a rule that does not match returns None.
    Rules must be deterministic and fast. No I/O.
    """

    @property
    def name(self) -> str:
        ...

    def evaluate(self, asset: AssetRiskInput, current: HoldingVerdict) -> HoldingVerdict | None:
        ...


class AssetRiskInput:
    """Everything a HoldingRule may look at for one holding."""

    def __init__(
        self,
        holding: Holding,
        context: RiskContext,
        roi_percent: float,
        allocation_percent: float,
        sector_percent: float | None,
        beta: float,
    ):
        self.holding = holding
        self.context = context
        self.roi_percent = roi_percent
        self.allocation_percent = allocation_percent
        self.sector_percent = sector_percent
        self.beta = beta

    @property
    def scenario(self):
        return self.context.scenario
