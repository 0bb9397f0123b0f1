"""Holdings CSV export -- a one-way, human-readable dump of the investments table.

Strings are quoted with internal quotes doubled; numbers are left bare.
Not restorable: use the JSON snapshot for backups.
"""

from __future__ import annotations

import csv
import io
from datetime import datetime, timezone

from core.models.holdings import Holding

HEADERS = [
    "Name",
    "Ticker",
    "Type",
    "Platform",
    "Quantity",
    "Invested",
    "CurrentValue",
    "NetPL",
    "Sector",
    "LastUpdated",
]


def _number(value: float) -> float | int:
    """Whole amounts as ints so the CSV shows 1000, not 1000.0."""
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def holdings_filename(now: datetime | None = None) -> str:
    now = now or datetime.now(timezone.utc)
    return f"WealthHoldings_{now.date().isoformat()}.csv"


def holdings_to_csv(holdings: list[Holding]) -> str:
    """Render holdings as CSV text (header row included)."""
    buffer = io.StringIO()
    buffer.write(",".join(HEADERS) + "\n")
    writer = csv.writer(buffer, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")
    for h in holdings:
        writer.writerow([
            h.name,
            h.ticker or "",
            h.type.value,
            h.platform,
            _number(h.quantity or 0),
            _number(h.invested_amount),
            _number(h.current_value),
            _number(h.net_pl),
            h.sector or "",
            h.last_updated,
        ])
    return buffer.getvalue()
