"""Concentration rules -- limit exposure to any single holding or sector."""

from __future__ import annotations

from core.models.risk import HoldingVerdict, VerdictStatus
from core.protocols import AssetRiskInput

CONCENTRATION_TRAP = "Concentration Trap"
SECTOR_OVERLOAD = "Sector Overload"


class ConcentrationRule:
    """Flag a holding that is too large a share of the portfolio."""

    def __init__(self, max_single_position: float = 25.0) -> None:
        self.max_single_position = max_single_position

    @property
    def name(self) -> str:
        return "concentration"

    def evaluate(self, asset: AssetRiskInput, current: HoldingVerdict) -> HoldingVerdict | None:
        if asset.allocation_percent <= self.max_single_position:
            return None
        return current.model_copy(update={
            "status": VerdictStatus.CRITICAL,
            "issue": CONCENTRATION_TRAP,
            "action": (
                f"Trim to below {self.max_single_position:.0f}% "
                f"(now {asset.allocation_percent:.1f}% of portfolio)"
            ),
            "rule": self.name,
        })


class SectorOverloadRule:
    """Flag a holding whose sector dominates the portfolio."""

    def __init__(self, max_sector_exposure: float = 40.0) -> None:
        self.max_sector_exposure = max_sector_exposure

    @property
    def name(self) -> str:
        return "sector_overload"

    def evaluate(self, asset: AssetRiskInput, current: HoldingVerdict) -> HoldingVerdict | None:
        if asset.sector_percent is None or asset.sector_percent <= self.max_sector_exposure:
            return None
        return current.model_copy(update={
            "status": VerdictStatus.CRITICAL,
            "issue": SECTOR_OVERLOAD,
            "action": (
                f"Diversify out of {asset.holding.sector} "
                f"({asset.sector_percent:.1f}% of portfolio, limit {self.max_sector_exposure:.0f}%)"
            ),
            "rule": self.name,
        })
