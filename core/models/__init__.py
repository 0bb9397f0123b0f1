"""Pydantic data models shared across all components."""

from core.models.holdings import BULLION_TYPES, Holding, InvestmentType, portfolio_total
from core.models.risk import (
    AssetSignals,
    BullionExposure,
    HoldingVerdict,
    MarketContext,
    MarketScenario,
    PortfolioVerdict,
    RiskContext,
    RiskProfile,
    VerdictLevel,
    VerdictStatus,
)
from core.models.snapshot import SnapshotDocument, SnapshotMeta

__all__ = [
    "BULLION_TYPES",
    "Holding",
    "InvestmentType",
    "portfolio_total",
    "AssetSignals",
    "BullionExposure",
    "HoldingVerdict",
    "MarketContext",
    "MarketScenario",
    "PortfolioVerdict",
    "RiskContext",
    "RiskProfile",
    "VerdictLevel",
    "VerdictStatus",
    "SnapshotDocument",
    "SnapshotMeta",
]
