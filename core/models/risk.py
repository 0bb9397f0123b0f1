"""Risk models -- market context, thresholds and verdicts."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class MarketScenario(str, Enum):
    NORMAL = "NORMAL"
    HIGH_VOLATILITY = "HIGH_VOLATILITY"
    SILVER_CRASH = "SILVER_CRASH"
    GOLD_RALLY = "GOLD_RALLY"
    CRYPTO_WINTER = "CRYPTO_WINTER"
    BULL_RUN = "BULL_RUN"


class VerdictStatus(str, Enum):
    SAFE = "SAFE"
    WARNING = "WARNING"
    CRITICAL = "CRITICAL"


class VerdictLevel(str, Enum):
    SAFE = "SAFE"
    CAUTION = "CAUTION"
    CRITICAL = "CRITICAL"
    KILL_SWITCH = "KILL_SWITCH"


class MarketContext(BaseModel):
    """Named market condition plus the live readings behind it."""

    model_config = ConfigDict(frozen=True)

    scenario: MarketScenario = MarketScenario.NORMAL
    volatility_index: float = 15.0
    commodity_ratio: float = 80.0


class RiskProfile(BaseModel):
    """Thresholds derived from the base settings and the current scenario."""

    model_config = ConfigDict(frozen=True)

    bullion_cap_percent: float = 40.0
    profit_booking_threshold_percent: float = 20.0
    bubble_limit_percent: float = 90.0


class RiskContext(BaseModel):
    """Immutable snapshot of context + profile taken at the start of an evaluation."""

    model_config = ConfigDict(frozen=True)

    market: MarketContext = Field(default_factory=MarketContext)
    profile: RiskProfile = Field(default_factory=RiskProfile)

    @property
    def scenario(self) -> MarketScenario:
        return self.market.scenario


class HoldingVerdict(BaseModel):
    """Outcome of the per-holding rule pass."""

    holding_id: str
    name: str = ""
    status: VerdictStatus = VerdictStatus.SAFE
    issue: str = "No Issues"
    action: str = "Hold"
    rule: str | None = None


class PortfolioVerdict(BaseModel):
    """Holistic portfolio risk call."""

    score: int = Field(default=100, ge=0, le=100)
    level: VerdictLevel = VerdictLevel.SAFE
    title: str = ""
    narrative: str = ""
    action_plan: list[str] = Field(default_factory=list)


class BullionExposure(BaseModel):
    exposure_percent: float
    limit_percent: float
    is_overweight: bool


class AssetSignals(BaseModel):
    roi_percent: float
    should_book_profit: bool
    is_bubble_risk: bool
