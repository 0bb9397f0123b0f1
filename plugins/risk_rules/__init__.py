"""Built-in holding rules -- implementations of the HoldingRule protocol.

`default_rules()` returns them in evaluation order. Order matters: a later
matching rule replaces the verdict of an earlier one.
"""

from plugins.risk_rules.beta import BlueChipStagnationRule, HighBetaRule, estimate_beta
from plugins.risk_rules.concentration import ConcentrationRule, SectorOverloadRule
from plugins.risk_rules.liquidity import LiquidityRule
from plugins.risk_rules.momentum import (
    DeadCatBounceRule,
    FallingKnifeRule,
    FlashRallyRule,
    FreeRideRule,
    SlowBleedRule,
    WeakRallyRule,
)


def default_rules() -> list:
    return [
        FlashRallyRule(),
        FallingKnifeRule(),
        ConcentrationRule(),
        FreeRideRule(),
        SlowBleedRule(),
        DeadCatBounceRule(),
        SectorOverloadRule(),
        HighBetaRule(),
        BlueChipStagnationRule(),
        LiquidityRule(),
        WeakRallyRule(),
    ]


__all__ = [
    "BlueChipStagnationRule",
    "ConcentrationRule",
    "DeadCatBounceRule",
    "FallingKnifeRule",
    "FlashRallyRule",
    "FreeRideRule",
    "HighBetaRule",
    "LiquidityRule",
    "SectorOverloadRule",
    "SlowBleedRule",
    "WeakRallyRule",
    "default_rules",
    "estimate_beta",
]
