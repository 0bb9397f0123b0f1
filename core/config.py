"""Settings for the wealth core -- config.yaml in the data home, plus an optional .env.

Any string value may reference the environment as ${NAME}; unknown names
are kept verbatim and logged. WEALTH_HOME, when set, wins over `home_dir`.
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

from core.models.risk import RiskProfile

logger = logging.getLogger(__name__)

HOME_ENV_VAR = "WEALTH_HOME"
DEFAULT_HOME = Path.home() / ".wealthaggregator"

# localStorage-style keys carried in every backup
DEFAULT_SETTINGS_KEYS = [
    "wealth-aggregator-xp",
    "theme",
    "realized_ltcg_fy",
    "wealth-aggregator-logic",
    "wealth-aggregator-paper-trader",
    "financial_mistakes",
    "advisor_chat_history",
    "advisor_report_data",
    "rebalance-targets",
    "academy_completed_items",
    "fortress_notes",
    "fortress_hash",
    "dashboard-widget-order-v8",
    "trading-journal-prefs",
    "wealth-aggregator-alerts",
    "category-rules-storage",
]

_ENV_REF = re.compile(r"\$\{(\w+)\}")


def _expand_env(match: re.Match) -> str:
    name = match.group(1)
    if name in os.environ:
        return os.environ[name]
    logger.warning("Config references unset environment variable %s", name)
    return match.group(0)


def _resolve_env_vars(node: Any) -> Any:
    """Substitute ${NAME} in every string of a parsed YAML tree."""
    if isinstance(node, dict):
        return {key: _resolve_env_vars(item) for key, item in node.items()}
    if isinstance(node, list):
        return [_resolve_env_vars(item) for item in node]
    if isinstance(node, str):
        return _ENV_REF.sub(_expand_env, node)
    return node


# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------

class RiskConfig(BaseModel):
    bullion_cap_percent: float = 40.0
    profit_booking_threshold_percent: float = 20.0
    bubble_limit_percent: float = 90.0
    high_volatility_vix: float = 30.0

    def base_profile(self) -> RiskProfile:
        """Thresholds used when no scenario override applies."""
        return RiskProfile(
            bullion_cap_percent=self.bullion_cap_percent,
            profit_booking_threshold_percent=self.profit_booking_threshold_percent,
            bubble_limit_percent=self.bubble_limit_percent,
        )


class BackupConfig(BaseModel):
    app_id: str = "WealthAggregator"
    schema_version: int = 5
    settings_keys: list[str] = Field(default_factory=lambda: list(DEFAULT_SETTINGS_KEYS))
    # Fallback destination when no save picker is available
    export_dir: str = ""


class LoggingConfig(BaseModel):
    level: str = "INFO"


class AppConfig(BaseModel):
    """Everything the CLI needs to open the data home and run."""

    home_dir: str = str(DEFAULT_HOME)
    risk: RiskConfig = Field(default_factory=RiskConfig)
    backup: BackupConfig = Field(default_factory=BackupConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @property
    def home_path(self) -> Path:
        return Path(self.home_dir).expanduser()

    @property
    def export_path(self) -> Path:
        if self.backup.export_dir:
            return Path(self.backup.export_dir).expanduser()
        return self.home_path / "exports"

    @property
    def db_path(self) -> Path:
        return self.home_path / "wealth.sqlite"

    @property
    def settings_path(self) -> Path:
        return self.home_path / "settings.json"


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

def _read_yaml(path: Path) -> dict:
    if not path.is_file():
        logger.warning("Config %s not found; running on defaults", path)
        return {}
    with path.open() as fh:
        data = yaml.safe_load(fh)
    logger.info("Read config %s", path)
    return data or {}


def load_config(
    config_path: str | Path | None = None,
    env_path: str | Path | None = None,
) -> AppConfig:
    """Build the AppConfig for the current data home.

    The .env file is loaded before the YAML so its values can satisfy
    ${NAME} references. Missing files fall back to defaults; malformed YAML
    or invalid values raise.
    """
    home = Path(os.environ.get(HOME_ENV_VAR) or DEFAULT_HOME).expanduser()

    env_file = Path(env_path) if env_path else home / ".env"
    if env_file.is_file():
        load_dotenv(env_file)
        logger.info("Read environment file %s", env_file)

    raw = _resolve_env_vars(_read_yaml(Path(config_path) if config_path else home / "config.yaml"))
    if os.environ.get(HOME_ENV_VAR):
        raw["home_dir"] = str(home)

    config = AppConfig.model_validate(raw)
    for directory in (config.home_path, config.export_path):
        directory.mkdir(parents=True, exist_ok=True)
    return config
