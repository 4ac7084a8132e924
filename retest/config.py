"""Opening Retest — application configuration.

Loads .env variables into typed config objects.
Validates required variables on startup.
"""

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from retest.models.retest_config import RetestConfig


_REQUIRED_VARS = [
    "OANDA_ACCOUNT_ID",
    "OANDA_API_TOKEN",
    "OANDA_ENVIRONMENT",
]

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Config:
    """Typed configuration loaded from environment variables."""

    oanda_account_id: str
    oanda_api_token: str
    oanda_environment: str  # "practice" or "live"
    bar_granularity: str
    poll_interval_seconds: int
    log_level: str
    health_port: int
    strategy: RetestConfig = field(default_factory=RetestConfig)

    @property
    def oanda_base_url(self) -> str:
        """Return the OANDA v20 API base URL based on environment."""
        if self.oanda_environment == "live":
            return "https://api-fxtrade.oanda.com"
        return "https://api-fxpractice.oanda.com"

    @property
    def trade_symbol(self) -> str:
        return self.strategy.symbol


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in _TRUTHY


def load_retest_config() -> RetestConfig:
    """Build the strategy parameters from environment variables.

    Raises ``ValueError`` if a value is outside its allowed range.
    """
    return RetestConfig(
        symbol=os.environ.get("TRADE_SYMBOL", "SPX500_USD"),
        label=os.environ.get("TRADE_LABEL", "Opening Retest"),
        shares=int(os.environ.get("SHARES", "500")),
        take_profit=float(os.environ.get("TAKE_PROFIT", "3")),
        stop_loss=float(os.environ.get("STOP_LOSS", "3")),
        no_entry_after_hour=int(os.environ.get("NO_ENTRY_AFTER_HOUR", "19")),
        close_all_trades_hour=int(os.environ.get("CLOSE_ALL_TRADES_HOUR", "19")),
        use_max_move_from_open=_env_bool("USE_MAX_MOVE_FROM_OPEN", False),
        max_move_from_open=float(os.environ.get("MAX_MOVE_FROM_OPEN", "1")),
        use_max_move_high_to_low=_env_bool("USE_MAX_MOVE_HIGH_TO_LOW", False),
        max_move_high_to_low=float(os.environ.get("MAX_MOVE_HIGH_TO_LOW", "1")),
        reset_movement_daily=_env_bool("RESET_MOVEMENT_DAILY", True),
        price_precision=int(os.environ.get("PRICE_PRECISION", "1")),
    )


def load_config(env_path: str | None = None) -> Config:
    """Load configuration from environment variables.

    Raises ``ValueError`` with a message naming the missing variable when a
    required variable is absent.
    """
    load_dotenv(dotenv_path=env_path)

    missing = [v for v in _REQUIRED_VARS if not os.environ.get(v)]
    if missing:
        raise ValueError(
            f"Missing required environment variable(s): {', '.join(missing)}"
        )

    return Config(
        oanda_account_id=os.environ["OANDA_ACCOUNT_ID"],
        oanda_api_token=os.environ["OANDA_API_TOKEN"],
        oanda_environment=os.environ.get("OANDA_ENVIRONMENT", "practice"),
        bar_granularity=os.environ.get("BAR_GRANULARITY", "M15"),
        poll_interval_seconds=int(os.environ.get("POLL_INTERVAL_SECONDS", "10")),
        log_level=os.environ.get("LOG_LEVEL", "INFO"),
        health_port=int(os.environ.get("HEALTH_PORT", "8080")),
        strategy=load_retest_config(),
    )
