"""Configuration loading for TokenWatch.

Settings live in ``~/.config/tokenwatch/config.toml``. Every key is
optional; missing sections fall back to the defaults below.
"""

from pathlib import Path
from typing import Optional

import toml
from pydantic import BaseModel, Field, ValidationError

from tokenwatch.errors import ConfigValidationError


CONFIG_DIR = Path.home() / ".config" / "tokenwatch"
DEFAULT_CONFIG_PATH = CONFIG_DIR / "config.toml"
DEFAULT_DB_PATH = CONFIG_DIR / "tokenwatch.db"


class EngineSettings(BaseModel):
    """Scheduler intervals and storage location."""

    db_path: Path = Field(default=DEFAULT_DB_PATH, description="SQLite database path")
    alert_interval_seconds: float = Field(default=30.0, gt=0, description="Alert cycle interval")
    sentiment_interval_seconds: float = Field(default=60.0, gt=0, description="Sentiment cycle interval")
    kol_interval_seconds: float = Field(default=300.0, gt=0, description="KOL cycle interval")
    analysis_interval_seconds: float = Field(default=120.0, gt=0, description="Token analysis cycle interval")
    active_token_limit: int = Field(default=20, gt=0, description="Tokens analysed per sentiment and analysis cycle")
    install_default_configs: bool = Field(default=True, description="Create the built-in alert configs")


class SentimentSettings(BaseModel):
    """Sentiment aggregation constants."""

    decay_hours: float = Field(default=12.0, gt=0, description="Time decay constant in hours")
    lookback_hours: int = Field(default=24, gt=0, description="Sample lookback")
    source_weights: dict[str, float] = Field(
        default_factory=lambda: {
            "twitter": 1.5,
            "reddit": 1.3,
            "telegram": 1.2,
            "discord": 1.0,
            "pump_comments": 0.8,
        },
        description="Per-source weight",
    )


class KOLSettings(BaseModel):
    """KOL signal scoring thresholds."""

    large_trade_sol: float = Field(default=100.0, ge=0, description="Large trade threshold")
    medium_trade_sol: float = Field(default=50.0, ge=0, description="Medium trade threshold")
    broadcast_confidence: float = Field(default=70.0, ge=0, le=100, description="Broadcast cut-off")
    transactions_per_poll: int = Field(default=20, gt=0, description="Transactions fetched per wallet")


class BreakoutSettings(BaseModel):
    """Breakout scan thresholds."""

    enabled: bool = Field(default=True, description="Run the breakout scan")
    min_price_change_5m: float = Field(default=50.0, description="5 minute price change %")
    min_volume_change: float = Field(default=300.0, description="Volume change %")
    min_liquidity: float = Field(default=10.0, ge=0, description="Liquidity in SOL")


class Settings(BaseModel):
    """Top-level TokenWatch settings."""

    engine: EngineSettings = Field(default_factory=EngineSettings)
    sentiment: SentimentSettings = Field(default_factory=SentimentSettings)
    kol: KOLSettings = Field(default_factory=KOLSettings)
    breakout: BreakoutSettings = Field(default_factory=BreakoutSettings)


def load_settings(config_path: Optional[Path] = None) -> Settings:
    """Load settings from a TOML file.

    Args:
        config_path: Path to the config file. Defaults to DEFAULT_CONFIG_PATH.

    Returns:
        Settings, with defaults when the file does not exist.

    Raises:
        ConfigValidationError: If the file cannot be parsed or validated.
    """
    path = config_path or DEFAULT_CONFIG_PATH
    if not path.exists():
        return Settings()

    try:
        raw = toml.load(path)
    except toml.TomlDecodeError as e:
        raise ConfigValidationError(f"Cannot parse {path}: {e}") from e

    try:
        return Settings.model_validate(raw)
    except ValidationError as e:
        raise ConfigValidationError(f"Invalid settings in {path}: {e}") from e


def write_template(config_path: Optional[Path] = None) -> Path:
    """Write a template configuration file.

    Args:
        config_path: Destination. Defaults to DEFAULT_CONFIG_PATH.

    Returns:
        Path of the written file.
    """
    path = config_path or DEFAULT_CONFIG_PATH
    path.parent.mkdir(parents=True, exist_ok=True)

    template = Settings().model_dump(mode="json")
    with open(path, "w") as f:
        toml.dump(template, f)
    return path
