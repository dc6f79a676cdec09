"""Alert configuration models: conditions, actions and configs.

Conditions form a closed set of variants discriminated on ``type``. Only
``price_change`` and ``volume_spike`` are wired to a data source; the other
variants validate and persist but never trigger.
"""

from datetime import datetime, timedelta
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, Field, model_validator


Operator = Literal["greater_than", "less_than", "equals", "between", "percentage_change"]
Timeframe = Literal["1m", "5m", "15m", "1h", "4h", "24h"]
Priority = Literal["low", "medium", "high", "critical"]
ActionType = Literal["notification", "email", "webhook", "auto_trade"]

TIMEFRAME_WINDOWS: dict[str, timedelta] = {
    "1m": timedelta(minutes=1),
    "5m": timedelta(minutes=5),
    "15m": timedelta(minutes=15),
    "1h": timedelta(hours=1),
    "4h": timedelta(hours=4),
    "24h": timedelta(hours=24),
}


class _BaseCondition(BaseModel):
    """Fields shared by every condition variant."""

    operator: Operator = Field(default="greater_than", description="Comparison operator")
    value: Union[float, tuple[float, float]] = Field(
        ..., description="Scalar threshold or [low, high] range"
    )
    timeframe: Timeframe = Field(default="1h", description="Lookback window")
    token_address: Optional[str] = Field(
        default=None, description="Token scope; None watches every active token"
    )
    params: dict[str, Any] = Field(default_factory=dict, description="Extra parameters")

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _check_range(self) -> "_BaseCondition":
        if isinstance(self.value, tuple):
            low, high = self.value
            if low > high:
                raise ValueError(f"range low {low} is greater than high {high}")
        elif self.operator == "between":
            raise ValueError("operator 'between' requires a [low, high] range")
        return self

    @property
    def threshold(self) -> float:
        """Scalar threshold; the lower bound when the value is a range."""
        if isinstance(self.value, tuple):
            return self.value[0]
        return self.value

    @property
    def window(self) -> timedelta:
        return TIMEFRAME_WINDOWS[self.timeframe]


class PriceChangeCondition(_BaseCondition):
    type: Literal["price_change"] = "price_change"


class VolumeSpikeCondition(_BaseCondition):
    type: Literal["volume_spike"] = "volume_spike"


class SentimentChangeCondition(_BaseCondition):
    type: Literal["sentiment_change"] = "sentiment_change"


class KOLActivityCondition(_BaseCondition):
    type: Literal["kol_activity"] = "kol_activity"


class TechnicalIndicatorCondition(_BaseCondition):
    type: Literal["technical_indicator"] = "technical_indicator"


class MarketCapChangeCondition(_BaseCondition):
    type: Literal["market_cap_change"] = "market_cap_change"


Condition = Annotated[
    Union[
        PriceChangeCondition,
        VolumeSpikeCondition,
        SentimentChangeCondition,
        KOLActivityCondition,
        TechnicalIndicatorCondition,
        MarketCapChangeCondition,
    ],
    Field(discriminator="type"),
]

CONDITION_TYPES = (
    "price_change",
    "volume_spike",
    "sentiment_change",
    "kol_activity",
    "technical_indicator",
    "market_cap_change",
)


class Action(BaseModel):
    """Something to do when a config triggers."""

    type: ActionType = Field(..., description="Action type")
    config: dict[str, Any] = Field(default_factory=dict, description="Action settings")
    enabled: bool = Field(default=True, description="Whether the action runs")

    model_config = {"frozen": True}


class AlertConfig(BaseModel):
    """A user defined alert rule."""

    id: Optional[int] = Field(default=None, description="Database ID")
    owner_id: str = Field(..., min_length=1, description="Owning user")
    name: str = Field(..., min_length=1, description="Config name")
    description: str = Field(default="", description="Free-form description")
    is_active: bool = Field(default=True, description="Whether the config is evaluated")
    conditions: list[Condition] = Field(
        ..., min_length=1, description="Conditions, evaluated in order"
    )
    actions: list[Action] = Field(default_factory=list, description="Actions on trigger")
    cooldown_minutes: int = Field(default=30, ge=0, description="Minimum minutes between triggers")
    priority: Priority = Field(default="medium", description="Alert priority")
    tags: list[str] = Field(default_factory=list, description="Tags")
    created_at: datetime = Field(default_factory=datetime.now, description="Creation timestamp")
    updated_at: Optional[datetime] = Field(default=None, description="Last update timestamp")
    last_triggered_at: Optional[datetime] = Field(
        default=None, description="Last time the config triggered"
    )

    model_config = {"frozen": True}

    def in_cooldown(self, now: datetime) -> bool:
        """Check whether the config is still cooling down at ``now``."""
        if self.last_triggered_at is None:
            return False
        elapsed = now - self.last_triggered_at
        return elapsed < timedelta(minutes=self.cooldown_minutes)
