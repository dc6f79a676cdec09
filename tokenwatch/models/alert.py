"""Alert and Trigger data models."""

from datetime import datetime
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, Field


Severity = Literal["low", "medium", "high", "critical"]


class Trigger(BaseModel):
    """Result of a single condition that fired during one evaluation cycle."""

    token_address: str = Field(..., description="Token the condition fired on")
    token_symbol: str = Field(default="Unknown", description="Display symbol")
    condition_type: str = Field(..., description="Condition type that fired")
    current_value: float = Field(..., description="Observed value")
    threshold_value: Union[float, tuple[float, float]] = Field(
        ..., description="Configured threshold"
    )
    message: str = Field(..., description="Human readable summary")
    timestamp: datetime = Field(
        default_factory=datetime.now, description="Evaluation timestamp"
    )
    data: dict[str, Any] = Field(default_factory=dict, description="Raw context")

    model_config = {"frozen": True}


class Alert(BaseModel):
    """Represents a persisted alert produced by the engine."""

    id: Optional[int] = Field(default=None, description="Database ID")
    token_address: str = Field(default="", description="Token address")
    type: str = Field(..., min_length=1, description="Alert type")
    title: str = Field(..., min_length=1, description="Short title")
    message: str = Field(..., description="Alert message")
    score: float = Field(default=0.0, ge=0, le=100, description="Alert score")
    conditions: list[str] = Field(
        default_factory=list, description="Conditions that produced the alert"
    )
    severity: Severity = Field(default="medium", description="Alert severity")
    config_id: Optional[int] = Field(
        default=None, description="Originating alert config, if any"
    )
    data: dict[str, Any] = Field(default_factory=dict, description="Raw context")
    timestamp: datetime = Field(
        default_factory=datetime.now, description="Alert creation timestamp"
    )
    is_read: bool = Field(default=False, description="Whether the alert was read")

    model_config = {"frozen": True}
