"""Trading signal models."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class SignalAction(str, Enum):
    """What a strategy asks the simulator to do."""

    BUY = "buy"
    SELL = "sell"
    HOLD = "hold"
    CLOSE_POSITION = "close_position"


class Signal(BaseModel):
    """Trading signal produced by a strategy.

    ``confidence`` is an additive score of corroborating rules clamped to
    [0, 1], not a probability.
    """

    model_config = ConfigDict(frozen=True)

    action: SignalAction
    confidence: float = Field(ge=0.0, le=1.0)
    price: float
    reasoning: str = ""
    metadata: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime

    @property
    def is_actionable(self) -> bool:
        """HOLD is a no-op for the simulator."""
        return self.action != SignalAction.HOLD
