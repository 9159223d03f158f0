"""Daily strategy parameters."""

from typing import Any, Literal

from pydantic import Field

from core.models.config import StrategyParameters

DAILY_STRATEGY_NAME = "daily"


class DailyParameters(StrategyParameters):
    """Parameters for the 1d long-trend / value-reversion / fundamental-trend rules."""

    sub_strategy: Literal["long_trend", "value_reversion", "fundamental_trend"] = "long_trend"
    confidence_threshold: float = Field(default=0.75, ge=0.0, le=1.0)
    stop_loss_pct: float = Field(default=0.08, gt=0.0)
    take_profit_pct: float = Field(default=0.15, gt=0.0)

    ema_period: int = 50
    rsi_period: int = 14
    cci_period: int = 20
    trend_threshold: float = Field(default=0.1, gt=0.0)

    def _indicator_periods(self) -> dict[str, Any]:
        periods = super()._indicator_periods()
        periods.update(
            ema_long_period=self.ema_period,
            rsi_period=self.rsi_period,
            cci_period=self.cci_period,
        )
        return periods
