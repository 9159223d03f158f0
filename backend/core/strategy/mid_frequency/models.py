"""Mid-frequency strategy parameters."""

from typing import Any, Literal

from pydantic import Field, model_validator

from core.models.config import StrategyParameters

MID_FREQUENCY_STRATEGY_NAME = "mid_frequency"


class MidFrequencyParameters(StrategyParameters):
    """Parameters for the 15m trend / dual-EMA / RSI divergence rules."""

    sub_strategy: Literal["trend_following", "dual_ema", "rsi_divergence"] = "trend_following"
    confidence_threshold: float = Field(default=0.65, ge=0.0, le=1.0)
    stop_loss_pct: float = Field(default=0.03, gt=0.0)
    take_profit_pct: float = Field(default=0.06, gt=0.0)

    ema_fast: int = 12
    ema_slow: int = 26
    rsi_period: int = 14
    kdj_period: int = 9

    @model_validator(mode="after")
    def _check_ema_order(self) -> "MidFrequencyParameters":
        if self.ema_fast >= self.ema_slow:
            raise ValueError(
                f"ema_fast ({self.ema_fast}) must be below ema_slow ({self.ema_slow})"
            )
        return self

    def _indicator_periods(self) -> dict[str, Any]:
        periods = super()._indicator_periods()
        periods.update(
            ema_short_period=self.ema_fast,
            ema_long_period=self.ema_slow,
            rsi_period=self.rsi_period,
            kdj_period=self.kdj_period,
        )
        return periods
