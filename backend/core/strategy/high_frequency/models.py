"""High-frequency strategy parameters."""

from typing import Any, Literal

from pydantic import Field, model_validator

from core.models.config import StrategyParameters

HIGH_FREQUENCY_STRATEGY_NAME = "high_frequency"


class HighFrequencyParameters(StrategyParameters):
    """Parameters for the 1m momentum / mean-reversion / breakout rules."""

    sub_strategy: Literal["momentum", "mean_reversion", "breakout"] = "momentum"
    confidence_threshold: float = Field(default=0.6, ge=0.0, le=1.0)
    stop_loss_pct: float = Field(default=0.02, gt=0.0)
    take_profit_pct: float = Field(default=0.04, gt=0.0)

    rsi_period: int = 14
    ema_period: int = 9
    rsi_overbought: float = 70.0
    rsi_oversold: float = 30.0

    bb_period: int = 20
    bb_multiplier: float = Field(default=2.0, gt=0.0)

    @model_validator(mode="after")
    def _check_rsi_band(self) -> "HighFrequencyParameters":
        if not 0.0 < self.rsi_oversold < self.rsi_overbought < 100.0:
            raise ValueError(
                "rsi thresholds must satisfy 0 < oversold < overbought < 100, got "
                f"{self.rsi_oversold} / {self.rsi_overbought}"
            )
        return self

    def _indicator_periods(self) -> dict[str, Any]:
        periods = super()._indicator_periods()
        periods.update(
            ema_short_period=self.ema_period,
            rsi_period=self.rsi_period,
            rsi_overbought=self.rsi_overbought,
            rsi_oversold=self.rsi_oversold,
            bb_period=self.bb_period,
            bb_multiplier=self.bb_multiplier,
        )
        return periods
