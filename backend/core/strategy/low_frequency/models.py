"""Low-frequency strategy parameters."""

from typing import Any, Literal

from pydantic import Field

from core.models.config import StrategyParameters

LOW_FREQUENCY_STRATEGY_NAME = "low_frequency"


class LowFrequencyParameters(StrategyParameters):
    """Parameters for the 1h swing / Bollinger / MACD rules."""

    sub_strategy: Literal["swing_trading", "bollinger_strategy", "macd_strategy"] = "swing_trading"
    confidence_threshold: float = Field(default=0.7, ge=0.0, le=1.0)
    stop_loss_pct: float = Field(default=0.05, gt=0.0)
    take_profit_pct: float = Field(default=0.10, gt=0.0)

    bb_period: int = 20
    bb_multiplier: float = Field(default=2.0, gt=0.0)
    cci_period: int = 20
    rsi_period: int = 14

    def _indicator_periods(self) -> dict[str, Any]:
        periods = super()._indicator_periods()
        periods.update(
            bb_period=self.bb_period,
            bb_multiplier=self.bb_multiplier,
            cci_period=self.cci_period,
            rsi_period=self.rsi_period,
        )
        return periods
