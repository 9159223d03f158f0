"""Indicator and strategy parameter models."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

# Integer fields with these suffixes are look-back lengths and must be > 0
_PERIOD_SUFFIXES = ("_period", "_fast", "_slow", "_signal", "_smooth")


class IndicatorConfig(BaseModel):
    """Indicator periods used when building an IndicatorSet."""

    model_config = ConfigDict(frozen=True)

    sma_period: int = 20
    ema_short_period: int = 12
    ema_long_period: int = 26

    rsi_period: int = 14
    rsi_overbought: float = 70.0
    rsi_oversold: float = 30.0

    macd_fast: int = 12
    macd_slow: int = 26
    macd_signal: int = 9

    bb_period: int = 20
    bb_multiplier: float = 2.0

    kdj_period: int = 9
    kdj_k_smooth: int = 3
    kdj_d_smooth: int = 3

    cci_period: int = 20
    williams_period: int = 14
    vwap_period: int = 20


class StrategyParameters(BaseModel):
    """Parameters shared by every strategy variant.

    Variants subclass this, narrow ``sub_strategy`` to their own names and
    add their periods. Invalid combinations fail at construction with a
    pydantic ValidationError.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    sub_strategy: str
    confidence_threshold: float = Field(default=0.6, ge=0.0, le=1.0)
    stop_loss_pct: float = Field(default=0.02, gt=0.0)
    take_profit_pct: float = Field(default=0.04, gt=0.0)

    macd_fast: int = 12
    macd_slow: int = 26
    macd_signal: int = 9

    @model_validator(mode="after")
    def _check_periods(self) -> "StrategyParameters":
        for name, value in self:
            if name.endswith(_PERIOD_SUFFIXES) and isinstance(value, int) and value <= 0:
                raise ValueError(f"{name} must be positive, got {value}")
        if self.macd_fast >= self.macd_slow:
            raise ValueError(
                f"macd_fast ({self.macd_fast}) must be below macd_slow ({self.macd_slow})"
            )
        return self

    def indicator_config(self) -> IndicatorConfig:
        """Indicator periods implied by these parameters."""
        return IndicatorConfig(**self._indicator_periods())

    def _indicator_periods(self) -> dict[str, Any]:
        return {
            "macd_fast": self.macd_fast,
            "macd_slow": self.macd_slow,
            "macd_signal": self.macd_signal,
        }
