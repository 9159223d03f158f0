"""Build the named indicator set a strategy asks for."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Sequence

from core.indicators.indicators import (
    bollinger_bands,
    cci,
    ema,
    kdj,
    macd,
    rsi,
    sma,
    vwap,
    williams_r,
)
from core.indicators.signals import SignalHint, kdj_signal, macd_signal, rsi_signal
from core.models.bar import Bar
from core.models.config import IndicatorConfig


class IndicatorType(str, Enum):
    """Indicator families a strategy can require."""

    SMA = "sma"
    EMA = "ema"
    RSI = "rsi"
    MACD = "macd"
    BOLLINGER = "bollinger"
    KDJ = "kdj"
    CCI = "cci"
    WILLIAMS_R = "williams_r"
    VWAP = "vwap"


@dataclass
class IndicatorSet:
    """Indicator series keyed by name, plus per-indicator signal hints.

    A key is absent when its warm-up is not met; lookups then return None.
    """

    series: dict[str, list[float]] = field(default_factory=dict)
    hints: dict[str, SignalHint] = field(default_factory=dict)

    def __contains__(self, name: str) -> bool:
        return name in self.series

    def set(self, name: str, values: Sequence[float]) -> None:
        """Store a series; empty series are dropped."""
        if len(values) > 0:
            self.series[name] = list(values)

    def get(self, name: str) -> float | None:
        """Latest value of ``name`` or None."""
        values = self.series.get(name)
        return values[-1] if values else None

    def history(self, name: str) -> list[float]:
        """Full series of ``name`` (empty when absent)."""
        return self.series.get(name, [])

    def hint(self, name: str) -> SignalHint | None:
        return self.hints.get(name)

    def latest(self) -> dict[str, float]:
        """Latest value of every present series."""
        return {name: values[-1] for name, values in self.series.items()}


class IndicatorCalculator:
    """Calculator for the indicators a strategy declares.

    Recomputes every requested series from the full bar prefix it is given.
    """

    def __init__(self, config: IndicatorConfig | None = None):
        self.config = config or IndicatorConfig()

    def calculate(
        self,
        bars: Sequence[Bar],
        required: Iterable[IndicatorType],
    ) -> IndicatorSet:
        """
        Calculate the requested indicators for the given bars.

        Args:
            bars: Bars in ascending time order (the replayed prefix)
            required: Indicator families to compute

        Returns:
            IndicatorSet with every indicator whose warm-up is met
        """
        closes = [b.close for b in bars]
        highs = [b.high for b in bars]
        lows = [b.low for b in bars]
        volumes = [b.volume for b in bars]

        result = IndicatorSet()
        for indicator in dict.fromkeys(required):
            if indicator == IndicatorType.SMA:
                result.set("sma", sma(closes, self.config.sma_period))

            elif indicator == IndicatorType.EMA:
                result.set("ema_short", ema(closes, self.config.ema_short_period))
                result.set("ema_long", ema(closes, self.config.ema_long_period))

            elif indicator == IndicatorType.RSI:
                self._add_rsi(result, closes)

            elif indicator == IndicatorType.MACD:
                self._add_macd(result, closes)

            elif indicator == IndicatorType.BOLLINGER:
                self._add_bollinger(result, closes)

            elif indicator == IndicatorType.KDJ:
                self._add_kdj(result, highs, lows, closes)

            elif indicator == IndicatorType.CCI:
                result.set("cci", cci(highs, lows, closes, self.config.cci_period))

            elif indicator == IndicatorType.WILLIAMS_R:
                result.set(
                    "williams_r",
                    williams_r(highs, lows, closes, self.config.williams_period),
                )

            elif indicator == IndicatorType.VWAP:
                typical = [b.typical_price for b in bars]
                result.set("vwap", vwap(typical, volumes, self.config.vwap_period))

        return result

    def _add_rsi(self, result: IndicatorSet, closes: list[float]) -> None:
        values = rsi(closes, self.config.rsi_period)
        result.set("rsi", values)
        if values:
            result.hints["rsi"] = rsi_signal(
                values[-1], self.config.rsi_overbought, self.config.rsi_oversold
            )

    def _add_macd(self, result: IndicatorSet, closes: list[float]) -> None:
        cfg = self.config
        line, signal, histogram = macd(closes, cfg.macd_fast, cfg.macd_slow, cfg.macd_signal)
        result.set("macd", line)
        result.set("macd_signal", signal)
        result.set("macd_histogram", histogram)
        if len(line) >= 2 and len(signal) >= 2:
            result.hints["macd"] = macd_signal(line[-1], signal[-1], line[-2], signal[-2])

    def _add_bollinger(self, result: IndicatorSet, closes: list[float]) -> None:
        upper, middle, lower = bollinger_bands(
            closes, self.config.bb_period, self.config.bb_multiplier
        )
        result.set("bb_upper", upper)
        result.set("bb_middle", middle)
        result.set("bb_lower", lower)

        # Band position of each aligned close: 0 at lower band, 1 at upper band
        aligned = closes[len(closes) - len(upper):] if upper else []
        positions = [
            (close - lo) / (up - lo) if up != lo else 0.5
            for close, up, lo in zip(aligned, upper, lower)
        ]
        result.set("bb_position", positions)

    def _add_kdj(
        self,
        result: IndicatorSet,
        highs: list[float],
        lows: list[float],
        closes: list[float],
    ) -> None:
        cfg = self.config
        k, d, j = kdj(highs, lows, closes, cfg.kdj_period, cfg.kdj_k_smooth, cfg.kdj_d_smooth)
        result.set("kdj_k", k)
        result.set("kdj_d", d)
        result.set("kdj_j", j)
        if k and d and j:
            result.hints["kdj"] = kdj_signal(k[-1], d[-1], j[-1])
