"""High-frequency (1m) strategy.

Sub-strategies:
- momentum: price vs short EMA, RSI on the strong side, MACD cross confirms
- mean_reversion: RSI extreme at a Bollinger band edge
- breakout: close outside the bands on a volume surge

This module is pure business logic with no I/O dependencies.
"""

import numpy as np

from core.indicators import IndicatorSet, IndicatorType, SignalHint
from core.models import MarketData, Signal, SignalAction
from core.strategy.base import (
    RiskLevel,
    StrategyType,
    SubStrategyDescriptor,
    TimeframeStrategy,
)
from core.strategy.high_frequency.models import (
    HIGH_FREQUENCY_STRATEGY_NAME,
    HighFrequencyParameters,
)
from core.strategy.registry import register_strategy

VOLUME_LOOKBACK = 10
VOLUME_SURGE_RATIO = 1.5


@register_strategy(StrategyType.HIGH_FREQUENCY)
class HighFrequencyStrategy(TimeframeStrategy):
    """Short-horizon rules for 1-5 minute bars."""

    name = HIGH_FREQUENCY_STRATEGY_NAME
    display_name = "High frequency"
    description = "1-5 minute bars, for short-term trading"
    timeframe = "1m"
    required_indicators = (
        IndicatorType.RSI,
        IndicatorType.MACD,
        IndicatorType.EMA,
        IndicatorType.BOLLINGER,
    )
    parameters_model = HighFrequencyParameters
    sub_strategies = (
        SubStrategyDescriptor(
            "momentum",
            "Short-term momentum confirmed by RSI and MACD",
            RiskLevel.HIGH,
            {"sub_strategy": "momentum"},
        ),
        SubStrategyDescriptor(
            "mean_reversion",
            "Reversal from overbought / oversold extremes",
            RiskLevel.MEDIUM,
            {"sub_strategy": "mean_reversion"},
        ),
        SubStrategyDescriptor(
            "breakout",
            "Follows band breakouts on rising volume",
            RiskLevel.VERY_HIGH,
            {"sub_strategy": "breakout"},
        ),
    )

    def _signal_momentum(
        self,
        market_data: MarketData,
        indicators: IndicatorSet,
        params: HighFrequencyParameters,
    ) -> Signal | None:
        rsi = indicators.get("rsi")
        ema_short = indicators.get("ema_short")
        macd_hint = indicators.hint("macd")
        if rsi is None or ema_short is None or macd_hint is None:
            return None

        price = market_data.current_price
        if price > ema_short and 50 < rsi < params.rsi_overbought and macd_hint == SignalHint.BUY:
            return self._make_signal(
                SignalAction.BUY,
                0.7 + (rsi - 50) / 100,
                market_data,
                ["Price above EMA", "RSI leaning strong", "MACD golden cross"],
                "momentum",
                rsi=rsi,
                ema=ema_short,
            )
        if price < ema_short and params.rsi_oversold < rsi < 50 and macd_hint == SignalHint.SELL:
            return self._make_signal(
                SignalAction.SELL,
                0.7 + (50 - rsi) / 100,
                market_data,
                ["Price below EMA", "RSI leaning weak", "MACD death cross"],
                "momentum",
                rsi=rsi,
                ema=ema_short,
            )
        return None

    def _signal_mean_reversion(
        self,
        market_data: MarketData,
        indicators: IndicatorSet,
        params: HighFrequencyParameters,
    ) -> Signal | None:
        rsi = indicators.get("rsi")
        bb_position = indicators.get("bb_position")
        if rsi is None or bb_position is None:
            return None

        oversold = params.rsi_oversold
        overbought = params.rsi_overbought
        if rsi < oversold and bb_position < 0.1:
            return self._make_signal(
                SignalAction.BUY,
                (oversold - rsi) / oversold + (0.1 - bb_position) * 2,
                market_data,
                ["RSI deeply oversold", "Touching lower Bollinger band"],
                "mean_reversion",
                rsi=rsi,
                bb_position=bb_position,
            )
        if rsi > overbought and bb_position > 0.9:
            return self._make_signal(
                SignalAction.SELL,
                (rsi - overbought) / (100 - overbought) + (bb_position - 0.9) * 10,
                market_data,
                ["RSI deeply overbought", "Touching upper Bollinger band"],
                "mean_reversion",
                rsi=rsi,
                bb_position=bb_position,
            )
        return None

    def _signal_breakout(
        self,
        market_data: MarketData,
        indicators: IndicatorSet,
        params: HighFrequencyParameters,
    ) -> Signal | None:
        bb_upper = indicators.get("bb_upper")
        bb_lower = indicators.get("bb_lower")
        if bb_upper is None or bb_lower is None or len(market_data) < 3:
            return None

        avg_volume = float(np.mean(market_data.volumes(last=VOLUME_LOOKBACK)))
        if avg_volume <= 0:
            return None
        volume_ratio = market_data.volume / avg_volume
        if volume_ratio <= VOLUME_SURGE_RATIO:
            return None

        price = market_data.current_price
        confidence = 0.6 + min((volume_ratio - VOLUME_SURGE_RATIO) * 0.2, 0.3)
        if price > bb_upper:
            action = SignalAction.BUY
            reasons = ["Broke above upper Bollinger band"]
        elif price < bb_lower:
            action = SignalAction.SELL
            reasons = ["Broke below lower Bollinger band"]
        else:
            return None

        reasons.append(f"Volume {volume_ratio:.1f}x average")
        return self._make_signal(
            action,
            confidence,
            market_data,
            reasons,
            "breakout",
            volume_ratio=volume_ratio,
            bb_upper=bb_upper,
            bb_lower=bb_lower,
        )
