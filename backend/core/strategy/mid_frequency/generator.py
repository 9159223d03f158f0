"""Mid-frequency (15m) strategy.

Sub-strategies:
- trend_following: EMA and MACD aligned with RSI in a healthy band
- dual_ema: golden / death cross of the fast and slow EMA
- rsi_divergence: local price extremes that RSI fails to confirm
"""

from core.indicators import IndicatorSet, IndicatorType
from core.models import MarketData, Signal, SignalAction
from core.strategy.base import (
    RiskLevel,
    StrategyType,
    SubStrategyDescriptor,
    TimeframeStrategy,
)
from core.strategy.mid_frequency.models import (
    MID_FREQUENCY_STRATEGY_NAME,
    MidFrequencyParameters,
)
from core.strategy.patterns import find_local_maxima, find_local_minima
from core.strategy.registry import register_strategy

DIVERGENCE_WINDOW = 10


@register_strategy(StrategyType.MID_FREQUENCY)
class MidFrequencyStrategy(TimeframeStrategy):
    """Intraday rules for 15-30 minute bars."""

    name = MID_FREQUENCY_STRATEGY_NAME
    display_name = "Mid frequency"
    description = "15-30 minute bars, for intraday trading"
    timeframe = "15m"
    required_indicators = (
        IndicatorType.EMA,
        IndicatorType.MACD,
        IndicatorType.RSI,
        IndicatorType.KDJ,
    )
    parameters_model = MidFrequencyParameters
    sub_strategies = (
        SubStrategyDescriptor(
            "trend_following",
            "Trend following confirmed by several indicators",
            RiskLevel.MEDIUM,
            {"sub_strategy": "trend_following"},
        ),
        SubStrategyDescriptor(
            "dual_ema",
            "Classic fast/slow EMA golden and death cross",
            RiskLevel.MEDIUM,
            {"sub_strategy": "dual_ema"},
        ),
        SubStrategyDescriptor(
            "rsi_divergence",
            "Reversal on RSI divergence from price",
            RiskLevel.LOW,
            {"sub_strategy": "rsi_divergence"},
        ),
    )

    def _signal_trend_following(
        self,
        market_data: MarketData,
        indicators: IndicatorSet,
        params: MidFrequencyParameters,
    ) -> Signal | None:
        ema_fast = indicators.get("ema_short")
        ema_slow = indicators.get("ema_long")
        macd_line = indicators.get("macd")
        macd_signal = indicators.get("macd_signal")
        rsi = indicators.get("rsi")
        if None in (ema_fast, ema_slow, macd_line, macd_signal, rsi) or ema_slow == 0:
            return None

        metadata = dict(ema_fast=ema_fast, ema_slow=ema_slow, macd=macd_line, rsi=rsi)
        if ema_fast > ema_slow and macd_line > macd_signal and 40 < rsi < 80:
            strength = (ema_fast - ema_slow) / ema_slow
            return self._make_signal(
                SignalAction.BUY,
                0.6 + min(strength * 5, 0.3),
                market_data,
                ["Fast EMA above slow EMA", "MACD bullish", "RSI in healthy range"],
                "trend_following",
                **metadata,
            )
        if ema_fast < ema_slow and macd_line < macd_signal and 20 < rsi < 60:
            strength = (ema_slow - ema_fast) / ema_slow
            return self._make_signal(
                SignalAction.SELL,
                0.6 + min(strength * 5, 0.3),
                market_data,
                ["Fast EMA below slow EMA", "MACD bearish", "RSI in healthy range"],
                "trend_following",
                **metadata,
            )
        return None

    def _signal_dual_ema(
        self,
        market_data: MarketData,
        indicators: IndicatorSet,
        params: MidFrequencyParameters,
    ) -> Signal | None:
        fast = indicators.history("ema_short")
        slow = indicators.history("ema_long")
        if len(fast) < 2 or len(slow) < 2 or slow[-1] == 0:
            return None

        above_now = fast[-1] > slow[-1]
        above_before = fast[-2] > slow[-2]
        if above_now == above_before:
            return None

        strength = abs(fast[-1] - slow[-1]) / slow[-1]
        confidence = 0.7 + min(strength * 10, 0.2)
        if above_now:
            return self._make_signal(
                SignalAction.BUY, confidence, market_data, ["EMA golden cross"],
                "dual_ema", cross_type="golden", cross_strength=strength,
            )
        return self._make_signal(
            SignalAction.SELL, confidence, market_data, ["EMA death cross"],
            "dual_ema", cross_type="death", cross_strength=strength,
        )

    def _signal_rsi_divergence(
        self,
        market_data: MarketData,
        indicators: IndicatorSet,
        params: MidFrequencyParameters,
    ) -> Signal | None:
        rsi_values = indicators.history("rsi")
        if len(rsi_values) < DIVERGENCE_WINDOW or len(market_data) < DIVERGENCE_WINDOW:
            return None

        prices = market_data.closes(last=DIVERGENCE_WINDOW)
        recent_rsi = rsi_values[-DIVERGENCE_WINDOW:]

        # Bearish: higher price high, lower RSI high
        price_highs = find_local_maxima(prices)
        rsi_highs = find_local_maxima(recent_rsi)
        if len(price_highs) >= 2 and len(rsi_highs) >= 2:
            if price_highs[-1] > price_highs[-2] and rsi_highs[-1] < rsi_highs[-2]:
                return self._make_signal(
                    SignalAction.SELL, 0.8, market_data, ["RSI bearish divergence"],
                    "rsi_divergence", divergence_type="bearish",
                )

        # Bullish: lower price low, higher RSI low
        price_lows = find_local_minima(prices)
        rsi_lows = find_local_minima(recent_rsi)
        if len(price_lows) >= 2 and len(rsi_lows) >= 2:
            if price_lows[-1] < price_lows[-2] and rsi_lows[-1] > rsi_lows[-2]:
                return self._make_signal(
                    SignalAction.BUY, 0.8, market_data, ["RSI bullish divergence"],
                    "rsi_divergence", divergence_type="bullish",
                )

        return None
