"""Low-frequency (1h) strategy.

Sub-strategies:
- swing_trading: band extreme with CCI, RSI and MACD histogram agreeing
- bollinger_strategy: squeeze breakout or expanded-band reversal
- macd_strategy: zero-line cross, else histogram turning against the lines
"""

from core.indicators import IndicatorSet, IndicatorType
from core.models import MarketData, Signal, SignalAction
from core.strategy.base import (
    RiskLevel,
    StrategyType,
    SubStrategyDescriptor,
    TimeframeStrategy,
)
from core.strategy.low_frequency.models import (
    LOW_FREQUENCY_STRATEGY_NAME,
    LowFrequencyParameters,
)
from core.strategy.patterns import is_decreasing, is_increasing
from core.strategy.registry import register_strategy

SQUEEZE_WIDTH = 0.1
EXPANDED_WIDTH = 0.2


@register_strategy(StrategyType.LOW_FREQUENCY)
class LowFrequencyStrategy(TimeframeStrategy):
    """Swing rules for 1-4 hour bars."""

    name = LOW_FREQUENCY_STRATEGY_NAME
    display_name = "Low frequency"
    description = "1-4 hour bars, for swing trading"
    timeframe = "1h"
    required_indicators = (
        IndicatorType.BOLLINGER,
        IndicatorType.MACD,
        IndicatorType.CCI,
        IndicatorType.RSI,
    )
    parameters_model = LowFrequencyParameters
    sub_strategies = (
        SubStrategyDescriptor(
            "swing_trading",
            "Swing entries confirmed by several indicators",
            RiskLevel.MEDIUM,
            {"sub_strategy": "swing_trading"},
        ),
        SubStrategyDescriptor(
            "bollinger_strategy",
            "Bollinger band breakouts and reversals",
            RiskLevel.MEDIUM,
            {"sub_strategy": "bollinger_strategy"},
        ),
        SubStrategyDescriptor(
            "macd_strategy",
            "Trend confirmation from MACD",
            RiskLevel.LOW,
            {"sub_strategy": "macd_strategy"},
        ),
    )

    def _signal_swing_trading(
        self,
        market_data: MarketData,
        indicators: IndicatorSet,
        params: LowFrequencyParameters,
    ) -> Signal | None:
        bb_position = indicators.get("bb_position")
        cci = indicators.get("cci")
        rsi = indicators.get("rsi")
        histogram = indicators.get("macd_histogram")
        if None in (bb_position, cci, rsi, histogram):
            return None

        metadata = dict(bb_position=bb_position, cci=cci, rsi=rsi)
        if bb_position < 0.2 and cci < -100 and rsi < 40 and histogram > 0:
            return self._make_signal(
                SignalAction.BUY,
                0.75,
                market_data,
                ["Near lower Bollinger band", "CCI oversold", "RSI low", "MACD histogram positive"],
                "swing_trading",
                **metadata,
            )
        if bb_position > 0.8 and cci > 100 and rsi > 60 and histogram < 0:
            return self._make_signal(
                SignalAction.SELL,
                0.75,
                market_data,
                ["Near upper Bollinger band", "CCI overbought", "RSI high", "MACD histogram negative"],
                "swing_trading",
                **metadata,
            )
        return None

    def _signal_bollinger_strategy(
        self,
        market_data: MarketData,
        indicators: IndicatorSet,
        params: LowFrequencyParameters,
    ) -> Signal | None:
        upper = indicators.get("bb_upper")
        middle = indicators.get("bb_middle")
        lower = indicators.get("bb_lower")
        if None in (upper, middle, lower) or middle == 0:
            return None

        price = market_data.current_price
        width = (upper - lower) / middle

        action = None
        if width < SQUEEZE_WIDTH:
            confidence = 0.8
            if price > upper:
                action, reasons = SignalAction.BUY, ["Broke above upper band", "Breakout after squeeze"]
            elif price < lower:
                action, reasons = SignalAction.SELL, ["Broke below lower band", "Breakout after squeeze"]
        elif width > EXPANDED_WIDTH:
            confidence = 0.7
            if price <= lower:
                action, reasons = SignalAction.BUY, ["Touching lower band", "Bands expanded"]
            elif price >= upper:
                action, reasons = SignalAction.SELL, ["Touching upper band", "Bands expanded"]

        if action is None:
            return None
        return self._make_signal(
            action, confidence, market_data, reasons, "bollinger_strategy", bb_width=width
        )

    def _signal_macd_strategy(
        self,
        market_data: MarketData,
        indicators: IndicatorSet,
        params: LowFrequencyParameters,
    ) -> Signal | None:
        macd_values = indicators.history("macd")
        macd_signal = indicators.get("macd_signal")
        histogram = indicators.history("macd_histogram")
        if len(macd_values) < 3 or macd_signal is None or not histogram:
            return None

        macd_line = macd_values[-1]
        previous = macd_values[-2]
        if macd_line > 0 and previous <= 0:
            return self._make_signal(
                SignalAction.BUY, 0.8, market_data, ["MACD crossed above zero"],
                "macd_strategy", signal_type="zero_cross_up",
            )
        if macd_line < 0 and previous >= 0:
            return self._make_signal(
                SignalAction.SELL, 0.8, market_data, ["MACD crossed below zero"],
                "macd_strategy", signal_type="zero_cross_down",
            )

        if len(histogram) >= 5:
            recent = histogram[-5:]
            if is_increasing(recent) and macd_line < macd_signal:
                return self._make_signal(
                    SignalAction.BUY, 0.7, market_data, ["MACD histogram turning up"],
                    "macd_strategy", signal_type="histogram_divergence_up",
                )
            if is_decreasing(recent) and macd_line > macd_signal:
                return self._make_signal(
                    SignalAction.SELL, 0.7, market_data, ["MACD histogram turning down"],
                    "macd_strategy", signal_type="histogram_divergence_down",
                )

        return None
