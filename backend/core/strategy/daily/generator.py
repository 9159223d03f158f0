"""Daily (1d) strategy.

Sub-strategies:
- long_trend: price stretched away from the long EMA with RSI and MACD agreeing
- value_reversion: large deviation from the 30-bar mean at RSI/CCI extremes
- fundamental_trend: risk-adjusted 60-bar trend confirmed by EMA and MACD
"""

from core.indicators import IndicatorSet, IndicatorType
from core.models import MarketData, Signal, SignalAction
from core.strategy.base import (
    RiskLevel,
    StrategyType,
    SubStrategyDescriptor,
    TimeframeStrategy,
)
from core.strategy.daily.models import DAILY_STRATEGY_NAME, DailyParameters
from core.strategy.patterns import trend_strength
from core.strategy.registry import register_strategy

LONG_TREND_MIN_BARS = 50
VALUE_WINDOW = 30
VALUE_DEVIATION = 0.15
FUNDAMENTAL_WINDOW = 60
TREND_STRENGTH_THRESHOLD = 0.3


@register_strategy(StrategyType.DAILY)
class DailyStrategy(TimeframeStrategy):
    """Position rules for daily bars."""

    name = DAILY_STRATEGY_NAME
    display_name = "Daily"
    description = "Daily bars, for medium to long holding periods"
    timeframe = "1d"
    required_indicators = (
        IndicatorType.EMA,
        IndicatorType.RSI,
        IndicatorType.MACD,
        IndicatorType.CCI,
    )
    parameters_model = DailyParameters
    sub_strategies = (
        SubStrategyDescriptor(
            "long_trend",
            "Follows established long-term trends",
            RiskLevel.LOW,
            {"sub_strategy": "long_trend"},
        ),
        SubStrategyDescriptor(
            "value_reversion",
            "Buys deep discounts to the recent mean, sells rich premiums",
            RiskLevel.LOW,
            {"sub_strategy": "value_reversion"},
        ),
        SubStrategyDescriptor(
            "fundamental_trend",
            "Long-term trend strength confirmed technically",
            RiskLevel.LOW,
            {"sub_strategy": "fundamental_trend"},
        ),
    )

    def _signal_long_trend(
        self,
        market_data: MarketData,
        indicators: IndicatorSet,
        params: DailyParameters,
    ) -> Signal | None:
        ema_long = indicators.get("ema_long")
        rsi = indicators.get("rsi")
        macd_line = indicators.get("macd")
        if None in (ema_long, rsi, macd_line) or ema_long == 0:
            return None
        if len(market_data) < LONG_TREND_MIN_BARS:
            return None

        change = (market_data.current_price - ema_long) / ema_long
        threshold = params.trend_threshold
        if change > threshold and 40 < rsi < 80 and macd_line > 0:
            return self._make_signal(
                SignalAction.BUY,
                0.8,
                market_data,
                ["Long-term uptrend", "Price well above EMA", "RSI in healthy range", "MACD bullish"],
                "long_trend",
                price_change=change,
            )
        if change < -threshold and 20 < rsi < 60 and macd_line < 0:
            return self._make_signal(
                SignalAction.SELL,
                0.8,
                market_data,
                ["Long-term downtrend", "Price well below EMA", "RSI in healthy range", "MACD bearish"],
                "long_trend",
                price_change=change,
            )
        return None

    def _signal_value_reversion(
        self,
        market_data: MarketData,
        indicators: IndicatorSet,
        params: DailyParameters,
    ) -> Signal | None:
        rsi = indicators.get("rsi")
        cci = indicators.get("cci")
        if rsi is None or cci is None or len(market_data) < VALUE_WINDOW:
            return None

        recent = market_data.closes(last=VALUE_WINDOW)
        average = sum(recent) / len(recent)
        if average == 0:
            return None
        deviation = (market_data.current_price - average) / average

        if deviation < -VALUE_DEVIATION and rsi < 35 and cci < -150:
            return self._make_signal(
                SignalAction.BUY,
                0.85,
                market_data,
                ["Price far below average", "RSI deeply oversold", "CCI extremely oversold"],
                "value_reversion",
                price_deviation=deviation,
            )
        if deviation > VALUE_DEVIATION and rsi > 65 and cci > 150:
            return self._make_signal(
                SignalAction.SELL,
                0.85,
                market_data,
                ["Price far above average", "RSI deeply overbought", "CCI extremely overbought"],
                "value_reversion",
                price_deviation=deviation,
            )
        return None

    def _signal_fundamental_trend(
        self,
        market_data: MarketData,
        indicators: IndicatorSet,
        params: DailyParameters,
    ) -> Signal | None:
        ema_long = indicators.get("ema_long")
        macd_line = indicators.get("macd")
        if ema_long is None or macd_line is None or len(market_data) < FUNDAMENTAL_WINDOW:
            return None

        strength = trend_strength(market_data.closes(last=FUNDAMENTAL_WINDOW))
        price = market_data.current_price
        if strength > TREND_STRENGTH_THRESHOLD and price > ema_long and macd_line > 0:
            return self._make_signal(
                SignalAction.BUY, 0.75, market_data,
                ["Long-term trend up", "Technicals confirm"],
                "fundamental_trend", trend_strength=strength,
            )
        if strength < -TREND_STRENGTH_THRESHOLD and price < ema_long and macd_line < 0:
            return self._make_signal(
                SignalAction.SELL, 0.75, market_data,
                ["Long-term trend down", "Technicals confirm"],
                "fundamental_trend", trend_strength=strength,
            )
        return None
