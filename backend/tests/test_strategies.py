"""Tests for the timeframe strategies and the strategy registry."""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from core.indicators import IndicatorSet, IndicatorType, SignalHint
from core.models import Bar, MarketData, SignalAction
from core.strategy import (
    RiskLevel,
    Strategy,
    StrategyType,
    TimeframeStrategy,
    create_strategy,
    describe_strategies,
    get_strategy_class,
    list_strategies,
    register_strategy,
)
from core.strategy.daily import DailyStrategy
from core.strategy.high_frequency import HighFrequencyParameters, HighFrequencyStrategy
from core.strategy.low_frequency import LowFrequencyStrategy
from core.strategy.mid_frequency import MidFrequencyStrategy
from core.strategy.patterns import (
    find_local_maxima,
    find_local_minima,
    is_decreasing,
    is_increasing,
    trend_strength,
)
from core.strategy.registry import _REGISTRY


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

START = datetime(2024, 3, 1, tzinfo=timezone.utc)


def _make_market(closes: list[float], volumes: list[float] | None = None) -> MarketData:
    """Market data whose current bar is the last close."""
    if volumes is None:
        volumes = [100.0] * len(closes)
    bars = [
        Bar(
            symbol="ETHUSDT",
            timeframe="1h",
            timestamp=START + timedelta(hours=i),
            open=close,
            high=close + 1.0,
            low=close - 1.0,
            close=close,
            volume=volume,
        )
        for i, (close, volume) in enumerate(zip(closes, volumes))
    ]
    return MarketData.from_bars(bars)


def _indicators(hints: dict | None = None, **series) -> IndicatorSet:
    """IndicatorSet from keyword series; scalars become one-element series."""
    result = IndicatorSet(hints=dict(hints or {}))
    for name, values in series.items():
        result.set(name, values if isinstance(values, list) else [values])
    return result


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

class TestRegistry:
    def test_builtins_registered(self):
        assert list_strategies() == ["daily", "high_frequency", "low_frequency", "mid_frequency"]

    def test_create_by_name_and_enum(self):
        assert isinstance(create_strategy("daily"), DailyStrategy)
        assert isinstance(create_strategy(StrategyType.MID_FREQUENCY), MidFrequencyStrategy)
        assert get_strategy_class("low_frequency") is LowFrequencyStrategy

    def test_unknown_strategy(self):
        with pytest.raises(KeyError, match="Available"):
            create_strategy("weekly")

    def test_satisfies_protocol(self):
        for name in list_strategies():
            assert isinstance(create_strategy(name), Strategy)

    def test_duplicate_name_rejected(self):
        with pytest.raises(ValueError, match="already registered"):
            @register_strategy("daily")
            class AnotherDaily(TimeframeStrategy):
                pass

        assert get_strategy_class("daily") is DailyStrategy

    def test_reregistering_same_class_is_allowed(self):
        assert register_strategy("daily")(DailyStrategy) is DailyStrategy

    def test_custom_registration(self):
        try:
            @register_strategy("custom_test")
            class CustomStrategy(TimeframeStrategy):
                pass

            assert "custom_test" in list_strategies()
            assert get_strategy_class("custom_test") is CustomStrategy
        finally:
            _REGISTRY.pop("custom_test", None)


class TestCatalogue:
    def test_every_variant_has_three_sub_strategies(self):
        catalogue = describe_strategies()

        assert [d.name for d in catalogue] == list_strategies()
        for descriptor in catalogue:
            assert len(descriptor.sub_strategies) == 3
            names = [sub.name for sub in descriptor.sub_strategies]
            assert descriptor.default_sub_strategy == names[0]

    def test_timeframes(self):
        timeframes = {d.name: d.timeframe for d in describe_strategies()}
        assert timeframes == {
            "high_frequency": "1m",
            "mid_frequency": "15m",
            "low_frequency": "1h",
            "daily": "1d",
        }

    def test_risk_levels(self):
        hf = HighFrequencyStrategy.describe()
        risk = {sub.name: sub.risk_level for sub in hf.sub_strategies}
        assert risk["breakout"] == RiskLevel.VERY_HIGH
        assert risk["mean_reversion"] == RiskLevel.MEDIUM

    def test_required_indicators(self):
        assert IndicatorType.KDJ in MidFrequencyStrategy.required_indicators
        assert IndicatorType.CCI in DailyStrategy.required_indicators
        assert IndicatorType.BOLLINGER in HighFrequencyStrategy.required_indicators


# ---------------------------------------------------------------------------
# Parameters
# ---------------------------------------------------------------------------

class TestParameters:
    @pytest.mark.parametrize(
        "name,threshold,stop_loss,take_profit",
        [
            ("high_frequency", 0.6, 0.02, 0.04),
            ("mid_frequency", 0.65, 0.03, 0.06),
            ("low_frequency", 0.7, 0.05, 0.10),
            ("daily", 0.75, 0.08, 0.15),
        ],
    )
    def test_defaults(self, name, threshold, stop_loss, take_profit):
        params = create_strategy(name).default_parameters()

        assert params.confidence_threshold == threshold
        assert params.stop_loss_pct == stop_loss
        assert params.take_profit_pct == take_profit

    def test_defaults_validate(self):
        for name in list_strategies():
            strategy = create_strategy(name)
            assert strategy.validate_parameters(strategy.default_parameters())
            assert strategy.validate_parameters(None)

    def test_mapping_merged_onto_defaults(self):
        params = HighFrequencyStrategy().parse_parameters({"sub_strategy": "breakout"})

        assert params.sub_strategy == "breakout"
        assert params.rsi_period == 14
        assert params.bb_multiplier == 2.0

    def test_fast_not_below_slow_is_invalid(self):
        mid = MidFrequencyStrategy()
        assert not mid.validate_parameters({"ema_fast": 26, "ema_slow": 26})
        assert not mid.validate_parameters({"ema_fast": 30, "ema_slow": 26})
        assert mid.validate_parameters({"ema_fast": 8, "ema_slow": 21})

    def test_macd_fast_not_below_slow_is_invalid(self):
        assert not DailyStrategy().validate_parameters({"macd_fast": 26, "macd_slow": 12})

    @pytest.mark.parametrize("period", [0, -5])
    def test_non_positive_period_is_invalid(self, period):
        assert not LowFrequencyStrategy().validate_parameters({"cci_period": period})
        assert not DailyStrategy().validate_parameters({"rsi_period": period})

    def test_unknown_sub_strategy_is_invalid(self):
        assert not DailyStrategy().validate_parameters({"sub_strategy": "momentum"})

    def test_unknown_field_is_invalid(self):
        assert not DailyStrategy().validate_parameters({"lookback": 10})

    def test_rsi_thresholds_must_be_ordered(self):
        hf = HighFrequencyStrategy()
        assert not hf.validate_parameters({"rsi_oversold": 70, "rsi_overbought": 30})
        assert not hf.validate_parameters({"rsi_overbought": 100})

    def test_non_positive_multiplier_is_invalid(self):
        assert not LowFrequencyStrategy().validate_parameters({"bb_multiplier": 0})

    def test_non_mapping_is_invalid(self):
        assert not DailyStrategy().validate_parameters(42)

    def test_confidence_threshold_bounds(self):
        assert not MidFrequencyStrategy().validate_parameters({"confidence_threshold": 1.5})

    def test_parameters_are_immutable(self):
        params = HighFrequencyParameters()
        with pytest.raises(ValidationError):
            params.rsi_period = 7

    def test_indicator_config_from_parameters(self):
        mid_config = MidFrequencyStrategy().indicator_config({"ema_fast": 8, "ema_slow": 21})
        assert mid_config.ema_short_period == 8
        assert mid_config.ema_long_period == 21

        daily_config = DailyStrategy().indicator_config({"ema_period": 100})
        assert daily_config.ema_long_period == 100

        hf_config = HighFrequencyStrategy().indicator_config({"rsi_oversold": 20})
        assert hf_config.rsi_oversold == 20
        assert hf_config.ema_short_period == 9


# ---------------------------------------------------------------------------
# High frequency
# ---------------------------------------------------------------------------

class TestHighFrequency:
    def setup_method(self):
        self.strategy = HighFrequencyStrategy()

    def test_momentum_buy(self):
        market = _make_market([100.0, 101.0, 102.0])
        indicators = _indicators({"macd": SignalHint.BUY}, rsi=60.0, ema_short=101.0)

        signal = self.strategy.generate_signal(market, indicators)

        assert signal.action == SignalAction.BUY
        assert signal.confidence == pytest.approx(0.8)
        assert signal.price == 102.0
        assert signal.timestamp == market.timestamp
        assert signal.metadata["strategy_type"] == "momentum"
        assert signal.metadata["timeframe"] == "1m"
        assert "MACD golden cross" in signal.reasoning

    def test_momentum_sell(self):
        market = _make_market([102.0, 101.0, 100.0])
        indicators = _indicators({"macd": SignalHint.SELL}, rsi=40.0, ema_short=101.0)

        signal = self.strategy.generate_signal(market, indicators)

        assert signal.action == SignalAction.SELL
        assert signal.confidence == pytest.approx(0.8)

    def test_momentum_requires_macd_cross(self):
        market = _make_market([100.0, 101.0, 102.0])
        indicators = _indicators({"macd": SignalHint.HOLD}, rsi=60.0, ema_short=101.0)
        assert self.strategy.generate_signal(market, indicators) is None

    def test_missing_indicators_return_none(self):
        market = _make_market([100.0])
        for sub in ("momentum", "mean_reversion", "breakout"):
            assert self.strategy.generate_signal(
                market, IndicatorSet(), {"sub_strategy": sub}
            ) is None

    def test_mean_reversion_buy(self):
        market = _make_market([100.0, 95.0])
        indicators = _indicators(rsi=20.0, bb_position=0.05)

        signal = self.strategy.generate_signal(
            market, indicators, {"sub_strategy": "mean_reversion"}
        )

        assert signal.action == SignalAction.BUY
        assert signal.confidence == pytest.approx(10 / 30 + 0.1)

    def test_mean_reversion_sell_is_clamped(self):
        market = _make_market([100.0, 110.0])
        indicators = _indicators(rsi=85.0, bb_position=0.99)

        signal = self.strategy.generate_signal(
            market, indicators, {"sub_strategy": "mean_reversion"}
        )

        assert signal.action == SignalAction.SELL
        assert signal.confidence == 1.0

    def test_mean_reversion_uses_custom_thresholds(self):
        market = _make_market([100.0, 95.0])
        indicators = _indicators(rsi=25.0, bb_position=0.05)
        params = {"sub_strategy": "mean_reversion", "rsi_oversold": 20}

        assert self.strategy.generate_signal(market, indicators, params) is None

    def test_breakout_on_volume_surge(self):
        market = _make_market([100.0] * 9 + [110.0], volumes=[100.0] * 9 + [300.0])
        indicators = _indicators(bb_upper=105.0, bb_lower=95.0)

        signal = self.strategy.generate_signal(market, indicators, {"sub_strategy": "breakout"})

        # Average of last 10 volumes = 120 -> ratio 2.5
        assert signal.action == SignalAction.BUY
        assert signal.metadata["volume_ratio"] == pytest.approx(2.5)
        assert signal.confidence == pytest.approx(0.8)

    def test_breakout_below_lower_band(self):
        market = _make_market([100.0] * 9 + [90.0], volumes=[100.0] * 9 + [300.0])
        indicators = _indicators(bb_upper=105.0, bb_lower=95.0)

        signal = self.strategy.generate_signal(market, indicators, {"sub_strategy": "breakout"})
        assert signal.action == SignalAction.SELL

    def test_breakout_needs_volume(self):
        indicators = _indicators(bb_upper=105.0, bb_lower=95.0)

        quiet = _make_market([100.0] * 9 + [110.0])
        assert self.strategy.generate_signal(quiet, indicators, {"sub_strategy": "breakout"}) is None

        no_volume = _make_market([100.0] * 9 + [110.0], volumes=[0.0] * 10)
        assert self.strategy.generate_signal(no_volume, indicators, {"sub_strategy": "breakout"}) is None

    def test_unknown_sub_strategy_raises(self):
        market = _make_market([100.0])
        with pytest.raises(ValidationError):
            self.strategy.generate_signal(market, IndicatorSet(), {"sub_strategy": "scalping"})


# ---------------------------------------------------------------------------
# Mid frequency
# ---------------------------------------------------------------------------

class TestMidFrequency:
    def setup_method(self):
        self.strategy = MidFrequencyStrategy()

    def test_trend_following_buy(self):
        market = _make_market([104.0, 106.0])
        indicators = _indicators(
            ema_short=105.0, ema_long=100.0, macd=1.0, macd_signal=0.5, rsi=60.0
        )

        signal = self.strategy.generate_signal(market, indicators)

        assert signal.action == SignalAction.BUY
        assert signal.confidence == pytest.approx(0.85)
        assert signal.metadata["timeframe"] == "15m"

    def test_trend_following_sell(self):
        market = _make_market([96.0, 94.0])
        indicators = _indicators(
            ema_short=95.0, ema_long=100.0, macd=-1.0, macd_signal=-0.5, rsi=40.0
        )

        signal = self.strategy.generate_signal(market, indicators)
        assert signal.action == SignalAction.SELL

    def test_trend_following_rsi_out_of_band(self):
        market = _make_market([104.0, 106.0])
        indicators = _indicators(
            ema_short=105.0, ema_long=100.0, macd=1.0, macd_signal=0.5, rsi=85.0
        )
        assert self.strategy.generate_signal(market, indicators) is None

    def test_dual_ema_golden_cross(self):
        market = _make_market([100.0, 101.0])
        indicators = _indicators(ema_short=[99.0, 101.0], ema_long=[100.0, 100.0])

        signal = self.strategy.generate_signal(market, indicators, {"sub_strategy": "dual_ema"})

        assert signal.action == SignalAction.BUY
        assert signal.metadata["cross_type"] == "golden"
        assert signal.confidence == pytest.approx(0.8)

    def test_dual_ema_death_cross(self):
        market = _make_market([100.0, 99.0])
        indicators = _indicators(ema_short=[101.0, 99.0], ema_long=[100.0, 100.0])

        signal = self.strategy.generate_signal(market, indicators, {"sub_strategy": "dual_ema"})

        assert signal.action == SignalAction.SELL
        assert signal.metadata["cross_type"] == "death"

    def test_dual_ema_no_cross(self):
        market = _make_market([100.0, 101.0])
        indicators = _indicators(ema_short=[101.0, 102.0], ema_long=[100.0, 100.0])
        assert self.strategy.generate_signal(market, indicators, {"sub_strategy": "dual_ema"}) is None

    def test_bearish_divergence(self):
        market = _make_market([1.0, 3.0, 1.0, 1.0, 1.0, 4.0, 1.0, 1.0, 1.0, 1.0])
        indicators = _indicators(rsi=[50.0, 70.0, 50.0, 50.0, 50.0, 60.0, 50.0, 50.0, 50.0, 50.0])

        signal = self.strategy.generate_signal(market, indicators, {"sub_strategy": "rsi_divergence"})

        assert signal.action == SignalAction.SELL
        assert signal.metadata["divergence_type"] == "bearish"

    def test_bullish_divergence(self):
        market = _make_market([5.0, 3.0, 5.0, 5.0, 5.0, 2.0, 5.0, 5.0, 5.0, 5.0])
        indicators = _indicators(rsi=[50.0, 30.0, 50.0, 50.0, 50.0, 40.0, 50.0, 50.0, 50.0, 50.0])

        signal = self.strategy.generate_signal(market, indicators, {"sub_strategy": "rsi_divergence"})

        assert signal.action == SignalAction.BUY
        assert signal.confidence == pytest.approx(0.8)

    def test_divergence_needs_window(self):
        market = _make_market([1.0, 3.0, 1.0, 4.0, 1.0])
        indicators = _indicators(rsi=[50.0, 70.0, 50.0, 60.0, 50.0])
        assert self.strategy.generate_signal(
            market, indicators, {"sub_strategy": "rsi_divergence"}
        ) is None


# ---------------------------------------------------------------------------
# Low frequency
# ---------------------------------------------------------------------------

class TestLowFrequency:
    def setup_method(self):
        self.strategy = LowFrequencyStrategy()

    def test_swing_buy(self):
        market = _make_market([100.0, 96.0])
        indicators = _indicators(bb_position=0.1, cci=-150.0, rsi=30.0, macd_histogram=0.5)

        signal = self.strategy.generate_signal(market, indicators)

        assert signal.action == SignalAction.BUY
        assert signal.confidence == 0.75

    def test_swing_sell(self):
        market = _make_market([100.0, 104.0])
        indicators = _indicators(bb_position=0.9, cci=150.0, rsi=70.0, macd_histogram=-0.5)

        signal = self.strategy.generate_signal(market, indicators)
        assert signal.action == SignalAction.SELL

    def test_swing_requires_all_conditions(self):
        market = _make_market([100.0, 96.0])
        indicators = _indicators(bb_position=0.1, cci=-150.0, rsi=30.0, macd_histogram=-0.5)
        assert self.strategy.generate_signal(market, indicators) is None

    def test_squeeze_breakout(self):
        market = _make_market([100.0, 103.0])
        indicators = _indicators(bb_upper=102.0, bb_middle=100.0, bb_lower=98.0)

        signal = self.strategy.generate_signal(
            market, indicators, {"sub_strategy": "bollinger_strategy"}
        )

        assert signal.action == SignalAction.BUY
        assert signal.confidence == 0.8
        assert signal.metadata["bb_width"] == pytest.approx(0.04)

    def test_expanded_band_reversal(self):
        indicators = _indicators(bb_upper=115.0, bb_middle=100.0, bb_lower=85.0)
        params = {"sub_strategy": "bollinger_strategy"}

        buy = self.strategy.generate_signal(_make_market([90.0, 85.0]), indicators, params)
        sell = self.strategy.generate_signal(_make_market([110.0, 116.0]), indicators, params)
        inside = self.strategy.generate_signal(_make_market([100.0, 100.0]), indicators, params)

        assert buy.action == SignalAction.BUY and buy.confidence == 0.7
        assert sell.action == SignalAction.SELL
        assert inside is None

    def test_bollinger_zero_middle(self):
        indicators = _indicators(bb_upper=1.0, bb_middle=0.0, bb_lower=-1.0)
        assert self.strategy.generate_signal(
            _make_market([2.0]), indicators, {"sub_strategy": "bollinger_strategy"}
        ) is None

    def test_macd_zero_cross_up(self):
        market = _make_market([100.0, 101.0])
        indicators = _indicators(
            macd=[-0.5, -0.2, 0.3], macd_signal=0.1, macd_histogram=[0.2]
        )

        signal = self.strategy.generate_signal(market, indicators, {"sub_strategy": "macd_strategy"})

        assert signal.action == SignalAction.BUY
        assert signal.metadata["signal_type"] == "zero_cross_up"

    def test_macd_zero_cross_down(self):
        market = _make_market([100.0, 99.0])
        indicators = _indicators(
            macd=[0.5, 0.2, -0.3], macd_signal=-0.1, macd_histogram=[-0.2]
        )

        signal = self.strategy.generate_signal(market, indicators, {"sub_strategy": "macd_strategy"})
        assert signal.metadata["signal_type"] == "zero_cross_down"

    def test_macd_histogram_turning_up(self):
        market = _make_market([100.0, 99.0])
        indicators = _indicators(
            macd=[-1.0, -0.9, -0.8],
            macd_signal=-0.5,
            macd_histogram=[-0.5, -0.4, -0.3, -0.2, -0.1],
        )

        signal = self.strategy.generate_signal(market, indicators, {"sub_strategy": "macd_strategy"})

        assert signal.action == SignalAction.BUY
        assert signal.confidence == 0.7
        assert signal.metadata["signal_type"] == "histogram_divergence_up"

    def test_macd_needs_three_values(self):
        indicators = _indicators(macd=[-0.2, 0.3], macd_signal=0.1, macd_histogram=[0.2])
        assert self.strategy.generate_signal(
            _make_market([100.0]), indicators, {"sub_strategy": "macd_strategy"}
        ) is None


# ---------------------------------------------------------------------------
# Daily
# ---------------------------------------------------------------------------

class TestDaily:
    def setup_method(self):
        self.strategy = DailyStrategy()

    def test_long_trend_buy(self):
        market = _make_market([100.0] * 49 + [120.0])
        indicators = _indicators(ema_long=100.0, rsi=60.0, macd=1.0)

        signal = self.strategy.generate_signal(market, indicators)

        assert signal.action == SignalAction.BUY
        assert signal.confidence == 0.8
        assert signal.metadata["price_change"] == pytest.approx(0.2)
        assert signal.metadata["timeframe"] == "1d"

    def test_long_trend_sell(self):
        market = _make_market([100.0] * 49 + [80.0])
        indicators = _indicators(ema_long=100.0, rsi=40.0, macd=-1.0)

        assert self.strategy.generate_signal(market, indicators).action == SignalAction.SELL

    def test_long_trend_needs_history(self):
        market = _make_market([100.0] * 48 + [120.0])
        indicators = _indicators(ema_long=100.0, rsi=60.0, macd=1.0)
        assert self.strategy.generate_signal(market, indicators) is None

    def test_long_trend_threshold_parameter(self):
        market = _make_market([100.0] * 49 + [120.0])
        indicators = _indicators(ema_long=100.0, rsi=60.0, macd=1.0)
        assert self.strategy.generate_signal(market, indicators, {"trend_threshold": 0.25}) is None

    def test_value_reversion_buy(self):
        market = _make_market([100.0] * 29 + [80.0])
        indicators = _indicators(rsi=25.0, cci=-200.0)

        signal = self.strategy.generate_signal(
            market, indicators, {"sub_strategy": "value_reversion"}
        )

        assert signal.action == SignalAction.BUY
        assert signal.confidence == 0.85
        assert signal.metadata["price_deviation"] == pytest.approx(80 / (2980 / 30) - 1)

    def test_value_reversion_sell(self):
        market = _make_market([100.0] * 29 + [125.0])
        indicators = _indicators(rsi=75.0, cci=200.0)

        signal = self.strategy.generate_signal(
            market, indicators, {"sub_strategy": "value_reversion"}
        )
        assert signal.action == SignalAction.SELL

    def test_fundamental_trend_buy(self):
        market = _make_market([100.0 + i for i in range(60)])
        indicators = _indicators(ema_long=130.0, macd=2.0)

        signal = self.strategy.generate_signal(
            market, indicators, {"sub_strategy": "fundamental_trend"}
        )

        assert signal.action == SignalAction.BUY
        assert signal.metadata["trend_strength"] > 0.3

    def test_fundamental_trend_flat_prices(self):
        market = _make_market([100.0] * 60)
        indicators = _indicators(ema_long=90.0, macd=2.0)
        assert self.strategy.generate_signal(
            market, indicators, {"sub_strategy": "fundamental_trend"}
        ) is None


# ---------------------------------------------------------------------------
# Pattern helpers
# ---------------------------------------------------------------------------

class TestPatterns:
    def test_local_extremes(self):
        values = [1.0, 3.0, 2.0, 2.0, 0.5, 4.0, 1.0]

        assert find_local_maxima(values) == [3.0, 4.0]
        assert find_local_minima(values) == [0.5]

    def test_plateaus_are_not_extremes(self):
        assert find_local_maxima([1.0, 2.0, 2.0, 1.0]) == []

    def test_monotonic(self):
        assert is_increasing([1.0, 2.0, 3.0])
        assert not is_increasing([1.0, 1.0, 2.0])
        assert is_decreasing([3.0, 2.0, 1.0])
        assert not is_increasing([1.0])

    def test_trend_strength(self):
        assert trend_strength([100.0] * 5) == 0.0
        assert trend_strength([100.0] * 20) == 0.0
        assert trend_strength([0.0] + [1.0] * 19) == 0.0
        assert trend_strength([100.0 + i for i in range(20)]) > 0
        assert trend_strength([100.0 - i for i in range(20)]) < 0
