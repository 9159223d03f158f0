"""Strategy protocol defining the interface all strategies must implement.

This module provides:
- Strategy: Runtime-checkable Protocol that strategies must satisfy
- ParameterInput: What callers may pass as strategy parameters
"""

from __future__ import annotations

from typing import Any, Mapping, Protocol, Union, runtime_checkable

from core.indicators.calculator import IndicatorSet, IndicatorType
from core.models.bar import MarketData
from core.models.config import IndicatorConfig, StrategyParameters
from core.models.signal import Signal

# A typed parameter model, a plain mapping merged onto the defaults, or None
ParameterInput = Union[StrategyParameters, Mapping[str, Any], None]


# ---------------------------------------------------------------------------
# Strategy Protocol
# ---------------------------------------------------------------------------
@runtime_checkable
class Strategy(Protocol):
    """Protocol that all trading strategies must implement.

    ``generate_signal`` must be a pure function of its inputs so that a
    replay over the same bars and parameters is reproducible.
    """

    @property
    def name(self) -> str:
        """Unique strategy identifier (e.g., 'high_frequency')."""
        ...

    @property
    def timeframe(self) -> str:
        """Bar timeframe the strategy is designed for (e.g., '1m')."""
        ...

    @property
    def required_indicators(self) -> tuple[IndicatorType, ...]:
        """Indicator families the simulator must compute for this strategy."""
        ...

    def generate_signal(
        self,
        market_data: MarketData,
        indicators: IndicatorSet,
        parameters: ParameterInput = None,
    ) -> Signal | None:
        """Decide on a signal for the current bar.

        Args:
            market_data: Current bar plus its history.
            indicators: Indicators computed from the same history.
            parameters: Strategy parameters (defaults when None).

        Returns:
            Signal if a rule fired, None otherwise.
        """
        ...

    def validate_parameters(self, parameters: ParameterInput) -> bool:
        """Return False for parameters that cannot drive a run."""
        ...

    def default_parameters(self) -> StrategyParameters:
        """Default parameter set."""
        ...

    def parse_parameters(self, parameters: ParameterInput = None) -> StrategyParameters:
        """Coerce caller parameters into the typed model (raises on invalid)."""
        ...

    def indicator_config(self, parameters: ParameterInput = None) -> IndicatorConfig:
        """Indicator periods implied by ``parameters``."""
        ...
