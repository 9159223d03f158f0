"""Shared machinery for the timeframe strategy variants.

Each variant is a class with a typed parameter model and one private
``_signal_<sub_strategy>`` method per selectable sub-strategy. The base
class turns caller parameters into the model, dispatches on
``sub_strategy`` and builds the Signal.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, ClassVar, Optional

from pydantic import BaseModel, ValidationError

from core.indicators.calculator import IndicatorSet, IndicatorType
from core.models.bar import MarketData
from core.models.config import IndicatorConfig, StrategyParameters
from core.models.signal import Signal, SignalAction
from core.strategy.protocol import ParameterInput


class StrategyType(str, Enum):
    """Registered names of the built-in strategy variants."""

    HIGH_FREQUENCY = "high_frequency"
    MID_FREQUENCY = "mid_frequency"
    LOW_FREQUENCY = "low_frequency"
    DAILY = "daily"


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    VERY_HIGH = "very_high"


@dataclass(frozen=True)
class SubStrategyDescriptor:
    """Catalogue entry for one selectable sub-strategy."""

    name: str
    description: str
    risk_level: RiskLevel
    parameters: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class StrategyDescriptor:
    """Catalogue entry for one strategy variant."""

    name: str
    display_name: str
    description: str
    timeframe: str
    default_sub_strategy: str
    sub_strategies: tuple[SubStrategyDescriptor, ...]


SignalHandler = Callable[[MarketData, IndicatorSet, Any], Optional[Signal]]


class TimeframeStrategy:
    """Base class for the timeframe variants.

    Subclasses set the class attributes and implement
    ``_signal_<sub_strategy>(market_data, indicators, params)``.
    """

    name: ClassVar[str]
    display_name: ClassVar[str]
    description: ClassVar[str]
    timeframe: ClassVar[str]
    required_indicators: ClassVar[tuple[IndicatorType, ...]]
    parameters_model: ClassVar[type[StrategyParameters]]
    sub_strategies: ClassVar[tuple[SubStrategyDescriptor, ...]]

    # ------------------------------------------------------------------
    # Parameters
    # ------------------------------------------------------------------

    def default_parameters(self) -> StrategyParameters:
        return self.parameters_model()

    def parse_parameters(self, parameters: ParameterInput = None) -> StrategyParameters:
        """Coerce caller parameters into this variant's typed model.

        A mapping is merged onto the defaults. Another variant's model is
        re-validated from its dumped fields.

        Raises:
            pydantic.ValidationError: If the parameters are inconsistent.
        """
        if parameters is None:
            return self.default_parameters()
        if isinstance(parameters, self.parameters_model):
            return parameters
        if isinstance(parameters, BaseModel):
            parameters = parameters.model_dump()
        return self.parameters_model.model_validate(dict(parameters))

    def validate_parameters(self, parameters: ParameterInput) -> bool:
        try:
            self.parse_parameters(parameters)
        except (ValidationError, TypeError, ValueError):
            return False
        return True

    def indicator_config(self, parameters: ParameterInput = None) -> IndicatorConfig:
        return self.parse_parameters(parameters).indicator_config()

    # ------------------------------------------------------------------
    # Signals
    # ------------------------------------------------------------------

    def generate_signal(
        self,
        market_data: MarketData,
        indicators: IndicatorSet,
        parameters: ParameterInput = None,
    ) -> Signal | None:
        params = self.parse_parameters(parameters)
        handler: SignalHandler = getattr(self, f"_signal_{params.sub_strategy}")
        return handler(market_data, indicators, params)

    def _make_signal(
        self,
        action: SignalAction,
        confidence: float,
        market_data: MarketData,
        reasons: list[str],
        strategy_type: str,
        **metadata: Any,
    ) -> Signal:
        """Build a signal stamped with the bar time; confidence is clamped to [0, 1]."""
        return Signal(
            action=action,
            confidence=min(max(confidence, 0.0), 1.0),
            price=market_data.current_price,
            reasoning=", ".join(reasons),
            metadata={
                "strategy_type": strategy_type,
                "timeframe": self.timeframe,
                **metadata,
            },
            timestamp=market_data.timestamp,
        )

    # ------------------------------------------------------------------
    # Catalogue
    # ------------------------------------------------------------------

    @classmethod
    def describe(cls) -> StrategyDescriptor:
        return StrategyDescriptor(
            name=cls.name,
            display_name=cls.display_name,
            description=cls.description,
            timeframe=cls.timeframe,
            default_sub_strategy=cls.parameters_model().sub_strategy,
            sub_strategies=cls.sub_strategies,
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, timeframe={self.timeframe!r})"
