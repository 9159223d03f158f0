"""Strategy plugin system.

Public API:
- Strategy: Protocol that all strategies must implement
- TimeframeStrategy: Base class of the built-in timeframe variants
- register_strategy: Decorator to register a strategy class
- create_strategy: Factory function to instantiate strategies by name
- list_strategies / describe_strategies: Discover registered strategies
- get_strategy_class: Get strategy class by name without instantiating

Importing this package auto-registers all built-in strategies.
"""

from core.strategy.protocol import ParameterInput, Strategy
from core.strategy.registry import (
    create_strategy,
    describe_strategies,
    get_strategy_class,
    list_strategies,
    register_strategy,
)
from core.strategy.base import (
    RiskLevel,
    StrategyDescriptor,
    StrategyType,
    SubStrategyDescriptor,
    TimeframeStrategy,
)

# Import built-in strategies to trigger auto-registration
import core.strategy.high_frequency  # noqa: F401
import core.strategy.mid_frequency  # noqa: F401
import core.strategy.low_frequency  # noqa: F401
import core.strategy.daily  # noqa: F401

__all__ = [
    "Strategy",
    "ParameterInput",
    "TimeframeStrategy",
    "StrategyType",
    "RiskLevel",
    "StrategyDescriptor",
    "SubStrategyDescriptor",
    "register_strategy",
    "create_strategy",
    "list_strategies",
    "describe_strategies",
    "get_strategy_class",
]
