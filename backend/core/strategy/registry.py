"""Strategy registry for looking up strategy variants by name.

Usage:
    @register_strategy(StrategyType.DAILY)
    class DailyStrategy(TimeframeStrategy):
        ...

    strategy = create_strategy("daily")
    names = list_strategies()
    catalogue = describe_strategies()
"""

from __future__ import annotations

import logging
from typing import Any

logger = logging.getLogger(__name__)

# strategy_name -> strategy_class
_REGISTRY: dict[str, type] = {}


def register_strategy(name: str):
    """Decorator registering a strategy class under ``name``.

    Raises:
        ValueError: If ``name`` is already taken by another class.
    """
    key = str(getattr(name, "value", name))

    def decorator(cls):
        existing = _REGISTRY.get(key)
        if existing is not None and existing is not cls:
            raise ValueError(
                f"Strategy '{key}' is already registered by {existing.__name__}"
            )
        _REGISTRY[key] = cls
        logger.debug("Registered strategy: %s -> %s", key, cls.__name__)
        return cls

    return decorator


def get_strategy_class(name: str) -> type:
    """Look up a registered strategy class.

    Raises:
        KeyError: If no strategy is registered under ``name``.
    """
    key = str(getattr(name, "value", name))
    cls = _REGISTRY.get(key)
    if cls is None:
        available = ", ".join(sorted(_REGISTRY)) or "(none)"
        raise KeyError(f"Unknown strategy '{key}'. Available: {available}")
    return cls


def create_strategy(name: str, **kwargs: Any):
    """Instantiate the strategy registered under ``name``."""
    return get_strategy_class(name)(**kwargs)


def list_strategies() -> list[str]:
    """Sorted names of all registered strategies."""
    return sorted(_REGISTRY)


def describe_strategies() -> list:
    """Catalogue entry of every registered strategy, sorted by name."""
    return [_REGISTRY[name].describe() for name in sorted(_REGISTRY)]
