"""High-frequency strategy package.

Importing this package triggers strategy registration via the
@register_strategy decorator on HighFrequencyStrategy.
"""

from core.strategy.high_frequency.generator import HighFrequencyStrategy
from core.strategy.high_frequency.models import (
    HIGH_FREQUENCY_STRATEGY_NAME,
    HighFrequencyParameters,
)

__all__ = [
    "HighFrequencyStrategy",
    "HighFrequencyParameters",
    "HIGH_FREQUENCY_STRATEGY_NAME",
]
