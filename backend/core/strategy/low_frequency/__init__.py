"""Low-frequency strategy package.

Importing this package registers LowFrequencyStrategy.
"""

from core.strategy.low_frequency.generator import LowFrequencyStrategy
from core.strategy.low_frequency.models import (
    LOW_FREQUENCY_STRATEGY_NAME,
    LowFrequencyParameters,
)

__all__ = [
    "LowFrequencyStrategy",
    "LowFrequencyParameters",
    "LOW_FREQUENCY_STRATEGY_NAME",
]
