"""Mid-frequency strategy package.

Importing this package registers MidFrequencyStrategy.
"""

from core.strategy.mid_frequency.generator import MidFrequencyStrategy
from core.strategy.mid_frequency.models import (
    MID_FREQUENCY_STRATEGY_NAME,
    MidFrequencyParameters,
)

__all__ = [
    "MidFrequencyStrategy",
    "MidFrequencyParameters",
    "MID_FREQUENCY_STRATEGY_NAME",
]
