"""Daily strategy package.

Importing this package registers DailyStrategy.
"""

from core.strategy.daily.generator import DailyStrategy
from core.strategy.daily.models import DAILY_STRATEGY_NAME, DailyParameters

__all__ = [
    "DailyStrategy",
    "DailyParameters",
    "DAILY_STRATEGY_NAME",
]
