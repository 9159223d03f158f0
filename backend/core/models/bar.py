"""Bar (OHLCV candlestick) data models."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Sequence

from pydantic import BaseModel, ConfigDict


class Bar(BaseModel):
    """One OHLCV sample for a fixed timeframe."""

    model_config = ConfigDict(frozen=True)

    symbol: str = ""
    timeframe: str = ""
    timestamp: datetime
    open: float
    high: float
    low: float
    close: float
    volume: float

    @property
    def is_bullish(self) -> bool:
        """Check if this is a bullish (green) candle."""
        return self.close > self.open

    @property
    def typical_price(self) -> float:
        """(high + low + close) / 3."""
        return (self.high + self.low + self.close) / 3.0

    @property
    def range_size(self) -> float:
        """Get the full range (high - low) of the candle."""
        return self.high - self.low


@dataclass(frozen=True)
class MarketData:
    """What a strategy sees on one step: the current bar plus its history.

    ``bars`` is the replayed prefix up to and including the current bar.
    """

    symbol: str
    current_price: float
    volume: float
    timestamp: datetime
    bars: Sequence[Bar]

    @classmethod
    def from_bars(cls, bars: Sequence[Bar]) -> "MarketData":
        """Build market data whose current bar is the last of ``bars``."""
        if not bars:
            raise ValueError("MarketData needs at least one bar")
        current = bars[-1]
        return cls(
            symbol=current.symbol,
            current_price=current.close,
            volume=current.volume,
            timestamp=current.timestamp,
            bars=bars,
        )

    def closes(self, last: int | None = None) -> list[float]:
        """Close prices, optionally only the trailing ``last`` bars."""
        bars = self.bars if last is None else self.bars[-last:]
        return [b.close for b in bars]

    def volumes(self, last: int | None = None) -> list[float]:
        """Volumes, optionally only the trailing ``last`` bars."""
        bars = self.bars if last is None else self.bars[-last:]
        return [b.volume for b in bars]

    def __len__(self) -> int:
        return len(self.bars)
