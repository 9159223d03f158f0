"""Bar data sources for backtesting.

The engine never fetches data itself; callers load bars through one of
these sources and pass them in.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Protocol, Sequence

import pandas as pd

from core.models import Bar

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("timestamp", "open", "high", "low", "close", "volume")

# Integer timestamps above this are epoch milliseconds, otherwise seconds
_EPOCH_MS_THRESHOLD = 10**11


class BarSource(Protocol):
    """Protocol for bar data access."""

    def get_range(
        self,
        symbol: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[Bar]: ...


def _in_range(bar: Bar, start: datetime | None, end: datetime | None) -> bool:
    return (start is None or bar.timestamp >= start) and (end is None or bar.timestamp <= end)


class InMemoryBarSource:
    """Serve bars held in memory (tests, pre-loaded data)."""

    def __init__(self, bars: Sequence[Bar]):
        self._bars = sorted(bars, key=lambda b: b.timestamp)

    def get_range(
        self,
        symbol: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[Bar]:
        return [
            b for b in self._bars
            if (symbol is None or b.symbol == symbol) and _in_range(b, start, end)
        ]


class CsvBarSource:
    """Read OHLCV bars from a CSV file with pandas.

    Expected columns: timestamp, open, high, low, close, volume and an
    optional symbol column. Timestamps may be ISO strings or epoch
    seconds / milliseconds; they are normalised to UTC.
    """

    def __init__(self, path: str | Path, symbol: str | None = None, timeframe: str = ""):
        self.path = Path(path)
        self.symbol = symbol
        self.timeframe = timeframe
        self._bars: list[Bar] | None = None

    def _read_frame(self) -> pd.DataFrame:
        df = pd.read_csv(self.path)
        df.columns = [str(c).strip().lower() for c in df.columns]

        missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
        if missing:
            raise ValueError(f"{self.path}: missing columns {', '.join(missing)}")

        ts = df["timestamp"]
        if pd.api.types.is_numeric_dtype(ts):
            unit = "ms" if ts.max() > _EPOCH_MS_THRESHOLD else "s"
            df["timestamp"] = pd.to_datetime(ts, unit=unit, utc=True)
        else:
            df["timestamp"] = pd.to_datetime(ts, utc=True)

        before = len(df)
        df = df.dropna(subset=list(REQUIRED_COLUMNS))
        if len(df) < before:
            logger.warning("%s: dropped %d incomplete rows", self.path, before - len(df))

        return df.sort_values("timestamp", kind="stable")

    def load(self) -> list[Bar]:
        """Load (and cache) every bar in the file."""
        if self._bars is None:
            df = self._read_frame()
            default_symbol = self.symbol or self.path.stem.upper()
            has_symbol = "symbol" in df.columns
            self._bars = [
                Bar(
                    symbol=str(row.symbol) if has_symbol else default_symbol,
                    timeframe=self.timeframe,
                    timestamp=row.timestamp.to_pydatetime(),
                    open=float(row.open),
                    high=float(row.high),
                    low=float(row.low),
                    close=float(row.close),
                    volume=float(row.volume),
                )
                for row in df.itertuples(index=False)
            ]
            logger.info("Loaded %d bars from %s", len(self._bars), self.path)
        return self._bars

    def symbols(self) -> list[str]:
        """Distinct symbols in the file, sorted."""
        return sorted({b.symbol for b in self.load()})

    def get_range(
        self,
        symbol: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[Bar]:
        """Bars in ascending time order, optionally filtered."""
        return [
            b for b in self.load()
            if (symbol is None or b.symbol == symbol) and _in_range(b, start, end)
        ]
