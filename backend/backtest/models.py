"""Portfolio and ledger models for one simulated run."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class TradeAction(str, Enum):
    BUY = "buy"
    SELL = "sell"


class EngineState(str, Enum):
    """Lifecycle of a BacktestEngine (one run per engine)."""

    IDLE = "idle"
    RUNNING = "running"
    COMPLETE = "complete"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass
class Position:
    """An open long lot. Removed from the portfolio when sold."""

    symbol: str
    quantity: int
    avg_price: float
    current_price: float
    open_timestamp: datetime

    @property
    def market_value(self) -> float:
        return self.quantity * self.current_price

    @property
    def unrealized_pnl(self) -> float:
        return self.quantity * (self.current_price - self.avg_price)


@dataclass
class Portfolio:
    """Cash plus open positions, owned by a single engine run."""

    cash: float
    positions: list[Position] = field(default_factory=list)

    @property
    def total_value(self) -> float:
        """Cash plus every position marked at its current price."""
        return self.cash + sum(p.market_value for p in self.positions)

    def mark(self, price: float) -> None:
        """Mark every open position to ``price``."""
        for position in self.positions:
            position.current_price = price


class Trade(BaseModel):
    """Ledger entry for an executed fill. Immutable once recorded."""

    model_config = ConfigDict(frozen=True)

    id: str
    symbol: str
    action: TradeAction
    quantity: int = Field(gt=0)
    price: float
    timestamp: datetime
    commission: float = Field(ge=0.0)
    pnl: float = 0.0
    strategy_reasoning: str = ""

    @property
    def notional(self) -> float:
        return self.quantity * self.price


class DailyReturn(BaseModel):
    """Equity snapshot taken after each replayed bar."""

    model_config = ConfigDict(frozen=True)

    date: datetime
    portfolio_value: float
    cash: float
    open_positions: int
    daily_pnl: float
