"""Simulated order execution against a Portfolio.

Sizing is all-in: a buy spends all available cash (less commission) on
whole units, and a sell closes the first open lot in full.
"""

from __future__ import annotations

import hashlib
import logging
import math

from core.models import Bar, Signal, SignalAction

from backtest.models import Portfolio, Position, Trade, TradeAction

logger = logging.getLogger(__name__)

CLOSE_ALL_REASONING = "Close all positions"


class TradeExecutor:
    """Turn actionable signals into fills and ledger entries.

    Each executor belongs to one run; trade ids are derived from the
    strategy name, bar time, action and ledger sequence so that replays
    produce identical ledgers.
    """

    def __init__(self, portfolio: Portfolio, commission_rate: float, strategy_name: str):
        if commission_rate < 0:
            raise ValueError(f"commission_rate must be >= 0, got {commission_rate}")
        self.portfolio = portfolio
        self.commission_rate = commission_rate
        self.strategy_name = strategy_name
        self._sequence = 0

    def execute(self, signal: Signal, bar: Bar) -> Trade | None:
        """Execute ``signal`` at the bar close. Returns None when nothing filled."""
        if signal.action == SignalAction.BUY:
            return self.buy(bar, signal.reasoning)
        if signal.action == SignalAction.SELL:
            return self.sell(bar, signal.reasoning)
        if signal.action == SignalAction.CLOSE_POSITION:
            return self.close_all(bar)
        return None

    def buy(self, bar: Bar, reasoning: str = "") -> Trade | None:
        price = bar.close
        cash = self.portfolio.cash
        commission = cash * self.commission_rate
        investable = cash - commission
        if price <= 0 or investable <= 0:
            logger.debug("Buy rejected at %s: no investable cash", bar.timestamp)
            return None

        quantity = math.floor(investable / price)
        if quantity <= 0:
            logger.debug(
                "Buy rejected at %s: %.2f investable buys no units at %.4f",
                bar.timestamp, investable, price,
            )
            return None

        self.portfolio.cash -= quantity * price + commission
        self.portfolio.positions.append(
            Position(
                symbol=bar.symbol,
                quantity=quantity,
                avg_price=price,
                current_price=price,
                open_timestamp=bar.timestamp,
            )
        )
        return self._record(bar, TradeAction.BUY, quantity, commission, 0.0, reasoning)

    def sell(self, bar: Bar, reasoning: str = "") -> Trade | None:
        index = next(
            (i for i, p in enumerate(self.portfolio.positions) if p.quantity > 0),
            None,
        )
        if index is None:
            return None

        position = self.portfolio.positions.pop(index)
        proceeds = position.quantity * bar.close
        commission = proceeds * self.commission_rate
        net = proceeds - commission
        pnl = net - position.quantity * position.avg_price

        self.portfolio.cash += net
        return self._record(bar, TradeAction.SELL, position.quantity, commission, pnl, reasoning)

    def close_all(self, bar: Bar) -> Trade | None:
        """Sell every open position as one aggregated trade."""
        total_quantity = 0
        total_commission = 0.0
        total_pnl = 0.0
        for position in self.portfolio.positions:
            proceeds = position.quantity * bar.close
            commission = proceeds * self.commission_rate
            net = proceeds - commission
            self.portfolio.cash += net
            total_pnl += net - position.quantity * position.avg_price
            total_commission += commission
            total_quantity += position.quantity
        self.portfolio.positions.clear()

        if total_quantity == 0:
            return None
        return self._record(
            bar, TradeAction.SELL, total_quantity, total_commission, total_pnl,
            CLOSE_ALL_REASONING,
        )

    def _record(
        self,
        bar: Bar,
        action: TradeAction,
        quantity: int,
        commission: float,
        pnl: float,
        reasoning: str,
    ) -> Trade:
        self._sequence += 1
        trade = Trade(
            id=self._trade_id(bar, action),
            symbol=bar.symbol,
            action=action,
            quantity=quantity,
            price=bar.close,
            timestamp=bar.timestamp,
            commission=commission,
            pnl=pnl,
            strategy_reasoning=reasoning,
        )
        logger.debug(
            "%s %d %s @ %.4f (commission=%.2f pnl=%.2f)",
            action.value.upper(), quantity, bar.symbol or "-", bar.close, commission, pnl,
        )
        return trade

    def _trade_id(self, bar: Bar, action: TradeAction) -> str:
        key = f"{self.strategy_name}:{bar.timestamp.isoformat()}:{action.value}:{self._sequence}"
        return hashlib.sha256(key.encode()).hexdigest()[:16]
