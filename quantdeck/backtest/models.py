"""Backtest data models — trade log entries, equity curve points and the result."""

from dataclasses import dataclass
from typing import Literal, Optional

from quantdeck.strategy.models import Signal


@dataclass(frozen=True)
class Trade:
    """One simulated execution.

    ``pnl`` is the realized P&L for executions that close a position and
    ``None`` for executions that open one.  The forced end-of-data close
    carries ``reason="liquidation"`` and no signal.
    """

    type: Literal["BUY", "SELL"]
    price: float
    quantity: int
    timestamp: int
    signal: Optional[Signal]
    pnl: Optional[float] = None
    reason: Literal["open", "close", "liquidation"] = "open"


@dataclass(frozen=True)
class EquityPoint:
    timestamp: int
    date: str  # ISO-8601, UTC
    value: float


@dataclass(frozen=True)
class MonthlyReturn:
    month: str  # "YYYY-MM"
    return_pct: float


@dataclass(frozen=True)
class BacktestResult:
    """Everything derived from one simulated run."""

    strategy_id: str
    strategy_name: str
    initial_capital: float
    final_equity: float
    total_return: float
    sharpe_ratio: float
    sortino_ratio: float
    calmar_ratio: float
    max_drawdown: float
    volatility: float
    win_rate: float
    profit_factor: float
    expectancy: float
    total_trades: int
    wins: int
    losses: int
    gross_profit: float
    gross_loss: float
    net_profit: float
    largest_win: float
    largest_loss: float
    longest_win_streak: int
    longest_loss_streak: int
    trades: tuple[Trade, ...]
    equity_curve: tuple[EquityPoint, ...]
    daily_returns: tuple[float, ...]
    monthly_returns: tuple[MonthlyReturn, ...]
