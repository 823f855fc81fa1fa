"""Backtest statistics — pure functions over the equity curve and closed-trade P&L."""

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Sequence

from quantdeck.backtest.models import EquityPoint, MonthlyReturn

TRADING_DAYS = 252

# Ratio reported when the denominator is zero but the numerator is favourable.
RATIO_CAP = 10.0


@dataclass
class TradeTally:
    """Running win/loss accounting, updated once per closed position.

    A zero-P&L close counts as a loss.
    """

    wins: int = 0
    losses: int = 0
    gross_profit: float = 0.0
    gross_loss: float = 0.0
    largest_win: float = 0.0
    largest_loss: float = 0.0
    longest_win_streak: int = 0
    longest_loss_streak: int = 0
    _win_streak: int = field(default=0, repr=False)
    _loss_streak: int = field(default=0, repr=False)

    def record(self, pnl: float) -> None:
        if pnl > 0:
            self.wins += 1
            self.gross_profit += pnl
            self.largest_win = max(self.largest_win, pnl)
            self._win_streak += 1
            self._loss_streak = 0
            self.longest_win_streak = max(self.longest_win_streak, self._win_streak)
        else:
            self.losses += 1
            self.gross_loss += abs(pnl)
            self.largest_loss = min(self.largest_loss, pnl)
            self._loss_streak += 1
            self._win_streak = 0
            self.longest_loss_streak = max(self.longest_loss_streak, self._loss_streak)


# ── Return series ────────────────────────────────────────────────────────


def daily_returns(values: Sequence[float]) -> list[float]:
    """Successive fractional changes of an equity series."""
    returns: list[float] = []
    for prev, cur in zip(values, values[1:]):
        returns.append((cur - prev) / prev if prev != 0 else 0.0)
    return returns


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def _pstdev(values: Sequence[float]) -> float:
    """Population standard deviation; 0.0 for fewer than 2 values."""
    if len(values) < 2:
        return 0.0
    mean = _mean(values)
    return math.sqrt(sum((v - mean) ** 2 for v in values) / len(values))


def volatility_pct(returns: Sequence[float]) -> float:
    """Annualised volatility in percent."""
    return _pstdev(returns) * math.sqrt(TRADING_DAYS) * 100


def sharpe_ratio(returns: Sequence[float]) -> float:
    """Annualised mean return over annualised volatility (no risk-free rate).

    Returns 0.0 when volatility is zero.
    """
    vol = volatility_pct(returns)
    if vol == 0:
        return 0.0
    return (_mean(returns) * TRADING_DAYS) / (vol / 100)


def sortino_ratio(returns: Sequence[float]) -> float:
    """Like Sharpe, but the denominator uses only negative returns.

    Without downside dispersion the ratio is ``RATIO_CAP`` for a positive
    mean return and 0.0 otherwise.
    """
    mean = _mean(returns)
    downside = _pstdev([r for r in returns if r < 0])
    if downside == 0:
        return RATIO_CAP if mean > 0 else 0.0
    return (mean * TRADING_DAYS) / (downside * math.sqrt(TRADING_DAYS))


# ── Drawdown ─────────────────────────────────────────────────────────────


def max_drawdown_pct(values: Sequence[float], initial: float) -> float:
    """Worst peak-to-trough decline in percent, reported as a value <= 0.

    The running peak starts at *initial*.
    """
    peak = initial
    worst = 0.0
    for value in values:
        if value > peak:
            peak = value
        if peak > 0:
            dd = (peak - value) / peak * 100
            if dd > worst:
                worst = dd
    return -worst if worst > 0 else 0.0


def calmar_ratio(total_return: float, max_drawdown: float) -> float:
    """Total return over |max drawdown|; 0.0 when there was no drawdown."""
    if max_drawdown == 0:
        return 0.0
    return total_return / abs(max_drawdown)


# ── Trade statistics ─────────────────────────────────────────────────────


def profit_factor(gross_profit: float, gross_loss: float) -> float:
    if gross_loss == 0:
        return RATIO_CAP if gross_profit > 0 else 1.0
    return gross_profit / gross_loss


def expectancy(gross_profit: float, gross_loss: float, total_trades: int) -> float:
    if total_trades == 0:
        return 0.0
    return (gross_profit - gross_loss) / total_trades


def win_rate(wins: int, total_trades: int) -> float:
    if total_trades == 0:
        return 0.0
    return wins / total_trades * 100


# ── Calendar buckets ─────────────────────────────────────────────────────


def monthly_returns(curve: Sequence[EquityPoint]) -> list[MonthlyReturn]:
    """Group the equity curve by UTC calendar month.

    Each month's return is measured from its first to its last point.
    """
    buckets: dict[str, list[float]] = {}
    for point in curve:
        month = datetime.fromtimestamp(point.timestamp / 1000, tz=timezone.utc).strftime("%Y-%m")
        buckets.setdefault(month, []).append(point.value)

    result: list[MonthlyReturn] = []
    for month, values in buckets.items():
        first, last = values[0], values[-1]
        pct = (last - first) / first * 100 if first != 0 else 0.0
        result.append(MonthlyReturn(month=month, return_pct=pct))
    return result
