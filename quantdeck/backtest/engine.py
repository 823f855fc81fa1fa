"""Backtest engine — replays historical candles through one strategy.

Iterates candle data chronologically from the warm-up index, holding at
most one simulated position (long or short).  No real orders are placed.
"""

import logging
import math
from typing import Optional, Sequence

from quantdeck.backtest import stats
from quantdeck.backtest.models import BacktestResult, EquityPoint, Trade
from quantdeck.config import Config, default_config
from quantdeck.strategy.base import StrategyProtocol
from quantdeck.strategy.models import Candle, Signal

logger = logging.getLogger("quantdeck.backtest")


class _Book:
    """Cash, the single open position and the execution log for one run."""

    def __init__(self, cash: float, fraction: float) -> None:
        self.cash = cash
        self.quantity = 0  # positive = long, negative = short
        self.entry_price = 0.0
        self.trades: list[Trade] = []
        self.tally = stats.TradeTally()
        self._fraction = fraction

    def equity(self, price: float) -> float:
        return self.cash + self.quantity * price

    def open(self, side: str, candle: Candle, signal: Signal) -> None:
        """Open a position sized at ``floor(cash × fraction / price)``."""
        price = candle.close
        if price <= 0:
            return
        shares = math.floor(self.cash * self._fraction / price)
        if shares <= 0:
            logger.debug("Skipping %s at %.5f: cash %.2f too small", side, price, self.cash)
            return

        if side == "BUY":
            self.cash -= shares * price
            self.quantity = shares
        else:
            self.cash += shares * price
            self.quantity = -shares
        self.entry_price = price
        self.trades.append(
            Trade(type=side, price=price, quantity=shares,
                  timestamp=candle.timestamp, signal=signal)
        )

    def close(self, candle: Candle, signal: Optional[Signal], reason: str = "close") -> None:
        """Close the open position at the candle's close and realize P&L."""
        price = candle.close
        qty = self.quantity
        pnl = (price - self.entry_price) * qty
        self.cash += qty * price
        self.quantity = 0
        self.entry_price = 0.0
        self.tally.record(pnl)
        self.trades.append(
            Trade(type="SELL" if qty > 0 else "BUY", price=price, quantity=abs(qty),
                  timestamp=candle.timestamp, signal=signal, pnl=pnl, reason=reason)
        )


class BacktestEngine:
    """Simulates one strategy on historical candle data.

    Args:
        config: Supplies the warm-up index, position fraction and default
            starting capital.
    """

    def __init__(self, config: Optional[Config] = None) -> None:
        self._config = config or default_config()

    # ── Public API ───────────────────────────────────────────────────────

    def run(
        self,
        strategy: StrategyProtocol,
        candles: Sequence[Candle],
        initial_capital: Optional[float] = None,
        strategy_id: str = "",
    ) -> BacktestResult:
        """Execute a full backtest.

        Transitions happen only on BUY/SELL signals:
            - BUY while short: cover, then open long.
            - BUY while flat: open long.  BUY while long: no-op.
            - SELL mirrors BUY.
        Any position still open after the last candle is liquidated at
        the last close.
        """
        capital = self._config.initial_capital if initial_capital is None else initial_capital
        if capital <= 0:
            raise ValueError("initial_capital must be positive")

        book = _Book(capital, self._config.position_fraction)
        curve: list[EquityPoint] = []

        for i in range(self._config.warmup_index, len(candles)):
            candle = candles[i]
            signal = strategy.analyze(candles[: i + 1])

            if signal.action == "BUY" and book.quantity <= 0:
                if book.quantity < 0:
                    book.close(candle, signal)
                book.open("BUY", candle, signal)
            elif signal.action == "SELL" and book.quantity >= 0:
                if book.quantity > 0:
                    book.close(candle, signal)
                book.open("SELL", candle, signal)

            curve.append(
                EquityPoint(
                    timestamp=candle.timestamp,
                    date=candle.time.isoformat(),
                    value=book.equity(candle.close),
                )
            )

        if book.quantity != 0:
            book.close(candles[-1], None, reason="liquidation")

        result = self._summarise(strategy, strategy_id, capital, book, curve)
        logger.info(
            "Backtest complete: %s, %d trades, return %.2f%%, max DD %.2f%%",
            result.strategy_name, result.total_trades,
            result.total_return, result.max_drawdown,
        )
        return result

    # ── Helpers ──────────────────────────────────────────────────────────

    @staticmethod
    def _summarise(
        strategy: StrategyProtocol,
        strategy_id: str,
        capital: float,
        book: _Book,
        curve: list[EquityPoint],
    ) -> BacktestResult:
        tally = book.tally
        final_equity = book.cash
        total_trades = len(book.trades)
        total_return = (final_equity / capital - 1) * 100

        returns = stats.daily_returns([p.value for p in curve])
        max_dd = stats.max_drawdown_pct([p.value for p in curve], capital)

        return BacktestResult(
            strategy_id=strategy_id,
            strategy_name=strategy.name(),
            initial_capital=capital,
            final_equity=final_equity,
            total_return=total_return,
            sharpe_ratio=stats.sharpe_ratio(returns),
            sortino_ratio=stats.sortino_ratio(returns),
            calmar_ratio=stats.calmar_ratio(total_return, max_dd),
            max_drawdown=max_dd,
            volatility=stats.volatility_pct(returns),
            win_rate=stats.win_rate(tally.wins, total_trades),
            profit_factor=stats.profit_factor(tally.gross_profit, tally.gross_loss),
            expectancy=stats.expectancy(tally.gross_profit, tally.gross_loss, total_trades),
            total_trades=total_trades,
            wins=tally.wins,
            losses=tally.losses,
            gross_profit=tally.gross_profit,
            gross_loss=tally.gross_loss,
            net_profit=final_equity - capital,
            largest_win=tally.largest_win,
            largest_loss=tally.largest_loss,
            longest_win_streak=tally.longest_win_streak,
            longest_loss_streak=tally.longest_loss_streak,
            trades=tuple(book.trades),
            equity_curve=tuple(curve),
            daily_returns=tuple(returns),
            monthly_returns=tuple(stats.monthly_returns(curve)),
        )
