"""Live signal service — periodic re-analysis for (strategy, symbol) subscribers.

Each subscription key owns one strategy instance, its callback list and a
``PeriodicTask`` that re-fetches history and re-analyzes on every tick.
Failures in a history fetch, an analysis or a callback are logged and
never reach other subscribers or the timer loop.
"""

import inspect
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Mapping, Optional, Protocol, Union

from quantdeck.config import Config, default_config
from quantdeck.live.scheduler import PeriodicTask, schedule_periodic
from quantdeck.strategy.base import StrategyProtocol
from quantdeck.strategy.models import Candle, Signal
from quantdeck.strategy.registry import StrategyRegistry

logger = logging.getLogger("quantdeck.signal_service")

SubscriptionKey = tuple[str, str]


class HistoryProvider(Protocol):
    """Anything that can return oldest-first candles for a symbol."""

    async def fetch_candles(self, symbol: str, timeframe: str, limit: int) -> list[Candle]:
        ...


@dataclass(frozen=True)
class SignalUpdate:
    """What a subscriber receives on every analysis cycle."""

    strategy_id: str
    strategy_name: str
    symbol: str
    signal: Signal
    timestamp: datetime


SignalCallback = Callable[[SignalUpdate], Union[None, Awaitable[None]]]


@dataclass
class _Subscription:
    strategy: StrategyProtocol
    callbacks: list[SignalCallback] = field(default_factory=list)
    task: Optional[PeriodicTask] = None
    latest: Optional[SignalUpdate] = None


class SignalService:
    """Subscription registry keyed by ``(strategy_id, symbol)``.

    Args:
        registry: Source of strategy instances.
        history: Market-data collaborator (e.g. ``BinanceClient``).
        config: Supplies the poll interval, timeframe and history window.
    """

    def __init__(
        self,
        registry: StrategyRegistry,
        history: HistoryProvider,
        config: Optional[Config] = None,
    ) -> None:
        self._registry = registry
        self._history = history
        self._config = config or default_config()
        self._subscriptions: dict[SubscriptionKey, _Subscription] = {}

    # ── Public API ───────────────────────────────────────────────────────

    async def subscribe(
        self,
        strategy_id: str,
        symbol: str,
        params: Optional[Mapping[str, Any]],
        callback: SignalCallback,
    ) -> bool:
        """Register *callback* for signals of *strategy_id* on *symbol*.

        The first subscriber for a key creates the strategy, runs one
        analysis immediately and arms the polling timer.  Later subscribers
        join the existing key (their *params* are ignored) and receive the
        latest update straight away when one exists.

        Returns ``False`` when *strategy_id* is unknown.  Invalid *params*
        raise ``ValueError``.
        """
        key = (strategy_id, symbol)
        sub = self._subscriptions.get(key)
        if sub is not None:
            sub.callbacks.append(callback)
            if sub.latest is not None:
                await self._deliver(callback, sub.latest)
            return True

        strategy = self._registry.create(strategy_id, params)
        if strategy is None:
            return False

        sub = _Subscription(strategy=strategy, callbacks=[callback])
        self._subscriptions[key] = sub
        logger.info("Subscription created: %s on %s", strategy_id, symbol)

        await self._refresh(key, sub)

        # The last callback may have been removed while the first fetch ran.
        if self._subscriptions.get(key) is sub:
            sub.task = schedule_periodic(
                self._config.poll_interval_seconds,
                lambda: self._refresh(key, sub),
                name=f"{strategy_id}:{symbol}",
            )
        return True

    def unsubscribe(self, strategy_id: str, symbol: str, callback: SignalCallback) -> None:
        """Remove one callback; the last removal cancels the key's timer."""
        key = (strategy_id, symbol)
        sub = self._subscriptions.get(key)
        if sub is None:
            return
        try:
            sub.callbacks.remove(callback)
        except ValueError:
            return
        if not sub.callbacks:
            self._teardown(key, sub)

    def active_keys(self) -> list[SubscriptionKey]:
        return list(self._subscriptions)

    def subscriber_count(self, strategy_id: str, symbol: str) -> int:
        sub = self._subscriptions.get((strategy_id, symbol))
        return len(sub.callbacks) if sub else 0

    def latest(self, strategy_id: str, symbol: str) -> Optional[SignalUpdate]:
        sub = self._subscriptions.get((strategy_id, symbol))
        return sub.latest if sub else None

    def close(self) -> None:
        """Cancel every subscription."""
        for key, sub in list(self._subscriptions.items()):
            self._teardown(key, sub)

    # ── Internals ────────────────────────────────────────────────────────

    def _teardown(self, key: SubscriptionKey, sub: _Subscription) -> None:
        self._subscriptions.pop(key, None)
        sub.callbacks.clear()
        if sub.task is not None:
            sub.task.cancel()
        logger.info("Subscription removed: %s on %s", *key)

    async def _refresh(self, key: SubscriptionKey, sub: _Subscription) -> None:
        """One poll cycle: fetch history, analyze, fan out to callbacks."""
        strategy_id, symbol = key
        try:
            candles = await self._history.fetch_candles(
                symbol,
                self._config.history_timeframe,
                self._config.history_limit,
            )
        except Exception:
            logger.exception("History fetch failed for %s on %s", strategy_id, symbol)
            return

        if not candles:
            logger.warning("No candles returned for %s", symbol)
            return

        try:
            signal = sub.strategy.analyze(candles)
        except Exception:
            logger.exception("Analysis failed for %s on %s", strategy_id, symbol)
            return

        update = SignalUpdate(
            strategy_id=strategy_id,
            strategy_name=sub.strategy.name(),
            symbol=symbol,
            signal=signal,
            timestamp=datetime.now(timezone.utc),
        )
        sub.latest = update
        logger.debug("%s %s -> %s", strategy_id, symbol, signal.action)

        for callback in list(sub.callbacks):
            await self._deliver(callback, update)

    @staticmethod
    async def _deliver(callback: SignalCallback, update: SignalUpdate) -> None:
        try:
            result = callback(update)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception(
                "Signal callback failed for %s on %s",
                update.strategy_id, update.symbol,
            )
