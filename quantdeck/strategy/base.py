"""Strategy protocol and shared base class.

Defines the interface that all strategies must implement, plus the
warm-up guard and signal-assembly helpers every built-in strategy shares.
"""

from abc import ABC, abstractmethod
from typing import Any, ClassVar, Mapping, Optional, Protocol, Sequence, runtime_checkable

from quantdeck.strategy.indicators import calculate_atr
from quantdeck.strategy.models import (
    Action,
    Candle,
    IndicatorReading,
    Signal,
    hold_signal,
)
from quantdeck.strategy.params import resolve_parameters

INSUFFICIENT_DATA = "Insufficient data for analysis"

_MIN_RISK_FRACTION = 0.001  # risk distance floor when ATR is zero


@runtime_checkable
class StrategyProtocol(Protocol):
    """Interface that all trading strategies must satisfy."""

    def name(self) -> str:
        ...

    def description(self) -> str:
        ...

    def analyze(self, candles: Sequence[Candle]) -> Signal:
        """Return a decision for the last candle of *candles*."""
        ...


class BaseStrategy(ABC):
    """Common machinery for the built-in strategies.

    Subclasses declare ``params_type`` (a typed parameter dataclass) and
    implement ``warmup`` and ``_evaluate``.  ``analyze`` returns a neutral
    HOLD whenever fewer than ``warmup()`` candles are available, including
    none at all (levels then sit at 0.0).
    """

    params_type: ClassVar[type]

    def __init__(self, parameters: Optional[Mapping[str, Any]] = None) -> None:
        self.params = self.params_type.from_overrides(parameters)

    @abstractmethod
    def name(self) -> str:
        ...

    @abstractmethod
    def description(self) -> str:
        ...

    @classmethod
    def default_parameters(cls) -> dict[str, Any]:
        return resolve_parameters(cls.params_type.SCHEMA)

    @abstractmethod
    def warmup(self) -> int:
        """Minimum number of candles needed for a defined decision."""

    @abstractmethod
    def _evaluate(self, candles: Sequence[Candle]) -> Signal:
        ...

    def analyze(self, candles: Sequence[Candle]) -> Signal:
        if len(candles) < self.warmup():
            return self._insufficient(candles)
        return self._evaluate(candles)

    # ── Helpers ──────────────────────────────────────────────────────────

    @staticmethod
    def _insufficient(candles: Sequence[Candle]) -> Signal:
        price = candles[-1].close if candles else 0.0
        return hold_signal(price, [INSUFFICIENT_DATA])

    @staticmethod
    def _risk_unit(candles: Sequence[Candle], period: int = 14) -> float:
        """Latest ATR(*period*), floored at 0.1 % of the last close.

        The floor keeps stop and target strictly on either side of entry
        in perfectly flat stretches where every true range is zero.
        """
        price = candles[-1].close
        atr = calculate_atr(candles[-(period + 1):], period)
        value = atr[-1] if atr else 0.0
        return max(value, abs(price) * _MIN_RISK_FRACTION)

    @staticmethod
    def _average_volume(candles: Sequence[Candle], lookback: int = 20) -> float:
        window = candles[-lookback:]
        return sum(c.volume for c in window) / len(window)

    @staticmethod
    def _build_signal(
        action: Action,
        strength: float,
        confidence: float,
        price: float,
        stop_loss: float,
        take_profit: float,
        indicators: Sequence[IndicatorReading],
        reasoning: Sequence[str],
    ) -> Signal:
        """Clamp scores and normalise HOLD so every level equals *price*."""
        if action == "HOLD":
            return hold_signal(price, reasoning, indicators)
        return Signal(
            action=action,
            strength=min(max(strength, 0.0), 100.0),
            confidence=min(max(confidence, 0.0), 95.0),
            entry_price=price,
            stop_loss=stop_loss,
            take_profit=take_profit,
            indicators=tuple(indicators),
            reasoning=tuple(reasoning),
        )


def rsi_reading(value: float) -> IndicatorReading:
    """Display reading shared by every strategy that reports RSI."""
    return IndicatorReading(
        name="RSI",
        value=value,
        signal="BUY" if value > 50 else "SELL",
        strength=min(abs(value - 50) * 2, 100.0),
    )
