"""Strategy data models — typed representations for strategy inputs and outputs."""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Literal, Sequence

Action = Literal["BUY", "SELL", "HOLD"]
Hint = Literal["BUY", "SELL", "NEUTRAL"]


@dataclass(frozen=True)
class Candle:
    """A single OHLCV bar.  ``timestamp`` is epoch milliseconds (UTC)."""

    timestamp: int
    open: float
    high: float
    low: float
    close: float
    volume: float

    @classmethod
    def from_kline(cls, row: Sequence) -> "Candle":
        """Build a candle from a Binance kline row (strings for prices)."""
        return cls(
            timestamp=int(row[0]),
            open=float(row[1]),
            high=float(row[2]),
            low=float(row[3]),
            close=float(row[4]),
            volume=float(row[5]),
        )

    @property
    def time(self) -> datetime:
        return datetime.fromtimestamp(self.timestamp / 1000, tz=timezone.utc)


@dataclass(frozen=True)
class IndicatorReading:
    """One indicator's latest value plus a directional hint for display."""

    name: str
    value: float
    signal: Hint
    strength: float  # 0-100


@dataclass(frozen=True)
class Signal:
    """A strategy decision for the latest candle.

    Produced fresh by every ``analyze`` call and never mutated.
    """

    action: Action
    strength: float  # 0-100
    confidence: float  # 0-95
    entry_price: float
    stop_loss: float
    take_profit: float
    indicators: tuple[IndicatorReading, ...] = ()
    reasoning: tuple[str, ...] = ()


def hold_signal(
    price: float,
    reasoning: Sequence[str] = (),
    indicators: Sequence[IndicatorReading] = (),
) -> Signal:
    """Return a neutral signal anchored at *price*."""
    return Signal(
        action="HOLD",
        strength=0.0,
        confidence=0.0,
        entry_price=price,
        stop_loss=price,
        take_profit=price,
        indicators=tuple(indicators),
        reasoning=tuple(reasoning),
    )
