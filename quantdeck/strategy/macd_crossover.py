"""MACD crossover strategy — trades histogram zero-crosses with RSI and volume filters."""

import logging
from typing import Sequence

from quantdeck.strategy.base import BaseStrategy, rsi_reading
from quantdeck.strategy.indicators import calculate_macd, calculate_rsi
from quantdeck.strategy.models import Action, Candle, IndicatorReading, Signal
from quantdeck.strategy.params import MACDParams

logger = logging.getLogger("quantdeck")

_VOLUME_SURGE = 1.2
_STOP_ATR = 2.0
_TARGET_ATR = 3.0


class MACDCrossoverStrategy(BaseStrategy):
    """Buys bullish histogram crosses and sells bearish ones.

    Rules:
        - **BUY**: histogram moves from <= 0 to > 0, RSI inside
          ``(rsi_oversold, rsi_overbought)`` when ``rsi_filter`` is on, and
          current volume above both ``min_volume`` and 1.2x the 20-candle
          average.
        - **SELL**: histogram moves from >= 0 to < 0 under the same filters.
        - **HOLD**: everything else.

    Stop and target sit 2x and 3x ATR(14) from entry.
    """

    params_type = MACDParams
    params: MACDParams

    def name(self) -> str:
        return "MACD Crossover"

    def description(self) -> str:
        return (
            "MACD crossover strategy with signal line confirmation "
            "and momentum filters"
        )

    def warmup(self) -> int:
        return self.params.slow_period + self.params.signal_period + 10

    def _evaluate(self, candles: Sequence[Candle]) -> Signal:
        p = self.params
        closes = [c.close for c in candles]
        price = closes[-1]
        volume = candles[-1].volume

        macd = calculate_macd(closes, p.fast_period, p.slow_period, p.signal_period)
        rsi = calculate_rsi(closes, p.rsi_period)
        if len(macd.histogram) < 2 or not rsi:
            return self._insufficient(candles)

        macd_now = macd.macd[-1]
        signal_now = macd.signal[-1]
        hist_now = macd.histogram[-1]
        hist_prev = macd.histogram[-2]
        rsi_now = rsi[-1]

        indicators = [
            IndicatorReading(
                name="MACD",
                value=macd_now,
                signal="BUY" if macd_now > signal_now else "SELL",
                strength=min(abs(macd_now - signal_now) * 100, 100.0),
            ),
            rsi_reading(rsi_now),
        ]

        volume_confirmed = (
            volume > p.min_volume
            and volume > self._average_volume(candles) * _VOLUME_SURGE
        )
        bullish_cross = hist_now > 0 and hist_prev <= 0
        bearish_cross = hist_now < 0 and hist_prev >= 0
        rsi_in_band = (
            not p.rsi_filter or p.rsi_oversold < rsi_now < p.rsi_overbought
        )

        action: Action = "HOLD"
        strength = 0.0
        confidence = 0.0
        reasoning: list[str] = []

        if bullish_cross and rsi_in_band and volume_confirmed:
            action = "BUY"
            reasoning.append("MACD bullish crossover detected")
        elif bearish_cross and rsi_in_band and volume_confirmed:
            action = "SELL"
            reasoning.append("MACD bearish crossover detected")

        if action != "HOLD":
            strength = 80.0
            confidence = 95.0
            reasoning.append("Volume confirmation present")
            if p.rsi_filter:
                reasoning.append("RSI in favorable range")
            logger.debug(
                "MACD: %s crossover (hist %.5f -> %.5f, RSI %.1f)",
                action, hist_prev, hist_now, rsi_now,
            )

        unit = self._risk_unit(candles)
        if action == "BUY":
            stop, target = price - _STOP_ATR * unit, price + _TARGET_ATR * unit
        else:
            stop, target = price + _STOP_ATR * unit, price - _TARGET_ATR * unit

        return self._build_signal(
            action, strength, confidence, price, stop, target,
            indicators, reasoning,
        )
