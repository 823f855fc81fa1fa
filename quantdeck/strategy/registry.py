"""Strategy registry — maps strategy ids to constructors and descriptive metadata.

Construct one ``StrategyRegistry`` at process start (``build_default_registry``)
and pass it to the backtest CLI, the live signal service and the HTTP layer.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Literal, Mapping, Optional

from quantdeck.strategy.base import StrategyProtocol
from quantdeck.strategy.bollinger_bands import BollingerBandsStrategy
from quantdeck.strategy.macd_crossover import MACDCrossoverStrategy
from quantdeck.strategy.params import BollingerParams, MACDParams, ParameterSpec, RSIParams
from quantdeck.strategy.rsi_reversion import RSIReversionStrategy

logger = logging.getLogger("quantdeck.registry")

StrategyFactory = Callable[[Optional[Mapping[str, Any]]], StrategyProtocol]

_TIMEFRAMES = ("1h", "4h", "1d")
_ASSETS = ("BTC/USDT", "ETH/USDT", "ADA/USDT", "SOL/USDT")


@dataclass(frozen=True)
class StrategyConfig:
    """Static description of a registered strategy, used for discovery."""

    id: str
    name: str
    description: str
    parameters: tuple[ParameterSpec, ...]
    timeframes: tuple[str, ...]
    assets: tuple[str, ...]
    risk_level: Literal["LOW", "MEDIUM", "HIGH"]
    category: Literal[
        "TREND_FOLLOWING", "MEAN_REVERSION", "MOMENTUM", "VOLATILITY", "AI_ML"
    ]


class StrategyRegistry:
    """Lookup from strategy id to factory + config."""

    def __init__(self) -> None:
        self._entries: dict[str, tuple[StrategyFactory, StrategyConfig]] = {}

    def register(
        self,
        strategy_id: str,
        factory: StrategyFactory,
        config: StrategyConfig,
    ) -> None:
        """Add (or replace) a strategy under *strategy_id*."""
        self._entries[strategy_id] = (factory, config)

    def __contains__(self, strategy_id: str) -> bool:
        return strategy_id in self._entries

    def create(
        self,
        strategy_id: str,
        parameters: Optional[Mapping[str, Any]] = None,
    ) -> Optional[StrategyProtocol]:
        """Instantiate *strategy_id* with *parameters* merged over defaults.

        Returns ``None`` for an unknown id.  Invalid parameter values still
        raise ``ValueError`` from the strategy's parameter schema.
        """
        entry = self._entries.get(strategy_id)
        if entry is None:
            logger.warning(
                "Unknown strategy '%s'. Available: %s",
                strategy_id, ", ".join(self._entries),
            )
            return None
        factory, _ = entry
        return factory(parameters)

    def get_config(self, strategy_id: str) -> Optional[StrategyConfig]:
        entry = self._entries.get(strategy_id)
        return entry[1] if entry else None

    def list_available(self) -> list[StrategyConfig]:
        """All registered configs, in registration order."""
        return [config for _, config in self._entries.values()]


def build_default_registry() -> StrategyRegistry:
    """Return a registry holding the three built-in strategies."""
    registry = StrategyRegistry()
    registry.register(
        "macd-crossover",
        MACDCrossoverStrategy,
        StrategyConfig(
            id="macd-crossover",
            name="MACD Crossover",
            description="MACD crossover strategy with signal line confirmation",
            parameters=MACDParams.SCHEMA,
            timeframes=_TIMEFRAMES,
            assets=_ASSETS,
            risk_level="MEDIUM",
            category="MOMENTUM",
        ),
    )
    registry.register(
        "rsi-oversold",
        RSIReversionStrategy,
        StrategyConfig(
            id="rsi-oversold",
            name="RSI Oversold/Overbought",
            description="Mean reversion strategy using RSI with divergence detection",
            parameters=RSIParams.SCHEMA,
            timeframes=_TIMEFRAMES,
            assets=_ASSETS,
            risk_level="LOW",
            category="MEAN_REVERSION",
        ),
    )
    registry.register(
        "bollinger-bands",
        BollingerBandsStrategy,
        StrategyConfig(
            id="bollinger-bands",
            name="Bollinger Bands",
            description="Volatility-based strategy with squeeze detection and breakouts",
            parameters=BollingerParams.SCHEMA,
            timeframes=_TIMEFRAMES,
            assets=_ASSETS,
            risk_level="MEDIUM",
            category="VOLATILITY",
        ),
    )
    return registry
