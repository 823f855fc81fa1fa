"""HTTP routers — /strategies, /strategies/{id}/analyze and /backtest endpoints.

No business logic. Delegates to the strategy registry and backtest engine
injected at startup through ``configure_routers``.
"""

import logging
from dataclasses import asdict
from typing import Any, Optional

from fastapi import APIRouter, HTTPException

from quantdeck.backtest.engine import BacktestEngine
from quantdeck.backtest.export import result_to_dict
from quantdeck.strategy.models import Candle
from quantdeck.strategy.registry import StrategyRegistry

logger = logging.getLogger("quantdeck")
router = APIRouter()

# ── Shared state (set during app startup) ────────────────────────────────

_registry: Optional[StrategyRegistry] = None  # Set via configure_routers()
_backtest_engine: Optional[BacktestEngine] = None  # Set via configure_routers()

_CANDLE_FIELDS = ("timestamp", "open", "high", "low", "close", "volume")


def configure_routers(
    registry: StrategyRegistry,
    backtest_engine: Optional[BacktestEngine] = None,
) -> None:
    """Inject dependencies from the application startup.

    Args:
        registry: A ``StrategyRegistry`` (usually ``build_default_registry()``).
        backtest_engine: Engine used by ``POST /backtest``; a default
            ``BacktestEngine`` is created when omitted.
    """
    global _registry, _backtest_engine  # noqa: PLW0603
    _registry = registry
    _backtest_engine = backtest_engine or BacktestEngine()


# ── Body parsing ─────────────────────────────────────────────────────────


def _parse_candles(raw: Any) -> list[Candle]:
    """Turn a JSON list of candle objects (or kline rows) into ``Candle``s."""
    if not isinstance(raw, list) or not raw:
        raise HTTPException(status_code=422, detail="candles must be a non-empty list")
    candles: list[Candle] = []
    try:
        for item in raw:
            if isinstance(item, dict):
                candles.append(Candle(
                    timestamp=int(item["timestamp"]),
                    **{k: float(item[k]) for k in _CANDLE_FIELDS[1:]},
                ))
            else:
                candles.append(Candle.from_kline(item))
    except (KeyError, IndexError, TypeError, ValueError) as exc:
        raise HTTPException(status_code=422, detail=f"Malformed candle: {exc}") from None
    return candles


def _create_strategy(strategy_id: str, parameters: Any):
    if _registry is None:
        raise HTTPException(status_code=503, detail="Registry not configured")
    if parameters is not None and not isinstance(parameters, dict):
        raise HTTPException(status_code=422, detail="parameters must be an object")
    try:
        strategy = _registry.create(strategy_id, parameters)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from None
    if strategy is None:
        raise HTTPException(status_code=404, detail=f"Unknown strategy: {strategy_id}")
    return strategy


# ── Endpoints ────────────────────────────────────────────────────────────


@router.get("/strategies")
async def list_strategies():
    """Return every registered strategy config."""
    if _registry is None:
        return {"strategies": []}
    return {"strategies": [asdict(c) for c in _registry.list_available()]}


@router.get("/strategies/{strategy_id}")
async def get_strategy(strategy_id: str):
    """Return one strategy config."""
    config = _registry.get_config(strategy_id) if _registry else None
    if config is None:
        raise HTTPException(status_code=404, detail=f"Unknown strategy: {strategy_id}")
    return asdict(config)


@router.post("/strategies/{strategy_id}/analyze")
async def analyze(strategy_id: str, body: dict):
    """Run one analysis over the posted candles and return the signal."""
    strategy = _create_strategy(strategy_id, body.get("parameters"))
    candles = _parse_candles(body.get("candles"))
    signal = strategy.analyze(candles)
    return {"strategy_id": strategy_id, "signal": asdict(signal)}


@router.post("/backtest")
async def run_backtest(body: dict):
    """Backtest one strategy over the posted candles."""
    strategy_id = body.get("strategy_id")
    if not isinstance(strategy_id, str):
        raise HTTPException(status_code=422, detail="strategy_id is required")
    strategy = _create_strategy(strategy_id, body.get("parameters"))
    candles = _parse_candles(body.get("candles"))

    capital = body.get("initial_capital")
    try:
        result = _backtest_engine.run(
            strategy,
            candles,
            initial_capital=None if capital is None else float(capital),
            strategy_id=strategy_id,
        )
    except (TypeError, ValueError) as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from None

    logger.info("Backtest via API: %s on %d candles", strategy_id, len(candles))
    return result_to_dict(result)
