"""QuantDeck — application entry point.

Boots the FastAPI server and provides the CLI entry point for backtest,
live-signal and serve modes.
"""

import logging
import sys

import httpx
from fastapi import FastAPI

from quantdeck.api.routers import configure_routers, router
from quantdeck.backtest.engine import BacktestEngine
from quantdeck.strategy.registry import build_default_registry

app = FastAPI(title="QuantDeck API", version="0.1.0")
app.include_router(router)

# Usable out of the box; the CLI re-configures with the loaded Config.
configure_routers(build_default_registry(), BacktestEngine())

logger = logging.getLogger("quantdeck")


@app.get("/health")
async def health():
    """Liveness probe."""
    return {"status": "ok"}


# ── CLI ──────────────────────────────────────────────────────────────────


def _parse_params(raw: str | None) -> dict:
    import json

    if not raw:
        return {}
    params = json.loads(raw)
    if not isinstance(params, dict):
        raise ValueError("--params must be a JSON object")
    return params


def _run_cli(argv: list[str] | None = None) -> int:
    """Parse CLI arguments and dispatch to the appropriate mode.

    Returns the process exit status.
    """
    import argparse
    import asyncio

    from quantdeck.config import load_config

    parser = argparse.ArgumentParser(description="QuantDeck strategy & backtesting engine")
    parser.add_argument(
        "--mode",
        choices=["backtest", "signals", "serve"],
        default="backtest",
        help="Run mode (default: backtest)",
    )
    parser.add_argument("--strategy", default="macd-crossover", help="Strategy id")
    parser.add_argument("--symbol", default="BTC/USDT", help="Trading pair, e.g. BTC/USDT")
    parser.add_argument("--timeframe", help="Candle interval (default: HISTORY_TIMEFRAME)")
    parser.add_argument("--limit", type=int, default=500, help="Backtest candles to fetch")
    parser.add_argument("--capital", type=float, help="Initial capital (default: INITIAL_CAPITAL)")
    parser.add_argument("--params", help='Strategy parameters as JSON, e.g. \'{"rsi_filter": false}\'')
    parser.add_argument("--export", help="Write the backtest result as JSON to this path")
    args = parser.parse_args(argv)

    config = load_config()
    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    registry = build_default_registry()
    engine = BacktestEngine(config)
    configure_routers(registry, engine)

    if args.mode == "serve":
        import uvicorn

        logger.info("API available at http://localhost:%d", config.api_port)
        uvicorn.run(app, host="0.0.0.0", port=config.api_port, log_level="info")
        return 0

    try:
        params = _parse_params(args.params)
        if args.mode == "signals":
            return asyncio.run(_run_signals(config, registry, args, params))
        return asyncio.run(_run_backtest(config, registry, engine, args, params))
    except ValueError as exc:
        logger.error("%s", exc)
        return 2
    except httpx.HTTPError as exc:
        logger.error("Market data request failed: %s", exc)
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted. Stopping.")
        return 0


async def _run_backtest(config, registry, engine, args, params) -> int:
    """Fetch historical candles from Binance and run one backtest."""
    from quantdeck.backtest.export import export_json
    from quantdeck.market.binance_client import BinanceClient

    strategy = registry.create(args.strategy, params)
    if strategy is None:
        logger.error("Unknown strategy '%s'", args.strategy)
        return 2

    timeframe = args.timeframe or config.history_timeframe
    client = BinanceClient(config)
    candles = await client.fetch_candles(args.symbol, timeframe, args.limit)
    logger.info("Fetched %d %s candles for %s", len(candles), timeframe, args.symbol)

    result = engine.run(strategy, candles, initial_capital=args.capital, strategy_id=args.strategy)
    _print_summary(result)

    if args.export:
        path = export_json(
            result,
            args.export,
            symbol=args.symbol,
            timeframe=timeframe,
            candles=len(candles),
            parameters=strategy.params.as_dict(),
        )
        logger.info("Result exported to %s", path)
    return 0


async def _run_signals(config, registry, args, params) -> int:
    """Subscribe to live signals and log each one until interrupted."""
    import asyncio

    from quantdeck.live.signal_service import SignalService, SignalUpdate
    from quantdeck.market.binance_client import BinanceClient

    service = SignalService(registry, BinanceClient(config), config)

    def _log_update(update: SignalUpdate) -> None:
        s = update.signal
        logger.info(
            "%s %s: %s (strength %.0f, confidence %.0f) entry %.2f SL %.2f TP %.2f | %s",
            update.strategy_name, update.symbol, s.action, s.strength, s.confidence,
            s.entry_price, s.stop_loss, s.take_profit, "; ".join(s.reasoning),
        )

    try:
        if not await service.subscribe(args.strategy, args.symbol, params, _log_update):
            logger.error("Unknown strategy '%s'", args.strategy)
            return 2
        logger.info(
            "Polling %s every %.0fs. Ctrl+C to stop.",
            args.symbol, config.poll_interval_seconds,
        )
        await asyncio.Event().wait()
    finally:
        service.close()
    return 0


def _print_summary(result) -> None:
    rows = [
        ("Strategy", result.strategy_name),
        ("Initial capital", f"{result.initial_capital:,.2f}"),
        ("Final equity", f"{result.final_equity:,.2f}"),
        ("Total return", f"{result.total_return:.2f}%"),
        ("Max drawdown", f"{result.max_drawdown:.2f}%"),
        ("Sharpe", f"{result.sharpe_ratio:.2f}"),
        ("Sortino", f"{result.sortino_ratio:.2f}"),
        ("Calmar", f"{result.calmar_ratio:.2f}"),
        ("Volatility", f"{result.volatility:.2f}%"),
        ("Trades", str(result.total_trades)),
        ("Win rate", f"{result.win_rate:.1f}%"),
        ("Profit factor", f"{result.profit_factor:.2f}"),
        ("Expectancy", f"{result.expectancy:.2f}"),
    ]
    width = max(len(label) for label, _ in rows)
    for label, value in rows:
        print(f"{label:<{width}}  {value}")


if __name__ == "__main__":
    sys.exit(_run_cli())
