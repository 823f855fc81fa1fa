"""Backtest export — JSON-compatible dicts, JSON files and CSV trade logs."""

import csv
import json
from dataclasses import asdict
from pathlib import Path
from typing import Any

from quantdeck.backtest.models import BacktestResult

_TRADE_COLUMNS = [
    "timestamp",
    "type",
    "reason",
    "price",
    "quantity",
    "pnl",
    "signal_strength",
    "signal_confidence",
]


def result_to_dict(result: BacktestResult) -> dict[str, Any]:
    """Convert *result* to plain dicts and lists, keeping every field.

    Nested trades keep their full signal (indicators and reasoning).
    """
    return asdict(result)


def export_json(result: BacktestResult, path: str | Path, **meta: Any) -> Path:
    """Write ``{"strategy", "meta", "results"}`` to *path* and return it."""
    path = Path(path)
    payload = {
        "strategy": result.strategy_name,
        "meta": meta,
        "results": result_to_dict(result),
    }
    path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    return path


def export_trades_csv(result: BacktestResult, path: str | Path) -> Path:
    """Write one CSV row per trade execution."""
    path = Path(path)
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(_TRADE_COLUMNS)
        for t in result.trades:
            writer.writerow([
                t.timestamp,
                t.type,
                t.reason,
                t.price,
                t.quantity,
                "" if t.pnl is None else t.pnl,
                "" if t.signal is None else t.signal.strength,
                "" if t.signal is None else t.signal.confidence,
            ])
    return path
