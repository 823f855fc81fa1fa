"""Tests for quantdeck.backtest.export — lossless JSON and CSV trade logs."""

import csv
import json
from dataclasses import fields, replace

from quantdeck.backtest.engine import BacktestEngine
from quantdeck.backtest.export import export_json, export_trades_csv, result_to_dict
from quantdeck.backtest.models import BacktestResult
from quantdeck.config import default_config
from quantdeck.strategy.models import Candle, Signal, hold_signal


class _FlipStrategy:
    def name(self) -> str:
        return "Flip"

    def description(self) -> str:
        return "Buys at index 1, sells at index 3"

    def analyze(self, candles):
        price = candles[-1].close
        index = len(candles) - 1
        if index == 1:
            return Signal("BUY", 60, 70, price, price - 2, price + 3,
                          reasoning=("scripted buy",))
        if index == 3:
            return Signal("SELL", 60, 70, price, price + 2, price - 3)
        return hold_signal(price)


def _make_result() -> BacktestResult:
    closes = [100, 100, 105, 110, 108]
    candles = [
        Candle(1_704_067_200_000 + i * 86_400_000, c, c + 1, c - 1, c, 500.0)
        for i, c in enumerate(closes)
    ]
    engine = BacktestEngine(replace(default_config(), warmup_index=1))
    return engine.run(_FlipStrategy(), candles, strategy_id="flip")


class TestResultToDict:
    def test_every_field_present(self):
        data = result_to_dict(_make_result())
        assert set(data) == {f.name for f in fields(BacktestResult)}

    def test_nested_trade_signal(self):
        data = result_to_dict(_make_result())
        first = data["trades"][0]
        assert first["type"] == "BUY"
        assert first["signal"]["reasoning"] == ("scripted buy",)
        assert data["trades"][-1]["signal"] is None

    def test_monthly_returns(self):
        data = result_to_dict(_make_result())
        assert data["monthly_returns"][0]["month"] == "2024-01"


class TestExportJson:
    def test_layout(self, tmp_path):
        result = _make_result()
        path = export_json(result, tmp_path / "out.json", symbol="BTC/USDT")
        payload = json.loads(path.read_text(encoding="utf-8"))
        assert payload["strategy"] == "Flip"
        assert payload["meta"] == {"symbol": "BTC/USDT"}
        assert payload["results"]["total_trades"] == result.total_trades
        assert len(payload["results"]["trades"]) == len(result.trades)
        assert payload["results"]["final_equity"] == result.final_equity

    def test_indented(self, tmp_path):
        path = export_json(_make_result(), tmp_path / "out.json")
        assert path.read_text(encoding="utf-8").startswith('{\n  "strategy"')


class TestExportTradesCsv:
    def test_one_row_per_execution(self, tmp_path):
        result = _make_result()
        path = export_trades_csv(result, tmp_path / "trades.csv")
        with open(path, newline="", encoding="utf-8") as f:
            rows = list(csv.DictReader(f))
        assert len(rows) == len(result.trades) == 4
        assert [r["reason"] for r in rows] == ["open", "close", "open", "liquidation"]
        assert rows[0]["pnl"] == ""
        assert rows[-1]["signal_strength"] == ""
        assert float(rows[1]["pnl"]) == result.trades[1].pnl
