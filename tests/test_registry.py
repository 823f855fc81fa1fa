"""Tests for quantdeck.strategy.registry and parameter validation."""

import logging

import pytest

from quantdeck.strategy.bollinger_bands import BollingerBandsStrategy
from quantdeck.strategy.macd_crossover import MACDCrossoverStrategy
from quantdeck.strategy.params import (
    BollingerParams,
    MACDParams,
    ParameterSpec,
    RSIParams,
    resolve_parameters,
)
from quantdeck.strategy.registry import StrategyConfig, StrategyRegistry, build_default_registry
from quantdeck.strategy.rsi_reversion import RSIReversionStrategy


class TestRegistry:
    def test_lists_builtins_in_order(self):
        registry = build_default_registry()
        ids = [c.id for c in registry.list_available()]
        assert ids == ["macd-crossover", "rsi-oversold", "bollinger-bands"]

    def test_metadata(self):
        registry = build_default_registry()
        rsi = registry.get_config("rsi-oversold")
        assert rsi.risk_level == "LOW"
        assert rsi.category == "MEAN_REVERSION"
        assert "BTC/USDT" in rsi.assets
        assert rsi.timeframes == ("1h", "4h", "1d")
        assert registry.get_config("bollinger-bands").category == "VOLATILITY"
        assert registry.get_config("macd-crossover").category == "MOMENTUM"

    @pytest.mark.parametrize("strategy_id, cls", [
        ("macd-crossover", MACDCrossoverStrategy),
        ("rsi-oversold", RSIReversionStrategy),
        ("bollinger-bands", BollingerBandsStrategy),
    ])
    def test_create(self, strategy_id, cls):
        strategy = build_default_registry().create(strategy_id, {})
        assert isinstance(strategy, cls)

    def test_create_unknown_returns_none(self, caplog):
        registry = build_default_registry()
        with caplog.at_level(logging.WARNING, logger="quantdeck.registry"):
            assert registry.create("nonexistent-id", {}) is None
        assert "nonexistent-id" in caplog.text

    def test_get_config_unknown_returns_none(self):
        assert build_default_registry().get_config("nonexistent-id") is None

    def test_contains(self):
        registry = build_default_registry()
        assert "macd-crossover" in registry
        assert "nonexistent-id" not in registry

    def test_create_merges_parameters(self):
        strategy = build_default_registry().create("macd-crossover", {"fast_period": 8})
        assert strategy.params.fast_period == 8
        assert strategy.params.slow_period == 26

    def test_invalid_parameters_raise(self):
        with pytest.raises(ValueError, match="fast_period"):
            build_default_registry().create("macd-crossover", {"fast_period": 99})

    def test_register_custom(self):
        registry = StrategyRegistry()
        config = StrategyConfig(
            id="custom",
            name="Custom",
            description="Custom RSI",
            parameters=RSIParams.SCHEMA,
            timeframes=("1d",),
            assets=("ETH/USDT",),
            risk_level="HIGH",
            category="MEAN_REVERSION",
        )
        registry.register("custom", RSIReversionStrategy, config)
        assert isinstance(registry.create("custom"), RSIReversionStrategy)
        assert registry.list_available() == [config]

    def test_fresh_instance_per_create(self):
        registry = build_default_registry()
        assert registry.create("rsi-oversold") is not registry.create("rsi-oversold")


class TestParameterSpec:
    def test_number_range(self):
        spec = ParameterSpec("x", "X", "number", 5, "x", min=1, max=10)
        assert spec.validate(3) == 3.0
        with pytest.raises(ValueError):
            spec.validate(0)
        with pytest.raises(ValueError):
            spec.validate(11)

    def test_integer_coercion(self):
        spec = ParameterSpec("n", "N", "number", 5, "n", min=1, max=10, integer=True)
        assert spec.validate(4.0) == 4
        assert isinstance(spec.validate(4.0), int)
        with pytest.raises(ValueError, match="whole number"):
            spec.validate(4.5)

    def test_number_rejects_bool_and_string(self):
        spec = ParameterSpec("x", "X", "number", 5, "x")
        with pytest.raises(ValueError):
            spec.validate(True)
        with pytest.raises(ValueError):
            spec.validate("5")

    def test_number_rejects_nan(self):
        spec = ParameterSpec("x", "X", "number", 5, "x")
        with pytest.raises(ValueError, match="NaN"):
            spec.validate(float("nan"))

    def test_boolean(self):
        spec = ParameterSpec("b", "B", "boolean", True, "b")
        assert spec.validate(False) is False
        with pytest.raises(ValueError):
            spec.validate(1)

    def test_select(self):
        spec = ParameterSpec("mode", "Mode", "select", "fast", "m", options=("fast", "slow"))
        assert spec.validate("slow") == "slow"
        with pytest.raises(ValueError, match="one of"):
            spec.validate("medium")


class TestTypedParams:
    def test_defaults(self):
        assert MACDParams.from_overrides().as_dict() == {
            "fast_period": 12,
            "slow_period": 26,
            "signal_period": 9,
            "min_volume": 1_000_000,
            "rsi_filter": True,
            "rsi_period": 14,
            "rsi_overbought": 70,
            "rsi_oversold": 30,
        }

    def test_bollinger_defaults(self):
        params = BollingerParams.from_overrides()
        assert params.period == 20
        assert params.standard_deviations == 2.0
        assert params.squeeze_threshold == 0.1
        assert params.trend_filter is False

    def test_rsi_period_range(self):
        with pytest.raises(ValueError):
            RSIParams.from_overrides({"rsi_period": 9})

    def test_resolve_ignores_unknown_keys(self):
        resolved = resolve_parameters(RSIParams.SCHEMA, {"bogus": 1})
        assert "bogus" not in resolved
        assert resolved["rsi_period"] == 14

    def test_frozen(self):
        params = MACDParams.from_overrides()
        with pytest.raises(AttributeError):
            params.fast_period = 5
