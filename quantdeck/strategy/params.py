"""Strategy parameters — declarative schema plus one typed dataclass per strategy.

A strategy is constructed from an override mapping: unknown keys are
ignored, missing keys take the schema default, and every supplied value is
checked against its ``ParameterSpec`` before the typed parameter object is
built.  Invalid values raise ``ValueError``.
"""

import math
from dataclasses import dataclass, fields
from typing import Any, ClassVar, Literal, Mapping, Optional, Union

ParamType = Literal["number", "boolean", "select"]


@dataclass(frozen=True)
class ParameterSpec:
    """Schema entry for one tunable parameter."""

    key: str
    name: str
    type: ParamType
    default: Any
    description: str
    min: Optional[float] = None
    max: Optional[float] = None
    step: Optional[float] = None
    integer: bool = False
    options: tuple[str, ...] = ()

    def validate(self, value: Any) -> Any:
        """Return *value* coerced to the declared type, or raise ``ValueError``."""
        if self.type == "boolean":
            if not isinstance(value, bool):
                raise ValueError(f"Parameter '{self.key}' must be a boolean, got {value!r}")
            return value

        if self.type == "select":
            if value not in self.options:
                raise ValueError(
                    f"Parameter '{self.key}' must be one of {', '.join(self.options)}, "
                    f"got {value!r}"
                )
            return value

        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f"Parameter '{self.key}' must be a number, got {value!r}")
        if math.isnan(value):
            raise ValueError(f"Parameter '{self.key}' must not be NaN")
        if self.min is not None and value < self.min:
            raise ValueError(f"Parameter '{self.key}' must be >= {self.min}, got {value}")
        if self.max is not None and value > self.max:
            raise ValueError(f"Parameter '{self.key}' must be <= {self.max}, got {value}")
        if self.integer:
            if value != int(value):
                raise ValueError(f"Parameter '{self.key}' must be a whole number, got {value}")
            return int(value)
        return float(value)


def resolve_parameters(
    schema: tuple[ParameterSpec, ...],
    overrides: Optional[Mapping[str, Any]] = None,
) -> dict[str, Any]:
    """Merge *overrides* over the schema defaults, validating each override."""
    overrides = overrides or {}
    resolved: dict[str, Any] = {}
    for spec in schema:
        if spec.key in overrides:
            resolved[spec.key] = spec.validate(overrides[spec.key])
        else:
            resolved[spec.key] = spec.default
    return resolved


class _StrategyParams:
    """Shared constructor for the typed parameter dataclasses."""

    kind: ClassVar[str]
    SCHEMA: ClassVar[tuple[ParameterSpec, ...]]

    @classmethod
    def from_overrides(cls, overrides: Optional[Mapping[str, Any]] = None):
        return cls(**resolve_parameters(cls.SCHEMA, overrides))

    def as_dict(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


# ── MACD crossover ───────────────────────────────────────────────────────


@dataclass(frozen=True)
class MACDParams(_StrategyParams):
    kind: ClassVar[str] = "macd-crossover"
    SCHEMA: ClassVar[tuple[ParameterSpec, ...]] = (
        ParameterSpec("fast_period", "Fast EMA Period", "number", 12,
                      "Fast EMA period for MACD calculation",
                      min=5, max=20, step=1, integer=True),
        ParameterSpec("slow_period", "Slow EMA Period", "number", 26,
                      "Slow EMA period for MACD calculation",
                      min=15, max=40, step=1, integer=True),
        ParameterSpec("signal_period", "Signal Line Period", "number", 9,
                      "Signal line EMA period",
                      min=5, max=15, step=1, integer=True),
        ParameterSpec("min_volume", "Minimum Volume", "number", 1_000_000,
                      "Current candle volume must exceed this",
                      min=0, step=1000),
        ParameterSpec("rsi_filter", "RSI Filter", "boolean", True,
                      "Enable RSI momentum filter"),
        ParameterSpec("rsi_period", "RSI Period", "number", 14,
                      "RSI calculation period",
                      min=2, max=50, step=1, integer=True),
        ParameterSpec("rsi_overbought", "RSI Overbought", "number", 70,
                      "Upper bound of the RSI filter band",
                      min=50, max=95, step=1),
        ParameterSpec("rsi_oversold", "RSI Oversold", "number", 30,
                      "Lower bound of the RSI filter band",
                      min=5, max=50, step=1),
    )

    fast_period: int
    slow_period: int
    signal_period: int
    min_volume: float
    rsi_filter: bool
    rsi_period: int
    rsi_overbought: float
    rsi_oversold: float

    def __post_init__(self) -> None:
        if self.fast_period >= self.slow_period:
            raise ValueError("fast_period must be shorter than slow_period")
        if self.rsi_oversold >= self.rsi_overbought:
            raise ValueError("rsi_oversold must be below rsi_overbought")


# ── RSI oversold / overbought ────────────────────────────────────────────


@dataclass(frozen=True)
class RSIParams(_StrategyParams):
    kind: ClassVar[str] = "rsi-oversold"
    SCHEMA: ClassVar[tuple[ParameterSpec, ...]] = (
        ParameterSpec("rsi_period", "RSI Period", "number", 14,
                      "RSI calculation period",
                      min=10, max=21, step=1, integer=True),
        ParameterSpec("oversold_level", "Oversold Level", "number", 30,
                      "RSI oversold threshold",
                      min=20, max=40, step=5),
        ParameterSpec("overbought_level", "Overbought Level", "number", 70,
                      "RSI overbought threshold",
                      min=60, max=80, step=5),
        ParameterSpec("extreme_oversold", "Extreme Oversold", "number", 20,
                      "RSI level treated as an extreme oversold reading",
                      min=5, max=30, step=1),
        ParameterSpec("extreme_overbought", "Extreme Overbought", "number", 80,
                      "RSI level treated as an extreme overbought reading",
                      min=70, max=95, step=1),
        ParameterSpec("volume_confirmation", "Volume Confirmation", "boolean", True,
                      "Boost confidence on a volume spike"),
        ParameterSpec("divergence_detection", "Divergence Detection", "boolean", True,
                      "Enable price-RSI divergence detection"),
        ParameterSpec("trend_filter", "Trend Filter", "boolean", True,
                      "Only buy above / sell below the long SMA"),
        ParameterSpec("sma_filter_period", "Trend SMA Period", "number", 50,
                      "SMA period used by the trend filter",
                      min=10, max=200, step=1, integer=True),
    )

    rsi_period: int
    oversold_level: float
    overbought_level: float
    extreme_oversold: float
    extreme_overbought: float
    volume_confirmation: bool
    divergence_detection: bool
    trend_filter: bool
    sma_filter_period: int

    def __post_init__(self) -> None:
        if self.oversold_level >= self.overbought_level:
            raise ValueError("oversold_level must be below overbought_level")


# ── Bollinger Bands ──────────────────────────────────────────────────────


@dataclass(frozen=True)
class BollingerParams(_StrategyParams):
    kind: ClassVar[str] = "bollinger-bands"
    SCHEMA: ClassVar[tuple[ParameterSpec, ...]] = (
        ParameterSpec("period", "Period", "number", 20,
                      "Moving average period for bands",
                      min=15, max=30, step=1, integer=True),
        ParameterSpec("standard_deviations", "Standard Deviations", "number", 2.0,
                      "Number of standard deviations for bands",
                      min=1.5, max=2.5, step=0.1),
        ParameterSpec("squeeze_threshold", "Squeeze Threshold", "number", 0.1,
                      "Bandwidth threshold for squeeze detection",
                      min=0.05, max=0.2, step=0.01),
        ParameterSpec("rsi_confirmation", "RSI Confirmation", "boolean", True,
                      "Use RSI to confirm band touches"),
        ParameterSpec("volume_confirmation", "Volume Confirmation", "boolean", True,
                      "Require volume above 1.2x the 20-candle average"),
        ParameterSpec("trend_filter", "Trend Filter", "boolean", False,
                      "Only buy above / sell below the long SMA"),
        ParameterSpec("ma_filter_period", "Trend SMA Period", "number", 50,
                      "SMA period used by the trend filter",
                      min=10, max=200, step=1, integer=True),
    )

    period: int
    standard_deviations: float
    squeeze_threshold: float
    rsi_confirmation: bool
    volume_confirmation: bool
    trend_filter: bool
    ma_filter_period: int


StrategyParams = Union[MACDParams, RSIParams, BollingerParams]
