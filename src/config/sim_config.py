"""
Simulation config loader: JSON file -> frozen dataclass tree, validated against JSON Schema.

Default values: docs/config/sim.default.json
Schema:         docs/config/sim_config.schema.json

Per-symbol overrides: place a partial JSON file named ``sim.{SYMBOL}.json``
next to the default config (e.g. ``docs/config/sim.PF_XBTUSD.json``). Only
the keys you want to override need to be present; they are deep-merged on
top of the base config before schema validation.

Usage:
    from config.sim_config import load_sim_config
    cfg = load_sim_config()                         # loads default
    cfg = load_sim_config(symbol="PF_XBTUSD")       # merges sim.PF_XBTUSD.json if present
    cfg = load_sim_config("my_overrides.json")      # loads custom file
    cfg.replay.max_api_calls  # -> 10
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

import jsonschema

logger = logging.getLogger("perp.config")

# ---------------------------------------------------------------------------
# Project root detection (walk up from this file to find pyproject.toml)
# ---------------------------------------------------------------------------


def _find_project_root() -> Path:
    """Walk up from this file looking for pyproject.toml.

    Falls back to CWD when running from an installed package.
    """
    candidate = Path(__file__).resolve().parent
    for _ in range(10):
        if (candidate / "pyproject.toml").exists():
            return candidate
        parent = candidate.parent
        if parent == candidate:
            break
        candidate = parent
    return Path.cwd()


_PROJECT_ROOT = _find_project_root()

DEFAULT_CONFIG_PATH = _PROJECT_ROOT / "docs" / "config" / "sim.default.json"
DEFAULT_SCHEMA_PATH = _PROJECT_ROOT / "docs" / "config" / "sim_config.schema.json"


# ---------------------------------------------------------------------------
# Frozen dataclass tree; mirrors sim.default.json structure exactly
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AccountConfig:
    initial_balance: float


@dataclass(frozen=True)
class ReplayConfig:
    data_window_size: int
    warmup_period: int
    min_seconds_between_calls: float
    max_api_calls: int
    aux_lookback_seconds: int = 48 * 60 * 60


@dataclass(frozen=True)
class DecisionConfig:
    minimum_confidence_threshold: float


@dataclass(frozen=True)
class SizingConfig:
    policy: str            # "LEVERAGE" | "FIXED_FRACTIONAL"
    leverage: float
    margin_buffer: float
    risk_fraction: float = 0.01


@dataclass(frozen=True)
class ExitsConfig:
    stop_loss_multiplier: float
    take_profit_multiplier: float
    tick_size: float = 1.0
    atr_period: int = 14
    stop_source: str = "ATR"   # "ATR" | "ORACLE"


@dataclass(frozen=True)
class EntryFilterConfig:
    kind: str = "NONE"         # "NONE" | "MA_CROSSOVER" | "BREAKOUT"
    fast_period: int = 20
    slow_period: int = 50
    lookback: int = 20


@dataclass(frozen=True)
class SimConfig:
    """Top-level run configuration for one replay."""
    version: str
    account: AccountConfig
    replay: ReplayConfig
    decision: DecisionConfig
    sizing: SizingConfig
    exits: ExitsConfig
    entry_filter: EntryFilterConfig = EntryFilterConfig()

    def with_overrides(self, **sections: Any) -> SimConfig:
        """Copy with individual section fields replaced.

        ``cfg.with_overrides(replay={"max_api_calls": 0})``
        """
        changes = {
            name: replace(getattr(self, name), **values)
            for name, values in sections.items()
        }
        return replace(self, **changes)


# ---------------------------------------------------------------------------
# Deep merge for per-symbol overrides
# ---------------------------------------------------------------------------


def _deep_merge(base: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge *overrides* into a copy of *base*.

    - Dict values are merged recursively (override keys win).
    - Non-dict values in overrides replace the base value.
    - Keys in base that are absent from overrides are preserved.
    """
    merged = dict(base)
    for key, val in overrides.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(val, dict):
            merged[key] = _deep_merge(merged[key], val)
        else:
            merged[key] = val
    return merged


# ---------------------------------------------------------------------------
# Loader
# ---------------------------------------------------------------------------


class SimConfigError(Exception):
    """Raised when simulation config loading or validation fails."""


def _validate_schema(data: dict[str, Any], schema_path: Path) -> None:
    """Validate *data* against the JSON Schema at *schema_path*."""
    if not schema_path.exists():
        raise SimConfigError(f"Schema file not found: {schema_path}")
    with open(schema_path) as f:
        schema = json.load(f)
    try:
        jsonschema.validate(instance=data, schema=schema)
    except jsonschema.ValidationError as exc:
        raise SimConfigError(f"Sim config validation failed: {exc.message}") from exc


def _build_config(data: dict[str, Any]) -> SimConfig:
    """Convert a raw dict (already validated) into the frozen dataclass tree."""
    replay_raw = data["replay"]
    sizing_raw = data["sizing"]
    exits_raw = data["exits"]
    filter_raw = data.get("entry_filter", {})

    return SimConfig(
        version=data["version"],
        account=AccountConfig(initial_balance=float(data["account"]["initial_balance"])),
        replay=ReplayConfig(
            data_window_size=replay_raw["data_window_size"],
            warmup_period=replay_raw["warmup_period"],
            min_seconds_between_calls=float(replay_raw["min_seconds_between_calls"]),
            max_api_calls=replay_raw["max_api_calls"],
            aux_lookback_seconds=replay_raw.get("aux_lookback_seconds", 48 * 60 * 60),
        ),
        decision=DecisionConfig(
            minimum_confidence_threshold=float(data["decision"]["minimum_confidence_threshold"]),
        ),
        sizing=SizingConfig(
            policy=sizing_raw["policy"],
            leverage=float(sizing_raw["leverage"]),
            margin_buffer=float(sizing_raw["margin_buffer"]),
            risk_fraction=float(sizing_raw.get("risk_fraction", 0.01)),
        ),
        exits=ExitsConfig(
            stop_loss_multiplier=float(exits_raw["stop_loss_multiplier"]),
            take_profit_multiplier=float(exits_raw["take_profit_multiplier"]),
            tick_size=float(exits_raw.get("tick_size", 1.0)),
            atr_period=exits_raw.get("atr_period", 14),
            stop_source=exits_raw.get("stop_source", "ATR"),
        ),
        entry_filter=EntryFilterConfig(
            kind=filter_raw.get("kind", "NONE"),
            fast_period=filter_raw.get("fast_period", 20),
            slow_period=filter_raw.get("slow_period", 50),
            lookback=filter_raw.get("lookback", 20),
        ),
    )


def load_sim_config(
    config_path: str | Path | None = None,
    schema_path: str | Path | None = None,
    symbol: str | None = None,
) -> SimConfig:
    """Load and validate the simulation configuration.

    Parameters
    ----------
    config_path:
        Path to a sim JSON config file.  Defaults to ``docs/config/sim.default.json``.
    schema_path:
        Path to the JSON Schema file.  Defaults to ``docs/config/sim_config.schema.json``.
    symbol:
        Optional instrument symbol.  When provided, the loader looks for a
        per-symbol override file ``sim.{SYMBOL}.json`` next to the base
        config and deep-merges it before schema validation.  A missing
        override file is not an error.

    Returns
    -------
    SimConfig
        Frozen dataclass tree with all run parameters.

    Raises
    ------
    SimConfigError
        If the file is missing, unparseable, or fails schema validation.
    """
    cfg_path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
    sch_path = Path(schema_path) if schema_path else DEFAULT_SCHEMA_PATH

    if not cfg_path.exists():
        raise SimConfigError(f"Sim config file not found: {cfg_path}")

    try:
        with open(cfg_path) as f:
            data = json.load(f)
    except json.JSONDecodeError as exc:
        raise SimConfigError(f"Sim config is not valid JSON: {exc}") from exc

    if symbol:
        override_path = cfg_path.parent / f"sim.{symbol.upper()}.json"
        if override_path.exists():
            try:
                with open(override_path) as f:
                    overrides = json.load(f)
            except json.JSONDecodeError as exc:
                raise SimConfigError(
                    f"Per-symbol config {override_path.name} is not valid JSON: {exc}"
                ) from exc
            data = _deep_merge(data, overrides)
            logger.info("Loaded per-symbol config: %s", override_path.name)
        else:
            logger.debug("No per-symbol config found at %s; using defaults", override_path)

    _validate_schema(data, sch_path)

    return _build_config(data)
