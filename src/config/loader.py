"""
Config loader: YAML file -> frozen dataclass tree.

The oracle API key is resolved from the ORACLE_API_KEY environment variable.
Config file holds only non-secret values.
"""

import os
from dataclasses import dataclass
from pathlib import Path

import yaml


@dataclass(frozen=True)
class DataConfig:
    bar_store_path: str = "data/bars.db"


@dataclass(frozen=True)
class SimulationPaths:
    config_path: str = ""   # empty -> docs/config/sim.default.json


@dataclass(frozen=True)
class OracleConfig:
    kind: str = "indicator"   # "indicator" | "hold" | "http"
    url: str = ""
    timeout_seconds: float = 30.0
    api_key: str = ""


@dataclass(frozen=True)
class JournalConfig:
    path: str = "data/journal.jsonl"
    echo_stdout: bool = False


@dataclass(frozen=True)
class AlertingConfig:
    structured_logs: bool = True
    webhook_url: str = ""


@dataclass(frozen=True)
class AppConfig:
    symbol: str
    interval: str
    data: DataConfig
    oracle: OracleConfig
    journal: JournalConfig
    aux_interval: str = ""
    simulation: SimulationPaths = SimulationPaths()
    alerting: AlertingConfig = AlertingConfig()


def load_config(path: str | Path = "config.yaml") -> AppConfig:
    """
    Load configuration from a YAML file.

    The oracle API key is resolved from the ORACLE_API_KEY environment
    variable, never from the file.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f)

    if not isinstance(raw, dict):
        raise ValueError(f"Config file must be a YAML mapping, got {type(raw).__name__}")

    data_raw = raw.get("data", {})
    data_cfg = DataConfig(
        bar_store_path=data_raw.get("bar_store_path", "data/bars.db"),
    )

    o_raw = raw.get("oracle", {})
    o_cfg = OracleConfig(
        kind=str(o_raw.get("kind", "indicator")).lower(),
        url=str(o_raw.get("url", "")),
        timeout_seconds=float(o_raw.get("timeout_seconds", 30.0)),
        api_key=os.environ.get("ORACLE_API_KEY", ""),
    )

    j_raw = raw.get("journal", {})
    j_cfg = JournalConfig(
        path=j_raw.get("path", "data/journal.jsonl"),
        echo_stdout=bool(j_raw.get("echo_stdout", False)),
    )

    s_raw = raw.get("simulation", {})
    s_cfg = SimulationPaths(config_path=str(s_raw.get("config_path", "")))

    a_raw = raw.get("alerting", {})
    a_cfg = AlertingConfig(
        structured_logs=bool(a_raw.get("structured_logs", True)),
        webhook_url=str(a_raw.get("webhook_url", "") or ""),
    )

    return AppConfig(
        symbol=raw.get("symbol", "PF_XBTUSD"),
        interval=str(raw.get("interval", "1h")),
        aux_interval=str(raw.get("aux_interval", "") or ""),
        data=data_cfg,
        oracle=o_cfg,
        journal=j_cfg,
        simulation=s_cfg,
        alerting=a_cfg,
    )
