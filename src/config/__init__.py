"""
Configuration loaders.

App config:  reads config.yaml, resolves env vars for secrets.
Sim config:  reads sim.default.json (or override), validates against JSON Schema.
"""

from config.loader import (
    AppConfig,
    DataConfig,
    JournalConfig,
    OracleConfig,
    load_config,
)
from config.sim_config import (
    AccountConfig,
    DecisionConfig,
    EntryFilterConfig,
    ExitsConfig,
    ReplayConfig,
    SimConfig,
    SimConfigError,
    SizingConfig,
    load_sim_config,
)

__all__ = [
    # App config (YAML)
    "AppConfig",
    "DataConfig",
    "JournalConfig",
    "OracleConfig",
    "load_config",
    # Sim config (JSON + schema)
    "AccountConfig",
    "DecisionConfig",
    "EntryFilterConfig",
    "ExitsConfig",
    "ReplayConfig",
    "SimConfig",
    "SimConfigError",
    "SizingConfig",
    "load_sim_config",
]
