"""
Configuration loaders.

App config:     reads config.yaml, resolves the admin address from the environment.
Engine config:  reads engine.default.json (or override), validates against JSON Schema.
"""

from config.engine_config import (
    EfficiencyConfig,
    EngineConfig,
    EngineConfigError,
    ExpirationConfig,
    FeesConfig,
    LimitsConfig,
    PriorityConfig,
    SlippageConfig,
    load_engine_config,
)
from config.loader import (
    AlertingConfig,
    AppConfig,
    JournalConfig,
    RuntimeConfig,
    load_config,
)

__all__ = [
    # App config (YAML)
    "AlertingConfig",
    "AppConfig",
    "JournalConfig",
    "RuntimeConfig",
    "load_config",
    # Engine config (JSON + schema)
    "EfficiencyConfig",
    "EngineConfig",
    "EngineConfigError",
    "ExpirationConfig",
    "FeesConfig",
    "LimitsConfig",
    "PriorityConfig",
    "SlippageConfig",
    "load_engine_config",
]
