"""
Config loader: YAML file -> frozen dataclass tree.

The admin address is resolved from the environment (SHADOW_ADMIN_ADDRESS)
so it can be set per deployment without editing the file. Engine tuning
lives in a separate JSON file (see config.engine_config); this file only
points at it.
"""

import os
from dataclasses import dataclass
from pathlib import Path

import yaml


@dataclass(frozen=True)
class RuntimeConfig:
    backend: str = "local"
    engine_address: str = "shadow-engine"
    admin_address: str = ""


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
    pool: str
    runtime: RuntimeConfig
    journal: JournalConfig
    alerting: AlertingConfig = AlertingConfig()
    engine_config_path: str = ""


def load_config(path: str | Path = "config.yaml") -> AppConfig:
    """
    Load configuration from a YAML file.

    The admin address is taken from SHADOW_ADMIN_ADDRESS when set, falling
    back to ``runtime.admin_address`` in the file.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f)

    if not isinstance(raw, dict):
        raise ValueError(f"Config file must be a YAML mapping, got {type(raw).__name__}")

    rt_raw = raw.get("runtime", {})
    rt_cfg = RuntimeConfig(
        backend=str(rt_raw.get("backend", "local")),
        engine_address=str(rt_raw.get("engine_address", "shadow-engine")),
        admin_address=os.environ.get("SHADOW_ADMIN_ADDRESS", str(rt_raw.get("admin_address", ""))),
    )

    j_raw = raw.get("journal", {})
    j_cfg = JournalConfig(
        path=j_raw.get("path", "data/journal.jsonl"),
        echo_stdout=bool(j_raw.get("echo_stdout", False)),
    )

    a_raw = raw.get("alerting", {})
    a_cfg = AlertingConfig(
        structured_logs=bool(a_raw.get("structured_logs", True)),
        webhook_url=str(a_raw.get("webhook_url", "")),
    )

    return AppConfig(
        pool=raw.get("pool", "ETH-USDC"),
        runtime=rt_cfg,
        journal=j_cfg,
        alerting=a_cfg,
        engine_config_path=str(raw.get("engine_config_path", "") or ""),
    )
