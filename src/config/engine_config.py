"""
Engine config loader: JSON file -> frozen dataclass tree, validated against JSON Schema.

Default values:      docs/config/engine.default.json
Schema:              docs/config/engine_config.schema.json

Per-pool overrides: place a partial JSON file named ``engine.{POOL}.json``
next to the default config (e.g. ``docs/config/engine.ETH-USDC.json``). Only
the keys you want to override need to be present; they are deep-merged on
top of the base config before schema validation.

Usage:
    from config.engine_config import load_engine_config
    cfg = load_engine_config()                        # loads default
    cfg = load_engine_config(pool="ETH-USDC")         # merges engine.ETH-USDC.json if present
    cfg.expiration.bucket_seconds  # -> 3600
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import jsonschema

logger = logging.getLogger("shadow.config")


def _find_project_root() -> Path:
    """Walk up from this file looking for pyproject.toml; fall back to CWD."""
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

DEFAULT_CONFIG_PATH = _PROJECT_ROOT / "docs" / "config" / "engine.default.json"
DEFAULT_SCHEMA_PATH = _PROJECT_ROOT / "docs" / "config" / "engine_config.schema.json"


# ---------------------------------------------------------------------------
# Frozen dataclass tree, mirrors engine.default.json
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FeesConfig:
    execution_fee_bps: int = 0


@dataclass(frozen=True)
class LimitsConfig:
    min_order_size: int = 1
    max_order_duration_s: int | None = 7 * 24 * 60 * 60
    max_fill_history: int = 256
    max_grant_audit: int = 1024


@dataclass(frozen=True)
class ExpirationConfig:
    bucket_seconds: int = 3600


@dataclass(frozen=True)
class SlippageConfig:
    enabled: bool = False
    default_max_bps: int = 50


@dataclass(frozen=True)
class PriorityConfig:
    max_time: int = 2**32 - 1
    time_weight: int = 100
    price_divisor: int = 1_000
    size_divisor: int = 10_000
    type_weight: int = 100


@dataclass(frozen=True)
class EfficiencyConfig:
    base_score: int = 10_000
    per_fill_penalty_bps: int = 50


@dataclass(frozen=True)
class EngineConfig:
    """Top-level engine configuration."""
    version: str = "1.0"
    fees: FeesConfig = FeesConfig()
    limits: LimitsConfig = LimitsConfig()
    expiration: ExpirationConfig = ExpirationConfig()
    slippage: SlippageConfig = SlippageConfig()
    priority: PriorityConfig = PriorityConfig()
    efficiency: EfficiencyConfig = EfficiencyConfig()


# ---------------------------------------------------------------------------
# Deep merge for per-pool overrides
# ---------------------------------------------------------------------------


def _deep_merge(base: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge *overrides* into a copy of *base* (override keys win)."""
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


class EngineConfigError(Exception):
    """Raised when engine config loading or validation fails."""


def _validate_schema(data: dict[str, Any], schema_path: Path) -> None:
    if not schema_path.exists():
        raise EngineConfigError(f"Schema file not found: {schema_path}")
    with open(schema_path) as f:
        schema = json.load(f)
    try:
        jsonschema.validate(instance=data, schema=schema)
    except jsonschema.ValidationError as exc:
        raise EngineConfigError(f"Engine config validation failed: {exc.message}") from exc


def _build_config(data: dict[str, Any]) -> EngineConfig:
    """Convert a raw dict (already validated) into the frozen dataclass tree."""
    limits_raw = data["limits"]
    prio_raw = data.get("priority", {})
    eff_raw = data.get("efficiency", {})

    return EngineConfig(
        version=data["version"],
        fees=FeesConfig(execution_fee_bps=data["fees"]["execution_fee_bps"]),
        limits=LimitsConfig(
            min_order_size=limits_raw["min_order_size"],
            max_order_duration_s=limits_raw.get("max_order_duration_s"),
            max_fill_history=limits_raw.get("max_fill_history", 256),
            max_grant_audit=limits_raw.get("max_grant_audit", 1024),
        ),
        expiration=ExpirationConfig(bucket_seconds=data["expiration"]["bucket_seconds"]),
        slippage=SlippageConfig(
            enabled=data["slippage"]["enabled"],
            default_max_bps=data["slippage"]["default_max_bps"],
        ),
        priority=PriorityConfig(
            max_time=prio_raw.get("max_time", 2**32 - 1),
            time_weight=prio_raw.get("time_weight", 100),
            price_divisor=prio_raw.get("price_divisor", 1_000),
            size_divisor=prio_raw.get("size_divisor", 10_000),
            type_weight=prio_raw.get("type_weight", 100),
        ),
        efficiency=EfficiencyConfig(
            base_score=eff_raw.get("base_score", 10_000),
            per_fill_penalty_bps=eff_raw.get("per_fill_penalty_bps", 50),
        ),
    )


def load_engine_config(
    config_path: str | Path | None = None,
    schema_path: str | Path | None = None,
    pool: str | None = None,
) -> EngineConfig:
    """Load and validate engine configuration.

    Parameters
    ----------
    config_path:
        Path to an engine JSON config file.  Defaults to ``docs/config/engine.default.json``.
    schema_path:
        Path to the JSON Schema file.  Defaults to ``docs/config/engine_config.schema.json``.
    pool:
        Optional pool id.  When provided, the loader looks for
        ``engine.{POOL}.json`` in the same directory as the base config and
        deep-merges it before schema validation.  A missing override file
        is not an error.

    Raises
    ------
    EngineConfigError
        If the file is missing, unparseable, or fails schema validation.
    """
    cfg_path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
    sch_path = Path(schema_path) if schema_path else DEFAULT_SCHEMA_PATH

    if not cfg_path.exists():
        raise EngineConfigError(f"Engine config file not found: {cfg_path}")

    try:
        with open(cfg_path) as f:
            data = json.load(f)
    except json.JSONDecodeError as exc:
        raise EngineConfigError(f"Engine config is not valid JSON: {exc}") from exc

    if pool:
        override_path = cfg_path.parent / f"engine.{pool.upper()}.json"
        if override_path.exists():
            try:
                with open(override_path) as f:
                    overrides = json.load(f)
            except json.JSONDecodeError as exc:
                raise EngineConfigError(
                    f"Per-pool config {override_path.name} is not valid JSON: {exc}"
                ) from exc
            data = _deep_merge(data, overrides)
            logger.info("Loaded per-pool config: %s", override_path.name)
        else:
            logger.debug("No per-pool config found at %s, using defaults", override_path)

    _validate_schema(data, sch_path)

    return _build_config(data)
