"""Tests for config loader: YAML parsing, env var resolution, error cases."""

from pathlib import Path

import pytest

from config import load_config


def _write_yaml(path: Path, content: str) -> Path:
    path.write_text(content)
    return path


def test_load_config_basic(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.delenv("SHADOW_ADMIN_ADDRESS", raising=False)
    path = _write_yaml(
        tmp_path / "config.yaml",
        """
pool: WBTC-USDC
runtime:
  backend: local
  engine_address: engine-1
  admin_address: ops
journal:
  path: test_journal.jsonl
  echo_stdout: true
alerting:
  structured_logs: false
  webhook_url: https://hooks.example.test/shadow
engine_config_path: custom/engine.json
""",
    )
    cfg = load_config(path)
    assert cfg.pool == "WBTC-USDC"
    assert cfg.runtime.backend == "local"
    assert cfg.runtime.engine_address == "engine-1"
    assert cfg.runtime.admin_address == "ops"
    assert cfg.journal.path == "test_journal.jsonl"
    assert cfg.journal.echo_stdout is True
    assert cfg.alerting.structured_logs is False
    assert cfg.alerting.webhook_url == "https://hooks.example.test/shadow"
    assert cfg.engine_config_path == "custom/engine.json"


def test_load_config_defaults(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.delenv("SHADOW_ADMIN_ADDRESS", raising=False)
    cfg = load_config(_write_yaml(tmp_path / "config.yaml", "pool: ETH-USDC\n"))
    assert cfg.runtime.backend == "local"
    assert cfg.runtime.engine_address == "shadow-engine"
    assert cfg.runtime.admin_address == ""
    assert cfg.journal.path == "data/journal.jsonl"
    assert cfg.alerting.structured_logs is True
    assert cfg.engine_config_path == ""


def test_admin_from_env(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("SHADOW_ADMIN_ADDRESS", "env-admin")
    path = _write_yaml(tmp_path / "config.yaml", "runtime:\n  admin_address: file-admin\n")
    assert load_config(path).runtime.admin_address == "env-admin"


def test_missing_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "nope.yaml")


def test_non_mapping(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="YAML mapping"):
        load_config(_write_yaml(tmp_path / "config.yaml", "- a\n- b\n"))


def test_repo_config_loads(monkeypatch) -> None:
    monkeypatch.delenv("SHADOW_ADMIN_ADDRESS", raising=False)
    root = Path(__file__).resolve().parent.parent
    cfg = load_config(root / "config.yaml")
    assert cfg.pool == "ETH-USDC"
