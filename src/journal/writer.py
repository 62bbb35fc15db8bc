"""
Structured journal: append-only JSON lines. One record per order lifecycle event.

Only public data is journaled: order ids, owners, pools, timestamps and the
fill amounts the engine has already revealed. Ciphertexts appear as their
handle number, never as values.
"""

import json
from dataclasses import asdict, is_dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

from shadow_core.encrypted import Ciphertext


def _serialize(obj: Any) -> Any:
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, Ciphertext):
        return {"handle": obj.handle, "type": obj.etype.value}
    if isinstance(obj, Enum):
        return obj.value
    if is_dataclass(obj) and not isinstance(obj, type):
        return {k: _serialize(v) for k, v in asdict(obj).items()}
    if isinstance(obj, dict):
        return {k: _serialize(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_serialize(x) for x in obj]
    return obj


class JournalWriter:
    """Append-only journal. Each line is a JSON object with event type and payload."""

    def __init__(self, path: str | Path, *, echo_stdout: bool = False) -> None:
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._echo = echo_stdout

    @property
    def path(self) -> Path:
        return self._path

    def _write(self, event_type: str, payload: dict) -> None:
        record = {"ts_utc": datetime.now(timezone.utc).isoformat(), "event": event_type, **payload}
        line = json.dumps(_serialize(record)) + "\n"
        with open(self._path, "a") as f:
            f.write(line)
        if self._echo:
            print(line.rstrip())

    def order_placed(self, order_id: str, owner: str, pool_id: str, created_at: int, **extra: Any) -> None:
        self._write(
            "order_placed",
            {"order_id": order_id, "owner": owner, "pool_id": pool_id, "created_at": created_at, **extra},
        )

    def fill(self, order_id: str, fill_amount: int, fee: int, fill_index: int, completed: bool, **extra: Any) -> None:
        self._write(
            "fill",
            {"order_id": order_id, "fill_amount": fill_amount, "fee": fee, "fill_index": fill_index, "completed": completed, **extra},
        )

    def cancel(self, order_id: str, reason: str, **extra: Any) -> None:
        self._write("cancel", {"order_id": order_id, "reason": reason, **extra})

    def expire(self, order_id: str, **extra: Any) -> None:
        self._write("expire", {"order_id": order_id, **extra})

    def tick(self, pool_id: str, now: int, evaluated: int, fills: int, committed: bool, **extra: Any) -> None:
        self._write(
            "tick",
            {"pool_id": pool_id, "now": now, "evaluated": evaluated, "fills": fills, "committed": committed, **extra},
        )

    def read_all(self) -> list[dict]:
        """Parse every record written so far (missing file reads as empty)."""
        if not self._path.exists():
            return []
        with open(self._path) as f:
            return [json.loads(line) for line in f if line.strip()]
