"""
Structured JSON event logger for simulation and service observability.

Emits one JSON object per line to stderr. Events are designed to be
parsed by log aggregators (Grafana Loki, CloudWatch, ELK).

Optional webhook: when configured, order-level events (order_filled,
order_rejected, error) are POSTed to the URL.
"""

from __future__ import annotations

import json
import logging
import sys
import urllib.request
from datetime import datetime, timezone
from typing import Any

logger = logging.getLogger("shadow.events")

ALERT_EVENTS = frozenset({"order_filled", "order_rejected", "error"})


class StructuredEventLogger:
    """Emit structured JSON events to stderr and optional webhook."""

    def __init__(
        self,
        pool_id: str,
        *,
        enabled: bool = True,
        webhook_url: str = "",
        stream: Any = None,
    ) -> None:
        self._pool_id = pool_id
        self._enabled = enabled
        self._webhook_url = webhook_url.strip()
        self._stream = stream or sys.stderr

    def _emit(self, event_type: str, **fields: Any) -> dict:
        record = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "event": event_type,
            "pool": self._pool_id,
            **fields,
        }
        if self._enabled:
            self._stream.write(json.dumps(record) + "\n")
            self._stream.flush()

        if self._webhook_url and event_type in ALERT_EVENTS:
            self._post_webhook(record)

        return record

    def _post_webhook(self, record: dict) -> None:
        try:
            data = json.dumps(record).encode("utf-8")
            req = urllib.request.Request(
                self._webhook_url,
                data=data,
                headers={"Content-Type": "application/json"},
                method="POST",
            )
            urllib.request.urlopen(req, timeout=5)
        except Exception as exc:
            logger.warning("Webhook POST failed: %s", exc)

    def order_placed(self, order_id: str, owner: str) -> dict:
        return self._emit("order_placed", order_id=order_id, owner=owner)

    def order_filled(self, order_id: str, fill_amount: int, fee: int, completed: bool) -> dict:
        return self._emit(
            "order_filled",
            order_id=order_id,
            fill_amount=fill_amount,
            fee=fee,
            completed=completed,
        )

    def order_cancelled(self, order_id: str, reason: str) -> dict:
        return self._emit("order_cancelled", order_id=order_id, reason=reason)

    def order_expired(self, order_id: str) -> dict:
        return self._emit("order_expired", order_id=order_id)

    def order_rejected(self, reason: str) -> dict:
        return self._emit("order_rejected", reason=reason)

    def tick_complete(self, now: int, evaluated: int, fills: int) -> dict:
        return self._emit("tick_complete", now=now, evaluated=evaluated, fills=fills)

    def error(self, message: str, detail: str = "") -> dict:
        return self._emit("error", message=message, detail=detail)

    def shutdown(self, ticks: int) -> dict:
        return self._emit("shutdown", ticks=ticks)
