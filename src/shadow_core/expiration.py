"""
Expiration Manager: per-order expiry and hour-bucketed batch sweeps.

Orders are indexed by ``floor(expiration_time / bucket_seconds)`` so a sweep
only touches the buckets that are due instead of every order. The bucket
key comes from the public scheduling time; whether an order has actually
expired is always decided on the encrypted expiration through the
Decision Evaluator.

Auto-renewal: when an expired order carries an encrypted auto-renew flag
that evaluates true, its expiration is recomputed to ``now + period`` and it
is re-bucketed instead of being reported as expired. The new expiration is
visible through the record's scheduling time.
"""

from __future__ import annotations

import logging

from shadow_core.contracts import ExpirationRecord, SweepResult
from shadow_core.decision import DecisionEvaluator
from shadow_core.encrypted import Ciphertext
from shadow_core.errors import NotFoundError

logger = logging.getLogger("shadow.expiration")

DEFAULT_BUCKET_SECONDS = 3600


class ExpirationManager:
    def __init__(self, decision: DecisionEvaluator, *, bucket_seconds: int = DEFAULT_BUCKET_SECONDS) -> None:
        if bucket_seconds <= 0:
            raise ValueError("bucket_seconds must be positive")
        self._decision = decision
        self._fhe = decision.fhe
        self._bucket_seconds = bucket_seconds
        self._records: dict[str, ExpirationRecord] = {}
        self._buckets: dict[int, set[str]] = {}
        self._bucket_of: dict[str, int] = {}

    # ------------------------------------------------------------------
    # Index
    # ------------------------------------------------------------------

    def bucket_for(self, expiration_time: int) -> int:
        return expiration_time // self._bucket_seconds

    def _index(self, order_id: str, hour: int) -> None:
        self._buckets.setdefault(hour, set()).add(order_id)
        self._bucket_of[order_id] = hour

    def _unindex(self, order_id: str) -> None:
        hour = self._bucket_of.pop(order_id, None)
        if hour is None:
            return
        members = self._buckets.get(hour)
        if members is not None:
            members.discard(order_id)
            if not members:
                del self._buckets[hour]

    def _relocate(self, order_id: str, hour: int) -> None:
        if self._bucket_of.get(order_id) == hour:
            return
        self._unindex(order_id)
        self._index(order_id, hour)

    def bucket_members(self, hour: int) -> list[str]:
        return sorted(self._buckets.get(hour, ()))

    def bucket_of(self, order_id: str) -> int | None:
        return self._bucket_of.get(order_id)

    def due_hours(self, now: int) -> list[int]:
        current = self.bucket_for(now)
        return sorted(h for h in self._buckets if h <= current)

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    def set_order_expiration(
        self,
        order_id: str,
        expiration_time: int,
        expiration: Ciphertext,
        creation_time: int,
        *,
        auto_renewal: Ciphertext | None = None,
        renewal_period: int = 0,
    ) -> ExpirationRecord:
        record = ExpirationRecord(
            order_id=order_id,
            expiration_time=expiration_time,
            expiration=expiration,
            creation_time=creation_time,
            auto_renewal=auto_renewal,
            renewal_period=renewal_period,
        )
        self._records[order_id] = record
        self._relocate(order_id, self.bucket_for(expiration_time))
        return record

    def get_expiration(self, order_id: str) -> ExpirationRecord:
        try:
            return self._records[order_id]
        except KeyError:
            raise NotFoundError(f"No expiration record for order {order_id}") from None

    def has_expiration(self, order_id: str) -> bool:
        return order_id in self._records

    def is_expired(self, order_id: str, now: int) -> bool:
        return self._decision.is_expired(self.get_expiration(order_id).expiration, now)

    def extend_order_expiration(
        self,
        order_id: str,
        new_expiration_time: int,
        new_expiration: Ciphertext | None = None,
    ) -> ExpirationRecord:
        """Move an order's expiration; re-bucket when the hour changes."""
        record = self.get_expiration(order_id)
        if new_expiration is None:
            new_expiration = self._fhe.as_euint64(new_expiration_time)
        record.expiration_time = new_expiration_time
        record.expiration = new_expiration
        self._relocate(order_id, self.bucket_for(new_expiration_time))
        return record

    def unschedule(self, order_id: str) -> None:
        """Take a closed order out of future sweeps; the record stays readable."""
        self._unindex(order_id)

    def is_scheduled(self, order_id: str) -> bool:
        return order_id in self._bucket_of

    def remove_order_expiration(self, order_id: str) -> None:
        """Cleanup: drop the record and its bucket entry."""
        self._unindex(order_id)
        self._records.pop(order_id, None)

    # ------------------------------------------------------------------
    # Sweeps
    # ------------------------------------------------------------------

    def process_expiration_hour(self, hour: int, now: int) -> SweepResult:
        """Sweep a single bucket. Only orders indexed under *hour* are read."""
        result = SweepResult(hour=hour)
        current_hour = self.bucket_for(now)

        for order_id in self.bucket_members(hour):
            record = self._records[order_id]
            if not self._decision.is_expired(record.expiration, now):
                if hour < current_hour:
                    # Stale scheduling time; keep it visible to the next sweep.
                    self._relocate(order_id, current_hour)
                    result.deferred.append(order_id)
                continue

            if self._should_renew(record):
                self._renew(record, now)
                result.renewed.append(order_id)
                continue

            self._unindex(order_id)
            result.expired.append(order_id)

        if result.expired or result.renewed:
            logger.info(
                "Swept hour %d: %d expired, %d renewed, %d deferred",
                hour, len(result.expired), len(result.renewed), len(result.deferred),
            )
        return result

    def sweep(self, now: int) -> list[SweepResult]:
        """Process every due bucket, oldest first."""
        return [self.process_expiration_hour(hour, now) for hour in self.due_hours(now)]

    def _should_renew(self, record: ExpirationRecord) -> bool:
        if record.auto_renewal is None or record.renewal_period <= 0:
            return False
        return self._decision.evaluate(record.auto_renewal, default=False)

    def _renew(self, record: ExpirationRecord, now: int) -> None:
        fhe = self._fhe
        new_time = now + record.renewal_period
        record.expiration = fhe.add(fhe.as_euint64(now), fhe.as_euint64(record.renewal_period))
        record.expiration_time = new_time
        record.renewals += 1
        self._relocate(record.order_id, self.bucket_for(new_time))
