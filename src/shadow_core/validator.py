"""
Order Validator: encrypted-domain parameter sanity checks.

Every predicate is computed unconditionally and folded into one ``ebool``.
Short-circuiting would reveal which predicate failed, so the only thing that
crosses the reveal boundary is the combined verdict.

Base predicates:
    trigger > 0
    size > 0
    expiration > now
    min_fill <= size

Engine-level limits (from engine config) can be folded into the same
verdict with ``validate_with_limits``.
"""

from __future__ import annotations

from shadow_core.conditions import as_time
from shadow_core.decision import DecisionEvaluator
from shadow_core.encrypted import Ciphertext


class OrderValidator:
    """Build and evaluate the creation verdict for an order."""

    def __init__(self, decision: DecisionEvaluator) -> None:
        self._decision = decision
        self._fhe = decision.fhe

    def validate(
        self,
        trigger: Ciphertext,
        size: Ciphertext,
        expiration: Ciphertext,
        min_fill: Ciphertext,
        now: int | Ciphertext,
    ) -> Ciphertext:
        """Encrypted AND of the four base predicates."""
        fhe = self._fhe
        zero = fhe.as_euint128(0)
        checks = [
            fhe.gt(trigger, zero),
            fhe.gt(size, zero),
            fhe.gt(expiration, as_time(fhe, now)),
            fhe.lte(min_fill, size),
        ]
        return fhe.all_of(checks)

    def validate_with_limits(
        self,
        trigger: Ciphertext,
        size: Ciphertext,
        expiration: Ciphertext,
        min_fill: Ciphertext,
        now: int,
        *,
        min_order_size: int = 0,
        max_order_duration_s: int | None = None,
    ) -> Ciphertext:
        """Base predicates plus minimum size and maximum duration."""
        fhe = self._fhe
        verdict = self.validate(trigger, size, expiration, min_fill, now)
        limits = [verdict, fhe.gte(size, fhe.as_euint128(min_order_size))]
        if max_order_duration_s is not None:
            limits.append(fhe.lte(expiration, fhe.as_euint64(now + max_order_duration_s)))
        return fhe.all_of(limits)

    def is_valid(self, verdict: Ciphertext) -> bool:
        """Reveal the verdict. Indeterminate means reject."""
        return self._decision.evaluate(verdict, default=False)
