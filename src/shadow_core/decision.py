"""
Decision Evaluator: the single boundary where ciphertext becomes plaintext.

Everything upstream of this module operates on handles only. Downstream code
may branch freely on what ``evaluate`` returns, because that value has been
deliberately revealed.

Indeterminate reveals (the runtime answers ``None``) resolve to the caller's
default rather than raising, so a batch sweep degrades per item instead of
aborting.
"""

from __future__ import annotations

import logging
from typing import Sequence

from shadow_core.conditions import (
    execution_condition,
    expired_condition,
    fully_filled_condition,
    min_fill_condition,
)
from shadow_core.encrypted import FHE, Ciphertext

logger = logging.getLogger("shadow.decision")


class DecisionEvaluator:
    """Reveal encrypted booleans (and settled amounts) through one choke point."""

    def __init__(self, fhe: FHE) -> None:
        self._fhe = fhe
        self.reveal_count = 0
        self.indeterminate_count = 0

    @property
    def fhe(self) -> FHE:
        return self._fhe

    def evaluate(self, flag: Ciphertext, default: bool) -> bool:
        """Reveal an ``ebool``; answer *default* when the runtime cannot."""
        if not flag.is_bool:
            raise TypeError(f"evaluate() expects an ebool, got {flag.etype.value}")
        value = self._reveal(flag)
        if value is None:
            return default
        return bool(value)

    def evaluate_batch(self, flags: Sequence[Ciphertext], defaults: Sequence[bool]) -> list[bool]:
        """Evaluate N independent flags, each with its own default."""
        if len(flags) != len(defaults):
            raise ValueError(
                f"flags/defaults length mismatch: {len(flags)} flags, {len(defaults)} defaults"
            )
        return [self.evaluate(flag, default) for flag, default in zip(flags, defaults)]

    def reveal_amount(self, amount: Ciphertext, default: int = 0) -> int:
        """Reveal a settled amount (e.g. a fill size handed to settlement)."""
        if amount.is_bool:
            raise TypeError("reveal_amount() expects an encrypted integer")
        value = self._reveal(amount)
        if value is None:
            return default
        return int(value)

    def _reveal(self, ciphertext: Ciphertext) -> int | None:
        self.reveal_count += 1
        value = self._fhe.runtime.reveal(ciphertext)
        if value is None:
            self.indeterminate_count += 1
            logger.debug("Indeterminate reveal for %r, using default", ciphertext)
        return value

    # ------------------------------------------------------------------
    # Decisions built on evaluate()
    # ------------------------------------------------------------------

    def is_active(self, active: Ciphertext) -> bool:
        return self.evaluate(active, default=False)

    def is_expired(self, expiration: Ciphertext, now: int | Ciphertext) -> bool:
        # Indeterminate expiry keeps the order alive; it is re-checked next sweep.
        return self.evaluate(expired_condition(self._fhe, expiration, now), default=False)

    def is_partial_fill_allowed(self, allowed: Ciphertext) -> bool:
        return self.evaluate(allowed, default=False)

    def meets_minimum_fill_requirement(
        self,
        proposed: Ciphertext,
        min_fill: Ciphertext,
        remaining: Ciphertext,
    ) -> bool:
        return self.evaluate(min_fill_condition(self._fhe, proposed, min_fill, remaining), default=False)

    def is_order_fully_filled(self, filled: Ciphertext, size: Ciphertext) -> bool:
        return self.evaluate(fully_filled_condition(self._fhe, filled, size), default=False)

    def should_execute(
        self,
        trigger: Ciphertext,
        current: Ciphertext,
        direction: Ciphertext,
        active: Ciphertext,
        expiration: Ciphertext,
        now: int | Ciphertext,
    ) -> bool:
        condition = execution_condition(self._fhe, trigger, current, direction, active, expiration, now)
        return self.evaluate(condition, default=False)
