"""
Trigger Evaluator: should this order fire at the current price?

``should_execute`` is the full composite (active, not expired, price
condition). The two standalone primitives let a scheduler pre-filter
cheaply before running the composite.
"""

from __future__ import annotations

from shadow_core.conditions import execution_condition, price_condition
from shadow_core.decision import DecisionEvaluator
from shadow_core.encrypted import Ciphertext

BPS_DENOMINATOR = 10_000


class TriggerEvaluator:
    def __init__(self, decision: DecisionEvaluator) -> None:
        self._decision = decision
        self._fhe = decision.fhe

    def execution_condition(
        self,
        trigger: Ciphertext,
        current: Ciphertext,
        direction: Ciphertext,
        active: Ciphertext,
        expiration: Ciphertext,
        now: int | Ciphertext,
    ) -> Ciphertext:
        """Encrypted composite, not yet revealed."""
        return execution_condition(self._fhe, trigger, current, direction, active, expiration, now)

    def should_execute(
        self,
        trigger: Ciphertext,
        current: Ciphertext,
        direction: Ciphertext,
        active: Ciphertext,
        expiration: Ciphertext,
        now: int | Ciphertext,
    ) -> bool:
        return self._decision.should_execute(trigger, current, direction, active, expiration, now)

    def evaluate_price_condition(self, trigger: Ciphertext, current: Ciphertext, direction: Ciphertext) -> Ciphertext:
        return price_condition(self._fhe, trigger, current, direction)

    def slippage_bps(self, current: Ciphertext, trigger: Ciphertext) -> Ciphertext:
        """|current - trigger| * 10000 / trigger.

        Division is safe for validated orders (trigger > 0).
        """
        fhe = self._fhe
        deviation = fhe.abs_diff(current, trigger)
        return fhe.div(fhe.mul(deviation, fhe.as_euint128(BPS_DENOMINATOR)), trigger)

    def is_slippage_acceptable(
        self,
        current: Ciphertext,
        trigger: Ciphertext,
        max_slippage_bps: int | Ciphertext,
    ) -> Ciphertext:
        fhe = self._fhe
        if not isinstance(max_slippage_bps, Ciphertext):
            max_slippage_bps = fhe.as_euint128(max_slippage_bps)
        return fhe.lte(self.slippage_bps(current, trigger), max_slippage_bps)
