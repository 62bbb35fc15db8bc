"""
Fill Calculator: bounded, slippage- and liquidity-aware fill sizing.

Policy (all branches computed, then selected; no early return):

    remaining = size - filled
    candidate = min(remaining, liquidity)
    if partial_allowed and candidate >= min_fill:  fill = candidate
    elif candidate >= remaining:                    fill = remaining
    else:                                           fill = 0

Ratios are integer basis points (10_000 = 100%) so no fractional
encrypted arithmetic is needed.
"""

from __future__ import annotations

from shadow_core.encrypted import FHE, Ciphertext
from shadow_core.trigger import BPS_DENOMINATOR, TriggerEvaluator


class FillCalculator:
    def __init__(self, fhe: FHE, trigger: TriggerEvaluator) -> None:
        self._fhe = fhe
        self._trigger = trigger

    def remaining(self, size: Ciphertext, filled: Ciphertext) -> Ciphertext:
        return self._fhe.sub(size, filled)

    def calculate_optimal_fill(
        self,
        size: Ciphertext,
        filled: Ciphertext,
        min_fill: Ciphertext,
        liquidity: Ciphertext,
        partial_allowed: Ciphertext,
    ) -> Ciphertext:
        fhe = self._fhe
        zero = fhe.as_euint128(0)

        remaining = self.remaining(size, filled)
        candidate = fhe.min(remaining, liquidity)

        partial_ok = fhe.and_(partial_allowed, fhe.gte(candidate, min_fill))
        full_ok = fhe.gte(candidate, remaining)

        fallback = fhe.select(full_ok, remaining, zero)
        return fhe.select(partial_ok, candidate, fallback)

    def apply_slippage_protection(
        self,
        fill: Ciphertext,
        current: Ciphertext,
        trigger: Ciphertext,
        max_slippage_bps: int | Ciphertext,
    ) -> Ciphertext:
        """Zero the fill when price moved past the slippage bound."""
        fhe = self._fhe
        acceptable = self._trigger.is_slippage_acceptable(current, trigger, max_slippage_bps)
        return fhe.select(acceptable, fill, fhe.as_euint128(0))

    def calculate_protected_fill(
        self,
        size: Ciphertext,
        filled: Ciphertext,
        min_fill: Ciphertext,
        liquidity: Ciphertext,
        partial_allowed: Ciphertext,
        current: Ciphertext,
        trigger: Ciphertext,
        max_slippage_bps: int | Ciphertext,
    ) -> Ciphertext:
        fill = self.calculate_optimal_fill(size, filled, min_fill, liquidity, partial_allowed)
        return self.apply_slippage_protection(fill, current, trigger, max_slippage_bps)

    def calculate_price_impact(self, fill: Ciphertext, liquidity: Ciphertext) -> Ciphertext:
        """fill * 10000 / liquidity, in basis points."""
        fhe = self._fhe
        return fhe.div(fhe.mul(fill, fhe.as_euint128(BPS_DENOMINATOR)), liquidity)

    def calculate_fee(self, fill_amount: int, fee_bps: int) -> int:
        """Execution fee on a revealed fill amount."""
        return fill_amount * fee_bps // BPS_DENOMINATOR
