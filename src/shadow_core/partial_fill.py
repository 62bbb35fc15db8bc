"""
Partial Fill Tracker: running totals, VWAP, completion and fill history.

State machine (per order):

    UNFILLED --fill--> PARTIALLY_FILLED --fill reaching size--> FULLY_FILLED
        ^                     |
        +------ reset --------+        (reset = delete state and history)

FULLY_FILLED is terminal. Aggregates are encrypted; the plaintext state
label only moves once the engine has revealed the completion flag.

Fills are staged with ``prepare_fill`` and applied with ``commit`` so the
engine can compute everything for a tick before mutating anything.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass

from shadow_core.contracts import Fill, FillState, PartialFillState
from shadow_core.encrypted import FHE, Ciphertext
from shadow_core.errors import ValidationError
from shadow_core.conditions import as_time, fully_filled_condition, min_fill_condition
from shadow_core.trigger import BPS_DENOMINATOR

DEFAULT_MAX_FILL_HISTORY = 256
DEFAULT_EFFICIENCY_BASE = 10_000
DEFAULT_PER_FILL_PENALTY_BPS = 50


@dataclass(frozen=True)
class PendingFill:
    """Fully computed next state for one fill, not yet applied."""

    order_id: str
    total_filled: Ciphertext
    average_fill_price: Ciphertext
    fill_count: Ciphertext
    last_fill_time: Ciphertext
    record: Fill
    is_fully_filled: Ciphertext


class PartialFillTracker:
    """Per-order partial fill aggregates and bounded fill history."""

    def __init__(
        self,
        fhe: FHE,
        *,
        max_fill_history: int = DEFAULT_MAX_FILL_HISTORY,
        efficiency_base: int = DEFAULT_EFFICIENCY_BASE,
        per_fill_penalty_bps: int = DEFAULT_PER_FILL_PENALTY_BPS,
    ) -> None:
        if max_fill_history < 1:
            raise ValueError("max_fill_history must be >= 1")
        self._fhe = fhe
        self._max_history = max_fill_history
        self._efficiency_base = efficiency_base
        self._penalty_bps = per_fill_penalty_bps
        self._states: dict[str, PartialFillState] = {}
        self._history: dict[str, deque[Fill]] = {}

    # ------------------------------------------------------------------
    # State access
    # ------------------------------------------------------------------

    def _initial_state(self, order_id: str) -> PartialFillState:
        fhe = self._fhe
        return PartialFillState(
            order_id=order_id,
            total_filled=fhe.as_euint128(0),
            average_fill_price=fhe.as_euint128(0),
            fill_count=fhe.as_euint64(0),
            last_fill_time=fhe.as_euint64(0),
        )

    def get_state(self, order_id: str) -> PartialFillState:
        """Current aggregates; an order with no fills reads as UNFILLED zeros."""
        state = self._states.get(order_id)
        if state is None:
            return self._initial_state(order_id)
        return state

    def has_state(self, order_id: str) -> bool:
        return order_id in self._states

    def get_fill_history(self, order_id: str) -> list[Fill]:
        return list(self._history.get(order_id, ()))

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def prepare_fill(
        self,
        order_id: str,
        fill_amount: Ciphertext,
        fill_price: Ciphertext,
        order_size: Ciphertext,
        now: int | Ciphertext,
    ) -> PendingFill:
        """Compute the post-fill aggregates without touching stored state."""
        state = self.get_state(order_id)
        if state.state == FillState.FULLY_FILLED:
            raise ValidationError(f"Order {order_id} is fully filled")

        fhe = self._fhe
        zero = fhe.as_euint128(0)
        new_total = fhe.add(state.total_filled, fill_amount)

        # VWAP: (total*avg + fill*price) / new_total. A zero fill keeps the
        # old average (and avoids dividing by a zero total).
        weighted = fhe.div(
            fhe.add(
                fhe.mul(state.total_filled, state.average_fill_price),
                fhe.mul(fill_amount, fill_price),
            ),
            new_total,
        )
        is_first = fhe.eq(state.fill_count, fhe.as_euint64(0))
        is_zero = fhe.eq(fill_amount, zero)
        moved_average = fhe.select(is_first, fill_price, weighted)
        new_average = fhe.select(is_zero, state.average_fill_price, moved_average)

        increment = fhe.select(is_zero, fhe.as_euint64(0), fhe.as_euint64(1))
        new_count = fhe.add(state.fill_count, increment)
        timestamp = as_time(fhe, now)

        record = Fill(
            order_id=order_id,
            amount=fill_amount,
            price=fill_price,
            timestamp=timestamp,
            index=state.fills_recorded,
        )
        return PendingFill(
            order_id=order_id,
            total_filled=new_total,
            average_fill_price=new_average,
            fill_count=new_count,
            last_fill_time=timestamp,
            record=record,
            is_fully_filled=fully_filled_condition(fhe, new_total, order_size),
        )

    def commit(self, pending: PendingFill) -> PartialFillState:
        state = self._states.get(pending.order_id)
        if state is None:
            state = self._initial_state(pending.order_id)
            self._states[pending.order_id] = state
        state.total_filled = pending.total_filled
        state.average_fill_price = pending.average_fill_price
        state.fill_count = pending.fill_count
        state.last_fill_time = pending.last_fill_time
        state.fills_recorded += 1
        if state.state == FillState.UNFILLED:
            state.state = FillState.PARTIALLY_FILLED

        history = self._history.get(pending.order_id)
        if history is None:
            history = deque(maxlen=self._max_history)
            self._history[pending.order_id] = history
        history.append(pending.record)
        return state

    def execute_partial_fill(
        self,
        order_id: str,
        fill_amount: Ciphertext,
        fill_price: Ciphertext,
        order_size: Ciphertext,
        now: int | Ciphertext,
    ) -> Ciphertext:
        """Apply one fill. Returns encrypted ``total_filled >= order_size``.

        The amount is a ciphertext, so a zero fill cannot be told apart here
        without a reveal: aggregates stay unchanged (average and encrypted
        count are selected through), but a history record is still appended
        and ``fills_recorded`` moves. The engine reveals the sized fill first
        and never calls this with zero.
        """
        pending = self.prepare_fill(order_id, fill_amount, fill_price, order_size, now)
        self.commit(pending)
        return pending.is_fully_filled

    def mark_fully_filled(self, order_id: str) -> None:
        """Record the revealed completion. Terminal."""
        state = self._states.get(order_id)
        if state is None:
            raise ValidationError(f"Order {order_id} has no fills")
        state.state = FillState.FULLY_FILLED

    def reset_partial_fill_state(self, order_id: str) -> None:
        """Drop aggregates and history (cancel/expire cleanup)."""
        self._states.pop(order_id, None)
        self._history.pop(order_id, None)

    # ------------------------------------------------------------------
    # Derived metrics
    # ------------------------------------------------------------------

    def is_fully_filled(self, order_id: str, order_size: Ciphertext) -> Ciphertext:
        return fully_filled_condition(self._fhe, self.get_state(order_id).total_filled, order_size)

    def remaining(self, order_id: str, order_size: Ciphertext) -> Ciphertext:
        return self._fhe.sub(order_size, self.get_state(order_id).total_filled)

    def meets_minimum_fill_requirement(
        self,
        order_id: str,
        proposed: Ciphertext,
        min_fill: Ciphertext,
        order_size: Ciphertext,
    ) -> Ciphertext:
        """proposed >= min_fill, or proposed finishes the order."""
        return min_fill_condition(self._fhe, proposed, min_fill, self.remaining(order_id, order_size))

    def calculate_fill_efficiency(self, order_id: str, target_price: int | Ciphertext) -> Ciphertext:
        """max(0, base - deviation_bps - fill_count * penalty).

        Rewards orders filled in few fills close to the target price.
        """
        fhe = self._fhe
        state = self.get_state(order_id)
        if not isinstance(target_price, Ciphertext):
            target_price = fhe.as_euint128(target_price)

        deviation = fhe.abs_diff(state.average_fill_price, target_price)
        deviation_bps = fhe.div(fhe.mul(deviation, fhe.as_euint128(BPS_DENOMINATOR)), target_price)
        fill_penalty = fhe.mul(state.fill_count, fhe.as_euint128(self._penalty_bps))
        penalty = fhe.add(deviation_bps, fill_penalty)

        base = fhe.as_euint128(self._efficiency_base)
        exhausted = fhe.gte(penalty, base)
        return fhe.select(exhausted, fhe.as_euint128(0), fhe.sub(base, penalty))
