"""
Priority Scorer: cross-order execution ranking.

    score = time_weight * (max_time - placement_time)
          + trigger_price / price_divisor
          + size / size_divisor
          + order_type * type_weight

Fixed-point integer arithmetic under encryption. Earlier placement
dominates; price, size and type break ties. Ranking reveals pairwise
comparisons only, never the scores; equal scores keep creation order.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import cmp_to_key
from typing import Sequence

from shadow_core.contracts import Order
from shadow_core.decision import DecisionEvaluator
from shadow_core.encrypted import Ciphertext


@dataclass(frozen=True)
class PriorityWeights:
    max_time: int = 2**32 - 1
    time_weight: int = 100
    price_divisor: int = 1_000
    size_divisor: int = 10_000
    type_weight: int = 100


class PriorityScorer:
    def __init__(self, decision: DecisionEvaluator, weights: PriorityWeights | None = None) -> None:
        self._decision = decision
        self._fhe = decision.fhe
        self._weights = weights or PriorityWeights()

    @property
    def weights(self) -> PriorityWeights:
        return self._weights

    def score(
        self,
        placement_time: int | Ciphertext,
        trigger_price: Ciphertext,
        size: Ciphertext,
        order_type: int | Ciphertext,
    ) -> Ciphertext:
        fhe = self._fhe
        w = self._weights
        if not isinstance(placement_time, Ciphertext):
            placement_time = fhe.as_euint64(placement_time)
        if not isinstance(order_type, Ciphertext):
            order_type = fhe.as_euint8(int(order_type))

        age_credit = fhe.sub(fhe.as_euint128(w.max_time), placement_time)
        time_component = fhe.mul(age_credit, fhe.as_euint128(w.time_weight))
        price_component = fhe.div(trigger_price, fhe.as_euint128(w.price_divisor))
        size_component = fhe.div(size, fhe.as_euint128(w.size_divisor))
        type_component = fhe.mul(order_type, fhe.as_euint128(w.type_weight))

        return fhe.add(fhe.add(time_component, price_component), fhe.add(size_component, type_component))

    def score_order(self, order: Order) -> Ciphertext:
        return self.score(order.created_at, order.trigger_price, order.size, int(order.order_kind))

    def rank(self, orders: Sequence[Order]) -> list[Order]:
        """Highest priority first. Orders must carry ``priority_score``."""

        def compare(a: Order, b: Order) -> int:
            if self._decision.evaluate(self._fhe.gt(a.priority_score, b.priority_score), default=False):
                return -1
            if self._decision.evaluate(self._fhe.gt(b.priority_score, a.priority_score), default=False):
                return 1
            return 0

        missing = [o.id for o in orders if o.priority_score is None]
        if missing:
            raise ValueError(f"Orders without priority score: {missing}")
        # Creation sequence first so the stable sort keeps it for ties.
        ordered = sorted(orders, key=lambda o: o.sequence)
        return sorted(ordered, key=cmp_to_key(compare))
