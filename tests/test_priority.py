"""Tests for the Priority Scorer: encrypted scores, revealed pairwise ranking."""

import pytest

from conftest import NOW
from shadow_core.contracts import Order, OrderKind
from shadow_core.decision import DecisionEvaluator
from shadow_core.encrypted import FHE
from shadow_core.priority import PriorityScorer, PriorityWeights


@pytest.fixture
def scorer(decision: DecisionEvaluator) -> PriorityScorer:
    return PriorityScorer(decision)


def _order(fhe: FHE, scorer: PriorityScorer, oid: str, seq: int, created_at: int = NOW,
           price: int = 2000, size: int = 10, kind: OrderKind = OrderKind.LIMIT) -> Order:
    order = Order(
        id=oid,
        owner="alice",
        pool_id="ETH-USDC",
        trigger_price=fhe.as_euint128(price),
        size=fhe.as_euint128(size),
        direction=fhe.as_euint8(0),
        filled_amount=fhe.as_euint128(0),
        expiration=fhe.as_euint64(NOW + 3600),
        min_fill_size=fhe.as_euint128(1),
        is_active=fhe.as_ebool(True),
        partial_fill_allowed=fhe.as_ebool(True),
        created_at=created_at,
        sequence=seq,
        order_kind=kind,
    )
    order.priority_score = scorer.score_order(order)
    return order


class TestScore:
    def test_formula(self, fhe: FHE, runtime, scorer: PriorityScorer) -> None:
        w = PriorityWeights()
        score = scorer.score(NOW, fhe.as_euint128(2_000_000), fhe.as_euint128(50_000), int(OrderKind.STOP))
        expected = w.time_weight * (w.max_time - NOW) + 2_000_000 // 1_000 + 50_000 // 10_000 + 1 * w.type_weight
        assert runtime.reveal(score) == expected

    def test_earlier_placement_scores_higher(self, fhe: FHE, runtime, scorer: PriorityScorer) -> None:
        early = scorer.score(NOW, fhe.as_euint128(1), fhe.as_euint128(1), 0)
        late = scorer.score(NOW + 1, fhe.as_euint128(50_000), fhe.as_euint128(1), 0)
        assert runtime.reveal(early) > runtime.reveal(late)


class TestRank:
    def test_highest_first(self, fhe: FHE, scorer: PriorityScorer) -> None:
        late = _order(fhe, scorer, "late", 1, created_at=NOW + 10)
        early = _order(fhe, scorer, "early", 2, created_at=NOW)
        assert [o.id for o in scorer.rank([late, early])] == ["early", "late"]

    def test_ties_keep_creation_order(self, fhe: FHE, scorer: PriorityScorer) -> None:
        a = _order(fhe, scorer, "a", 1)
        b = _order(fhe, scorer, "b", 2)
        c = _order(fhe, scorer, "c", 3)
        assert [o.id for o in scorer.rank([c, a, b])] == ["a", "b", "c"]

    def test_order_type_breaks_ties(self, fhe: FHE, scorer: PriorityScorer) -> None:
        limit = _order(fhe, scorer, "limit", 1, kind=OrderKind.LIMIT)
        tp = _order(fhe, scorer, "tp", 2, kind=OrderKind.TAKE_PROFIT)
        assert [o.id for o in scorer.rank([limit, tp])] == ["tp", "limit"]

    def test_missing_score(self, fhe: FHE, scorer: PriorityScorer) -> None:
        order = _order(fhe, scorer, "x", 1)
        order.priority_score = None
        with pytest.raises(ValueError, match="without priority score"):
            scorer.rank([order])
