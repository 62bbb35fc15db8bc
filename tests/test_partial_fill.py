"""Tests for the Partial Fill Tracker: VWAP, completion, history and state machine."""

import pytest

from conftest import NOW
from shadow_core.contracts import FillState
from shadow_core.encrypted import FHE
from shadow_core.errors import ValidationError
from shadow_core.partial_fill import PartialFillTracker


@pytest.fixture
def tracker(fhe: FHE) -> PartialFillTracker:
    return PartialFillTracker(fhe)


def _fill(fhe: FHE, tracker: PartialFillTracker, amount: int, price: int, size: int = 10, oid: str = "o1", now: int = NOW):
    return tracker.execute_partial_fill(oid, fhe.as_euint128(amount), fhe.as_euint128(price), fhe.as_euint128(size), now)


class TestAggregates:
    def test_first_fill_sets_average(self, fhe: FHE, runtime, tracker: PartialFillTracker) -> None:
        _fill(fhe, tracker, 3, 2000)
        state = tracker.get_state("o1")
        assert runtime.reveal(state.average_fill_price) == 2000
        assert runtime.reveal(state.total_filled) == 3
        assert runtime.reveal(state.fill_count) == 1
        assert state.state == FillState.PARTIALLY_FILLED

    def test_volume_weighted_average(self, fhe: FHE, runtime, tracker: PartialFillTracker) -> None:
        _fill(fhe, tracker, 3, 2000)
        _fill(fhe, tracker, 2, 2050)
        state = tracker.get_state("o1")
        assert runtime.reveal(state.average_fill_price) == 2020
        assert runtime.reveal(state.total_filled) == 5
        assert runtime.reveal(state.fill_count) == 2

    def test_zero_fill_leaves_average(self, fhe: FHE, runtime, tracker: PartialFillTracker) -> None:
        _fill(fhe, tracker, 3, 2000)
        _fill(fhe, tracker, 0, 9999)
        state = tracker.get_state("o1")
        assert runtime.reveal(state.average_fill_price) == 2000
        assert runtime.reveal(state.fill_count) == 1

    def test_zero_fill_still_recorded(self, fhe: FHE, runtime, tracker: PartialFillTracker) -> None:
        _fill(fhe, tracker, 3, 2000)
        _fill(fhe, tracker, 0, 9999)
        state = tracker.get_state("o1")
        assert state.fills_recorded == 2
        history = tracker.get_fill_history("o1")
        assert [runtime.reveal(f.amount) for f in history] == [3, 0]

    def test_completion_flag(self, fhe: FHE, runtime, tracker: PartialFillTracker) -> None:
        assert runtime.reveal(_fill(fhe, tracker, 6, 2000)) == 0
        assert runtime.reveal(_fill(fhe, tracker, 4, 2000)) == 1

    def test_last_fill_time(self, fhe: FHE, runtime, tracker: PartialFillTracker) -> None:
        _fill(fhe, tracker, 1, 2000, now=NOW + 5)
        assert runtime.reveal(tracker.get_state("o1").last_fill_time) == NOW + 5


class TestStateMachine:
    def test_read_does_not_create_state(self, runtime, tracker: PartialFillTracker) -> None:
        state = tracker.get_state("ghost")
        assert state.state == FillState.UNFILLED
        assert runtime.reveal(state.total_filled) == 0
        assert not tracker.has_state("ghost")

    def test_prepare_does_not_mutate(self, fhe: FHE, tracker: PartialFillTracker) -> None:
        tracker.prepare_fill("o1", fhe.as_euint128(3), fhe.as_euint128(2000), fhe.as_euint128(10), NOW)
        assert not tracker.has_state("o1")
        assert tracker.get_fill_history("o1") == []

    def test_fully_filled_is_terminal(self, fhe: FHE, tracker: PartialFillTracker) -> None:
        _fill(fhe, tracker, 10, 2000)
        tracker.mark_fully_filled("o1")
        assert tracker.get_state("o1").state == FillState.FULLY_FILLED
        with pytest.raises(ValidationError):
            _fill(fhe, tracker, 1, 2000)

    def test_mark_without_fills(self, tracker: PartialFillTracker) -> None:
        with pytest.raises(ValidationError):
            tracker.mark_fully_filled("nope")

    def test_reset_clears_state_and_history(self, fhe: FHE, tracker: PartialFillTracker) -> None:
        _fill(fhe, tracker, 3, 2000)
        tracker.reset_partial_fill_state("o1")
        assert not tracker.has_state("o1")
        assert tracker.get_fill_history("o1") == []
        assert tracker.get_state("o1").state == FillState.UNFILLED


class TestHistory:
    def test_records_in_order(self, fhe: FHE, runtime, tracker: PartialFillTracker) -> None:
        _fill(fhe, tracker, 3, 2000)
        _fill(fhe, tracker, 2, 2050)
        history = tracker.get_fill_history("o1")
        assert [f.index for f in history] == [0, 1]
        assert [runtime.reveal(f.amount) for f in history] == [3, 2]

    def test_cap_evicts_oldest(self, fhe: FHE, runtime) -> None:
        tracker = PartialFillTracker(fhe, max_fill_history=2)
        for amount in (1, 2, 3):
            _fill(fhe, tracker, amount, 2000, size=100)
        history = tracker.get_fill_history("o1")
        assert [f.index for f in history] == [1, 2]
        state = tracker.get_state("o1")
        assert state.fills_recorded == 3
        assert runtime.reveal(state.fill_count) == 3

    def test_invalid_cap(self, fhe: FHE) -> None:
        with pytest.raises(ValueError):
            PartialFillTracker(fhe, max_fill_history=0)


class TestDerived:
    def test_minimum_fill_requirement(self, fhe: FHE, runtime, tracker: PartialFillTracker) -> None:
        size = fhe.as_euint128(100)
        tracker.execute_partial_fill("o1", fhe.as_euint128(95), fhe.as_euint128(2000), size, NOW)
        min_fill = fhe.as_euint128(10)
        assert runtime.reveal(tracker.meets_minimum_fill_requirement("o1", fhe.as_euint128(5), min_fill, size)) == 1
        assert runtime.reveal(tracker.meets_minimum_fill_requirement("o1", fhe.as_euint128(4), min_fill, size)) == 0

    def test_remaining(self, fhe: FHE, runtime, tracker: PartialFillTracker) -> None:
        _fill(fhe, tracker, 3, 2000)
        assert runtime.reveal(tracker.remaining("o1", fhe.as_euint128(10))) == 7

    def test_efficiency(self, fhe: FHE, runtime, tracker: PartialFillTracker) -> None:
        _fill(fhe, tracker, 3, 2000)
        _fill(fhe, tracker, 2, 2050)
        # on target: 10000 - 0 - 2*50
        assert runtime.reveal(tracker.calculate_fill_efficiency("o1", 2020)) == 9900
        # 20/2000 = 100 bps off
        assert runtime.reveal(tracker.calculate_fill_efficiency("o1", 2000)) == 9800

    def test_efficiency_floors_at_zero(self, fhe: FHE, runtime, tracker: PartialFillTracker) -> None:
        _fill(fhe, tracker, 1, 4000)
        assert runtime.reveal(tracker.calculate_fill_efficiency("o1", 1000)) == 0
