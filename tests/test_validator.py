"""Tests for the Order Validator: encrypted creation verdict."""

import pytest

from conftest import NOW
from shadow_core.decision import DecisionEvaluator
from shadow_core.encrypted import FHE
from shadow_core.validator import OrderValidator


@pytest.fixture
def validator(decision: DecisionEvaluator) -> OrderValidator:
    return OrderValidator(decision)


def _verdict(fhe: FHE, validator: OrderValidator, trigger=2000, size=10, expiration=NOW + 60, min_fill=1):
    return validator.validate(
        fhe.as_euint128(trigger), fhe.as_euint128(size), fhe.as_euint64(expiration), fhe.as_euint128(min_fill), NOW,
    )


class TestBasePredicates:
    def test_valid_order(self, fhe: FHE, validator: OrderValidator) -> None:
        assert validator.is_valid(_verdict(fhe, validator)) is True

    @pytest.mark.parametrize(
        "overrides",
        [
            {"trigger": 0},
            {"size": 0},
            {"expiration": NOW},
            {"expiration": NOW - 1},
            {"min_fill": 11},
        ],
    )
    def test_each_predicate_rejects(self, fhe: FHE, validator: OrderValidator, overrides: dict) -> None:
        assert validator.is_valid(_verdict(fhe, validator, **overrides)) is False

    def test_min_fill_equal_to_size_is_valid(self, fhe: FHE, validator: OrderValidator) -> None:
        assert validator.is_valid(_verdict(fhe, validator, min_fill=10)) is True

    def test_verdict_is_encrypted_bool(self, fhe: FHE, validator: OrderValidator) -> None:
        assert _verdict(fhe, validator).is_bool

    def test_indeterminate_verdict_rejects(self, fhe: FHE, runtime, validator: OrderValidator) -> None:
        verdict = _verdict(fhe, validator)
        runtime.mark_pending(verdict)
        assert validator.is_valid(verdict) is False


class TestLimits:
    def _limited(self, fhe: FHE, validator: OrderValidator, size: int, expiration: int):
        return validator.validate_with_limits(
            fhe.as_euint128(2000), fhe.as_euint128(size), fhe.as_euint64(expiration), fhe.as_euint128(1), NOW,
            min_order_size=5, max_order_duration_s=3600,
        )

    def test_within_limits(self, fhe: FHE, validator: OrderValidator) -> None:
        assert validator.is_valid(self._limited(fhe, validator, 5, NOW + 3600)) is True

    def test_below_min_size(self, fhe: FHE, validator: OrderValidator) -> None:
        assert validator.is_valid(self._limited(fhe, validator, 4, NOW + 60)) is False

    def test_beyond_max_duration(self, fhe: FHE, validator: OrderValidator) -> None:
        assert validator.is_valid(self._limited(fhe, validator, 5, NOW + 3601)) is False
