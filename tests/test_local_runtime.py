"""Tests for the local compute runtime and the FHE facade: width semantics, ACL, pending reveals."""

import pytest

from runtime import get_runtime
from runtime.local import LocalRuntime
from shadow_core.encrypted import FHE, EncryptedType


class TestArithmetic:
    def test_add_and_sub(self, fhe: FHE, runtime: LocalRuntime) -> None:
        a, b = fhe.as_euint128(7), fhe.as_euint128(3)
        assert runtime.reveal(fhe.add(a, b)) == 10
        assert runtime.reveal(fhe.sub(a, b)) == 4

    def test_sub_wraps_modulo_width(self, fhe: FHE, runtime: LocalRuntime) -> None:
        out = fhe.sub(fhe.as_euint8(1), fhe.as_euint8(2))
        assert runtime.reveal(out) == 255
        assert out.etype == EncryptedType.UINT8

    def test_mul_wraps(self, fhe: FHE, runtime: LocalRuntime) -> None:
        assert runtime.reveal(fhe.mul(fhe.as_euint8(16), fhe.as_euint8(17))) == (16 * 17) % 256

    def test_div_by_zero_is_type_max(self, fhe: FHE, runtime: LocalRuntime) -> None:
        out = fhe.div(fhe.as_euint64(5), fhe.as_euint64(0))
        assert runtime.reveal(out) == 2**64 - 1

    def test_mixed_widths_promote(self, fhe: FHE, runtime: LocalRuntime) -> None:
        out = fhe.add(fhe.as_euint8(200), fhe.as_euint128(100))
        assert out.etype == EncryptedType.UINT128
        assert runtime.reveal(out) == 300

    def test_min_max_abs_diff(self, fhe: FHE, runtime: LocalRuntime) -> None:
        a, b = fhe.as_euint128(3), fhe.as_euint128(9)
        assert runtime.reveal(fhe.min(a, b)) == 3
        assert runtime.reveal(fhe.max(a, b)) == 9
        assert runtime.reveal(fhe.abs_diff(a, b)) == 6
        assert runtime.reveal(fhe.abs_diff(b, a)) == 6

    def test_negative_plaintext_rejected(self, runtime: LocalRuntime) -> None:
        with pytest.raises(ValueError):
            runtime.encrypt(-1, EncryptedType.UINT64)

    def test_arithmetic_on_bool_rejected(self, fhe: FHE) -> None:
        with pytest.raises(TypeError):
            fhe.add(fhe.as_ebool(True), fhe.as_euint8(1))


class TestBooleans:
    def test_comparisons_produce_ebool(self, fhe: FHE, runtime: LocalRuntime) -> None:
        flag = fhe.lte(fhe.as_euint128(5), fhe.as_euint128(5))
        assert flag.is_bool
        assert runtime.reveal(flag) == 1

    def test_logic(self, fhe: FHE, runtime: LocalRuntime) -> None:
        t, f = fhe.as_ebool(True), fhe.as_ebool(False)
        assert runtime.reveal(fhe.and_(t, f)) == 0
        assert runtime.reveal(fhe.or_(t, f)) == 1
        assert runtime.reveal(fhe.not_(f)) == 1

    def test_all_of_folds_every_flag(self, fhe: FHE, runtime: LocalRuntime) -> None:
        flags = [fhe.as_ebool(True), fhe.as_ebool(True), fhe.as_ebool(False)]
        assert runtime.reveal(fhe.all_of(flags)) == 0
        assert runtime.reveal(fhe.all_of([])) == 1

    def test_select(self, fhe: FHE, runtime: LocalRuntime) -> None:
        a, b = fhe.as_euint128(1), fhe.as_euint128(2)
        assert runtime.reveal(fhe.select(fhe.as_ebool(True), a, b)) == 1
        assert runtime.reveal(fhe.select(fhe.as_ebool(False), a, b)) == 2

    def test_select_needs_bool_condition(self, fhe: FHE) -> None:
        with pytest.raises(TypeError):
            fhe.select(fhe.as_euint8(1), fhe.as_euint8(1), fhe.as_euint8(2))


class TestAccessAndReveal:
    def test_decrypt_for_requires_grant(self, fhe: FHE, runtime: LocalRuntime) -> None:
        ct = fhe.as_euint128(42)
        with pytest.raises(PermissionError):
            runtime.decrypt_for(ct, "mallory")
        runtime.allow(ct, "alice")
        assert runtime.decrypt_for(ct, "alice") == 42
        runtime.revoke(ct, "alice")
        assert not runtime.is_allowed(ct, "alice")

    def test_pending_reveal_is_indeterminate_until_resolved(self, fhe: FHE, runtime: LocalRuntime) -> None:
        ct = fhe.as_ebool(True)
        runtime.mark_pending(ct)
        assert runtime.reveal(ct) is None
        runtime.resolve(ct)
        assert runtime.reveal(ct) == 1

    def test_handles_are_opaque_and_unique(self, fhe: FHE) -> None:
        a = fhe.as_euint128(5)
        b = fhe.as_euint128(5)
        assert a.handle != b.handle


def test_get_runtime_known_and_unknown() -> None:
    assert isinstance(get_runtime("local"), LocalRuntime)
    with pytest.raises(ValueError, match="Unsupported runtime backend"):
        get_runtime("tfhe-gpu")
