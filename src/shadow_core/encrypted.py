"""
Encrypted value layer: ciphertext handles and homomorphic primitives.

Every operation here returns another ``Ciphertext``; nothing in this module
ever produces a plaintext from secret data. The only way out is the
Decision Evaluator (``shadow_core.decision``), which calls ``reveal``.

The arithmetic itself is done by a confidential-compute runtime that
implements ``ComputeRuntime``. ``runtime.local.LocalRuntime`` is the
in-process implementation used for development and tests.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Protocol


class EncryptedType(str, Enum):
    """Encrypted integer widths, mirroring the FHE type family."""

    BOOL = "ebool"
    UINT8 = "euint8"
    UINT32 = "euint32"
    UINT64 = "euint64"
    UINT128 = "euint128"

    @property
    def bits(self) -> int:
        return _BITS[self]

    @property
    def max_value(self) -> int:
        return (1 << _BITS[self]) - 1


_BITS = {
    EncryptedType.BOOL: 1,
    EncryptedType.UINT8: 8,
    EncryptedType.UINT32: 32,
    EncryptedType.UINT64: 64,
    EncryptedType.UINT128: 128,
}


@dataclass(frozen=True)
class Ciphertext:
    """Opaque reference to an encrypted value held by the runtime."""

    handle: int
    etype: EncryptedType

    @property
    def is_bool(self) -> bool:
        return self.etype == EncryptedType.BOOL

    def __repr__(self) -> str:
        return f"Ciphertext({self.etype.value}#{self.handle})"


class BinaryOp(str, Enum):
    ADD = "add"
    SUB = "sub"
    MUL = "mul"
    DIV = "div"
    MIN = "min"
    MAX = "max"
    EQ = "eq"
    NE = "ne"
    LT = "lt"
    LTE = "lte"
    GT = "gt"
    GTE = "gte"
    AND = "and"
    OR = "or"


class UnaryOp(str, Enum):
    NOT = "not"


COMPARISONS = frozenset({BinaryOp.EQ, BinaryOp.NE, BinaryOp.LT, BinaryOp.LTE, BinaryOp.GT, BinaryOp.GTE})
BOOLEAN_OPS = frozenset({BinaryOp.AND, BinaryOp.OR})


class ComputeRuntime(Protocol):
    """Protocol for the confidential-compute collaborator.

    Implementations own the ciphertext table, the homomorphic evaluation and
    the access-control list. From the engine's point of view every call
    returns immediately; ``reveal`` returns ``None`` when the plaintext is not
    (yet) available.
    """

    def encrypt(self, value: int, etype: EncryptedType) -> Ciphertext:
        """Encrypt a public constant (trivial encryption) or client input."""
        ...

    def binary(self, op: BinaryOp, lhs: Ciphertext, rhs: Ciphertext) -> Ciphertext:
        ...

    def unary(self, op: UnaryOp, operand: Ciphertext) -> Ciphertext:
        ...

    def select(self, condition: Ciphertext, if_true: Ciphertext, if_false: Ciphertext) -> Ciphertext:
        ...

    def cast(self, operand: Ciphertext, etype: EncryptedType) -> Ciphertext:
        ...

    def reveal(self, ciphertext: Ciphertext) -> int | None:
        """Decrypt for the engine. ``None`` means indeterminate."""
        ...

    def allow(self, ciphertext: Ciphertext, grantee: str) -> None:
        ...

    def revoke(self, ciphertext: Ciphertext, grantee: str) -> None:
        ...

    def is_allowed(self, ciphertext: Ciphertext, grantee: str) -> bool:
        ...


class FHE:
    """Homomorphic operation facade bound to one runtime.

    Method names follow the FHE library vocabulary (``add``, ``gte``,
    ``select`` ...). Integer operands of different widths are promoted to the
    wider type by the runtime.
    """

    def __init__(self, runtime: ComputeRuntime) -> None:
        self._runtime = runtime

    @property
    def runtime(self) -> ComputeRuntime:
        return self._runtime

    # -- constants -------------------------------------------------------

    def as_ebool(self, value: bool) -> Ciphertext:
        return self._runtime.encrypt(1 if value else 0, EncryptedType.BOOL)

    def as_euint8(self, value: int) -> Ciphertext:
        return self._runtime.encrypt(value, EncryptedType.UINT8)

    def as_euint64(self, value: int) -> Ciphertext:
        return self._runtime.encrypt(value, EncryptedType.UINT64)

    def as_euint128(self, value: int) -> Ciphertext:
        return self._runtime.encrypt(value, EncryptedType.UINT128)

    def cast(self, value: Ciphertext, etype: EncryptedType) -> Ciphertext:
        if value.etype == etype:
            return value
        return self._runtime.cast(value, etype)

    # -- arithmetic ------------------------------------------------------

    def add(self, a: Ciphertext, b: Ciphertext) -> Ciphertext:
        return self._runtime.binary(BinaryOp.ADD, a, b)

    def sub(self, a: Ciphertext, b: Ciphertext) -> Ciphertext:
        return self._runtime.binary(BinaryOp.SUB, a, b)

    def mul(self, a: Ciphertext, b: Ciphertext) -> Ciphertext:
        return self._runtime.binary(BinaryOp.MUL, a, b)

    def div(self, a: Ciphertext, b: Ciphertext) -> Ciphertext:
        return self._runtime.binary(BinaryOp.DIV, a, b)

    def min(self, a: Ciphertext, b: Ciphertext) -> Ciphertext:
        return self._runtime.binary(BinaryOp.MIN, a, b)

    def max(self, a: Ciphertext, b: Ciphertext) -> Ciphertext:
        return self._runtime.binary(BinaryOp.MAX, a, b)

    def abs_diff(self, a: Ciphertext, b: Ciphertext) -> Ciphertext:
        """|a - b| without a host branch: both differences, then select."""
        return self.select(self.gte(a, b), self.sub(a, b), self.sub(b, a))

    # -- comparisons -----------------------------------------------------

    def eq(self, a: Ciphertext, b: Ciphertext) -> Ciphertext:
        return self._runtime.binary(BinaryOp.EQ, a, b)

    def ne(self, a: Ciphertext, b: Ciphertext) -> Ciphertext:
        return self._runtime.binary(BinaryOp.NE, a, b)

    def lt(self, a: Ciphertext, b: Ciphertext) -> Ciphertext:
        return self._runtime.binary(BinaryOp.LT, a, b)

    def lte(self, a: Ciphertext, b: Ciphertext) -> Ciphertext:
        return self._runtime.binary(BinaryOp.LTE, a, b)

    def gt(self, a: Ciphertext, b: Ciphertext) -> Ciphertext:
        return self._runtime.binary(BinaryOp.GT, a, b)

    def gte(self, a: Ciphertext, b: Ciphertext) -> Ciphertext:
        return self._runtime.binary(BinaryOp.GTE, a, b)

    # -- boolean logic ---------------------------------------------------

    def and_(self, a: Ciphertext, b: Ciphertext) -> Ciphertext:
        return self._runtime.binary(BinaryOp.AND, a, b)

    def or_(self, a: Ciphertext, b: Ciphertext) -> Ciphertext:
        return self._runtime.binary(BinaryOp.OR, a, b)

    def not_(self, a: Ciphertext) -> Ciphertext:
        return self._runtime.unary(UnaryOp.NOT, a)

    def all_of(self, flags: Iterable[Ciphertext]) -> Ciphertext:
        """Encrypted AND of every flag; every flag is folded in, no early exit."""
        result: Ciphertext | None = None
        for flag in flags:
            result = flag if result is None else self.and_(result, flag)
        if result is None:
            return self.as_ebool(True)
        return result

    def select(self, condition: Ciphertext, if_true: Ciphertext, if_false: Ciphertext) -> Ciphertext:
        return self._runtime.select(condition, if_true, if_false)
