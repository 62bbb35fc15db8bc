"""
Local confidential-compute runtime: plaintext table behind opaque handles.

Implements the ``ComputeRuntime`` protocol in-process so the engine can be
developed, simulated and tested without a real FHE coprocessor. Values live
in a private table keyed by handle; the engine only ever sees handles.

Semantics follow FHE integer types:
    - arithmetic wraps modulo 2**bits of the result type
    - division by zero yields the type maximum (no exception on secret data)
    - mixed-width operands are promoted to the wider type
    - comparisons and boolean ops produce ``ebool``

Handles listed via ``mark_pending`` reveal as ``None`` (indeterminate) until
``resolve`` is called, which is how tests exercise the default-on-indeterminate
path of the Decision Evaluator.
"""

from __future__ import annotations

import itertools
import logging
from collections import defaultdict

from shadow_core.encrypted import (
    BOOLEAN_OPS,
    COMPARISONS,
    BinaryOp,
    Ciphertext,
    EncryptedType,
    UnaryOp,
)

logger = logging.getLogger("shadow.runtime")

_WIDTH_ORDER = [
    EncryptedType.BOOL,
    EncryptedType.UINT8,
    EncryptedType.UINT32,
    EncryptedType.UINT64,
    EncryptedType.UINT128,
]


def _wider(a: EncryptedType, b: EncryptedType) -> EncryptedType:
    return a if _WIDTH_ORDER.index(a) >= _WIDTH_ORDER.index(b) else b


class LocalRuntime:
    """In-process runtime. Single writer; not thread-safe."""

    def __init__(self) -> None:
        self._values: dict[int, int] = {}
        self._types: dict[int, EncryptedType] = {}
        self._acl: dict[int, set[str]] = defaultdict(set)
        self._pending: set[int] = set()
        self._counter = itertools.count(1)
        self.op_count = 0

    # ------------------------------------------------------------------
    # Table management
    # ------------------------------------------------------------------

    def _store(self, value: int, etype: EncryptedType) -> Ciphertext:
        handle = next(self._counter)
        self._values[handle] = value & etype.max_value
        self._types[handle] = etype
        return Ciphertext(handle=handle, etype=etype)

    def _load(self, ct: Ciphertext) -> int:
        try:
            return self._values[ct.handle]
        except KeyError:
            raise KeyError(f"Unknown ciphertext handle: {ct.handle}") from None

    def __len__(self) -> int:
        return len(self._values)

    # ------------------------------------------------------------------
    # ComputeRuntime protocol
    # ------------------------------------------------------------------

    def encrypt(self, value: int, etype: EncryptedType) -> Ciphertext:
        if value < 0:
            raise ValueError(f"Encrypted integers are unsigned, got {value}")
        if etype == EncryptedType.BOOL:
            value = 1 if value else 0
        return self._store(int(value), etype)

    def binary(self, op: BinaryOp, lhs: Ciphertext, rhs: Ciphertext) -> Ciphertext:
        self.op_count += 1
        a = self._load(lhs)
        b = self._load(rhs)

        if op in BOOLEAN_OPS:
            if not (lhs.is_bool and rhs.is_bool):
                raise TypeError(f"{op.value} requires ebool operands, got {lhs.etype.value}/{rhs.etype.value}")
            result = (a and b) if op == BinaryOp.AND else (a or b)
            return self._store(1 if result else 0, EncryptedType.BOOL)

        if op in COMPARISONS:
            if lhs.is_bool != rhs.is_bool:
                raise TypeError(f"Cannot compare {lhs.etype.value} with {rhs.etype.value}")
            outcome = {
                BinaryOp.EQ: a == b,
                BinaryOp.NE: a != b,
                BinaryOp.LT: a < b,
                BinaryOp.LTE: a <= b,
                BinaryOp.GT: a > b,
                BinaryOp.GTE: a >= b,
            }[op]
            return self._store(1 if outcome else 0, EncryptedType.BOOL)

        if lhs.is_bool or rhs.is_bool:
            raise TypeError(f"{op.value} is not defined on ebool")

        etype = _wider(lhs.etype, rhs.etype)
        if op == BinaryOp.ADD:
            value = a + b
        elif op == BinaryOp.SUB:
            value = a - b
        elif op == BinaryOp.MUL:
            value = a * b
        elif op == BinaryOp.DIV:
            value = etype.max_value if b == 0 else a // b
        elif op == BinaryOp.MIN:
            value = min(a, b)
        elif op == BinaryOp.MAX:
            value = max(a, b)
        else:
            raise ValueError(f"Unsupported binary op: {op}")
        return self._store(value % (etype.max_value + 1), etype)

    def unary(self, op: UnaryOp, operand: Ciphertext) -> Ciphertext:
        self.op_count += 1
        if op != UnaryOp.NOT:
            raise ValueError(f"Unsupported unary op: {op}")
        value = self._load(operand)
        if operand.is_bool:
            return self._store(0 if value else 1, EncryptedType.BOOL)
        return self._store(~value & operand.etype.max_value, operand.etype)

    def select(self, condition: Ciphertext, if_true: Ciphertext, if_false: Ciphertext) -> Ciphertext:
        self.op_count += 1
        if not condition.is_bool:
            raise TypeError(f"select condition must be ebool, got {condition.etype.value}")
        if if_true.is_bool != if_false.is_bool:
            raise TypeError("select branches must both be ebool or both be integers")
        etype = _wider(if_true.etype, if_false.etype)
        chosen = self._load(if_true) if self._load(condition) else self._load(if_false)
        return self._store(chosen, etype)

    def cast(self, operand: Ciphertext, etype: EncryptedType) -> Ciphertext:
        self.op_count += 1
        value = self._load(operand)
        if etype == EncryptedType.BOOL:
            value = 1 if value else 0
        return self._store(value, etype)

    def reveal(self, ciphertext: Ciphertext) -> int | None:
        if ciphertext.handle in self._pending:
            logger.debug("Reveal pending for handle %d", ciphertext.handle)
            return None
        return self._load(ciphertext)

    def allow(self, ciphertext: Ciphertext, grantee: str) -> None:
        self._load(ciphertext)
        self._acl[ciphertext.handle].add(grantee)

    def revoke(self, ciphertext: Ciphertext, grantee: str) -> None:
        self._acl[ciphertext.handle].discard(grantee)

    def is_allowed(self, ciphertext: Ciphertext, grantee: str) -> bool:
        return grantee in self._acl.get(ciphertext.handle, ())

    # ------------------------------------------------------------------
    # Client-side helpers (outside the engine's trust boundary)
    # ------------------------------------------------------------------

    def decrypt_for(self, ciphertext: Ciphertext, requester: str) -> int:
        """Sealed-output decryption for a party holding a grant."""
        if not self.is_allowed(ciphertext, requester):
            raise PermissionError(f"{requester} may not decrypt handle {ciphertext.handle}")
        return self._load(ciphertext)

    def mark_pending(self, ciphertext: Ciphertext) -> None:
        self._pending.add(ciphertext.handle)

    def resolve(self, ciphertext: Ciphertext) -> None:
        self._pending.discard(ciphertext.handle)
