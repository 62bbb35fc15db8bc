"""
shadow-core: confidential limit-order engine over opaque ciphertext handles.

No I/O, no network. Order parameters arrive encrypted, every comparison
and amount stays encrypted, and the only plaintext that ever leaves the
compute runtime is a boolean or fill amount revealed at the decision
boundary.
"""

from shadow_core.contracts import (
    Direction,
    Fill,
    FillState,
    Order,
    OrderFillInfo,
    OrderKind,
    OrderParams,
    OrderStatus,
    PartialFillState,
    TickContext,
    TickFill,
)
from shadow_core.encrypted import FHE, Ciphertext, ComputeRuntime, EncryptedType
from shadow_core.engine import ShadowEngine
from shadow_core.errors import (
    AuthorizationError,
    EvaluationIndeterminate,
    NotFoundError,
    ShadowTradeError,
    ValidationError,
)

__all__ = [
    "AuthorizationError",
    "Ciphertext",
    "ComputeRuntime",
    "Direction",
    "EncryptedType",
    "EvaluationIndeterminate",
    "FHE",
    "Fill",
    "FillState",
    "NotFoundError",
    "Order",
    "OrderFillInfo",
    "OrderKind",
    "OrderParams",
    "OrderStatus",
    "PartialFillState",
    "ShadowEngine",
    "ShadowTradeError",
    "TickContext",
    "TickFill",
    "ValidationError",
]
