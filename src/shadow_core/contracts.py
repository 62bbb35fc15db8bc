"""
Data contracts for shadow-core: Order, Fill, PartialFillState, ExpirationRecord.

Secret order parameters are ``Ciphertext`` handles; only lifecycle metadata
(owner, pool, creation time, status) is plaintext. No I/O; these are plain
dataclasses.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum

from shadow_core.encrypted import Ciphertext


class Direction(IntEnum):
    """Encoded order direction (encrypted as euint8)."""

    BUY = 0
    SELL = 1


class OrderKind(IntEnum):
    """Order type used as the last priority tie-breaker."""

    LIMIT = 0
    STOP = 1
    TAKE_PROFIT = 2


class OrderStatus(str, Enum):
    """Public lifecycle label of an order."""

    ACTIVE = "active"
    PARTIALLY_FILLED = "partially_filled"
    COMPLETED = "completed"
    EXPIRED = "expired"
    CANCELLED = "cancelled"

    @property
    def is_open(self) -> bool:
        return self in (OrderStatus.ACTIVE, OrderStatus.PARTIALLY_FILLED)


class FillState(str, Enum):
    """Partial fill tracker state machine."""

    UNFILLED = "UNFILLED"
    PARTIALLY_FILLED = "PARTIALLY_FILLED"
    FULLY_FILLED = "FULLY_FILLED"


class PermissionScope(str, Enum):
    """Why a grant was issued."""

    ENGINE = "ENGINE"
    OWNER = "OWNER"
    COUNTERPARTY = "COUNTERPARTY"


@dataclass(frozen=True)
class OrderParams:
    """Client-side order submission. Secret fields arrive already encrypted."""

    owner: str
    pool_id: str
    trigger_price: Ciphertext
    size: Ciphertext
    direction: Ciphertext
    expiration: Ciphertext
    min_fill_size: Ciphertext
    partial_fill_allowed: Ciphertext
    expiration_hint: int              # public sweep scheduling time (unix seconds)
    order_kind: OrderKind = OrderKind.LIMIT
    auto_renewal: Ciphertext | None = None
    renewal_period: int = 0


@dataclass
class Order:
    """Stored order. Mutated per tick by the engine; never re-activated."""

    id: str
    owner: str
    pool_id: str
    trigger_price: Ciphertext
    size: Ciphertext
    direction: Ciphertext
    filled_amount: Ciphertext
    expiration: Ciphertext
    min_fill_size: Ciphertext
    is_active: Ciphertext
    partial_fill_allowed: Ciphertext
    created_at: int
    sequence: int
    order_kind: OrderKind = OrderKind.LIMIT
    status: OrderStatus = OrderStatus.ACTIVE
    priority_score: Ciphertext | None = None


@dataclass(frozen=True)
class Fill:
    """One fill event. Append-only per order."""

    order_id: str
    amount: Ciphertext
    price: Ciphertext
    timestamp: Ciphertext
    index: int


@dataclass
class PartialFillState:
    """Running aggregates for one order."""

    order_id: str
    total_filled: Ciphertext
    average_fill_price: Ciphertext
    fill_count: Ciphertext
    last_fill_time: Ciphertext
    fills_recorded: int = 0           # plaintext count of fill events (public)
    state: FillState = FillState.UNFILLED


@dataclass
class ExpirationRecord:
    """Sweep bookkeeping for one order."""

    order_id: str
    expiration_time: int              # public scheduling time
    expiration: Ciphertext            # authoritative encrypted expiration
    creation_time: int
    auto_renewal: Ciphertext | None = None
    renewal_period: int = 0
    renewals: int = 0


@dataclass(frozen=True)
class PermissionGrant:
    """A decrypt right issued alongside a produced ciphertext."""

    ciphertext: Ciphertext
    grantee: str
    scope: PermissionScope
    label: str = ""


@dataclass(frozen=True)
class OrderFillInfo:
    """Encrypted fill summary for an order."""

    order_id: str
    total_filled: Ciphertext
    remaining: Ciphertext
    average_fill_price: Ciphertext
    fill_count: Ciphertext


@dataclass(frozen=True)
class TickContext:
    """Per-tick inputs supplied by the settlement venue."""

    pool_id: str
    now: int
    liquidity: Ciphertext
    counterparty: str
    max_slippage_bps: int | None = None


@dataclass(frozen=True)
class TickFill:
    """Per-order outcome of one tick.

    ``fill_amount`` is the revealed plaintext amount handed to settlement.
    A non-empty ``error`` means the order faulted and was left untouched.
    """

    order_id: str
    fill_amount: int
    execution_price: Ciphertext | None
    still_active: bool
    fee: int = 0
    committed: bool = True
    error: str | None = None


@dataclass(frozen=True)
class SweepResult:
    """Outcome of one expiration-bucket sweep."""

    hour: int
    expired: list[str] = field(default_factory=list)
    renewed: list[str] = field(default_factory=list)
    deferred: list[str] = field(default_factory=list)
