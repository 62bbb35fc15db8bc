"""Pytest fixtures: local runtime, engine and encrypted order parameters."""

import pytest

from config.engine_config import EngineConfig, FeesConfig, LimitsConfig
from runtime.local import LocalRuntime
from shadow_core.contracts import Direction, OrderKind, OrderParams, TickContext
from shadow_core.decision import DecisionEvaluator
from shadow_core.encrypted import FHE
from shadow_core.engine import ShadowEngine

NOW = 1_700_000_000
ADMIN = "admin"
ENGINE = "shadow-engine"
POOL = "ETH-USDC"


def make_params(
    fhe: FHE,
    *,
    owner: str = "alice",
    pool_id: str = POOL,
    trigger_price: int = 2000,
    size: int = 10,
    direction: Direction = Direction.BUY,
    expires_at: int = NOW + 3600,
    min_fill_size: int = 1,
    partial_fill_allowed: bool = True,
    expiration_hint: int | None = None,
    order_kind: OrderKind = OrderKind.LIMIT,
    auto_renew: bool | None = None,
    renewal_period: int = 0,
) -> OrderParams:
    """Client-side encryption of a plaintext order."""
    return OrderParams(
        owner=owner,
        pool_id=pool_id,
        trigger_price=fhe.as_euint128(trigger_price),
        size=fhe.as_euint128(size),
        direction=fhe.as_euint8(int(direction)),
        expiration=fhe.as_euint64(expires_at),
        min_fill_size=fhe.as_euint128(min_fill_size),
        partial_fill_allowed=fhe.as_ebool(partial_fill_allowed),
        expiration_hint=expires_at if expiration_hint is None else expiration_hint,
        order_kind=order_kind,
        auto_renewal=None if auto_renew is None else fhe.as_ebool(auto_renew),
        renewal_period=renewal_period,
    )


def make_tick(fhe: FHE, *, now: int = NOW + 60, liquidity: int = 100, pool_id: str = POOL,
              counterparty: str = "mm-desk", max_slippage_bps: int | None = None) -> TickContext:
    return TickContext(
        pool_id=pool_id,
        now=now,
        liquidity=fhe.as_euint128(liquidity),
        counterparty=counterparty,
        max_slippage_bps=max_slippage_bps,
    )


@pytest.fixture
def runtime() -> LocalRuntime:
    return LocalRuntime()


@pytest.fixture
def fhe(runtime: LocalRuntime) -> FHE:
    return FHE(runtime)


@pytest.fixture
def decision(fhe: FHE) -> DecisionEvaluator:
    return DecisionEvaluator(fhe)


@pytest.fixture
def engine_config() -> EngineConfig:
    """No fee, permissive limits: keeps fill arithmetic easy to follow."""
    return EngineConfig(
        fees=FeesConfig(execution_fee_bps=0),
        limits=LimitsConfig(min_order_size=1, max_order_duration_s=None, max_fill_history=256),
    )


@pytest.fixture
def events() -> list[tuple[str, dict]]:
    return []


@pytest.fixture
def engine(runtime: LocalRuntime, engine_config: EngineConfig, events: list) -> ShadowEngine:
    return ShadowEngine(
        runtime,
        engine_config,
        engine_address=ENGINE,
        admin=ADMIN,
        event_callback=lambda event_type, payload: events.append((event_type, payload)),
    )
