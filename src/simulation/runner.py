"""
Event-driven simulation: replay a scenario timeline through the engine.

Client-side steps (encrypting order parameters, prices and liquidity) run
here against the same runtime the engine uses. Final fill totals are read
back as each order's owner would read them, through the runtime's access
list.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable

from config.engine_config import EngineConfig
from runtime.local import LocalRuntime
from shadow_core.contracts import OrderParams, OrderStatus, TickContext, TickFill
from shadow_core.encrypted import FHE
from shadow_core.engine import ShadowEngine
from shadow_core.errors import ShadowTradeError
from simulation.scenario import AdminEvent, CancelEvent, PlaceEvent, Scenario, TickEvent

logger = logging.getLogger("shadow.simulation")


@dataclass
class SimulatedOrder:
    """Final view of one scenario order, as its owner sees it."""

    ref: str
    order_id: str
    owner: str
    status: OrderStatus
    size: int
    filled: int
    fills: int


@dataclass
class SimulationResult:
    pool: str
    ticks: int = 0
    fills: list[tuple[int, str, TickFill]] = field(default_factory=list)   # (time, ref, fill)
    orders: list[SimulatedOrder] = field(default_factory=list)
    rejected: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def total_filled(self) -> int:
        return sum(f.fill_amount for _, _, f in self.fills if f.committed)

    @property
    def total_fees(self) -> int:
        return sum(f.fee for _, _, f in self.fills if f.committed)


def _encrypt_order(fhe: FHE, event: PlaceEvent, pool: str, now: int) -> OrderParams:
    expires_at = now + event.expires_in
    return OrderParams(
        owner=event.owner,
        pool_id=pool,
        trigger_price=fhe.as_euint128(event.trigger_price),
        size=fhe.as_euint128(event.size),
        direction=fhe.as_euint8(int(event.direction)),
        expiration=fhe.as_euint64(expires_at),
        min_fill_size=fhe.as_euint128(event.min_fill_size),
        partial_fill_allowed=fhe.as_ebool(event.partial_fill_allowed),
        expiration_hint=expires_at,
        order_kind=event.order_kind,
        auto_renewal=fhe.as_ebool(True) if event.auto_renew else None,
        renewal_period=event.renewal_period,
    )


def run_simulation(
    scenario: Scenario,
    config: EngineConfig | None = None,
    *,
    runtime: LocalRuntime | None = None,
    engine_address: str = "shadow-engine",
    admin: str | None = None,
    event_callback: Callable[[str, dict], None] | None = None,
) -> SimulationResult:
    """Run every scenario event in time order and collect fills and final order state."""
    runtime = runtime or LocalRuntime()
    engine = ShadowEngine(
        runtime,
        config,
        engine_address=engine_address,
        admin=admin,
        event_callback=event_callback,
    )
    fhe = engine.fhe
    result = SimulationResult(pool=scenario.pool)
    refs: dict[str, str] = {}
    sizes: dict[str, int] = {}
    by_id: dict[str, str] = {}

    for event in scenario.events:
        now = scenario.start + event.at

        if isinstance(event, PlaceEvent):
            try:
                order_id = engine.place_order(_encrypt_order(fhe, event, scenario.pool, now), now)
            except ShadowTradeError as exc:
                logger.info("Order %s rejected: %s", event.ref, exc)
                result.rejected.append(event.ref)
                continue
            refs[event.ref] = order_id
            sizes[event.ref] = event.size
            by_id[order_id] = event.ref

        elif isinstance(event, CancelEvent):
            order_id = refs.get(event.ref)
            if order_id is None:
                result.errors.append(f"t+{event.at}: cancel of unknown order '{event.ref}'")
                continue
            try:
                if event.emergency:
                    engine.emergency_cancel(order_id, event.caller)
                else:
                    engine.cancel(order_id, event.caller)
            except ShadowTradeError as exc:
                logger.warning("Cancel of %s by %s failed: %s", event.ref, event.caller, exc)
                result.errors.append(f"t+{event.at}: cancel {event.ref}: {exc}")

        elif isinstance(event, AdminEvent):
            try:
                if event.action == "pause":
                    engine.pause(event.caller)
                else:
                    engine.unpause(event.caller)
            except ShadowTradeError as exc:
                logger.warning("%s by %s failed: %s", event.action, event.caller, exc)
                result.errors.append(f"t+{event.at}: {event.action}: {exc}")

        elif isinstance(event, TickEvent):
            context = TickContext(
                pool_id=scenario.pool,
                now=now,
                liquidity=fhe.as_euint128(event.liquidity),
                counterparty=scenario.counterparty,
                max_slippage_bps=event.max_slippage_bps,
            )
            fills = engine.on_tick(context, fhe.as_euint128(event.price), is_pre_settlement_pass=event.pre_settlement)
            result.ticks += 1
            for fill in fills:
                ref = by_id.get(fill.order_id, fill.order_id)
                if fill.error:
                    result.errors.append(f"t+{event.at}: {ref}: {fill.error}")
                    continue
                result.fills.append((now, ref, fill))

    for ref, order_id in refs.items():
        order = engine.get_order(order_id)
        result.orders.append(
            SimulatedOrder(
                ref=ref,
                order_id=order_id,
                owner=order.owner,
                status=order.status,
                size=sizes[ref],
                filled=runtime.decrypt_for(order.filled_amount, order.owner),
                fills=len(engine.get_fill_history(order_id)),
            )
        )
    return result
