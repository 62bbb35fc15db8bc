"""
Engine: the per-order lifecycle and the single per-tick integration point.

    place_order ─► Validator ─► Order stored ─► grants issued
    on_tick     ─► expiration sweep ─► priority ranking ─► per order:
                   Trigger Evaluator ─► Fill Calculator ─► reveal fill
                   ─► Partial Fill Tracker ─► grants ─► TickFill

Per-order work inside a tick is computed in full before anything is
committed, so an order either receives its whole fill and bookkeeping or
nothing. A fault on one order is reported on its ``TickFill.error`` and
the rest of the batch continues.

No I/O. Lifecycle events go to the optional ``event_callback`` (the CLI
wires it to the journal and the structured event logger).
"""

from __future__ import annotations

import hashlib
import logging
from typing import Any, Callable

from config.engine_config import EngineConfig
from shadow_core.access_control import AccessControlManager
from shadow_core.contracts import (
    ExpirationRecord,
    Fill,
    Order,
    OrderFillInfo,
    OrderParams,
    OrderStatus,
    TickContext,
    TickFill,
)
from shadow_core.decision import DecisionEvaluator
from shadow_core.encrypted import FHE, Ciphertext, ComputeRuntime
from shadow_core.errors import AuthorizationError, ValidationError
from shadow_core.expiration import ExpirationManager
from shadow_core.fill_calculator import FillCalculator
from shadow_core.order_store import OrderStore
from shadow_core.partial_fill import PartialFillTracker
from shadow_core.priority import PriorityScorer, PriorityWeights
from shadow_core.trigger import TriggerEvaluator
from shadow_core.validator import OrderValidator

logger = logging.getLogger("shadow.engine")

EventCallback = Callable[[str, dict[str, Any]], None]

DEFAULT_ENGINE_ADDRESS = "shadow-engine"


class ShadowEngine:
    """Confidential order-matching engine over one compute runtime."""

    def __init__(
        self,
        runtime: ComputeRuntime,
        config: EngineConfig | None = None,
        *,
        engine_address: str = DEFAULT_ENGINE_ADDRESS,
        admin: str | None = None,
        event_callback: EventCallback | None = None,
    ) -> None:
        self._config = config or EngineConfig()
        self._admin = admin
        self._event_callback = event_callback
        self._paused = False
        self._sequence = 0

        self.fhe = FHE(runtime)
        self.decision = DecisionEvaluator(self.fhe)
        self.validator = OrderValidator(self.decision)
        self.trigger = TriggerEvaluator(self.decision)
        self.fill_calculator = FillCalculator(self.fhe, self.trigger)
        self.tracker = PartialFillTracker(
            self.fhe,
            max_fill_history=self._config.limits.max_fill_history,
            efficiency_base=self._config.efficiency.base_score,
            per_fill_penalty_bps=self._config.efficiency.per_fill_penalty_bps,
        )
        self.expirations = ExpirationManager(
            self.decision, bucket_seconds=self._config.expiration.bucket_seconds,
        )
        prio = self._config.priority
        self.priority = PriorityScorer(
            self.decision,
            PriorityWeights(
                max_time=prio.max_time,
                time_weight=prio.time_weight,
                price_divisor=prio.price_divisor,
                size_divisor=prio.size_divisor,
                type_weight=prio.type_weight,
            ),
        )
        self.acl = AccessControlManager(
            runtime, engine_address, audit_limit=self._config.limits.max_grant_audit,
        )
        self.orders = OrderStore()

    @property
    def config(self) -> EngineConfig:
        return self._config

    @property
    def paused(self) -> bool:
        return self._paused

    def _emit(self, event_type: str, **payload: Any) -> None:
        # Delivery runs after state is committed; a failing sink must not undo that.
        if self._event_callback is None:
            return
        try:
            self._event_callback(event_type, payload)
        except Exception:
            logger.exception("Event callback failed for %s", event_type)

    def _next_order_id(self, owner: str, pool_id: str, now: int) -> str:
        self._sequence += 1
        digest = hashlib.sha256(f"{owner}:{pool_id}:{now}:{self._sequence}".encode()).hexdigest()
        return f"0x{digest[:16]}"

    # ------------------------------------------------------------------
    # Admin
    # ------------------------------------------------------------------

    def _require_admin(self, caller: str) -> None:
        if self._admin is None or caller != self._admin:
            raise AuthorizationError(f"{caller} is not the engine admin")

    def pause(self, caller: str) -> None:
        self._require_admin(caller)
        self._paused = True
        logger.warning("Engine paused by %s", caller)

    def unpause(self, caller: str) -> None:
        self._require_admin(caller)
        self._paused = False
        logger.info("Engine unpaused by %s", caller)

    # ------------------------------------------------------------------
    # Placement and cancellation
    # ------------------------------------------------------------------

    def place_order(self, params: OrderParams, now: int) -> str:
        """Validate and store an order. Raises ValidationError with no state written."""
        if self._paused:
            raise ValidationError("Engine is paused; order placement disabled")
        if params.expiration_hint <= now:
            raise ValidationError("Expiration scheduling time must be in the future")
        if params.renewal_period < 0:
            raise ValidationError("Renewal period must be non-negative")

        limits = self._config.limits
        verdict = self.validator.validate_with_limits(
            params.trigger_price,
            params.size,
            params.expiration,
            params.min_fill_size,
            now,
            min_order_size=limits.min_order_size,
            max_order_duration_s=limits.max_order_duration_s,
        )
        if not self.validator.is_valid(verdict):
            logger.info("Order from %s rejected at validation", params.owner)
            self._emit("order_rejected", owner=params.owner, pool_id=params.pool_id)
            raise ValidationError("Order parameters rejected")

        fhe = self.fhe
        order_id = self._next_order_id(params.owner, params.pool_id, now)
        order = Order(
            id=order_id,
            owner=params.owner,
            pool_id=params.pool_id,
            trigger_price=params.trigger_price,
            size=params.size,
            direction=params.direction,
            filled_amount=fhe.as_euint128(0),
            expiration=params.expiration,
            min_fill_size=params.min_fill_size,
            is_active=fhe.as_ebool(True),
            partial_fill_allowed=params.partial_fill_allowed,
            created_at=now,
            sequence=self._sequence,
            order_kind=params.order_kind,
        )
        order.priority_score = self.priority.score_order(order)

        self.orders.add(order)
        self.acl.grant_order_creation_permissions(order)
        self.expirations.set_order_expiration(
            order_id,
            params.expiration_hint,
            params.expiration,
            now,
            auto_renewal=params.auto_renewal,
            renewal_period=params.renewal_period,
        )
        if params.auto_renewal is not None:
            self.acl.grant_engine(params.auto_renewal, "auto_renewal")

        logger.info("Order %s placed by %s in pool %s", order_id, params.owner, params.pool_id)
        self._emit(
            "order_placed",
            order_id=order_id,
            owner=params.owner,
            pool_id=params.pool_id,
            created_at=now,
            expiration_hint=params.expiration_hint,
        )
        return order_id

    def cancel(self, order_id: str, caller: str) -> None:
        """Owner cancellation. Idempotent on orders that are already inactive."""
        order = self.orders.get(order_id)
        if caller != order.owner:
            raise AuthorizationError(f"{caller} does not own order {order_id}")
        self._deactivate(order, OrderStatus.CANCELLED, reason="owner")

    def emergency_cancel(self, order_id: str, caller: str) -> None:
        """Admin override cancellation."""
        self._require_admin(caller)
        order = self.orders.get(order_id)
        self._deactivate(order, OrderStatus.CANCELLED, reason="emergency")

    def _deactivate(self, order: Order, status: OrderStatus, *, reason: str) -> bool:
        if not order.status.is_open:
            return False
        # AND with false keeps the transition monotonic.
        order.is_active = self.fhe.and_(order.is_active, self.fhe.as_ebool(False))
        order.status = status
        self.orders.close(order.id)
        self.expirations.unschedule(order.id)
        self.acl.grant_engine(order.is_active, "is_active")
        self.acl.grant_owner(order.is_active, order.owner, "is_active")

        event = "order_expired" if status == OrderStatus.EXPIRED else "order_cancelled"
        logger.info("Order %s deactivated (%s, %s)", order.id, status.value, reason)
        self._emit(event, order_id=order.id, owner=order.owner, reason=reason)
        return True

    def cleanup_order(self, order_id: str) -> None:
        """Delete an inactive order with its expiration record and fill state."""
        order = self.orders.get(order_id)
        if order.status.is_open:
            raise ValidationError(f"Order {order_id} is still open; cancel it first")
        self.expirations.remove_order_expiration(order_id)
        self.tracker.reset_partial_fill_state(order_id)
        self.orders.delete(order_id)
        logger.debug("Order %s cleaned up", order_id)

    # ------------------------------------------------------------------
    # Ticks
    # ------------------------------------------------------------------

    def sweep_expirations(self, now: int) -> list[str]:
        """Run due expiration buckets; deactivate expired orders."""
        expired: list[str] = []
        for result in self.expirations.sweep(now):
            for order_id in result.renewed:
                if order_id not in self.orders:
                    continue
                order = self.orders.get(order_id)
                if not order.status.is_open:
                    self.expirations.unschedule(order_id)
                    continue
                order.expiration = self.expirations.get_expiration(order_id).expiration
                self.acl.grant_engine(order.expiration, "expiration")
                self.acl.grant_owner(order.expiration, order.owner, "expiration")
            for order_id in result.expired:
                if order_id not in self.orders:
                    continue
                if self._deactivate(self.orders.get(order_id), OrderStatus.EXPIRED, reason="sweep"):
                    expired.append(order_id)
        return expired

    def on_tick(
        self,
        context: TickContext,
        current_price: Ciphertext,
        is_pre_settlement_pass: bool = False,
    ) -> list[TickFill]:
        """Evaluate every open order in the pool against one price update.

        The pre-settlement pass is a dry run: fills are sized and reported
        with ``committed=False`` and no state changes. Its comparison
        outcomes are discarded without grants, since nothing is stored or
        handed out. The settlement pass sweeps expirations first and commits
        fills.
        """
        if self._paused:
            logger.info("Tick for pool %s skipped: engine paused", context.pool_id)
            return []

        if not is_pre_settlement_pass:
            self.sweep_expirations(context.now)

        candidates = self.orders.open_in_pool(context.pool_id)
        ranked = self.priority.rank(candidates)

        results: list[TickFill] = []
        liquidity = context.liquidity
        for order in ranked:
            try:
                outcome, liquidity = self._process_order(
                    order, context, current_price, liquidity, commit=not is_pre_settlement_pass,
                )
            except Exception as exc:
                logger.exception("Order %s faulted during tick", order.id)
                self._emit("error", order_id=order.id, message=str(exc))
                results.append(
                    TickFill(
                        order_id=order.id,
                        fill_amount=0,
                        execution_price=None,
                        still_active=order.status.is_open,
                        committed=False,
                        error=f"{type(exc).__name__}: {exc}",
                    )
                )
                continue
            if outcome is not None:
                results.append(outcome)

        self._emit(
            "tick_complete",
            pool_id=context.pool_id,
            now=context.now,
            evaluated=len(ranked),
            fills=sum(1 for r in results if r.fill_amount > 0),
            committed=not is_pre_settlement_pass,
        )
        return results

    def _max_slippage_bps(self, context: TickContext) -> int | None:
        if context.max_slippage_bps is not None:
            return context.max_slippage_bps
        if self._config.slippage.enabled:
            return self._config.slippage.default_max_bps
        return None

    def _process_order(
        self,
        order: Order,
        context: TickContext,
        current_price: Ciphertext,
        liquidity: Ciphertext,
        *,
        commit: bool,
    ) -> tuple[TickFill | None, Ciphertext]:
        fhe = self.fhe
        condition = self.trigger.execution_condition(
            order.trigger_price,
            current_price,
            order.direction,
            order.is_active,
            order.expiration,
            context.now,
        )
        if commit:
            self.acl.grant_price_comparison_permissions(order, condition)
        if not self.decision.evaluate(condition, default=False):
            return None, liquidity

        max_bps = self._max_slippage_bps(context)
        if max_bps is None:
            fill = self.fill_calculator.calculate_optimal_fill(
                order.size, order.filled_amount, order.min_fill_size, liquidity, order.partial_fill_allowed,
            )
        else:
            fill = self.fill_calculator.calculate_protected_fill(
                order.size, order.filled_amount, order.min_fill_size, liquidity, order.partial_fill_allowed,
                current_price, order.trigger_price, max_bps,
            )

        fill_amount = self.decision.reveal_amount(fill, default=0)
        if fill_amount == 0:
            return None, liquidity

        pending = self.tracker.prepare_fill(order.id, fill, current_price, order.size, context.now)
        new_filled = fhe.add(order.filled_amount, fill)
        remaining = fhe.sub(order.size, new_filled)
        fully_filled = self.decision.evaluate(pending.is_fully_filled, default=False)
        remaining_liquidity = fhe.sub(liquidity, fill)
        fee = self.fill_calculator.calculate_fee(fill_amount, self._config.fees.execution_fee_bps)

        if not commit:
            preview = TickFill(
                order_id=order.id,
                fill_amount=fill_amount,
                execution_price=current_price,
                still_active=not fully_filled,
                fee=fee,
                committed=False,
            )
            return preview, remaining_liquidity

        # Commit: nothing above this line mutated stored state.
        state = self.tracker.commit(pending)
        order.filled_amount = new_filled
        if fully_filled:
            self.tracker.mark_fully_filled(order.id)
            order.is_active = fhe.and_(order.is_active, fhe.as_ebool(False))
            order.status = OrderStatus.COMPLETED
            self.orders.close(order.id)
            self.expirations.unschedule(order.id)
        else:
            order.status = OrderStatus.PARTIALLY_FILLED

        self.acl.grant_order_execution_permissions(order, fill, current_price, remaining, context.counterparty)
        self.acl.grant_partial_fill_permissions(order, state, fill, context.counterparty)

        logger.info(
            "Order %s filled %d (fill #%d)%s",
            order.id, fill_amount, state.fills_recorded, " (completed)" if fully_filled else "",
        )
        self._emit(
            "order_filled",
            order_id=order.id,
            owner=order.owner,
            fill_amount=fill_amount,
            fee=fee,
            fill_index=pending.record.index,
            completed=fully_filled,
        )
        return (
            TickFill(
                order_id=order.id,
                fill_amount=fill_amount,
                execution_price=current_price,
                still_active=not fully_filled,
                fee=fee,
            ),
            remaining_liquidity,
        )

    # ------------------------------------------------------------------
    # Read-only queries
    # ------------------------------------------------------------------

    def get_order(self, order_id: str) -> Order:
        return self.orders.get(order_id)

    def get_fill_history(self, order_id: str) -> list[Fill]:
        self.orders.get(order_id)
        return self.tracker.get_fill_history(order_id)

    def get_remaining_amount(self, order_id: str) -> Ciphertext:
        order = self.orders.get(order_id)
        remaining = self.fill_calculator.remaining(order.size, order.filled_amount)
        self.acl.grant_engine(remaining, "remaining")
        self.acl.grant_owner(remaining, order.owner, "remaining")
        return remaining

    def is_active(self, order_id: str) -> bool:
        return self.decision.is_active(self.orders.get(order_id).is_active)

    def get_expiration(self, order_id: str) -> ExpirationRecord:
        self.orders.get(order_id)
        return self.expirations.get_expiration(order_id)

    def get_order_fill_info(self, order_id: str) -> OrderFillInfo:
        order = self.orders.get(order_id)
        state = self.tracker.get_state(order_id)
        for label, ct in (
            ("total_filled", state.total_filled),
            ("average_fill_price", state.average_fill_price),
            ("fill_count", state.fill_count),
        ):
            self.acl.grant_engine(ct, label)
            self.acl.grant_owner(ct, order.owner, label)
        return OrderFillInfo(
            order_id=order_id,
            total_filled=state.total_filled,
            remaining=self.get_remaining_amount(order_id),
            average_fill_price=state.average_fill_price,
            fill_count=state.fill_count,
        )

    def get_user_orders(self, owner: str) -> list[str]:
        return self.orders.by_owner(owner)

    def get_active_orders(self, pool_id: str) -> list[str]:
        return [o.id for o in self.orders.open_in_pool(pool_id)]
