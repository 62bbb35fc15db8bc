"""
Access Control Manager: decrypt rights on ciphertexts the engine produces.

Every ciphertext the engine stores or hands out is granted in the same call
that produced it. Fixed checklists:

    order creation   owner -> its own parameters; engine -> everything stored
    execution        counterparty -> fill amount, execution price, remaining
    partial fill     owner/engine -> aggregates; counterparty -> fill amount only
    price comparison owner -> comparison outcome only

Counterparties never receive the full order.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Iterable

from shadow_core.contracts import Order, PartialFillState, PermissionGrant, PermissionScope
from shadow_core.encrypted import Ciphertext, ComputeRuntime

logger = logging.getLogger("shadow.acl")

DEFAULT_AUDIT_LIMIT = 1024


class AccessControlManager:
    """Issue and revoke grants through the runtime.

    Grants are instructions to the runtime, which holds the ACL. Only a
    bounded audit trail of recent grants is kept here, plus the handles each
    counterparty currently holds so they can be revoked.
    """

    def __init__(
        self,
        runtime: ComputeRuntime,
        engine_address: str,
        *,
        audit_limit: int = DEFAULT_AUDIT_LIMIT,
    ) -> None:
        if audit_limit < 1:
            raise ValueError("audit_limit must be >= 1")
        self._runtime = runtime
        self._engine = engine_address
        self._audit: deque[PermissionGrant] = deque(maxlen=audit_limit)
        self._counterparty_handles: dict[str, dict[int, Ciphertext]] = {}

    @property
    def engine_address(self) -> str:
        return self._engine

    @property
    def grants(self) -> list[PermissionGrant]:
        """Most recent grants, oldest first."""
        return list(self._audit)

    def grants_for(self, grantee: str) -> list[PermissionGrant]:
        return [g for g in self._audit if g.grantee == grantee]

    def counterparty_handles(self, counterparty: str) -> list[Ciphertext]:
        return list(self._counterparty_handles.get(counterparty, {}).values())

    def _grant(self, ciphertext: Ciphertext, grantee: str, scope: PermissionScope, label: str) -> PermissionGrant:
        self._runtime.allow(ciphertext, grantee)
        grant = PermissionGrant(ciphertext=ciphertext, grantee=grantee, scope=scope, label=label)
        self._audit.append(grant)
        if scope == PermissionScope.COUNTERPARTY:
            self._counterparty_handles.setdefault(grantee, {})[ciphertext.handle] = ciphertext
        return grant

    def grant_engine(self, ciphertext: Ciphertext, label: str = "") -> PermissionGrant:
        """Standing engine access to a stored value."""
        return self._grant(ciphertext, self._engine, PermissionScope.ENGINE, label)

    def grant_owner(self, ciphertext: Ciphertext, owner: str, label: str = "") -> PermissionGrant:
        return self._grant(ciphertext, owner, PermissionScope.OWNER, label)

    def _grant_all(
        self,
        labelled: Iterable[tuple[str, Ciphertext]],
        grantee: str,
        scope: PermissionScope,
    ) -> list[PermissionGrant]:
        return [self._grant(ct, grantee, scope, label) for label, ct in labelled]

    # ------------------------------------------------------------------
    # Checklists
    # ------------------------------------------------------------------

    def grant_order_creation_permissions(self, order: Order) -> list[PermissionGrant]:
        owner_fields = [
            ("trigger_price", order.trigger_price),
            ("size", order.size),
            ("direction", order.direction),
            ("expiration", order.expiration),
            ("min_fill_size", order.min_fill_size),
            ("partial_fill_allowed", order.partial_fill_allowed),
            ("filled_amount", order.filled_amount),
            ("is_active", order.is_active),
        ]
        engine_fields = list(owner_fields)
        if order.priority_score is not None:
            engine_fields.append(("priority_score", order.priority_score))

        grants = self._grant_all(engine_fields, self._engine, PermissionScope.ENGINE)
        grants += self._grant_all(owner_fields, order.owner, PermissionScope.OWNER)
        return grants

    def grant_order_execution_permissions(
        self,
        order: Order,
        fill_amount: Ciphertext,
        execution_price: Ciphertext,
        remaining: Ciphertext,
        counterparty: str,
    ) -> list[PermissionGrant]:
        produced = [
            ("fill_amount", fill_amount),
            ("execution_price", execution_price),
            ("remaining", remaining),
        ]
        grants = self._grant_all(produced, self._engine, PermissionScope.ENGINE)
        grants += self._grant_all(produced, order.owner, PermissionScope.OWNER)
        grants += self._grant_all(produced, counterparty, PermissionScope.COUNTERPARTY)
        # Updated stored fields stay private to owner and engine.
        stored = [("filled_amount", order.filled_amount), ("is_active", order.is_active)]
        grants += self._grant_all(stored, self._engine, PermissionScope.ENGINE)
        grants += self._grant_all(stored, order.owner, PermissionScope.OWNER)
        return grants

    def grant_partial_fill_permissions(
        self,
        order: Order,
        state: PartialFillState,
        fill_amount: Ciphertext,
        counterparty: str,
    ) -> list[PermissionGrant]:
        aggregates = [
            ("total_filled", state.total_filled),
            ("average_fill_price", state.average_fill_price),
            ("fill_count", state.fill_count),
            ("last_fill_time", state.last_fill_time),
        ]
        grants = self._grant_all(aggregates, self._engine, PermissionScope.ENGINE)
        grants += self._grant_all(aggregates, order.owner, PermissionScope.OWNER)
        grants.append(self._grant(fill_amount, counterparty, PermissionScope.COUNTERPARTY, "fill_amount"))
        return grants

    def grant_price_comparison_permissions(self, order: Order, outcome: Ciphertext) -> list[PermissionGrant]:
        return [
            self._grant(outcome, self._engine, PermissionScope.ENGINE, "price_comparison"),
            self._grant(outcome, order.owner, PermissionScope.OWNER, "price_comparison"),
        ]

    def revoke_counterparty_access(self, counterparty: str, handles: Iterable[Ciphertext] | None = None) -> int:
        """Revoke a counterparty's grants (all of them, or only *handles*)."""
        held = self._counterparty_handles.get(counterparty, {})
        if handles is None:
            wanted = list(held)
        else:
            wanted = list(dict.fromkeys(ct.handle for ct in handles if ct.handle in held))
        for handle in wanted:
            self._runtime.revoke(held.pop(handle), counterparty)
        if not held:
            self._counterparty_handles.pop(counterparty, None)
        revoked = len(wanted)
        if revoked:
            logger.info("Revoked %d grants from %s", revoked, counterparty)
        return revoked
