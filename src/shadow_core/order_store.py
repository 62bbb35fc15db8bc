"""
Keyed order store: create on first write, mutate on fill/cancel, delete on cleanup.

Also keeps the two public secondary indexes the engine needs: orders per
owner and open orders per pool.
"""

from __future__ import annotations

from shadow_core.contracts import Order
from shadow_core.errors import NotFoundError


class OrderStore:
    def __init__(self) -> None:
        self._orders: dict[str, Order] = {}
        self._by_owner: dict[str, list[str]] = {}
        self._open_by_pool: dict[str, list[str]] = {}

    def __len__(self) -> int:
        return len(self._orders)

    def __contains__(self, order_id: object) -> bool:
        return order_id in self._orders

    def add(self, order: Order) -> None:
        if order.id in self._orders:
            raise ValueError(f"Duplicate order id: {order.id}")
        self._orders[order.id] = order
        self._by_owner.setdefault(order.owner, []).append(order.id)
        self._open_by_pool.setdefault(order.pool_id, []).append(order.id)

    def get(self, order_id: str) -> Order:
        try:
            return self._orders[order_id]
        except KeyError:
            raise NotFoundError(f"Order not found: {order_id}") from None

    def close(self, order_id: str) -> None:
        """Drop an order from its pool's open list; the record stays."""
        order = self.get(order_id)
        open_ids = self._open_by_pool.get(order.pool_id, [])
        if order_id in open_ids:
            open_ids.remove(order_id)

    def delete(self, order_id: str) -> Order:
        order = self.get(order_id)
        self.close(order_id)
        del self._orders[order_id]
        owned = self._by_owner.get(order.owner, [])
        if order_id in owned:
            owned.remove(order_id)
        return order

    def by_owner(self, owner: str) -> list[str]:
        return list(self._by_owner.get(owner, ()))

    def open_in_pool(self, pool_id: str) -> list[Order]:
        return [self._orders[oid] for oid in self._open_by_pool.get(pool_id, ())]

    def all(self) -> list[Order]:
        return list(self._orders.values())
