"""Open orders of one terminal session."""

from __future__ import annotations

import logging
from typing import Callable
from uuid import uuid4

from pos_terminal.cart import order_name
from pos_terminal.errors import EmptyOrderError, NoCurrentOrderError, UnknownOrderError
from pos_terminal.models import DiningTable, OrderState, OrderType, Steward

logger = logging.getLogger(__name__)


class OrderRegistry:
    """
    Every open order of the session, with at most one selected for editing.

    Orders that are open but not current are "held". The registry is never
    left empty: deleting the current (or last) order creates a replacement.
    """

    def __init__(self) -> None:
        self._orders: dict[str, OrderState] = {}
        self._current_id: str | None = None
        self._sequence = 0
        self.create_order()

    def __len__(self) -> int:
        return len(self._orders)

    def __contains__(self, order_id: object) -> bool:
        return order_id in self._orders

    @property
    def current_id(self) -> str | None:
        return self._current_id

    @property
    def current(self) -> OrderState | None:
        if self._current_id is None:
            return None
        return self._orders[self._current_id]

    def require_current(self) -> OrderState:
        order = self.current
        if order is None:
            raise NoCurrentOrderError("No order is selected; create a new order first")
        return order

    def get(self, order_id: str) -> OrderState:
        try:
            return self._orders[order_id]
        except KeyError:
            raise UnknownOrderError(f"Order {order_id} is not open") from None

    def orders(self) -> list[OrderState]:
        return list(self._orders.values())

    def held_orders(self) -> list[OrderState]:
        return [order for order_id, order in self._orders.items() if order_id != self._current_id]

    def table_in_use(self, table_name: str) -> bool:
        return any(order.table is not None and order.table.name == table_name for order in self._orders.values())

    def create_order(
        self,
        order_type: OrderType = OrderType.TAKE_AWAY,
        table: DiningTable | None = None,
        steward: Steward | None = None,
    ) -> OrderState:
        self._sequence += 1
        if order_type is not OrderType.DINE_IN:
            table = None
            steward = None
        order = OrderState(
            order_id=uuid4().hex,
            name=order_name(order_type, self._sequence, table),
            sequence=self._sequence,
            order_type=order_type,
            table=table,
            steward=steward,
        )
        self._orders[order.order_id] = order
        self._current_id = order.order_id
        logger.info(f"order_created id={order.order_id} name={order.name!r}")
        return order

    def select_held(self, order_id: str) -> OrderState:
        if order_id not in self._orders or order_id == self._current_id:
            raise UnknownOrderError(f"Order {order_id} is not a held order")
        self._current_id = order_id
        logger.info(f"order_resumed id={order_id}")
        return self._orders[order_id]

    def hold_current(self) -> OrderState:
        """Park the current order locally; it stays open but is no longer edited."""
        order = self.require_current()
        if order.is_empty:
            raise EmptyOrderError("Add items to the cart before holding")
        self._current_id = None
        logger.info(f"order_held id={order.order_id} lines={len(order.lines)}")
        return order

    def replace(self, order: OrderState) -> None:
        if order.order_id not in self._orders:
            raise UnknownOrderError(f"Order {order.order_id} is not open")
        self._orders[order.order_id] = order

    def update_current(self, operation: Callable[..., OrderState], *args: object) -> OrderState:
        """Apply a cart operation to the current order; a raised error changes nothing."""
        updated = operation(self.require_current(), *args)
        self.replace(updated)
        return updated

    def clear(self, order_id: str) -> OrderState | None:
        """Delete an order. Returns the replacement when one had to be created."""
        self.get(order_id)
        del self._orders[order_id]
        logger.info(f"order_removed id={order_id}")
        if order_id == self._current_id or not self._orders:
            self._current_id = None
            return self.create_order()
        return None

    def checkout_success(self, order_id: str) -> OrderState | None:
        return self.clear(order_id)
