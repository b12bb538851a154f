# campus_dispatch/services/order_state_machine.py
"""Order status lifecycle.

Every status change goes through ``OrderStateMachine.transition`` (or
``cancel``). The status write is a compare-and-swap on the status the order
was read with; everything after it (rider release, counters, cache,
notifications, dispatch) is best effort and never undoes the write.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, FrozenSet
from ..database.active_order_cache import ActiveOrderCache
from ..exceptions import (
    AuthorizationError,
    ConflictError,
    InvalidTransitionError,
    NoRiderAvailableError,
    NotFoundError,
    TerminalStateError,
    ValidationError,
)
from ..models.actor import Actor
from ..models.order import STATUS_TIMESTAMP_FIELDS, Order, OrderStatus
from ..models.user import Role

VALID_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({
        OrderStatus.CONFIRMED,
        OrderStatus.REJECTED,
        OrderStatus.CANCELLED,
    }),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.PREPARING, OrderStatus.CANCELLED}),
    OrderStatus.PREPARING: frozenset({OrderStatus.READY, OrderStatus.CANCELLED}),
    OrderStatus.READY: frozenset({OrderStatus.PICKED_UP}),
    OrderStatus.PICKED_UP: frozenset({OrderStatus.DELIVERED}),
}

CANCELLABLE_STATUSES = frozenset({OrderStatus.PENDING, OrderStatus.CONFIRMED})

# Terminal statuses that free the assigned rider
RELEASING_STATUSES = frozenset({
    OrderStatus.DELIVERED,
    OrderStatus.CANCELLED,
    OrderStatus.REJECTED,
})


def check_transition(current: OrderStatus, target: OrderStatus) -> None:
    allowed = VALID_TRANSITIONS.get(current)
    if allowed is None:
        raise TerminalStateError(f"order is already {current.value}")
    if target not in allowed:
        raise InvalidTransitionError(
            f"cannot move order from {current.value} to {target.value}"
        )


class OrderStateMachine:
    def __init__(self, orders, vendors, students, riders, rider_service, notifications,
                 cache: ActiveOrderCache, dispatcher):
        self.orders = orders
        self.vendors = vendors
        self.students = students
        self.riders = riders
        self.rider_service = rider_service
        self.notifications = notifications
        self.cache = cache
        self.dispatcher = dispatcher
        self.logger = logging.getLogger(__name__)

    async def transition(self, order_id: int, actor: Actor, target: OrderStatus,
                         reason: str = "") -> Order:
        """Move an order to ``target`` on behalf of ``actor``"""
        order = await self._get_order(order_id)
        self._authorize(order, actor, target)
        check_transition(order.status, target)
        return await self._apply(order, target, reason)

    async def cancel(self, order_id: int, actor: Actor, reason: str) -> Order:
        """Cancel a pending or confirmed order"""
        if not reason or not reason.strip():
            raise ValidationError("a cancellation reason is required")

        order = await self._get_order(order_id)
        allowed = (
            actor.is_admin
            or (actor.role == Role.STUDENT and order.student_id == actor.id)
            or (actor.role == Role.VENDOR and order.vendor_id == actor.id)
        )
        if not allowed:
            raise AuthorizationError("you cannot cancel this order")

        check_transition(order.status, OrderStatus.CANCELLED)
        if order.status not in CANCELLABLE_STATUSES:
            raise InvalidTransitionError(
                f"a {order.status.value} order can no longer be cancelled"
            )
        return await self._apply(order, OrderStatus.CANCELLED, reason.strip())

    def _authorize(self, order: Order, actor: Actor, target: OrderStatus) -> None:
        if actor.is_admin:
            return
        if actor.role == Role.VENDOR:
            owns = order.vendor_id == actor.id
        elif actor.role == Role.RIDER:
            owns = order.assigned_rider_id == actor.id
        else:
            owns = False
        if not owns or not actor.may_set(target):
            raise AuthorizationError(
                f"{actor.role.value} cannot set this order to {target.value}"
            )

    async def _apply(self, order: Order, target: OrderStatus, reason: str) -> Order:
        now = datetime.now(timezone.utc)
        fields: Dict[str, Any] = {STATUS_TIMESTAMP_FIELDS[target]: now}
        if target in (OrderStatus.CANCELLED, OrderStatus.REJECTED):
            fields["cancellation_reason"] = reason

        if not await self.orders.update_status(order.id, order.status, target, fields):
            raise ConflictError(f"order {order.id} was updated concurrently, reload it")

        self.logger.info(f"Order {order.id}: {order.status.value} -> {target.value}")
        updated = order.model_copy(update={"status": target, **fields})

        await self._run_side_effects(updated, target, reason)
        return updated

    async def _run_side_effects(self, order: Order, target: OrderStatus, reason: str) -> None:
        if target in RELEASING_STATUSES and order.is_assigned:
            await self._safely(f"releasing rider {order.assigned_rider_id}",
                               self.rider_service.release(order.assigned_rider_id))

        if target == OrderStatus.DELIVERED:
            await self._safely("crediting vendor",
                               self.vendors.record_delivered_order(
                                   order.vendor_id, order.subtotal, order.vendor_earnings))
            await self._safely("crediting student",
                               self.students.record_delivered_order(
                                   order.student_id, order.total_amount))
            if order.is_assigned:
                await self._safely("crediting rider",
                                   self.riders.record_delivery(
                                       order.assigned_rider_id, order.rider_earnings))

        await self._safely("clearing cache", self.cache.remove(order.id))
        await self._safely("notifying parties",
                           self.notifications.notify_order_update(order, target, reason))

        if target == OrderStatus.READY and not order.is_assigned:
            await self._dispatch(order)

    async def _dispatch(self, order: Order) -> None:
        try:
            await self.dispatcher.auto_assign(order)
        except NoRiderAvailableError as e:
            self.logger.warning(f"Order {order.id} is ready but unassigned: {e}")
            await self.notifications.notify_admin(
                "Order Ready - Manual Assignment Required",
                f"Order #{order.order_number} is ready and no rider could be assigned"
            )
        except (ConflictError, InvalidTransitionError) as e:
            self.logger.info(f"Order {order.id} moved on before auto-assign: {e}")
        except Exception as e:
            self.logger.error(f"Auto-assign for order {order.id} failed: {e}")

    async def _safely(self, what: str, awaitable) -> None:
        try:
            await awaitable
        except Exception as e:
            self.logger.error(f"Order side effect failed ({what}): {e}")

    async def _get_order(self, order_id: int) -> Order:
        order = await self.orders.get_order(order_id)
        if not order:
            raise NotFoundError(f"order {order_id} not found")
        return order
