# campus_dispatch/services/dispatch_service.py
"""Rider assignment.

A claim first reserves the rider (availability true -> false) and only then
writes the assignment with ``assigned_rider_id IS NULL AND status = 'ready'``
as the guard. Whoever loses either conditional write gets a ``ConflictError``
and leaves nothing behind, so a rider never holds two orders and an order
never gets two riders.
"""
import logging
from datetime import datetime, timezone
from typing import Iterable, Optional
from ..config import PlatformConfig
from ..database.active_order_cache import ActiveOrderCache
from ..database.geo_index import GeoIndex
from ..exceptions import (
    AlreadyAssignedError,
    AuthorizationError,
    InvalidTransitionError,
    NoRiderAvailableError,
    NotFoundError,
    OrderNotReadyError,
    RiderUnavailableError,
)
from ..models.order import Order, OrderStatus

# Statuses in which an admin may pre-assign without touching the status
PRE_ASSIGN_STATUSES = frozenset({
    OrderStatus.CONFIRMED,
    OrderStatus.PREPARING,
    OrderStatus.READY,
})

# A rider may hand an order back until it is picked up
REJECTABLE_STATUSES = frozenset({
    OrderStatus.CONFIRMED,
    OrderStatus.PREPARING,
    OrderStatus.READY,
})


class RiderDispatcher:
    def __init__(self, orders, rider_service, geo_index: GeoIndex, notifications,
                 cache: ActiveOrderCache, platform: PlatformConfig):
        self.orders = orders
        self.rider_service = rider_service
        self.geo_index = geo_index
        self.notifications = notifications
        self.cache = cache
        self.platform = platform
        self.logger = logging.getLogger(__name__)

    async def auto_assign(self, order: Order, exclude: Iterable[int] = ()) -> int:
        """Give a ready order to the nearest available rider.

        Candidates come from the geo index, nearest first. A candidate that
        is gone by the time we reserve it is skipped; any problem with the
        order itself ends the search.
        """
        excluded = set(exclude)
        candidates = await self.geo_index.find_nearest(
            order.delivery_lat, order.delivery_lng,
            self.platform.dispatch_radius_km,
            self.platform.dispatch_candidate_limit + len(excluded)
        )

        for candidate in candidates:
            if candidate.rider_id in excluded:
                continue
            if not await self.geo_index.is_available(candidate.rider_id):
                continue
            try:
                await self._claim(candidate.rider_id, order.id)
            except RiderUnavailableError:
                self.logger.info(
                    f"Rider {candidate.rider_id} taken before order {order.id} reached it"
                )
                continue
            self.logger.info(
                f"Order {order.id} auto-assigned to rider {candidate.rider_id} "
                f"({candidate.distance_km:.2f} km)"
            )
            await self.notifications.notify_admin(
                "Rider Assigned",
                f"Rider #{candidate.rider_id} was assigned to order #{order.order_number}"
            )
            return candidate.rider_id

        raise NoRiderAvailableError(
            f"no rider available within {self.platform.dispatch_radius_km} km"
        )

    async def claim_order(self, rider_id: int, order_id: int) -> Order:
        """A rider takes a ready, unassigned order"""
        await self.rider_service.get_rider(rider_id)
        order = await self._claim(rider_id, order_id)
        self.logger.info(f"Rider {rider_id} claimed order {order_id}")
        return order

    async def assign_rider(self, order_id: int, rider_id: int) -> Order:
        """Admin manual assignment"""
        order = await self._get_order(order_id)
        await self.rider_service.get_rider(rider_id)

        if order.status == OrderStatus.PENDING:
            new_status = OrderStatus.CONFIRMED
            confirmed_at = datetime.now(timezone.utc)
        elif order.status in PRE_ASSIGN_STATUSES:
            new_status = None
            confirmed_at = None
        else:
            raise InvalidTransitionError(
                f"cannot assign a rider to a {order.status.value} order"
            )
        if order.is_assigned:
            raise AlreadyAssignedError(f"order {order_id} already has a rider")

        await self.rider_service.reserve(rider_id)
        try:
            assigned = await self.orders.assign_rider(
                order_id, rider_id, order.status, new_status, confirmed_at
            )
        except Exception:
            await self.rider_service.release(rider_id)
            raise
        if not assigned:
            await self.rider_service.release(rider_id)
            raise await self._lost_race(order_id, order.status)

        self.logger.info(f"Order {order_id} manually assigned to rider {rider_id}")
        return await self._after_assignment(order_id)

    async def handle_rejection(self, order_id: int, rider_id: int) -> Optional[int]:
        """The assigned rider hands the order back.

        Returns the rider that took it over, or None when nobody did.
        """
        order = await self._get_order(order_id)
        if order.assigned_rider_id != rider_id:
            raise AuthorizationError("only the assigned rider can reject this order")
        if order.status not in REJECTABLE_STATUSES:
            raise InvalidTransitionError(
                f"cannot reject a {order.status.value} order"
            )

        if not await self.orders.unassign_rider(order_id, rider_id, REJECTABLE_STATUSES):
            raise AlreadyAssignedError(f"order {order_id} changed while rejecting, reload it")
        await self.rider_service.release(rider_id)
        await self.cache.remove(order_id)
        self.logger.info(f"Rider {rider_id} rejected order {order_id}")

        order = await self._get_order(order_id)
        if order.status != OrderStatus.READY:
            return None

        try:
            return await self.auto_assign(order, exclude=[rider_id])
        except NoRiderAvailableError:
            self.logger.warning(f"Order {order_id} needs manual assignment after rejection")
            await self.notifications.notify_admin(
                "Order Needs Manual Assignment",
                f"Order #{order.order_number} was rejected by its rider and "
                f"no other rider is available"
            )
            return None

    async def _claim(self, rider_id: int, order_id: int) -> Order:
        order = await self._get_order(order_id)
        if order.status != OrderStatus.READY:
            raise OrderNotReadyError(f"order {order_id} is {order.status.value}, not ready")
        if order.is_assigned:
            raise AlreadyAssignedError(f"order {order_id} already has a rider")

        await self.rider_service.reserve(rider_id)
        try:
            assigned = await self.orders.assign_rider(order_id, rider_id, OrderStatus.READY)
        except Exception:
            await self.rider_service.release(rider_id)
            raise
        if not assigned:
            await self.rider_service.release(rider_id)
            raise await self._lost_race(order_id, OrderStatus.READY)

        return await self._after_assignment(order_id)

    async def _after_assignment(self, order_id: int) -> Order:
        await self.cache.remove(order_id)
        order = await self._get_order(order_id)
        await self.notifications.notify_rider_assigned(order)
        return order

    async def _lost_race(self, order_id: int, expected: OrderStatus):
        """Explain why a conditional assignment matched no row"""
        current = await self._get_order(order_id)
        if current.is_assigned:
            return AlreadyAssignedError(f"order {order_id} already has a rider")
        if current.status != expected:
            return OrderNotReadyError(
                f"order {order_id} is {current.status.value}, not {expected.value}"
            )
        return AlreadyAssignedError(f"order {order_id} changed concurrently")

    async def _get_order(self, order_id: int) -> Order:
        order = await self.orders.get_order(order_id)
        if not order:
            raise NotFoundError(f"order {order_id} not found")
        return order
