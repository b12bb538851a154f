# campus_dispatch/services/rider_service.py
import logging
from collections import OrderedDict
from datetime import datetime, time, timedelta, timezone
from decimal import Decimal
from typing import List, Optional, Tuple
from ..database.geo_index import GeoIndex
from ..exceptions import ConflictError, NotFoundError, RiderUnavailableError, ValidationError
from ..models.order import Order, OrderStatus
from ..models.rider import DailyEarnings, Rider, RiderEarnings
from ..utils.geo import validate_coordinates

class RiderService:
    """Rider availability, position and earnings.

    The rider row's ``is_available`` flag is the source of truth; the geo
    index entry follows it right after every successful conditional write.
    If the index write fails the flag is put back, and setting a flag that is
    already stored re-syncs the index entry.
    """

    def __init__(self, riders, orders, geo_index: GeoIndex):
        self.riders = riders
        self.orders = orders
        self.geo_index = geo_index
        self.logger = logging.getLogger(__name__)

    async def get_rider(self, rider_id: int) -> Rider:
        rider = await self.riders.get_rider(rider_id)
        if not rider:
            raise NotFoundError(f"rider {rider_id} not found")
        return rider

    async def reserve(self, rider_id: int) -> None:
        """Take an available rider out of the pool (true -> false)"""
        if not await self.riders.set_availability(rider_id, False, expected=True):
            raise RiderUnavailableError(f"rider {rider_id} is not available")
        await self._follow_flag(rider_id, False)

    async def release(self, rider_id: int) -> bool:
        """Put a reserved rider back into the pool (false -> true)"""
        if not await self.riders.set_availability(rider_id, True, expected=False):
            return False
        await self._follow_flag(rider_id, True)
        self.logger.info(f"Rider {rider_id} released back to the pool")
        return True

    async def set_availability(self, rider_id: int, available: bool) -> Rider:
        rider = await self.get_rider(rider_id)
        if rider.is_available == available:
            # Flag already set; bring the index entry back in line with it
            await self._sync_index(rider, available)
            return rider

        if available:
            active = await self.orders.count_active_orders_for_rider(rider_id)
            if active:
                raise ConflictError("finish the active delivery before going online")

        if not await self.riders.set_availability(rider_id, available, expected=not available):
            raise ConflictError("availability changed concurrently, try again")
        await self._follow_flag(rider_id, available)

        self.logger.info(f"Rider {rider_id} is now {'online' if available else 'offline'}")
        return rider.model_copy(update={"is_available": available})

    async def toggle_availability(self, rider_id: int) -> Rider:
        rider = await self.get_rider(rider_id)
        return await self.set_availability(rider_id, not rider.is_available)

    async def update_location(self, rider_id: int, lat: float, lng: float) -> None:
        if not validate_coordinates(lat, lng):
            raise ValidationError("invalid coordinates")
        if not await self.riders.update_location(rider_id, lat, lng):
            raise NotFoundError(f"rider {rider_id} not found")
        # Only riders already in the pool are moved
        if not await self.geo_index.update_location(rider_id, lat, lng):
            rider = await self.get_rider(rider_id)
            if rider.is_available:
                await self._sync_index(rider, True)

    async def _follow_flag(self, rider_id: int, available: bool) -> None:
        """Move the index entry after a flag write; undo the flag if that fails"""
        try:
            await self._sync_index(await self.get_rider(rider_id), available)
        except Exception as e:
            self.logger.error(
                f"Geo index update failed for rider {rider_id}, restoring availability: {e}"
            )
            await self.riders.set_availability(rider_id, not available, expected=available)
            raise

    async def _sync_index(self, rider: Rider, available: bool) -> None:
        if available:
            await self.geo_index.set_available(
                rider.id, rider.current_latitude, rider.current_longitude
            )
        else:
            await self.geo_index.set_unavailable(rider.id)

    async def get_available_orders(self, page: int = 1, limit: int = 20) -> Tuple[List[Order], int]:
        if page < 1 or limit < 1:
            raise ValidationError("page and limit must be positive")
        return await self.orders.list_available_orders((page - 1) * limit, limit)

    async def get_assigned_orders(self, rider_id: int,
                                  status: Optional[OrderStatus] = None) -> List[Order]:
        return await self.orders.list_rider_orders(rider_id, status)

    async def get_earnings(self, rider_id: int, start: Optional[datetime] = None,
                           end: Optional[datetime] = None) -> RiderEarnings:
        """Delivered-order earnings between ``start`` and ``end`` (default: last 30 days)"""
        rider = await self.get_rider(rider_id)
        end = end or datetime.combine(datetime.now(timezone.utc).date(), time.max, tzinfo=timezone.utc)
        start = start or datetime.combine(
            (end - timedelta(days=30)).date(), time.min, tzinfo=timezone.utc
        )
        if start > end:
            raise ValidationError("start date must not be after end date")

        delivered = await self.orders.list_delivered_for_rider(rider_id, start, end)

        daily = OrderedDict()
        for order in delivered:
            day = order.delivered_at.date().isoformat()
            entry = daily.setdefault(day, DailyEarnings(date=day))
            entry.deliveries += 1
            entry.earnings += order.rider_earnings

        total = sum((order.rider_earnings for order in delivered), Decimal(0))
        return RiderEarnings(
            start_date=start.date().isoformat(),
            end_date=end.date().isoformat(),
            total_deliveries=len(delivered),
            total_earnings=total,
            average_per_delivery=total / len(delivered) if delivered else Decimal(0),
            daily_breakdown=list(daily.values()),
            current_balance=rider.current_balance
        )
