# campus_dispatch/services/order_service.py
import logging
from typing import Any, Dict, List, Optional, Tuple
from pydantic import ValidationError as PydanticValidationError
from ..config import PlatformConfig
from ..database.active_order_cache import ActiveOrderCache
from ..exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from ..models.actor import Actor
from ..models.order import (
    CreateOrderRequest,
    Order,
    OrderStatus,
    Payment,
    PaymentStatus,
    TrackingEvent,
    TrackingInfo,
)
from ..models.review import Review
from ..models.user import Role
from ..utils.identifiers import generate_order_number, generate_transaction_id
from .fee_calculator import compute_fees

# Timestamp column -> status it records, in lifecycle order
_TIMELINE = (
    ("created_at", OrderStatus.PENDING),
    ("confirmed_at", OrderStatus.CONFIRMED),
    ("prepared_at", OrderStatus.PREPARING),
    ("ready_at", OrderStatus.READY),
    ("picked_up_at", OrderStatus.PICKED_UP),
    ("delivered_at", OrderStatus.DELIVERED),
)


class OrderService:
    """Order placement, reads, tracking and rating"""

    def __init__(self, orders, vendors, riders, notifications, state_machine,
                 cache: ActiveOrderCache, platform: PlatformConfig):
        self.orders = orders
        self.vendors = vendors
        self.riders = riders
        self.notifications = notifications
        self.state_machine = state_machine
        self.cache = cache
        self.platform = platform
        self.logger = logging.getLogger(__name__)

    async def create_order(self, student_id: int, request: Any) -> Order:
        """Validate, price and persist a new pending order"""
        if not isinstance(request, CreateOrderRequest):
            try:
                request = CreateOrderRequest.model_validate(request)
            except PydanticValidationError as e:
                first = e.errors()[0]
                field = ".".join(str(part) for part in first["loc"])
                raise ValidationError(f"{field}: {first['msg']}") from e

        if len(request.items) > self.platform.max_order_items:
            raise ValidationError(
                f"an order may contain at most {self.platform.max_order_items} items"
            )
        for line in request.items:
            if line.quantity > self.platform.max_order_quantity:
                raise ValidationError(
                    f"quantity per item must be between 1 and {self.platform.max_order_quantity}"
                )

        vendor = await self.vendors.get_vendor(request.vendor_id)
        if not vendor:
            raise NotFoundError(f"vendor {request.vendor_id} not found")
        if not vendor.is_open:
            raise ValidationError(f"{vendor.business_name} is currently closed")

        menu_items = await self.vendors.get_menu_items(
            vendor.id, [line.menu_item_id for line in request.items]
        )
        catalog = {item.id: item for item in menu_items}
        missing = [line.menu_item_id for line in request.items if line.menu_item_id not in catalog]
        if missing:
            raise ValidationError(f"menu items not available: {missing}")

        fees = compute_fees(
            [(catalog[line.menu_item_id], line.quantity) for line in request.items],
            vendor,
            self.platform,
            [line.special_instructions for line in request.items]
        )

        order_data: Dict[str, Any] = {
            "order_number": generate_order_number(),
            "student_id": student_id,
            "vendor_id": vendor.id,
            "status": OrderStatus.PENDING,
            "subtotal": fees.subtotal,
            "delivery_fee": fees.delivery_fee,
            "service_fee": fees.service_fee,
            "total_amount": fees.total,
            "commission_amount": fees.commission,
            "vendor_earnings": fees.vendor_earnings,
            "rider_earnings": fees.rider_earnings,
            "delivery_address": request.delivery_address,
            "delivery_lat": request.delivery_lat,
            "delivery_lng": request.delivery_lng,
            "delivery_block": request.delivery_block,
            "delivery_dorm": request.delivery_dorm,
            "customer_phone": request.customer_phone,
            "customer_id_number": request.customer_id_number,
            "special_instructions": request.special_instructions,
        }
        payment = Payment(
            amount=fees.total,
            payment_method=request.payment_method,
            payment_status=PaymentStatus.PENDING,
            transaction_id=generate_transaction_id()
        )

        order_id = await self.orders.create_order(order_data, fees.items, payment)
        order = await self.orders.get_order(order_id)
        self.logger.info(f"Order {order.order_number} placed by student {student_id}")

        try:
            await self.cache.put(order)
        except Exception as e:
            self.logger.error(f"Caching order {order_id} failed: {e}")
        await self.notifications.notify_new_order(order)
        return order

    async def get_order(self, order_id: int, actor: Actor) -> Order:
        order = await self.cache.get(order_id)
        if order is None:
            order = await self.orders.get_order(order_id)
        if not order:
            raise NotFoundError(f"order {order_id} not found")
        if not self._can_view(order, actor):
            raise AuthorizationError("you cannot view this order")
        return order

    async def get_student_orders(self, student_id: int, page: int = 1,
                                 limit: int = 20) -> Tuple[List[Order], int]:
        self._check_page(page, limit)
        return await self.orders.list_student_orders(student_id, (page - 1) * limit, limit)

    async def get_vendor_orders(self, vendor_id: int, status: Optional[OrderStatus] = None,
                                page: int = 1, limit: int = 20) -> Tuple[List[Order], int]:
        self._check_page(page, limit)
        return await self.orders.list_vendor_orders(vendor_id, status, (page - 1) * limit, limit)

    async def track_order(self, order_id: int, actor: Actor) -> TrackingInfo:
        order = await self.get_order(order_id, actor)
        return TrackingInfo(
            order_number=order.order_number,
            status=order.status,
            assigned_rider_id=order.assigned_rider_id,
            delivery_block=order.delivery_block,
            delivery_dorm=order.delivery_dorm,
            timeline=build_timeline(order)
        )

    async def rate_order(self, student_id: int, order_id: int, rating: int,
                         comment: str = "") -> Review:
        order = await self.orders.get_order(order_id)
        if not order:
            raise NotFoundError(f"order {order_id} not found")
        if order.student_id != student_id:
            raise AuthorizationError("you can only rate your own orders")
        if order.status != OrderStatus.DELIVERED:
            raise ValidationError("only delivered orders can be rated")

        try:
            review = Review(
                order_id=order.id,
                student_id=student_id,
                vendor_id=order.vendor_id,
                rider_id=order.assigned_rider_id,
                rating=rating,
                comment=comment
            )
        except PydanticValidationError as e:
            raise ValidationError("rating must be between 1 and 5") from e

        if not await self.orders.create_review(review):
            raise ConflictError("this order has already been rated")

        await self.vendors.refresh_rating(order.vendor_id)
        if order.assigned_rider_id is not None:
            await self.riders.refresh_rating(order.assigned_rider_id)
        return review

    async def cancel_order(self, order_id: int, actor: Actor, reason: str) -> Order:
        return await self.state_machine.cancel(order_id, actor, reason)

    @staticmethod
    def _can_view(order: Order, actor: Actor) -> bool:
        if actor.is_admin:
            return True
        if actor.role == Role.STUDENT:
            return order.student_id == actor.id
        if actor.role == Role.VENDOR:
            return order.vendor_id == actor.id
        if actor.role == Role.RIDER:
            if order.assigned_rider_id == actor.id:
                return True
            return order.status == OrderStatus.READY and not order.is_assigned
        return False

    @staticmethod
    def _check_page(page: int, limit: int) -> None:
        if page < 1 or limit < 1:
            raise ValidationError("page and limit must be positive")


def build_timeline(order: Order) -> List[TrackingEvent]:
    """Events recorded so far, oldest first"""
    events = [
        TrackingEvent(status=status, timestamp=getattr(order, field))
        for field, status in _TIMELINE
        if getattr(order, field) is not None
    ]
    if order.cancelled_at is not None:
        events.append(TrackingEvent(
            status=order.status,
            timestamp=order.cancelled_at,
            note=order.cancellation_reason
        ))
    return events
