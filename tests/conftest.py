from decimal import Decimal
from typing import Optional

import pytest

from campus_dispatch.config import PlatformConfig
from campus_dispatch.database.active_order_cache import ActiveOrderCache
from campus_dispatch.database.geo_index import InMemoryGeoIndex
from campus_dispatch.models import Actor, MenuItem, Order, OrderStatus, Role, Vendor
from campus_dispatch.models.order import STATUS_TIMESTAMP_FIELDS
from campus_dispatch.services import (
    NotificationService,
    OrderService,
    OrderStateMachine,
    RiderDispatcher,
    RiderService,
)

from .fakes import (
    FakeOrderRepository,
    FakeRiderRepository,
    FakeStudentRepository,
    FakeUserRepository,
    FakeVendorRepository,
    now,
)

# Delivery point used by every seeded order
CAMPUS_LAT = 9.0300
CAMPUS_LNG = 38.7600

STUDENT_ID, STUDENT_USER = 1, 101
VENDOR_ID, VENDOR_USER = 1, 201
ADMIN_USER = 900

_LIFECYCLE = [
    OrderStatus.CONFIRMED,
    OrderStatus.PREPARING,
    OrderStatus.READY,
    OrderStatus.PICKED_UP,
    OrderStatus.DELIVERED,
]


class Env:
    """Services wired over in-memory repositories"""

    def __init__(self):
        self.platform = PlatformConfig()
        self.users = FakeUserRepository()
        self.riders_repo = FakeRiderRepository()
        self.vendors_repo = FakeVendorRepository()
        self.students_repo = FakeStudentRepository()
        self.orders_repo = FakeOrderRepository(self.riders_repo, self.vendors_repo, self.students_repo)
        self.geo = InMemoryGeoIndex()
        self.cache = ActiveOrderCache(self.platform.active_order_ttl_minutes * 60)
        self.notifications = NotificationService(self.users)
        self.rider_service = RiderService(self.riders_repo, self.orders_repo, self.geo)
        self.dispatcher = RiderDispatcher(
            self.orders_repo, self.rider_service, self.geo, self.notifications,
            self.cache, self.platform
        )
        self.state_machine = OrderStateMachine(
            self.orders_repo, self.vendors_repo, self.students_repo, self.riders_repo,
            self.rider_service, self.notifications, self.cache, self.dispatcher
        )
        self.order_service = OrderService(
            self.orders_repo, self.vendors_repo, self.riders_repo, self.notifications,
            self.state_machine, self.cache, self.platform
        )

        self.users.admin_ids.append(ADMIN_USER)
        self.students_repo.add(STUDENT_ID, STUDENT_USER)
        self.vendors_repo.add(Vendor(
            id=VENDOR_ID,
            user_id=VENDOR_USER,
            business_name="Block 5 Cafe",
            is_open=True,
            commission_rate=Decimal("0.15"),
            minimum_order=Decimal("5.00"),
            latitude=CAMPUS_LAT,
            longitude=CAMPUS_LNG,
            created_at=now()
        ))
        self.vendors_repo.add_item(MenuItem(
            id=1, vendor_id=VENDOR_ID, name="Shiro", price=Decimal("8.00")
        ))
        self.vendors_repo.add_item(MenuItem(
            id=2, vendor_id=VENDOR_ID, name="Juice", price=Decimal("3.00"),
            discount_price=Decimal("2.00")
        ))
        self.vendors_repo.add_item(MenuItem(
            id=3, vendor_id=VENDOR_ID, name="Cake", price=Decimal("4.00"), is_available=False
        ))

    student = Actor(role=Role.STUDENT, id=STUDENT_ID, user_id=STUDENT_USER)
    vendor = Actor(role=Role.VENDOR, id=VENDOR_ID, user_id=VENDOR_USER)
    admin = Actor(role=Role.ADMIN, id=ADMIN_USER, user_id=ADMIN_USER)

    @staticmethod
    def rider_actor(rider_id: int) -> Actor:
        return Actor(role=Role.RIDER, id=rider_id, user_id=300 + rider_id)

    async def add_rider(self, rider_id: int, lat: float = CAMPUS_LAT, lng: float = CAMPUS_LNG,
                        available: bool = True):
        rider = self.riders_repo.add(rider_id, 300 + rider_id, available, lat, lng)
        if available:
            await self.geo.set_available(rider_id, lat, lng)
        return rider

    def add_order(self, status: OrderStatus = OrderStatus.PENDING, order_id: Optional[int] = None,
                  rider_id: Optional[int] = None) -> Order:
        """Seed an order of subtotal 20.00 already moved to ``status``"""
        order_id = order_id or self.orders_repo._next_id
        stamps = {}
        if status in _LIFECYCLE:
            for step in _LIFECYCLE[:_LIFECYCLE.index(status) + 1]:
                stamps[STATUS_TIMESTAMP_FIELDS[step]] = now()
        if status in (OrderStatus.CANCELLED, OrderStatus.REJECTED):
            stamps["cancelled_at"] = now()

        return self.orders_repo.add(Order(
            id=order_id,
            order_number=f"ORD-1700000000-{order_id:03d}",
            student_id=STUDENT_ID,
            vendor_id=VENDOR_ID,
            assigned_rider_id=rider_id,
            status=status,
            subtotal=Decimal("20.00"),
            delivery_fee=Decimal("2.50"),
            service_fee=Decimal("1.00"),
            total_amount=Decimal("23.50"),
            commission_amount=Decimal("3.00"),
            vendor_earnings=Decimal("17.00"),
            rider_earnings=Decimal("2.00"),
            delivery_address="Main campus",
            delivery_lat=CAMPUS_LAT,
            delivery_lng=CAMPUS_LNG,
            delivery_block="B5",
            delivery_dorm="214",
            customer_phone="+251911000000",
            customer_id_number="UGR/1234/15",
            created_at=now(),
            **stamps
        ))

    async def order(self, order_id: int) -> Order:
        return await self.orders_repo.get_order(order_id)


@pytest.fixture
def env():
    return Env()
