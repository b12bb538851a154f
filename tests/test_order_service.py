from decimal import Decimal

import pytest

from campus_dispatch.exceptions import (
    AuthorizationError,
    BelowMinimumOrderError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from campus_dispatch.models import Actor, OrderStatus, PaymentStatus, Role

from .conftest import ADMIN_USER, STUDENT_ID, STUDENT_USER, VENDOR_ID, VENDOR_USER


def request(**overrides):
    data = {
        "vendor_id": VENDOR_ID,
        "items": [
            {"menu_item_id": 1, "quantity": 2, "special_instructions": "extra spicy"},
            {"menu_item_id": 2, "quantity": 2},
        ],
        "delivery_address": "Main campus",
        "delivery_lat": 9.03,
        "delivery_lng": 38.76,
        "delivery_block": "B5",
        "delivery_dorm": "214",
        "customer_phone": "+251911000000",
        "customer_id_number": "UGR/1234/15",
        "payment_method": "cash",
    }
    data.update(overrides)
    return data


async def test_create_order_prices_and_persists(env):
    order = await env.order_service.create_order(STUDENT_ID, request())

    # 2 x 8.00 + 2 x 2.00 (discounted juice)
    assert order.status == OrderStatus.PENDING
    assert order.subtotal == Decimal("20.00")
    assert order.total_amount == Decimal("23.50")
    assert order.commission_amount + order.vendor_earnings == order.subtotal
    assert order.order_number.startswith("ORD-")
    assert [item.unit_price for item in order.items] == [Decimal("8.00"), Decimal("2.00")]
    assert order.items[0].special_instructions == "extra spicy"

    assert order.payment.amount == order.total_amount
    assert order.payment.payment_status == PaymentStatus.PENDING
    assert order.payment.transaction_id.startswith("TXN-")

    assert await env.cache.get(order.id) is not None
    assert "New Order" in env.users.titles_for(VENDOR_USER)
    assert "Order Placed" in env.users.titles_for(STUDENT_USER)
    assert "New Order Placed" in env.users.titles_for(ADMIN_USER)


@pytest.mark.parametrize("overrides", [
    {"items": []},
    {"items": [{"menu_item_id": 1, "quantity": 0}]},
    {"delivery_block": "   "},
    {"customer_phone": ""},
    {"delivery_lat": 123.0},
    {"payment_method": "bitcoin"},
])
async def test_malformed_requests_touch_nothing(env, overrides):
    with pytest.raises(ValidationError):
        await env.order_service.create_order(STUDENT_ID, request(**overrides))
    assert env.orders_repo.orders == {}
    assert env.users.notifications == []


async def test_quantity_and_item_limits(env):
    with pytest.raises(ValidationError):
        await env.order_service.create_order(
            STUDENT_ID, request(items=[{"menu_item_id": 1, "quantity": 11}])
        )

    too_many = [{"menu_item_id": 1, "quantity": 1}] * 51
    with pytest.raises(ValidationError):
        await env.order_service.create_order(STUDENT_ID, request(items=too_many))


async def test_unknown_or_closed_vendor(env):
    with pytest.raises(NotFoundError):
        await env.order_service.create_order(STUDENT_ID, request(vendor_id=99))

    env.vendors_repo.vendors[VENDOR_ID] = env.vendors_repo.vendors[VENDOR_ID].model_copy(
        update={"is_open": False}
    )
    with pytest.raises(ValidationError):
        await env.order_service.create_order(STUDENT_ID, request())


async def test_unavailable_menu_item(env):
    with pytest.raises(ValidationError):
        await env.order_service.create_order(
            STUDENT_ID, request(items=[{"menu_item_id": 3, "quantity": 5}])
        )


async def test_below_vendor_minimum(env):
    with pytest.raises(BelowMinimumOrderError):
        await env.order_service.create_order(
            STUDENT_ID, request(items=[{"menu_item_id": 2, "quantity": 1}])
        )
    assert env.orders_repo.orders == {}


async def test_read_authorization(env):
    await env.add_rider(1, available=False)
    order = env.add_order(OrderStatus.CONFIRMED, rider_id=1)

    for actor in (env.student, env.vendor, env.admin, env.rider_actor(1)):
        assert (await env.order_service.get_order(order.id, actor)).id == order.id

    strangers = (
        Actor(role=Role.STUDENT, id=STUDENT_ID + 1),
        Actor(role=Role.VENDOR, id=VENDOR_ID + 1),
        env.rider_actor(2),
    )
    for actor in strangers:
        with pytest.raises(AuthorizationError):
            await env.order_service.get_order(order.id, actor)


async def test_riders_can_view_open_ready_orders(env):
    order = env.add_order(OrderStatus.READY)
    assert (await env.order_service.get_order(order.id, env.rider_actor(5))).id == order.id


async def test_missing_order(env):
    with pytest.raises(NotFoundError):
        await env.order_service.get_order(404, env.admin)


async def test_listing_is_paginated(env):
    for _ in range(5):
        env.add_order(OrderStatus.PENDING)
    env.add_order(OrderStatus.CONFIRMED)

    orders, total = await env.order_service.get_student_orders(STUDENT_ID, page=2, limit=2)
    assert total == 6
    assert len(orders) == 2

    pending, pending_total = await env.order_service.get_vendor_orders(
        VENDOR_ID, OrderStatus.CONFIRMED
    )
    assert pending_total == 1
    assert pending[0].status == OrderStatus.CONFIRMED

    with pytest.raises(ValidationError):
        await env.order_service.get_student_orders(STUDENT_ID, page=0)


async def test_tracking_timeline(env):
    order = env.add_order(OrderStatus.READY)

    tracking = await env.order_service.track_order(order.id, env.student)

    assert tracking.status == OrderStatus.READY
    assert [event.status for event in tracking.timeline] == [
        OrderStatus.PENDING, OrderStatus.CONFIRMED, OrderStatus.PREPARING, OrderStatus.READY
    ]


async def test_tracking_cancelled_order_carries_reason(env):
    order = env.add_order(OrderStatus.PENDING)
    await env.order_service.cancel_order(order.id, env.student, "ordered twice")

    tracking = await env.order_service.track_order(order.id, env.student)

    last = tracking.timeline[-1]
    assert last.status == OrderStatus.CANCELLED
    assert last.note == "ordered twice"


async def test_rate_delivered_order_once(env):
    await env.add_rider(1, available=False)
    order = env.add_order(OrderStatus.DELIVERED, rider_id=1)

    review = await env.order_service.rate_order(STUDENT_ID, order.id, 5, "fast")

    assert review.rider_id == 1
    assert env.vendors_repo.rating_refreshes == [VENDOR_ID]
    assert env.riders_repo.rating_refreshes == [1]

    with pytest.raises(ConflictError):
        await env.order_service.rate_order(STUDENT_ID, order.id, 4)


async def test_rating_rules(env):
    pending = env.add_order(OrderStatus.PENDING)
    delivered = env.add_order(OrderStatus.DELIVERED)

    with pytest.raises(ValidationError):
        await env.order_service.rate_order(STUDENT_ID, pending.id, 5)
    with pytest.raises(AuthorizationError):
        await env.order_service.rate_order(STUDENT_ID + 1, delivered.id, 5)
    with pytest.raises(ValidationError):
        await env.order_service.rate_order(STUDENT_ID, delivered.id, 6)
    assert env.orders_repo.reviews == {}
