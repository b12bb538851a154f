import re
from datetime import datetime, timezone
from decimal import Decimal

from campus_dispatch.config import PlatformConfig
from campus_dispatch.models import OrderStatus, TrackingInfo
from campus_dispatch.services.order_service import build_timeline
from campus_dispatch.utils.formatters import format_datetime, format_price, round_money
from campus_dispatch.utils.geo import validate_coordinates
from campus_dispatch.utils.identifiers import generate_order_number, generate_transaction_id
from campus_dispatch.utils.messages import Messages


def test_money_rounding_is_half_up():
    assert round_money(Decimal("0.005")) == Decimal("0.01")
    assert round_money(Decimal("2.344")) == Decimal("2.34")
    assert format_price(Decimal("1234.5")) == "1,234.50"


def test_identifier_formats():
    assert re.fullmatch(r"ORD-\d+-\d{3}", generate_order_number())
    assert re.fullmatch(r"TXN-\d+-\d{4}", generate_transaction_id())


def test_format_datetime_assumes_utc_for_naive_values():
    naive = datetime(2024, 1, 2, 3, 4, 5)
    aware = naive.replace(tzinfo=timezone.utc)
    assert format_datetime(naive) == format_datetime(aware)


def test_coordinates():
    assert validate_coordinates(9.03, 38.76)
    assert not validate_coordinates(None, 38.76)
    assert not validate_coordinates(-90.1, 0)


def test_platform_defaults():
    platform = PlatformConfig()
    assert platform.delivery_fee == Decimal("2.50")
    assert platform.dispatch_radius_km == 10.0
    assert platform.dispatch_candidate_limit == 10


def test_order_message_mentions_money_and_status(env):
    order = env.add_order(OrderStatus.READY)

    text = Messages.format_order(order)

    assert order.order_number in text
    assert "23.50" in text
    assert "ready" in text


def test_tracking_message_lists_events(env):
    order = env.add_order(OrderStatus.CONFIRMED)

    text = Messages.format_tracking(TrackingInfo(
        order_number=order.order_number,
        status=order.status,
        timeline=build_timeline(order)
    ))

    assert text.count("•") == 2
