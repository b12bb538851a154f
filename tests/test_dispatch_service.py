import asyncio

import pytest

from campus_dispatch.exceptions import (
    AlreadyAssignedError,
    AuthorizationError,
    ConflictError,
    InvalidTransitionError,
    NoRiderAvailableError,
    OrderNotReadyError,
    RiderUnavailableError,
)
from campus_dispatch.models import OrderStatus

from .conftest import ADMIN_USER, CAMPUS_LAT, CAMPUS_LNG


async def test_auto_assign_picks_nearest_rider(env):
    await env.add_rider(1, lat=CAMPUS_LAT + 0.03, lng=CAMPUS_LNG)
    await env.add_rider(2, lat=CAMPUS_LAT + 0.01, lng=CAMPUS_LNG)
    order = env.add_order(OrderStatus.READY)

    rider_id = await env.dispatcher.auto_assign(await env.order(order.id))

    assert rider_id == 2
    assert (await env.order(order.id)).assigned_rider_id == 2
    assert await env.geo.is_available(1)
    assert not await env.geo.is_available(2)
    assert "New Delivery" in env.users.titles_for(302)
    assert "Rider Assigned" in env.users.titles_for(ADMIN_USER)


async def test_auto_assign_ignores_riders_outside_radius(env):
    await env.add_rider(1, lat=CAMPUS_LAT + 1.0, lng=CAMPUS_LNG)
    order = env.add_order(OrderStatus.READY)

    with pytest.raises(NoRiderAvailableError):
        await env.dispatcher.auto_assign(await env.order(order.id))

    stored = await env.order(order.id)
    assert stored.status == OrderStatus.READY
    assert stored.assigned_rider_id is None


async def test_auto_assign_skips_rider_reserved_meanwhile(env):
    await env.add_rider(1, lat=CAMPUS_LAT + 0.001, lng=CAMPUS_LNG)
    await env.add_rider(2, lat=CAMPUS_LAT + 0.02, lng=CAMPUS_LNG)
    order = env.add_order(OrderStatus.READY)

    # Rider 1 still shows up in the index, but its flag was taken by another claim
    env.riders_repo.riders[1] = env.riders_repo.riders[1].model_copy(update={"is_available": False})

    rider_id = await env.dispatcher.auto_assign(await env.order(order.id))

    assert rider_id == 2


async def test_auto_assign_honours_exclusions(env):
    await env.add_rider(1)
    order = env.add_order(OrderStatus.READY)

    with pytest.raises(NoRiderAvailableError):
        await env.dispatcher.auto_assign(await env.order(order.id), exclude=[1])


async def test_claim_marks_rider_busy_until_delivery(env):
    await env.add_rider(1)
    order = env.add_order(OrderStatus.READY)

    claimed = await env.dispatcher.claim_order(1, order.id)

    assert claimed.assigned_rider_id == 1
    assert not env.riders_repo.riders[1].is_available
    assert not await env.geo.is_available(1)

    other = env.add_order(OrderStatus.READY)
    with pytest.raises(RiderUnavailableError):
        await env.dispatcher.claim_order(1, other.id)
    assert (await env.order(other.id)).assigned_rider_id is None

    rider = env.rider_actor(1)
    await env.state_machine.transition(order.id, rider, OrderStatus.PICKED_UP)
    assert not env.riders_repo.riders[1].is_available
    await env.state_machine.transition(order.id, rider, OrderStatus.DELIVERED)
    assert env.riders_repo.riders[1].is_available


async def test_concurrent_claims_have_one_winner(env):
    await env.add_rider(1)
    await env.add_rider(2)
    order = env.add_order(OrderStatus.READY)

    results = await asyncio.gather(
        env.dispatcher.claim_order(1, order.id),
        env.dispatcher.claim_order(2, order.id),
        return_exceptions=True
    )

    winners = [r for r in results if not isinstance(r, Exception)]
    losers = [r for r in results if isinstance(r, Exception)]
    assert len(winners) == 1
    assert len(losers) == 1
    assert isinstance(losers[0], ConflictError)

    winner = winners[0].assigned_rider_id
    loser = 2 if winner == 1 else 1
    assert (await env.order(order.id)).assigned_rider_id == winner
    assert not env.riders_repo.riders[winner].is_available
    assert env.riders_repo.riders[loser].is_available
    assert await env.geo.is_available(loser)


async def test_one_rider_racing_for_two_orders_gets_one(env):
    await env.add_rider(1)
    first = env.add_order(OrderStatus.READY)
    second = env.add_order(OrderStatus.READY)

    results = await asyncio.gather(
        env.dispatcher.claim_order(1, first.id),
        env.dispatcher.claim_order(1, second.id),
        return_exceptions=True
    )

    assert sum(not isinstance(r, Exception) for r in results) == 1
    assert await env.orders_repo.count_active_orders_for_rider(1) == 1


async def test_claim_requires_ready_order(env):
    await env.add_rider(1)
    order = env.add_order(OrderStatus.PREPARING)

    with pytest.raises(OrderNotReadyError):
        await env.dispatcher.claim_order(1, order.id)
    assert env.riders_repo.riders[1].is_available


async def test_claim_of_assigned_order(env):
    await env.add_rider(1, available=False)
    await env.add_rider(2)
    order = env.add_order(OrderStatus.READY, rider_id=1)

    with pytest.raises(AlreadyAssignedError):
        await env.dispatcher.claim_order(2, order.id)
    assert env.riders_repo.riders[2].is_available


async def test_admin_assign_confirms_pending_order(env):
    await env.add_rider(1)
    order = env.add_order(OrderStatus.PENDING)

    assigned = await env.dispatcher.assign_rider(order.id, 1)

    assert assigned.status == OrderStatus.CONFIRMED
    assert assigned.confirmed_at is not None
    assert assigned.assigned_rider_id == 1
    assert not env.riders_repo.riders[1].is_available


@pytest.mark.parametrize("status", [OrderStatus.CONFIRMED, OrderStatus.PREPARING, OrderStatus.READY])
async def test_admin_pre_assignment_keeps_status(env, status):
    await env.add_rider(1)
    order = env.add_order(status)

    assigned = await env.dispatcher.assign_rider(order.id, 1)

    assert assigned.status == status
    assert assigned.assigned_rider_id == 1


async def test_admin_assign_rejects_late_orders(env):
    await env.add_rider(1)
    order = env.add_order(OrderStatus.DELIVERED)

    with pytest.raises(InvalidTransitionError):
        await env.dispatcher.assign_rider(order.id, 1)
    assert env.riders_repo.riders[1].is_available


async def test_pre_assigned_order_is_not_auto_dispatched(env):
    await env.add_rider(1)
    await env.add_rider(2)
    order = env.add_order(OrderStatus.PREPARING)
    await env.dispatcher.assign_rider(order.id, 1)

    await env.state_machine.transition(order.id, env.vendor, OrderStatus.READY)

    assert (await env.order(order.id)).assigned_rider_id == 1
    assert env.riders_repo.riders[2].is_available


async def test_rejection_by_other_rider_changes_nothing(env):
    await env.add_rider(1, available=False)
    await env.add_rider(2)
    order = env.add_order(OrderStatus.READY, rider_id=1)
    before = await env.order(order.id)

    with pytest.raises(AuthorizationError):
        await env.dispatcher.handle_rejection(order.id, 2)

    assert await env.order(order.id) == before
    assert not env.riders_repo.riders[1].is_available
    assert env.riders_repo.riders[2].is_available


async def test_rejection_after_pickup_is_refused(env):
    await env.add_rider(1, available=False)
    order = env.add_order(OrderStatus.PICKED_UP, rider_id=1)

    with pytest.raises(InvalidTransitionError):
        await env.dispatcher.handle_rejection(order.id, 1)
    assert (await env.order(order.id)).assigned_rider_id == 1


async def test_rejection_reassigns_to_another_rider(env):
    await env.add_rider(1, available=False)
    await env.add_rider(2, lat=CAMPUS_LAT + 0.01, lng=CAMPUS_LNG)
    order = env.add_order(OrderStatus.READY, rider_id=1)

    new_rider = await env.dispatcher.handle_rejection(order.id, 1)

    assert new_rider == 2
    assert (await env.order(order.id)).assigned_rider_id == 2
    assert env.riders_repo.riders[1].is_available


async def test_rejection_retries_once_then_escalates(env, monkeypatch):
    await env.add_rider(1, available=False)
    order = env.add_order(OrderStatus.READY, rider_id=1)

    calls = []
    original = env.dispatcher.auto_assign

    async def counting_auto_assign(order, exclude=()):
        calls.append(list(exclude))
        return await original(order, exclude=exclude)

    monkeypatch.setattr(env.dispatcher, "auto_assign", counting_auto_assign)

    assert await env.dispatcher.handle_rejection(order.id, 1) is None

    assert calls == [[1]]
    stored = await env.order(order.id)
    assert stored.assigned_rider_id is None
    assert stored.status == OrderStatus.READY
    assert "Order Needs Manual Assignment" in env.users.titles_for(ADMIN_USER)


async def test_rejection_before_ready_does_not_dispatch(env):
    await env.add_rider(1, available=False)
    await env.add_rider(2)
    order = env.add_order(OrderStatus.PREPARING, rider_id=1)

    assert await env.dispatcher.handle_rejection(order.id, 1) is None

    assert (await env.order(order.id)).assigned_rider_id is None
    assert env.riders_repo.riders[2].is_available
    assert env.riders_repo.riders[1].is_available


async def test_rider_claim_does_not_alert_admin(env):
    await env.add_rider(1)
    order = env.add_order(OrderStatus.READY)

    await env.dispatcher.claim_order(1, order.id)

    assert "Rider Assigned" not in env.users.titles_for(ADMIN_USER)
