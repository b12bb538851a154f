from campus_dispatch.database.active_order_cache import ActiveOrderCache
from campus_dispatch.models import OrderStatus


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


async def test_entries_expire_after_ttl(env):
    clock = FakeClock()
    cache = ActiveOrderCache(ttl_seconds=60, clock=clock)
    order = env.add_order(OrderStatus.PENDING)

    await cache.put(order)
    clock.now += 59
    assert (await cache.get(order.id)).id == order.id

    clock.now += 1
    assert await cache.get(order.id) is None
    assert len(cache) == 0


async def test_remove_is_idempotent(env):
    cache = ActiveOrderCache(ttl_seconds=60)
    order = env.add_order(OrderStatus.PENDING)

    await cache.put(order)
    await cache.remove(order.id)
    await cache.remove(order.id)

    assert await cache.get(order.id) is None


async def test_put_sweeps_expired_entries(env):
    clock = FakeClock()
    cache = ActiveOrderCache(ttl_seconds=60, clock=clock)
    stale = env.add_order(OrderStatus.PENDING)
    fresh = env.add_order(OrderStatus.PENDING)

    await cache.put(stale)
    clock.now += 61
    await cache.put(fresh)

    assert len(cache) == 1
    assert (await cache.get(fresh.id)).id == fresh.id
