import pytest

from campus_dispatch.database.geo_index import (
    InMemoryGeoIndex,
    PostgresGeoIndex,
    create_geo_index,
)
from campus_dispatch.utils.geo import haversine_distance

ORIGIN = (9.03, 38.76)


@pytest.fixture
def geo():
    return InMemoryGeoIndex()


async def test_nearest_first_within_radius(geo):
    await geo.set_available(1, 9.05, 38.76)
    await geo.set_available(2, 9.031, 38.76)
    await geo.set_available(3, 9.5, 38.76)

    hits = await geo.find_nearest(*ORIGIN, radius_km=10, count=10)

    assert [hit.rider_id for hit in hits] == [2, 1]
    assert hits[0].distance_km == pytest.approx(haversine_distance(*ORIGIN, 9.031, 38.76))


async def test_count_caps_results(geo):
    for rider_id in range(1, 6):
        await geo.set_available(rider_id, 9.03 + rider_id * 0.001, 38.76)

    hits = await geo.find_nearest(*ORIGIN, radius_km=10, count=3)

    assert [hit.rider_id for hit in hits] == [1, 2, 3]


async def test_membership_follows_the_flag(geo):
    await geo.set_available(1, *ORIGIN)
    assert await geo.is_available(1)

    await geo.set_unavailable(1)

    assert not await geo.is_available(1)
    assert await geo.find_nearest(*ORIGIN, radius_km=10, count=10) == []


async def test_update_location_only_moves_available_riders(geo):
    assert not await geo.update_location(1, *ORIGIN)
    assert not await geo.is_available(1)

    await geo.set_available(1, 10.0, 40.0)
    assert await geo.update_location(1, *ORIGIN)

    hits = await geo.find_nearest(*ORIGIN, radius_km=1, count=1)
    assert [hit.rider_id for hit in hits] == [1]


def test_haversine_known_distance():
    # One degree of latitude is about 111.2 km
    assert haversine_distance(0, 0, 1, 0) == pytest.approx(111.19, abs=0.01)


def test_backend_factory():
    assert isinstance(create_geo_index("memory"), InMemoryGeoIndex)
    assert isinstance(create_geo_index("postgres", db=object()), PostgresGeoIndex)
    with pytest.raises(ValueError):
        create_geo_index("postgres")
    with pytest.raises(ValueError):
        create_geo_index("redis")
