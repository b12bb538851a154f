# campus_dispatch/database/geo_index.py
"""Spatial index of available riders.

Index membership and the availability flag are changed together by
``set_available`` / ``set_unavailable``, so a rider is findable exactly when
it is flagged available. ``update_location`` only moves a rider that is
already flagged available.
"""
import asyncio
import logging
from typing import Dict, List, Set, Tuple
from ..models.rider import RiderLocation
from ..utils.geo import EARTH_RADIUS_KM, haversine_distance

logger = logging.getLogger(__name__)


class GeoIndex:
    """Contract shared by the index backends"""

    async def set_available(self, rider_id: int, lat: float, lng: float) -> None:
        """Upsert the rider's position and flag it available"""
        raise NotImplementedError

    async def set_unavailable(self, rider_id: int) -> None:
        """Drop the rider from radius queries and flag it unavailable"""
        raise NotImplementedError

    async def update_location(self, rider_id: int, lat: float, lng: float) -> bool:
        """Move an available rider; returns False if the rider is not indexed"""
        raise NotImplementedError

    async def find_nearest(self, lat: float, lng: float, radius_km: float,
                           count: int) -> List[RiderLocation]:
        """Available riders within ``radius_km``, nearest first, at most ``count``"""
        raise NotImplementedError

    async def is_available(self, rider_id: int) -> bool:
        raise NotImplementedError


class PostgresGeoIndex(GeoIndex):
    """Index kept in the ``rider_geo`` table; one row holds position and flag"""

    def __init__(self, db):
        self.db = db

    async def set_available(self, rider_id: int, lat: float, lng: float) -> None:
        async with self.db.pool.acquire() as conn:
            await conn.execute("""
                INSERT INTO rider_geo (rider_id, latitude, longitude, is_available, updated_at)
                VALUES ($1, $2, $3, TRUE, CURRENT_TIMESTAMP)
                ON CONFLICT (rider_id)
                DO UPDATE SET
                    latitude = EXCLUDED.latitude,
                    longitude = EXCLUDED.longitude,
                    is_available = TRUE,
                    updated_at = CURRENT_TIMESTAMP
            """, rider_id, lat, lng)

    async def set_unavailable(self, rider_id: int) -> None:
        async with self.db.pool.acquire() as conn:
            await conn.execute("""
                UPDATE rider_geo
                SET is_available = FALSE,
                    updated_at = CURRENT_TIMESTAMP
                WHERE rider_id = $1
            """, rider_id)

    async def update_location(self, rider_id: int, lat: float, lng: float) -> bool:
        async with self.db.pool.acquire() as conn:
            result = await conn.execute("""
                UPDATE rider_geo
                SET latitude = $2,
                    longitude = $3,
                    updated_at = CURRENT_TIMESTAMP
                WHERE rider_id = $1 AND is_available = TRUE
            """, rider_id, lat, lng)
            return result == "UPDATE 1"

    async def find_nearest(self, lat: float, lng: float, radius_km: float,
                           count: int) -> List[RiderLocation]:
        async with self.db.pool.acquire() as conn:
            rows = await conn.fetch("""
                SELECT rider_id, latitude, longitude, distance_km
                FROM (
                    SELECT rider_id, latitude, longitude,
                        $5 * 2 * ASIN(SQRT(
                            POWER(SIN(RADIANS(latitude - $1) / 2), 2)
                            + COS(RADIANS($1)) * COS(RADIANS(latitude))
                            * POWER(SIN(RADIANS(longitude - $2) / 2), 2)
                        )) AS distance_km
                    FROM rider_geo
                    WHERE is_available = TRUE
                ) candidates
                WHERE distance_km <= $3
                ORDER BY distance_km ASC
                LIMIT $4
            """, lat, lng, radius_km, count, float(EARTH_RADIUS_KM))
            return [RiderLocation(**dict(row)) for row in rows]

    async def is_available(self, rider_id: int) -> bool:
        async with self.db.pool.acquire() as conn:
            flag = await conn.fetchval(
                "SELECT is_available FROM rider_geo WHERE rider_id = $1", rider_id
            )
            return bool(flag)


class InMemoryGeoIndex(GeoIndex):
    """Single-process index; one lock guards positions and flags"""

    def __init__(self):
        self._positions: Dict[int, Tuple[float, float]] = {}
        self._available: Set[int] = set()
        self._lock = asyncio.Lock()

    async def set_available(self, rider_id: int, lat: float, lng: float) -> None:
        async with self._lock:
            self._positions[rider_id] = (lat, lng)
            self._available.add(rider_id)

    async def set_unavailable(self, rider_id: int) -> None:
        async with self._lock:
            self._positions.pop(rider_id, None)
            self._available.discard(rider_id)

    async def update_location(self, rider_id: int, lat: float, lng: float) -> bool:
        async with self._lock:
            if rider_id not in self._available:
                return False
            self._positions[rider_id] = (lat, lng)
            return True

    async def find_nearest(self, lat: float, lng: float, radius_km: float,
                           count: int) -> List[RiderLocation]:
        async with self._lock:
            hits = []
            for rider_id in self._available:
                rider_lat, rider_lng = self._positions[rider_id]
                distance = haversine_distance(lat, lng, rider_lat, rider_lng)
                if distance <= radius_km:
                    hits.append(RiderLocation(
                        rider_id=rider_id,
                        latitude=rider_lat,
                        longitude=rider_lng,
                        distance_km=distance
                    ))
        hits.sort(key=lambda hit: (hit.distance_km, hit.rider_id))
        return hits[:count]

    async def is_available(self, rider_id: int) -> bool:
        async with self._lock:
            return rider_id in self._available


def create_geo_index(backend: str, db=None) -> GeoIndex:
    if backend == "memory":
        logger.info("Using in-memory geo index")
        return InMemoryGeoIndex()
    if backend == "postgres":
        if db is None:
            raise ValueError("The postgres geo index needs a database")
        return PostgresGeoIndex(db)
    raise ValueError(f"Unknown geo index backend: {backend}")
