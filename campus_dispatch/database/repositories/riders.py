# campus_dispatch/database/repositories/riders.py
from decimal import Decimal
from typing import Optional
from ...models.rider import Rider

class RiderRepository:
    def __init__(self, db):
        self.db = db

    async def get_rider(self, rider_id: int) -> Optional[Rider]:
        async with self.db.pool.acquire() as conn:
            row = await conn.fetchrow("SELECT * FROM riders WHERE id = $1", rider_id)
            return Rider(**dict(row)) if row else None

    async def get_rider_by_user_id(self, user_id: int) -> Optional[Rider]:
        async with self.db.pool.acquire() as conn:
            row = await conn.fetchrow("SELECT * FROM riders WHERE user_id = $1", user_id)
            return Rider(**dict(row)) if row else None

    async def set_availability(self, rider_id: int, available: bool, expected: bool) -> bool:
        """Flip the availability flag only if it currently equals ``expected``.

        The ``rider_geo`` row takes the same flag in the same transaction, so
        the stored flag and index membership commit or fail together.
        """
        async with self.db.pool.acquire() as conn:
            async with conn.transaction():
                row = await conn.fetchrow("""
                    UPDATE riders
                    SET is_available = $2,
                        updated_at = CURRENT_TIMESTAMP
                    WHERE id = $1 AND is_available = $3
                    RETURNING current_latitude, current_longitude
                """, rider_id, available, expected)
                if not row:
                    return False

                await conn.execute("""
                    INSERT INTO rider_geo (rider_id, latitude, longitude, is_available, updated_at)
                    VALUES ($1, $2, $3, $4, CURRENT_TIMESTAMP)
                    ON CONFLICT (rider_id)
                    DO UPDATE SET
                        latitude = EXCLUDED.latitude,
                        longitude = EXCLUDED.longitude,
                        is_available = EXCLUDED.is_available,
                        updated_at = CURRENT_TIMESTAMP
                """, rider_id, row["current_latitude"], row["current_longitude"], available)
                return True

    async def update_location(self, rider_id: int, lat: float, lng: float) -> bool:
        async with self.db.pool.acquire() as conn:
            result = await conn.execute("""
                UPDATE riders
                SET current_latitude = $2,
                    current_longitude = $3,
                    last_location_update = CURRENT_TIMESTAMP
                WHERE id = $1
            """, rider_id, lat, lng)
            return result == "UPDATE 1"

    async def record_delivery(self, rider_id: int, earnings: Decimal) -> None:
        """Credit one delivery and its earnings"""
        async with self.db.pool.acquire() as conn:
            await conn.execute("""
                UPDATE riders
                SET total_deliveries = total_deliveries + 1,
                    total_earnings = total_earnings + $2,
                    current_balance = current_balance + $2
                WHERE id = $1
            """, rider_id, earnings)

    async def refresh_rating(self, rider_id: int) -> None:
        async with self.db.pool.acquire() as conn:
            await conn.execute("""
                UPDATE riders
                SET rating = COALESCE(r.avg_rating, 0),
                    review_count = r.review_count
                FROM (
                    SELECT AVG(rating)::float AS avg_rating, COUNT(*) AS review_count
                    FROM reviews WHERE rider_id = $1
                ) r
                WHERE riders.id = $1
            """, rider_id)
