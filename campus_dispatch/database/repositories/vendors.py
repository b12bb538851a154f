# campus_dispatch/database/repositories/vendors.py
from decimal import Decimal
from typing import Iterable, List, Optional
from ...models.menu_item import MenuItem
from ...models.vendor import Vendor

class VendorRepository:
    def __init__(self, db):
        self.db = db

    async def get_vendor(self, vendor_id: int) -> Optional[Vendor]:
        async with self.db.pool.acquire() as conn:
            row = await conn.fetchrow("SELECT * FROM vendors WHERE id = $1", vendor_id)
            return Vendor(**dict(row)) if row else None

    async def get_menu_items(self, vendor_id: int, item_ids: Iterable[int]) -> List[MenuItem]:
        """Available items of this vendor among ``item_ids``"""
        async with self.db.pool.acquire() as conn:
            rows = await conn.fetch("""
                SELECT id, vendor_id, name, price, discount_price, is_available
                FROM menu_items
                WHERE vendor_id = $1
                    AND id = ANY($2::int[])
                    AND is_available = TRUE
            """, vendor_id, list(item_ids))
            return [MenuItem(**dict(row)) for row in rows]

    async def record_delivered_order(self, vendor_id: int, subtotal: Decimal,
                                     vendor_earnings: Decimal) -> None:
        async with self.db.pool.acquire() as conn:
            await conn.execute("""
                UPDATE vendors
                SET total_orders = total_orders + 1,
                    total_revenue = total_revenue + $2,
                    total_earnings = total_earnings + $3,
                    current_balance = current_balance + $3
                WHERE id = $1
            """, vendor_id, subtotal, vendor_earnings)

    async def refresh_rating(self, vendor_id: int) -> None:
        async with self.db.pool.acquire() as conn:
            await conn.execute("""
                UPDATE vendors
                SET rating = COALESCE(r.avg_rating, 0),
                    review_count = r.review_count
                FROM (
                    SELECT AVG(rating)::float AS avg_rating, COUNT(*) AS review_count
                    FROM reviews WHERE vendor_id = $1
                ) r
                WHERE vendors.id = $1
            """, vendor_id)
