# campus_dispatch/database/repositories/orders.py
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple
from ...models.order import Order, OrderItem, OrderStatus, Payment
from ...models.review import Review

_ORDER_SELECT = """
    SELECT o.*,
        s.user_id AS student_user_id,
        v.user_id AS vendor_user_id,
        r.user_id AS rider_user_id
    FROM orders o
    JOIN students s ON s.id = o.student_id
    JOIN vendors v ON v.id = o.vendor_id
    LEFT JOIN riders r ON r.id = o.assigned_rider_id
"""

# Columns a status write may carry besides status itself
_TRANSITION_FIELDS = frozenset({
    "confirmed_at",
    "prepared_at",
    "ready_at",
    "picked_up_at",
    "delivered_at",
    "cancelled_at",
    "cancellation_reason",
})

_ORDER_COLUMNS = (
    "order_number", "student_id", "vendor_id", "status",
    "subtotal", "delivery_fee", "service_fee", "total_amount",
    "commission_amount", "vendor_earnings", "rider_earnings",
    "delivery_address", "delivery_lat", "delivery_lng",
    "delivery_block", "delivery_dorm", "customer_phone",
    "customer_id_number", "special_instructions",
)


class OrderRepository:
    """Order persistence; every mutating write is conditional"""

    def __init__(self, db):
        self.db = db

    async def create_order(self, order_data: Dict[str, Any], items: List[OrderItem],
                           payment: Payment) -> int:
        """Insert the order, its line items and the pending payment in one transaction"""
        columns = ", ".join(_ORDER_COLUMNS)
        placeholders = ", ".join(f"${i}" for i in range(1, len(_ORDER_COLUMNS) + 1))
        values = [
            order_data[column].value if isinstance(order_data[column], OrderStatus)
            else order_data[column]
            for column in _ORDER_COLUMNS
        ]

        async with self.db.pool.acquire() as conn:
            async with conn.transaction():
                order_id = await conn.fetchval(f"""
                    INSERT INTO orders ({columns})
                    VALUES ({placeholders})
                    RETURNING id
                """, *values)

                await conn.executemany("""
                    INSERT INTO order_items (
                        order_id, menu_item_id, quantity, unit_price,
                        subtotal, special_instructions
                    ) VALUES ($1, $2, $3, $4, $5, $6)
                """, [
                    (order_id, item.menu_item_id, item.quantity, item.unit_price,
                     item.subtotal, item.special_instructions)
                    for item in items
                ])

                await conn.execute("""
                    INSERT INTO payments (
                        order_id, amount, payment_method, payment_status, transaction_id
                    ) VALUES ($1, $2, $3, $4, $5)
                """, order_id, payment.amount, payment.payment_method.value,
                     payment.payment_status.value, payment.transaction_id)

                return order_id

    async def get_order(self, order_id: int) -> Optional[Order]:
        async with self.db.pool.acquire() as conn:
            row = await conn.fetchrow(f"{_ORDER_SELECT} WHERE o.id = $1", order_id)
            if not row:
                return None
            orders = await self._hydrate(conn, [row])
            return orders[0]

    async def update_status(self, order_id: int, expected_status: OrderStatus,
                            new_status: OrderStatus, fields: Dict[str, Any]) -> bool:
        """Compare-and-swap the status; False when the order moved on meanwhile"""
        unknown = set(fields) - _TRANSITION_FIELDS
        if unknown:
            raise ValueError(f"Unsupported order fields: {sorted(unknown)}")

        assignments = ["status = $1", "updated_at = CURRENT_TIMESTAMP"]
        params: List[Any] = [new_status.value]
        for column, value in fields.items():
            params.append(value)
            assignments.append(f"{column} = ${len(params)}")
        params.extend([order_id, expected_status.value])

        async with self.db.pool.acquire() as conn:
            result = await conn.execute(f"""
                UPDATE orders
                SET {", ".join(assignments)}
                WHERE id = ${len(params) - 1} AND status = ${len(params)}
            """, *params)
            return result == "UPDATE 1"

    async def assign_rider(self, order_id: int, rider_id: int, expected_status: OrderStatus,
                           new_status: Optional[OrderStatus] = None,
                           confirmed_at: Optional[datetime] = None) -> bool:
        """Set the rider only while the order is unassigned and in ``expected_status``"""
        async with self.db.pool.acquire() as conn:
            result = await conn.execute("""
                UPDATE orders
                SET assigned_rider_id = $1,
                    status = COALESCE($4::varchar, status),
                    confirmed_at = COALESCE($5::timestamptz, confirmed_at),
                    updated_at = CURRENT_TIMESTAMP
                WHERE id = $2
                    AND status = $3
                    AND assigned_rider_id IS NULL
            """, rider_id, order_id, expected_status.value,
                 new_status.value if new_status else None, confirmed_at)
            return result == "UPDATE 1"

    async def unassign_rider(self, order_id: int, rider_id: int,
                             statuses: Iterable[OrderStatus]) -> bool:
        """Clear the assignment only if ``rider_id`` still holds it"""
        async with self.db.pool.acquire() as conn:
            result = await conn.execute("""
                UPDATE orders
                SET assigned_rider_id = NULL,
                    updated_at = CURRENT_TIMESTAMP
                WHERE id = $1
                    AND assigned_rider_id = $2
                    AND status = ANY($3::varchar[])
            """, order_id, rider_id, [status.value for status in statuses])
            return result == "UPDATE 1"

    async def count_active_orders_for_rider(self, rider_id: int) -> int:
        async with self.db.pool.acquire() as conn:
            return await conn.fetchval("""
                SELECT COUNT(*) FROM orders
                WHERE assigned_rider_id = $1
                    AND status NOT IN ('delivered', 'cancelled', 'rejected')
            """, rider_id)

    async def list_student_orders(self, student_id: int, offset: int,
                                  limit: int) -> Tuple[List[Order], int]:
        return await self._list("o.student_id = $1", [student_id], offset, limit)

    async def list_vendor_orders(self, vendor_id: int, status: Optional[OrderStatus],
                                 offset: int, limit: int) -> Tuple[List[Order], int]:
        if status:
            return await self._list("o.vendor_id = $1 AND o.status = $2",
                                    [vendor_id, status.value], offset, limit)
        return await self._list("o.vendor_id = $1", [vendor_id], offset, limit)

    async def list_rider_orders(self, rider_id: int,
                                status: Optional[OrderStatus] = None) -> List[Order]:
        if status:
            orders, _ = await self._list("o.assigned_rider_id = $1 AND o.status = $2",
                                         [rider_id, status.value], 0, None)
        else:
            orders, _ = await self._list("o.assigned_rider_id = $1", [rider_id], 0, None)
        return orders

    async def list_available_orders(self, offset: int, limit: int) -> Tuple[List[Order], int]:
        """Ready orders nobody has claimed yet"""
        return await self._list(
            "o.status = $1 AND o.assigned_rider_id IS NULL",
            [OrderStatus.READY.value], offset, limit
        )

    async def list_delivered_for_rider(self, rider_id: int, start: datetime,
                                       end: datetime) -> List[Order]:
        orders, _ = await self._list(
            "o.assigned_rider_id = $1 AND o.status = $2 AND o.delivered_at BETWEEN $3 AND $4",
            [rider_id, OrderStatus.DELIVERED.value, start, end], 0, None,
            order_by="o.delivered_at ASC"
        )
        return orders

    async def create_review(self, review: Review) -> bool:
        """Insert a review; False if the order was already rated"""
        async with self.db.pool.acquire() as conn:
            result = await conn.execute("""
                INSERT INTO reviews (order_id, student_id, vendor_id, rider_id, rating, comment)
                VALUES ($1, $2, $3, $4, $5, $6)
                ON CONFLICT (order_id) DO NOTHING
            """, review.order_id, review.student_id, review.vendor_id,
                 review.rider_id, review.rating, review.comment)
            return result == "INSERT 0 1"

    async def _list(self, where: str, params: List[Any], offset: int, limit: Optional[int],
                    order_by: str = "o.created_at DESC") -> Tuple[List[Order], int]:
        query = f"{_ORDER_SELECT} WHERE {where} ORDER BY {order_by}"
        query_params = list(params)
        if limit is not None:
            query += f" OFFSET ${len(query_params) + 1} LIMIT ${len(query_params) + 2}"
            query_params.extend([offset, limit])

        async with self.db.pool.acquire() as conn:
            total = await conn.fetchval(f"SELECT COUNT(*) FROM orders o WHERE {where}", *params)
            rows = await conn.fetch(query, *query_params)
            return await self._hydrate(conn, rows), total

    @staticmethod
    async def _hydrate(conn, rows) -> List[Order]:
        """Attach line items and payments to order rows"""
        if not rows:
            return []
        order_ids = [row["id"] for row in rows]

        item_rows = await conn.fetch("""
            SELECT oi.*, m.name
            FROM order_items oi
            JOIN menu_items m ON m.id = oi.menu_item_id
            WHERE oi.order_id = ANY($1::int[])
            ORDER BY oi.id
        """, order_ids)
        payment_rows = await conn.fetch("""
            SELECT * FROM payments WHERE order_id = ANY($1::int[])
        """, order_ids)

        items: Dict[int, List[OrderItem]] = {order_id: [] for order_id in order_ids}
        for item in item_rows:
            items[item["order_id"]].append(OrderItem(**dict(item)))
        payments = {p["order_id"]: Payment(**dict(p)) for p in payment_rows}

        return [
            Order(**dict(row), items=items[row["id"]], payment=payments.get(row["id"]))
            for row in rows
        ]
