# campus_dispatch/database/repositories/students.py
from decimal import Decimal
from typing import Optional
from ...models.user import Student

class StudentRepository:
    def __init__(self, db):
        self.db = db

    async def get_student(self, student_id: int) -> Optional[Student]:
        async with self.db.pool.acquire() as conn:
            row = await conn.fetchrow("SELECT * FROM students WHERE id = $1", student_id)
            return Student(**dict(row)) if row else None

    async def record_delivered_order(self, student_id: int, total_amount: Decimal) -> None:
        async with self.db.pool.acquire() as conn:
            await conn.execute("""
                UPDATE students
                SET total_orders = total_orders + 1,
                    total_spent = total_spent + $2
                WHERE id = $1
            """, student_id, total_amount)
