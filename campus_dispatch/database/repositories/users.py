# campus_dispatch/database/repositories/users.py
from typing import List, Optional
from ...models.actor import Actor
from ...models.notification import Notification
from ...models.user import Role

class UserRepository:
    """Account lookups used to resolve chat users and deliver notifications"""

    def __init__(self, db):
        self.db = db

    async def resolve_actor(self, telegram_chat_id: int) -> Optional[Actor]:
        """Map a Telegram chat to the acting role profile"""
        async with self.db.pool.acquire() as conn:
            row = await conn.fetchrow("""
                SELECT u.id AS user_id, u.role,
                    COALESCE(s.id, v.id, r.id, u.id) AS profile_id
                FROM users u
                LEFT JOIN students s ON s.user_id = u.id AND u.role = 'student'
                LEFT JOIN vendors v ON v.user_id = u.id AND u.role = 'vendor'
                LEFT JOIN riders r ON r.user_id = u.id AND u.role = 'rider'
                WHERE u.telegram_chat_id = $1 AND u.is_active = TRUE
            """, telegram_chat_id)
            if not row:
                return None
            return Actor(role=Role(row["role"]), id=row["profile_id"], user_id=row["user_id"])

    async def get_chat_id(self, user_id: int) -> Optional[int]:
        async with self.db.pool.acquire() as conn:
            return await conn.fetchval(
                "SELECT telegram_chat_id FROM users WHERE id = $1", user_id
            )

    async def get_admin_user_ids(self) -> List[int]:
        async with self.db.pool.acquire() as conn:
            rows = await conn.fetch(
                "SELECT id FROM users WHERE role = 'admin' AND is_active = TRUE"
            )
            return [row["id"] for row in rows]

    async def create_notification(self, notification: Notification) -> None:
        async with self.db.pool.acquire() as conn:
            await conn.execute("""
                INSERT INTO notifications (user_id, title, message, type, reference_id)
                VALUES ($1, $2, $3, $4, $5)
            """, notification.user_id, notification.title, notification.message,
                 notification.type.value, notification.reference_id)
