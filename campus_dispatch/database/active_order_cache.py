# campus_dispatch/database/active_order_cache.py
import asyncio
import time
from typing import Callable, Dict, Optional, Tuple
from ..models.order import Order

class ActiveOrderCache:
    """Short-lived cache of freshly placed orders, keyed by order id"""

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[int, Tuple[float, Order]] = {}
        self._lock = asyncio.Lock()

    async def put(self, order: Order) -> None:
        async with self._lock:
            now = self._clock()
            for order_id in [key for key, (expires_at, _) in self._entries.items()
                             if expires_at <= now]:
                del self._entries[order_id]
            self._entries[order.id] = (now + self.ttl_seconds, order)

    async def get(self, order_id: int) -> Optional[Order]:
        async with self._lock:
            entry = self._entries.get(order_id)
            if entry is None:
                return None
            expires_at, order = entry
            if expires_at <= self._clock():
                del self._entries[order_id]
                return None
            return order

    async def remove(self, order_id: int) -> None:
        async with self._lock:
            self._entries.pop(order_id, None)

    def __len__(self) -> int:
        return len(self._entries)
