# campus_dispatch/models/actor.py
from typing import Dict, FrozenSet
from pydantic import BaseModel, ConfigDict
from .order import OrderStatus
from .user import Role

# Targets each role may request; admins are not limited
ROLE_TARGETS: Dict[Role, FrozenSet[OrderStatus]] = {
    Role.VENDOR: frozenset({
        OrderStatus.CONFIRMED,
        OrderStatus.PREPARING,
        OrderStatus.READY,
        OrderStatus.REJECTED,
    }),
    Role.RIDER: frozenset({
        OrderStatus.PICKED_UP,
        OrderStatus.DELIVERED,
    }),
}

class Actor(BaseModel):
    """Who is acting on an order.

    ``id`` is the role profile id (student.id, vendor.id, rider.id); for
    admins it is the user id.
    """
    role: Role
    id: int
    user_id: int = 0

    model_config = ConfigDict(frozen=True)

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    def may_set(self, target: OrderStatus) -> bool:
        if self.is_admin:
            return True
        return target in ROLE_TARGETS.get(self.role, frozenset())
