# campus_dispatch/services/__init__.py
from .dispatch_service import RiderDispatcher
from .fee_calculator import FeeBreakdown, compute_fees
from .notification_service import NotificationService
from .order_service import OrderService
from .order_state_machine import VALID_TRANSITIONS, OrderStateMachine
from .rider_service import RiderService

__all__ = [
    'RiderDispatcher',
    'FeeBreakdown',
    'compute_fees',
    'NotificationService',
    'OrderService',
    'VALID_TRANSITIONS',
    'OrderStateMachine',
    'RiderService'
]
