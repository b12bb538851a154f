# campus_dispatch/exceptions.py
"""Error taxonomy shared by every service.

All of these are recoverable: services raise them, callers (bot handlers,
other services) catch them and report ``kind`` plus ``message`` back to the
user. None of them should ever take the process down.
"""
from typing import Any, Dict


class DispatchError(Exception):
    """Base class for every error the engine returns to a caller"""
    kind = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": False,
            "error": self.kind,
            "message": self.message
        }


class ValidationError(DispatchError):
    """Malformed input, raised before any state is touched"""
    kind = "validation_error"


class NotFoundError(DispatchError):
    kind = "not_found"


class AuthorizationError(DispatchError):
    kind = "authorization_error"


class InvalidTransitionError(DispatchError):
    kind = "invalid_transition"


class TerminalStateError(InvalidTransitionError):
    """The order's current status has no outbound transition"""
    kind = "terminal_state"


class OrderNotReadyError(InvalidTransitionError):
    kind = "not_ready"


class ConflictError(DispatchError):
    """A concurrent writer got there first"""
    kind = "conflict"


class AlreadyAssignedError(ConflictError):
    kind = "already_assigned"


class RiderUnavailableError(ConflictError):
    kind = "rider_unavailable"


class CapacityError(DispatchError):
    kind = "capacity_error"


class NoRiderAvailableError(CapacityError):
    kind = "no_rider_available"


class BelowMinimumOrderError(CapacityError):
    kind = "below_minimum_order"
