"""Domain Errors - typed failures raised by the billing and lifecycle engine"""
from typing import Any, Dict, Optional


class ReservationError(Exception):
    """Base class for every failure the engine reports to its callers"""

    code = "RESERVATION_ERROR"
    category = "validation"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.code,
            "category": self.category,
            "message": self.message,
            "details": {k: _jsonable(v) for k, v in self.details.items()},
        }


def _jsonable(value: Any) -> Any:
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return str(value)


# ==================== VALIDATION ====================
class InvalidPaymentAmount(ReservationError):
    code = "INVALID_PAYMENT_AMOUNT"


class DiscountExceedsSubtotal(ReservationError):
    code = "DISCOUNT_EXCEEDS_SUBTOTAL"


class NegativeChargeAmount(ReservationError):
    code = "NEGATIVE_CHARGE_AMOUNT"


class InvalidNightsComputed(ReservationError):
    code = "INVALID_NIGHTS_COMPUTED"


# ==================== CONFLICT ====================
class RoomUnavailable(ReservationError):
    code = "ROOM_UNAVAILABLE"
    category = "conflict"


class StaleVersion(ReservationError):
    code = "STALE_VERSION"
    category = "conflict"


# ==================== TRANSITION ====================
class IllegalTransition(ReservationError):
    code = "ILLEGAL_TRANSITION"
    category = "transition"


class RoomNotAssigned(ReservationError):
    code = "ROOM_NOT_ASSIGNED"
    category = "transition"


class TooEarlyForNoShow(ReservationError):
    code = "TOO_EARLY_FOR_NO_SHOW"
    category = "transition"


# ==================== LOOKUP ====================
class ReservationNotFound(ReservationError):
    code = "RESERVATION_NOT_FOUND"
    category = "not_found"
