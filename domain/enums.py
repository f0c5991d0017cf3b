"""Domain Enums"""
from enum import Enum


class ReservationStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CHECKED_IN = "CHECKED_IN"
    CHECKED_OUT = "CHECKED_OUT"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    PARTIAL = "PARTIAL"
    PAID = "PAID"


class PaymentType(str, Enum):
    FULL = "full"
    PARTIAL = "partial"
    NONE = "none"


class PaymentMethod(str, Enum):
    CASH = "Cash"
    CREDIT_CARD = "Credit Card"
    DEBIT_CARD = "Debit Card"
    MOBILE_MONEY = "Mobile Money"


class TaxType(str, Enum):
    PERCENTAGE = "PERCENTAGE"
    FIXED = "FIXED"


class TaxAppliesTo(str, Enum):
    ROOM_RATE = "ROOM_RATE"
    SUBTOTAL = "SUBTOTAL"
    TOTAL = "TOTAL"


class BillingMethod(str, Enum):
    ACTUAL = "actual"
    RESERVED = "reserved"


class StayPhase(str, Enum):
    BOOKING = "BOOKING"
    ARRIVAL = "ARRIVAL"
    DEPARTURE = "DEPARTURE"


class StayVariance(str, Enum):
    ON_TIME = "ON_TIME"
    EARLY_ARRIVAL = "EARLY_ARRIVAL"
    EARLY_CHECKOUT = "EARLY_CHECKOUT"
    LATE_CHECKOUT = "LATE_CHECKOUT"


class ChargeCategory(str, Enum):
    ROOM_SERVICE = "ROOM_SERVICE"
    MINIBAR = "MINIBAR"
    LAUNDRY = "LAUNDRY"
    RESTAURANT = "RESTAURANT"
    SPA = "SPA"
    PARKING = "PARKING"
    PHONE = "PHONE"
    DAMAGE = "DAMAGE"
    OTHER = "OTHER"


class SideEffectKind(str, Enum):
    RESERVE_ROOM = "RESERVE_ROOM"
    RELEASE_ROOM = "RELEASE_ROOM"
    PERSIST_PAYMENT = "PERSIST_PAYMENT"
    PERSIST_CHARGE = "PERSIST_CHARGE"
    PERSIST_RESERVATION = "PERSIST_RESERVATION"
