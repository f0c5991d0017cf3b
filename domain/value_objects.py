"""Domain Value Objects"""
from pydantic import BaseModel, ConfigDict, Field
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from uuid import UUID, uuid4
from typing import Any, Dict, List, Optional

from domain.enums import (
    BillingMethod, ChargeCategory, PaymentMethod, PaymentType, SideEffectKind,
    StayVariance, TaxAppliesTo, TaxType
)


# Currencies without a minor unit; everything else is priced in cents.
ZERO_DECIMAL_CURRENCIES = {"XAF", "XOF", "IDR", "JPY"}

ZERO = Decimal("0")


def minor_units(currency: str) -> int:
    """Number of decimals a currency is priced in"""
    return 0 if currency.upper() in ZERO_DECIMAL_CURRENCIES else 2


def to_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def round_money(amount, currency: str) -> Decimal:
    """Round half-up to the currency's minor-unit precision"""
    exponent = Decimal(1).scaleb(-minor_units(currency))
    return to_decimal(amount).quantize(exponent, rounding=ROUND_HALF_UP)


class DateRange(BaseModel):
    """Half-open range of nights [check_in, check_out)"""
    check_in: date
    check_out: date

    model_config = ConfigDict(frozen=True)

    def nights(self) -> int:
        """Calculate number of nights"""
        return max(0, (self.check_out - self.check_in).days)

    def overlaps(self, other: "DateRange") -> bool:
        return self.check_in < other.check_out and other.check_in < self.check_out

    def is_empty(self) -> bool:
        return self.check_out <= self.check_in


def nights_between(start: date, end: date) -> int:
    return DateRange(check_in=start, check_out=end).nights()


class ExtraCharge(BaseModel):
    """Ad-hoc charge posted to a stay (minibar, laundry...)"""
    label: str = Field(min_length=1)
    amount: Decimal
    category: ChargeCategory = ChargeCategory.OTHER

    model_config = ConfigDict(frozen=True)


class PaymentInstruction(BaseModel):
    """What the payment collector reports: a type, an amount and a method"""
    type: PaymentType = PaymentType.NONE
    amount: Optional[Decimal] = None
    method: PaymentMethod = PaymentMethod.CASH
    notes: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class PaymentRecord(BaseModel):
    """One entry of a reservation's payment history"""
    payment_id: UUID = Field(default_factory=uuid4)
    amount: Decimal
    method: PaymentMethod
    recorded_on: date
    notes: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class TaxLine(BaseModel):
    """A single computed tax in a breakdown"""
    tax_id: str
    name: str
    tax_type: TaxType
    rate: Decimal
    applies_to: TaxAppliesTo
    is_inclusive: bool
    base_amount: Decimal
    amount: Decimal

    model_config = ConfigDict(frozen=True)


class TaxResult(BaseModel):
    per_tax: List[TaxLine] = []
    total_tax: Decimal = ZERO
    inclusive_tax: Decimal = ZERO
    grand_total: Decimal = ZERO

    model_config = ConfigDict(frozen=True)


class StayQuote(BaseModel):
    """Priced stay, as shown for live preview or committed at check-in/out"""
    nights_reserved: int
    nights_billed: int
    stay_variance: StayVariance
    billing_method: BillingMethod
    room_subtotal: Decimal
    extra_charges_total: Decimal
    late_checkout_fee: Decimal
    discount: Decimal
    subtotal_before_tax: Decimal
    tax_result: TaxResult
    grand_total: Decimal
    amount_paid: Decimal
    balance_due: Decimal
    currency: str
    is_frozen: bool = False

    model_config = ConfigDict(frozen=True)


class SideEffect(BaseModel):
    """Request for an external collaborator, emitted by a transition"""
    kind: SideEffectKind
    room_number: Optional[str] = None
    date_range: Optional[DateRange] = None
    payload: Dict[str, Any] = {}

    model_config = ConfigDict(frozen=True)
