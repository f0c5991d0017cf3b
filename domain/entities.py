"""Domain Entities - Aggregates"""
from pydantic import BaseModel, ConfigDict, Field, model_validator
from uuid import UUID, uuid4
from datetime import datetime, date, time, timezone
from typing import Optional, List
from decimal import Decimal

from domain.enums import (
    BillingMethod, PaymentMethod, PaymentStatus, ReservationStatus,
    TaxAppliesTo, TaxType
)
from domain.errors import InvalidNightsComputed
from domain.value_objects import (
    ZERO, DateRange, ExtraCharge, PaymentRecord, TaxLine, round_money
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


TERMINAL_STATUSES = (
    ReservationStatus.CHECKED_OUT,
    ReservationStatus.CANCELLED,
    ReservationStatus.NO_SHOW,
)


class TaxRule(BaseModel):
    """Tax configuration entity, owned by the settings collaborator"""
    id: str
    name: str
    tax_type: TaxType = TaxType.PERCENTAGE
    rate: Decimal = Field(ge=0)
    applies_to: TaxAppliesTo = TaxAppliesTo.SUBTOTAL
    is_enabled: bool = True
    is_inclusive: bool = False
    display_order: int = 0

    model_config = ConfigDict(frozen=True, from_attributes=True)


class Reservation(BaseModel):
    """Reservation Aggregate Root Entity"""

    # Identity
    reservation_id: UUID = Field(default_factory=uuid4)
    booking_reference: str

    # References to other contexts
    guest_name: str = ""
    room_type: Optional[str] = None
    room_number: Optional[str] = None

    # Stay window
    date_range: DateRange
    actual_check_in_date: Optional[date] = None
    actual_check_in_time: Optional[time] = None
    actual_check_out_date: Optional[date] = None
    actual_check_out_time: Optional[time] = None

    # Pricing inputs
    price_per_night: Decimal = Field(gt=0)
    currency: str = "XAF"
    discount: Decimal = ZERO
    late_checkout_fee: Decimal = ZERO
    extra_charges: List[ExtraCharge] = []

    # Pricing outputs, frozen once CHECKED_OUT
    nights_billed: Optional[int] = None
    billing_method: Optional[BillingMethod] = None
    room_subtotal: Optional[Decimal] = None
    tax_breakdown: List[TaxLine] = []
    grand_total: Optional[Decimal] = None

    # Payment
    amount_paid: Decimal = ZERO
    payment_method: Optional[PaymentMethod] = None
    payment_status: PaymentStatus = PaymentStatus.PENDING
    payments: List[PaymentRecord] = []

    # Lifecycle
    status: ReservationStatus = ReservationStatus.PENDING

    # Metadata
    created_at: datetime = Field(default_factory=_utcnow)
    modified_at: datetime = Field(default_factory=_utcnow)
    created_by: str = "SYSTEM"
    version: int = 1

    model_config = ConfigDict(from_attributes=True)

    @model_validator(mode="after")
    def _fields_match_status(self) -> "Reservation":
        if self.status in (ReservationStatus.CHECKED_IN, ReservationStatus.CHECKED_OUT):
            if self.actual_check_in_date is None:
                raise ValueError(f"{self.status.value} reservation requires actual_check_in_date")
            if not self.room_number:
                raise ValueError(f"{self.status.value} reservation requires room_number")
        if self.status == ReservationStatus.CHECKED_OUT:
            if self.actual_check_out_date is None or self.grand_total is None:
                raise ValueError("CHECKED_OUT reservation requires a frozen price snapshot")
        return self

    # ==================== FACTORY METHOD ====================
    @staticmethod
    def create(
        date_range: DateRange,
        price_per_night: Decimal,
        guest_name: str = "",
        room_type: Optional[str] = None,
        currency: str = "XAF",
        confirmed: bool = False,
        reference_prefix: str = "HLP",
        created_by: str = "SYSTEM"
    ) -> "Reservation":
        """Create new reservation with validation"""
        Reservation._validate_date_range(date_range)

        return Reservation(
            booking_reference=Reservation._generate_booking_reference(
                date_range.check_in, reference_prefix
            ),
            guest_name=guest_name,
            room_type=room_type,
            date_range=date_range,
            price_per_night=round_money(price_per_night, currency),
            currency=currency.upper(),
            status=ReservationStatus.CONFIRMED if confirmed else ReservationStatus.PENDING,
            created_by=created_by
        )

    # ==================== QUERY METHODS ====================
    @property
    def check_in_date(self) -> date:
        return self.date_range.check_in

    @property
    def check_out_date(self) -> date:
        return self.date_range.check_out

    @property
    def is_price_frozen(self) -> bool:
        return self.status == ReservationStatus.CHECKED_OUT

    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def get_nights(self) -> int:
        """Get number of reserved nights"""
        return self.date_range.nights()

    def extra_charges_total(self) -> Decimal:
        return sum((c.amount for c in self.extra_charges), ZERO)

    def balance_due(self) -> Optional[Decimal]:
        """Outstanding amount against the last computed total"""
        if self.grand_total is None:
            return None
        return max(ZERO, self.grand_total - self.amount_paid)

    # ==================== PRIVATE VALIDATION METHODS ====================
    @staticmethod
    def _validate_date_range(date_range: DateRange) -> None:
        if date_range.is_empty():
            raise InvalidNightsComputed(
                "Check-out date must be after check-in date",
                details={
                    "check_in": date_range.check_in,
                    "check_out": date_range.check_out,
                },
            )

    @staticmethod
    def _generate_booking_reference(check_in: date, prefix: str) -> str:
        """Generate a booking reference such as HLP250314-K7QZ"""
        import random
        import string
        suffix = ''.join(random.choices(string.ascii_uppercase + string.digits, k=4))
        return f"{prefix}{check_in.strftime('%y%m%d')}-{suffix}"
