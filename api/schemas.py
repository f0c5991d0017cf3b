"""API Schemas - Request and Response DTOs"""
from pydantic import BaseModel, ConfigDict, Field
from datetime import date, datetime, time
from decimal import Decimal
from uuid import UUID
from typing import Any, Dict, List, Optional

from domain.enums import (
    BillingMethod, ChargeCategory, PaymentMethod, PaymentType, StayPhase, TaxAppliesTo, TaxType
)
from domain.value_objects import ExtraCharge, PaymentInstruction


# ============================================================================
# REQUEST SCHEMAS
# ============================================================================

class PaymentInstructionRequest(BaseModel):
    """Payment instruction request DTO"""
    type: PaymentType = PaymentType.NONE
    amount: Optional[Decimal] = None
    method: PaymentMethod = PaymentMethod.CASH
    notes: Optional[str] = None

    def to_domain(self) -> PaymentInstruction:
        return PaymentInstruction(
            type=self.type, amount=self.amount, method=self.method, notes=self.notes
        )


class ExtraChargeRequest(BaseModel):
    """Extra charge request DTO"""
    label: str = Field(min_length=1)
    amount: Decimal = Field(ge=0)
    category: ChargeCategory = ChargeCategory.OTHER

    def to_domain(self) -> ExtraCharge:
        return ExtraCharge(label=self.label, amount=self.amount, category=self.category)


class CreateReservationRequest(BaseModel):
    """Create reservation request DTO"""
    guest_name: str = ""
    room_type: Optional[str] = None
    check_in: date
    check_out: date
    price_per_night: Decimal = Field(gt=0)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    confirm: bool = False
    deposit: Optional[PaymentInstructionRequest] = None
    created_by: str = "SYSTEM"


class PreviewPriceRequest(BaseModel):
    """Preview price request DTO"""
    billing_method: Optional[BillingMethod] = None
    phase: Optional[StayPhase] = None
    as_of: Optional[date] = None


class AssignRoomRequest(BaseModel):
    """Assign room request DTO"""
    room_number: str = Field(min_length=1)


class CheckInRequest(BaseModel):
    """Check-in request DTO"""
    actual_date: Optional[date] = None
    actual_time: Optional[time] = None
    payment: Optional[PaymentInstructionRequest] = None


class CheckOutRequest(BaseModel):
    """Check-out request DTO"""
    actual_date: Optional[date] = None
    actual_time: Optional[time] = None
    billing_method: Optional[BillingMethod] = None
    extra_charges: List[ExtraChargeRequest] = []
    discount: Optional[Decimal] = Field(None, ge=0)
    late_checkout_fee: Optional[Decimal] = Field(None, ge=0)
    payment: Optional[PaymentInstructionRequest] = None


class RecordPaymentRequest(PaymentInstructionRequest):
    """Record payment request DTO"""
    as_of: Optional[date] = None


class AddChargeRequest(ExtraChargeRequest):
    """Add charge request DTO"""
    as_of: Optional[date] = None


class TaxRuleRequest(BaseModel):
    """Create or replace tax rule request DTO"""
    name: str = Field(min_length=1)
    tax_type: TaxType = TaxType.PERCENTAGE
    rate: Decimal = Field(ge=0)
    applies_to: TaxAppliesTo = TaxAppliesTo.SUBTOTAL
    is_enabled: bool = True
    is_inclusive: bool = False
    display_order: int = 0


# ============================================================================
# RESPONSE SCHEMAS
# ============================================================================

class ExtraChargeResponse(BaseModel):
    label: str
    amount: Decimal
    category: ChargeCategory

    model_config = ConfigDict(from_attributes=True)


class TaxLineResponse(BaseModel):
    tax_id: str
    name: str
    tax_type: TaxType
    rate: Decimal
    applies_to: TaxAppliesTo
    is_inclusive: bool
    base_amount: Decimal
    amount: Decimal

    model_config = ConfigDict(from_attributes=True)


class PaymentRecordResponse(BaseModel):
    payment_id: UUID
    amount: Decimal
    method: PaymentMethod
    recorded_on: date
    notes: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class ReservationResponse(BaseModel):
    """Reservation response DTO"""
    reservation_id: UUID
    booking_reference: str
    guest_name: str
    room_type: Optional[str] = None
    room_number: Optional[str] = None
    status: str
    check_in: date
    check_out: date
    actual_check_in_date: Optional[date] = None
    actual_check_in_time: Optional[time] = None
    actual_check_out_date: Optional[date] = None
    actual_check_out_time: Optional[time] = None
    price_per_night: Decimal
    currency: str
    discount: Decimal
    late_checkout_fee: Decimal
    extra_charges: List[ExtraChargeResponse]
    nights_billed: Optional[int] = None
    billing_method: Optional[str] = None
    room_subtotal: Optional[Decimal] = None
    tax_breakdown: List[TaxLineResponse]
    grand_total: Optional[Decimal] = None
    amount_paid: Decimal
    balance_due: Optional[Decimal] = None
    payment_method: Optional[str] = None
    payment_status: str
    payments: List[PaymentRecordResponse]
    created_at: datetime
    modified_at: datetime
    created_by: str
    version: int


class QuoteResponse(BaseModel):
    """Stay quote response DTO"""
    nights_reserved: int
    nights_billed: int
    stay_variance: str
    billing_method: str
    room_subtotal: Decimal
    extra_charges_total: Decimal
    late_checkout_fee: Decimal
    discount: Decimal
    subtotal_before_tax: Decimal
    taxes: List[TaxLineResponse]
    total_tax: Decimal
    inclusive_tax: Decimal
    grand_total: Decimal
    amount_paid: Decimal
    balance_due: Decimal
    currency: str
    is_frozen: bool


class SideEffectResponse(BaseModel):
    kind: str
    room_number: Optional[str] = None
    check_in: Optional[date] = None
    check_out: Optional[date] = None
    payload: Dict[str, Any] = {}


class TransitionResponse(BaseModel):
    """Command result DTO"""
    reservation: ReservationResponse
    effects: List[SideEffectResponse]
    quote: Optional[QuoteResponse] = None


class TaxRuleResponse(BaseModel):
    id: str
    name: str
    tax_type: TaxType
    rate: Decimal
    applies_to: TaxAppliesTo
    is_enabled: bool
    is_inclusive: bool
    display_order: int

    model_config = ConfigDict(from_attributes=True)


class ErrorResponse(BaseModel):
    error: str
    category: str
    message: str
    details: Dict[str, Any] = {}
