from fastapi import FastAPI, Depends, Request
from fastapi.responses import JSONResponse
from uuid import UUID
from typing import List, Optional

from api.schemas import (
    # Reservation
    CreateReservationRequest, PreviewPriceRequest, AssignRoomRequest,
    CheckInRequest, CheckOutRequest, RecordPaymentRequest, AddChargeRequest,
    ReservationResponse, QuoteResponse, TransitionResponse, SideEffectResponse,
    ExtraChargeResponse, TaxLineResponse, PaymentRecordResponse,
    # Tax rules
    TaxRuleRequest, TaxRuleResponse,
    ErrorResponse,
)
from api.dependencies import get_reservation_service, get_tax_rule_service, status_for
from application.services import ReservationService, TaxRuleService
from domain.entities import Reservation, TaxRule
from domain.enums import (
    BillingMethod, ChargeCategory, PaymentMethod, PaymentStatus, PaymentType,
    ReservationStatus, TaxAppliesTo, TaxType
)
from domain.errors import ReservationError
from domain.lifecycle import TransitionResult
from domain.value_objects import StayQuote
from infrastructure.config import settings
from infrastructure.logging_config import configure_logging

configure_logging(settings)

app = FastAPI(
    title="Hotel Billing Engine API",
    description="Stay pricing, taxes, payments and reservation lifecycle",
    version="1.0.0",
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    }
)


@app.exception_handler(ReservationError)
async def reservation_error_handler(request: Request, exc: ReservationError):
    return JSONResponse(status_code=status_for(exc), content=exc.to_dict())


# ============================================================================
# HEALTH & ENUM REFERENCE ENDPOINTS
# ============================================================================

@app.get("/api/health", tags=["Health"])
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "message": "API is running"}

@app.get("/api/enums/reservation-status", tags=["Enum Reference"])
async def get_reservation_statuses():
    """Get all ReservationStatus enum values"""
    return {"values": [item.value for item in ReservationStatus]}

@app.get("/api/enums/payment-status", tags=["Enum Reference"])
async def get_payment_statuses():
    """Get all PaymentStatus enum values"""
    return {"values": [item.value for item in PaymentStatus]}

@app.get("/api/enums/payment-type", tags=["Enum Reference"])
async def get_payment_types():
    """Get all PaymentType enum values"""
    return {"values": [item.value for item in PaymentType]}

@app.get("/api/enums/payment-method", tags=["Enum Reference"])
async def get_payment_methods():
    """Get all PaymentMethod enum values"""
    return {"values": [item.value for item in PaymentMethod]}

@app.get("/api/enums/billing-method", tags=["Enum Reference"])
async def get_billing_methods():
    """Get all BillingMethod enum values"""
    return {"values": [item.value for item in BillingMethod]}

@app.get("/api/enums/charge-category", tags=["Enum Reference"])
async def get_charge_categories():
    """Get all ChargeCategory enum values"""
    return {"values": [item.value for item in ChargeCategory]}

@app.get("/api/enums/tax", tags=["Enum Reference"])
async def get_tax_enums():
    """Get TaxType and TaxAppliesTo enum values"""
    return {
        "tax_type": [item.value for item in TaxType],
        "applies_to": [item.value for item in TaxAppliesTo]
    }

# ============================================================================
# RESERVATION ENDPOINTS
# ============================================================================

@app.post("/api/reservations", response_model=ReservationResponse, status_code=201, tags=["Reservations"])
async def create_reservation(
    request: CreateReservationRequest,
    service: ReservationService = Depends(get_reservation_service)
):
    """Create new reservation"""
    reservation = await service.create_reservation(
        check_in=request.check_in,
        check_out=request.check_out,
        price_per_night=request.price_per_night,
        guest_name=request.guest_name,
        room_type=request.room_type,
        currency=request.currency,
        confirm=request.confirm,
        deposit=request.deposit.to_domain() if request.deposit else None,
        created_by=request.created_by
    )
    return _reservation_to_response(reservation)

@app.get("/api/reservations", response_model=List[ReservationResponse], tags=["Reservations"])
async def get_all_reservations(
    service: ReservationService = Depends(get_reservation_service)
):
    """Get all reservations"""
    reservations = await service.get_all_reservations()
    return [_reservation_to_response(r) for r in reservations]

@app.get("/api/reservations/no-show-candidates", response_model=List[UUID], tags=["Reservations"])
async def get_no_show_candidates(
    service: ReservationService = Depends(get_reservation_service)
):
    """Reservations past their no-show grace period, for the scheduler"""
    return await service.list_no_show_candidates()

@app.get("/api/reservations/code/{booking_reference}", response_model=ReservationResponse, tags=["Reservations"])
async def get_reservation_by_reference(
    booking_reference: str,
    service: ReservationService = Depends(get_reservation_service)
):
    """Get reservation by booking reference"""
    reservation = await service.get_reservation_by_booking_reference(booking_reference)
    return _reservation_to_response(reservation)

@app.get("/api/reservations/{reservation_id}", response_model=ReservationResponse, tags=["Reservations"])
async def get_reservation(
    reservation_id: UUID,
    service: ReservationService = Depends(get_reservation_service)
):
    """Get reservation by ID"""
    reservation = await service.get_reservation(reservation_id)
    return _reservation_to_response(reservation)

@app.post("/api/reservations/{reservation_id}/preview-price", response_model=QuoteResponse, tags=["Billing"])
async def preview_price(
    reservation_id: UUID,
    request: Optional[PreviewPriceRequest] = None,
    service: ReservationService = Depends(get_reservation_service)
):
    """Price the stay without committing anything"""
    request = request or PreviewPriceRequest()
    quote = await service.preview_price(
        reservation_id,
        billing_method=request.billing_method,
        today=request.as_of,
        phase=request.phase
    )
    return _quote_to_response(quote)

@app.post("/api/reservations/{reservation_id}/confirm", response_model=TransitionResponse, tags=["Lifecycle"])
async def confirm_reservation(
    reservation_id: UUID,
    service: ReservationService = Depends(get_reservation_service)
):
    """Confirm reservation"""
    return _transition_to_response(await service.confirm(reservation_id))

@app.post("/api/reservations/{reservation_id}/assign-room", response_model=TransitionResponse, tags=["Lifecycle"])
async def assign_room(
    reservation_id: UUID,
    request: AssignRoomRequest,
    service: ReservationService = Depends(get_reservation_service)
):
    """Assign a room after re-checking its availability"""
    return _transition_to_response(await service.assign_room(reservation_id, request.room_number))

@app.post("/api/reservations/{reservation_id}/check-in", response_model=TransitionResponse, tags=["Lifecycle"])
async def check_in_guest(
    reservation_id: UUID,
    request: CheckInRequest,
    service: ReservationService = Depends(get_reservation_service)
):
    """Check in guest"""
    result = await service.check_in(
        reservation_id,
        actual_date=request.actual_date,
        actual_time=request.actual_time,
        payment=request.payment.to_domain() if request.payment else None
    )
    return _transition_to_response(result)

@app.post("/api/reservations/{reservation_id}/check-out", response_model=TransitionResponse, tags=["Lifecycle"])
async def check_out_guest(
    reservation_id: UUID,
    request: CheckOutRequest,
    service: ReservationService = Depends(get_reservation_service)
):
    """Check out guest and freeze the final bill"""
    result = await service.check_out(
        reservation_id,
        actual_date=request.actual_date,
        actual_time=request.actual_time,
        billing_method=request.billing_method,
        extra_charges=[c.to_domain() for c in request.extra_charges],
        discount=request.discount,
        late_checkout_fee=request.late_checkout_fee,
        payment=request.payment.to_domain() if request.payment else None
    )
    return _transition_to_response(result)

@app.post("/api/reservations/{reservation_id}/payments", response_model=TransitionResponse, tags=["Billing"])
async def record_payment(
    reservation_id: UUID,
    request: RecordPaymentRequest,
    service: ReservationService = Depends(get_reservation_service)
):
    """Record a payment reported by the payment collector"""
    result = await service.record_payment(reservation_id, request.to_domain(), today=request.as_of)
    return _transition_to_response(result)

@app.get("/api/reservations/{reservation_id}/payments", response_model=List[PaymentRecordResponse], tags=["Billing"])
async def get_payments(
    reservation_id: UUID,
    service: ReservationService = Depends(get_reservation_service)
):
    """Get the payment history of a reservation"""
    payments = await service.list_payments(reservation_id)
    return [PaymentRecordResponse(**p.model_dump()) for p in payments]

@app.post("/api/reservations/{reservation_id}/charges", response_model=TransitionResponse, tags=["Billing"])
async def add_charge(
    reservation_id: UUID,
    request: AddChargeRequest,
    service: ReservationService = Depends(get_reservation_service)
):
    """Post an extra charge to an in-house stay"""
    result = await service.add_charge(reservation_id, request.to_domain(), today=request.as_of)
    return _transition_to_response(result)

@app.post("/api/reservations/{reservation_id}/cancel", response_model=TransitionResponse, tags=["Lifecycle"])
async def cancel_reservation(
    reservation_id: UUID,
    service: ReservationService = Depends(get_reservation_service)
):
    """Cancel reservation"""
    return _transition_to_response(await service.cancel(reservation_id))

@app.post("/api/reservations/{reservation_id}/no-show", response_model=TransitionResponse, tags=["Lifecycle"])
async def mark_no_show(
    reservation_id: UUID,
    service: ReservationService = Depends(get_reservation_service)
):
    """Mark guest as no-show"""
    return _transition_to_response(await service.mark_no_show(reservation_id))

# ============================================================================
# TAX RULE ENDPOINTS
# ============================================================================

@app.get("/api/tax-rules", response_model=List[TaxRuleResponse], tags=["Tax Rules"])
async def get_tax_rules(
    service: TaxRuleService = Depends(get_tax_rule_service)
):
    """Get all tax rules in evaluation order"""
    rules = await service.list_tax_rules()
    return [TaxRuleResponse(**r.model_dump()) for r in rules]

@app.put("/api/tax-rules/{tax_id}", response_model=TaxRuleResponse, tags=["Tax Rules"])
async def put_tax_rule(
    tax_id: str,
    request: TaxRuleRequest,
    service: TaxRuleService = Depends(get_tax_rule_service)
):
    """Create or replace a tax rule"""
    rule = await service.save_tax_rule(TaxRule(id=tax_id, **request.model_dump()))
    return TaxRuleResponse(**rule.model_dump())

# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def _reservation_to_response(reservation: Reservation) -> ReservationResponse:
    """Convert Reservation entity to ReservationResponse"""
    return ReservationResponse(
        reservation_id=reservation.reservation_id,
        booking_reference=reservation.booking_reference,
        guest_name=reservation.guest_name,
        room_type=reservation.room_type,
        room_number=reservation.room_number,
        status=reservation.status.value,
        check_in=reservation.check_in_date,
        check_out=reservation.check_out_date,
        actual_check_in_date=reservation.actual_check_in_date,
        actual_check_in_time=reservation.actual_check_in_time,
        actual_check_out_date=reservation.actual_check_out_date,
        actual_check_out_time=reservation.actual_check_out_time,
        price_per_night=reservation.price_per_night,
        currency=reservation.currency,
        discount=reservation.discount,
        late_checkout_fee=reservation.late_checkout_fee,
        extra_charges=[ExtraChargeResponse(**c.model_dump()) for c in reservation.extra_charges],
        nights_billed=reservation.nights_billed,
        billing_method=reservation.billing_method.value if reservation.billing_method else None,
        room_subtotal=reservation.room_subtotal,
        tax_breakdown=[TaxLineResponse(**t.model_dump()) for t in reservation.tax_breakdown],
        grand_total=reservation.grand_total,
        amount_paid=reservation.amount_paid,
        balance_due=reservation.balance_due(),
        payment_method=reservation.payment_method.value if reservation.payment_method else None,
        payment_status=reservation.payment_status.value,
        payments=[PaymentRecordResponse(**p.model_dump()) for p in reservation.payments],
        created_at=reservation.created_at,
        modified_at=reservation.modified_at,
        created_by=reservation.created_by,
        version=reservation.version
    )


def _quote_to_response(quote: StayQuote) -> QuoteResponse:
    """Convert StayQuote to QuoteResponse"""
    return QuoteResponse(
        nights_reserved=quote.nights_reserved,
        nights_billed=quote.nights_billed,
        stay_variance=quote.stay_variance.value,
        billing_method=quote.billing_method.value,
        room_subtotal=quote.room_subtotal,
        extra_charges_total=quote.extra_charges_total,
        late_checkout_fee=quote.late_checkout_fee,
        discount=quote.discount,
        subtotal_before_tax=quote.subtotal_before_tax,
        taxes=[TaxLineResponse(**t.model_dump()) for t in quote.tax_result.per_tax],
        total_tax=quote.tax_result.total_tax,
        inclusive_tax=quote.tax_result.inclusive_tax,
        grand_total=quote.grand_total,
        amount_paid=quote.amount_paid,
        balance_due=quote.balance_due,
        currency=quote.currency,
        is_frozen=quote.is_frozen
    )


def _transition_to_response(result: TransitionResult) -> TransitionResponse:
    """Convert TransitionResult to TransitionResponse"""
    return TransitionResponse(
        reservation=_reservation_to_response(result.reservation),
        effects=[
            SideEffectResponse(
                kind=effect.kind.value,
                room_number=effect.room_number,
                check_in=effect.date_range.check_in if effect.date_range else None,
                check_out=effect.date_range.check_out if effect.date_range else None,
                payload=effect.payload
            )
            for effect in result.effects
        ],
        quote=_quote_to_response(result.quote) if result.quote else None
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
