"""Reservation Lifecycle - the reservation state machine

Every command takes the current reservation snapshot and returns a new one
plus the side effects external collaborators must carry out. A command
either succeeds completely or raises a ReservationError and leaves the
input snapshot untouched.
"""
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Dict, FrozenSet, Iterable, List, Optional

from pydantic import BaseModel

from domain.billing import StayBillingCalculator, validate_charges
from domain.entities import Reservation, TaxRule
from domain.enums import (
    BillingMethod, PaymentType, ReservationStatus, SideEffectKind, StayPhase
)
from domain.errors import (
    IllegalTransition, InvalidNightsComputed, InvalidPaymentAmount,
    RoomNotAssigned, TooEarlyForNoShow
)
from domain.payment_ledger import PaymentLedger, PaymentOutcome
from domain.value_objects import (
    DateRange, ExtraCharge, PaymentInstruction, PaymentRecord, SideEffect, StayQuote
)


S = ReservationStatus

TRANSITIONS: Dict[str, FrozenSet[ReservationStatus]] = {
    "confirm": frozenset({S.PENDING}),
    "assign_room": frozenset({S.PENDING, S.CONFIRMED, S.CHECKED_IN}),
    "check_in": frozenset({S.PENDING, S.CONFIRMED}),
    "check_out": frozenset({S.CHECKED_IN}),
    "cancel": frozenset({S.PENDING, S.CONFIRMED}),
    "mark_no_show": frozenset({S.PENDING, S.CONFIRMED}),
    "add_charge": frozenset({S.CHECKED_IN}),
    "record_payment": frozenset({S.PENDING, S.CONFIRMED, S.CHECKED_IN, S.CHECKED_OUT}),
}


def can_apply(command: str, status: ReservationStatus) -> bool:
    return status in TRANSITIONS.get(command, frozenset())


def allowed_commands(status: ReservationStatus) -> List[str]:
    return sorted(name for name, sources in TRANSITIONS.items() if status in sources)


class TransitionResult(BaseModel):
    reservation: Reservation
    effects: List[SideEffect] = []
    quote: Optional[StayQuote] = None


class ReservationLifecycle:
    """State machine for PENDING → CONFIRMED → CHECKED_IN → CHECKED_OUT"""

    def __init__(
        self,
        calculator: Optional[StayBillingCalculator] = None,
        no_show_grace: timedelta = timedelta(hours=24),
        standard_check_in_time: time = time(12, 0)
    ):
        self.calculator = calculator or StayBillingCalculator()
        self.no_show_grace = no_show_grace
        self.standard_check_in_time = standard_check_in_time

    # ==================== BOOKING ====================
    def book(
        self,
        reservation: Reservation,
        tax_rules: Iterable[TaxRule],
        booked_on: date,
        deposit: Optional[PaymentInstruction] = None
    ) -> TransitionResult:
        """Price a new reservation over its reserved nights and take a deposit"""
        if reservation.status not in (S.PENDING, S.CONFIRMED):
            raise IllegalTransition(
                "A new booking must be PENDING or CONFIRMED",
                details={"status": reservation.status.value},
            )
        deposit = deposit or PaymentInstruction()
        quote = self.calculator.price_stay(
            reservation, tax_rules, today=booked_on, phase=StayPhase.BOOKING
        )
        outcome = PaymentLedger(reservation.currency).apply_payment(
            reservation.amount_paid, quote.balance_due, deposit
        )
        changes = dict(
            **_pricing_fields(quote),
            **_payment_fields(reservation, outcome, deposit, booked_on)
        )
        data = reservation.model_dump()
        data.update(changes)
        effects = [SideEffect(kind=SideEffectKind.PERSIST_RESERVATION)]
        effects.extend(_payment_effects(outcome, changes))
        return TransitionResult(
            reservation=Reservation.model_validate(data),
            effects=effects,
            quote=_with_payment(quote, outcome)
        )

    # ==================== STATE TRANSITION METHODS ====================
    def confirm(self, reservation: Reservation) -> TransitionResult:
        self._guard("confirm", reservation)
        return TransitionResult(reservation=_commit(reservation, status=S.CONFIRMED))

    def assign_room(self, reservation: Reservation, room_number: str) -> TransitionResult:
        """Bind a room; the coordinator re-checks availability before commit"""
        self._guard("assign_room", reservation)
        room_number = str(room_number).strip()
        if not room_number:
            raise RoomNotAssigned("A room number is required", details={"attempted": room_number})

        effects = [SideEffect(
            kind=SideEffectKind.RESERVE_ROOM,
            room_number=room_number,
            date_range=hold_range(reservation)
        )]
        previous = reservation.room_number
        if previous and previous != room_number:
            effects.append(SideEffect(
                kind=SideEffectKind.RELEASE_ROOM,
                room_number=previous,
                date_range=hold_range(reservation)
            ))

        return TransitionResult(
            reservation=_commit(reservation, room_number=room_number),
            effects=effects
        )

    def check_in(
        self,
        reservation: Reservation,
        tax_rules: Iterable[TaxRule],
        actual_date: date,
        actual_time: Optional[time] = None,
        payment: Optional[PaymentInstruction] = None
    ) -> TransitionResult:
        self._guard("check_in", reservation)
        if not reservation.room_number:
            raise RoomNotAssigned(
                "A room must be assigned before check-in",
                details={"reservation_id": reservation.reservation_id},
            )
        if actual_date >= reservation.check_out_date:
            raise InvalidNightsComputed(
                "Arrival must be before the reserved check-out date",
                details={"attempted": actual_date, "limit": reservation.check_out_date},
            )

        payment = payment or PaymentInstruction()
        quote = self.calculator.price_stay(
            reservation, tax_rules, today=actual_date, phase=StayPhase.ARRIVAL
        )
        _ensure_not_overpaid(reservation.amount_paid, quote.grand_total)
        outcome = PaymentLedger(reservation.currency).apply_payment(
            reservation.amount_paid, quote.balance_due, payment
        )

        changes = dict(
            status=S.CHECKED_IN,
            actual_check_in_date=actual_date,
            actual_check_in_time=actual_time,
            **_pricing_fields(quote),
            **_payment_fields(reservation, outcome, payment, actual_date)
        )
        effects = [SideEffect(
            kind=SideEffectKind.RESERVE_ROOM,
            room_number=reservation.room_number,
            date_range=DateRange(
                check_in=min(actual_date, reservation.check_in_date),
                check_out=reservation.check_out_date
            )
        )]
        effects.extend(_payment_effects(outcome, changes))

        return TransitionResult(
            reservation=_commit(reservation, **changes),
            effects=effects,
            quote=_with_payment(quote, outcome)
        )

    def check_out(
        self,
        reservation: Reservation,
        tax_rules: Iterable[TaxRule],
        actual_date: date,
        actual_time: Optional[time] = None,
        billing_method: BillingMethod = BillingMethod.RESERVED,
        extra_charges: Optional[List[ExtraCharge]] = None,
        discount: Optional[Decimal] = None,
        late_checkout_fee: Optional[Decimal] = None,
        payment: Optional[PaymentInstruction] = None
    ) -> TransitionResult:
        """Final pricing; the price snapshot is frozen from here on"""
        self._guard("check_out", reservation)
        if actual_date < reservation.actual_check_in_date:
            raise InvalidNightsComputed(
                "Departure cannot be before the recorded arrival",
                details={"attempted": actual_date, "limit": reservation.actual_check_in_date},
            )

        payment = payment or PaymentInstruction()
        new_charges = list(extra_charges or [])
        quote = self.calculator.price_stay(
            reservation,
            tax_rules,
            today=actual_date,
            billing_method=billing_method,
            phase=StayPhase.DEPARTURE,
            extra_charges=new_charges,
            discount=discount,
            late_checkout_fee=late_checkout_fee
        )
        _ensure_not_overpaid(reservation.amount_paid, quote.grand_total)
        outcome = PaymentLedger(reservation.currency).apply_payment(
            reservation.amount_paid, quote.balance_due, payment
        )

        changes = dict(
            status=S.CHECKED_OUT,
            actual_check_out_date=actual_date,
            actual_check_out_time=actual_time,
            extra_charges=list(reservation.extra_charges) + new_charges,
            discount=quote.discount,
            late_checkout_fee=quote.late_checkout_fee,
            **_pricing_fields(quote),
            **_payment_fields(reservation, outcome, payment, actual_date)
        )
        effects = [SideEffect(
            kind=SideEffectKind.RELEASE_ROOM,
            room_number=reservation.room_number,
            date_range=hold_range(reservation)
        )]
        if new_charges:
            effects.append(SideEffect(
                kind=SideEffectKind.PERSIST_CHARGE,
                payload={"charges": [c.model_dump(mode="json") for c in new_charges]}
            ))
        effects.extend(_payment_effects(outcome, changes))

        committed = _commit(reservation, **changes)
        return TransitionResult(
            reservation=committed,
            effects=effects,
            quote=self.calculator.frozen_quote(committed)
        )

    def cancel(self, reservation: Reservation) -> TransitionResult:
        """Cancel; amount_paid is left as is, refunds happen elsewhere"""
        self._guard("cancel", reservation)
        return TransitionResult(
            reservation=_commit(reservation, status=S.CANCELLED),
            effects=_release_effects(reservation)
        )

    def mark_no_show(self, reservation: Reservation, now: datetime) -> TransitionResult:
        self._guard("mark_no_show", reservation)
        eligible_at = self.no_show_eligible_at(reservation, now)
        if now < eligible_at:
            raise TooEarlyForNoShow(
                "The no-show grace period has not elapsed",
                details={"attempted": now.isoformat(), "limit": eligible_at.isoformat()},
            )
        return TransitionResult(
            reservation=_commit(reservation, status=S.NO_SHOW),
            effects=_release_effects(reservation)
        )

    def add_charge(
        self,
        reservation: Reservation,
        charge: ExtraCharge,
        tax_rules: Iterable[TaxRule],
        today: date
    ) -> TransitionResult:
        self._guard("add_charge", reservation)
        validate_charges([charge])

        updated = reservation.model_copy(
            update={"extra_charges": list(reservation.extra_charges) + [charge]}
        )
        quote = self.calculator.price_stay(
            updated, tax_rules, today=today, phase=StayPhase.DEPARTURE
        )
        return TransitionResult(
            reservation=_commit(
                reservation,
                extra_charges=updated.extra_charges,
                **_pricing_fields(quote)
            ),
            effects=[SideEffect(
                kind=SideEffectKind.PERSIST_CHARGE,
                payload={"charges": [charge.model_dump(mode="json")]}
            )],
            quote=quote
        )

    def record_payment(
        self,
        reservation: Reservation,
        payment: PaymentInstruction,
        tax_rules: Iterable[TaxRule],
        today: date
    ) -> TransitionResult:
        """Record a payment outside check-in/check-out"""
        self._guard("record_payment", reservation)

        quote = self.balance_quote(reservation, tax_rules, today)
        outcome = PaymentLedger(reservation.currency).apply_payment(
            reservation.amount_paid, quote.balance_due, payment
        )
        if payment.type == PaymentType.NONE or outcome.applied_amount == 0:
            return TransitionResult(reservation=reservation.model_copy(deep=True), quote=quote)

        changes = dict(_payment_fields(reservation, outcome, payment, today))
        if not reservation.is_price_frozen:
            _ensure_not_overpaid(reservation.amount_paid, quote.grand_total)
            changes.update(_pricing_fields(quote))

        return TransitionResult(
            reservation=_commit(reservation, **changes),
            effects=_payment_effects(outcome, changes),
            quote=_with_payment(quote, outcome)
        )

    # ==================== QUERY METHODS ====================
    def balance_quote(
        self,
        reservation: Reservation,
        tax_rules: Iterable[TaxRule],
        today: date
    ) -> StayQuote:
        """The quote a standalone payment is checked against"""
        if reservation.status == S.CHECKED_IN:
            return self.calculator.price_stay(
                reservation, tax_rules, today=today,
                billing_method=BillingMethod.RESERVED, phase=StayPhase.DEPARTURE
            )
        return self.calculator.price_stay(
            reservation, tax_rules, today=today, phase=StayPhase.BOOKING
        )

    def no_show_eligible_at(self, reservation: Reservation, now: Optional[datetime] = None) -> datetime:
        eligible_at = datetime.combine(reservation.check_in_date, self.standard_check_in_time)
        eligible_at += self.no_show_grace
        if now is not None and now.tzinfo is not None:
            eligible_at = eligible_at.replace(tzinfo=now.tzinfo)
        return eligible_at

    def is_no_show_eligible(self, reservation: Reservation, now: datetime) -> bool:
        return (
            can_apply("mark_no_show", reservation.status)
            and now >= self.no_show_eligible_at(reservation, now)
        )

    # ==================== PRIVATE METHODS ====================
    @staticmethod
    def _guard(command: str, reservation: Reservation) -> None:
        if not can_apply(command, reservation.status):
            raise IllegalTransition(
                f"Cannot {command.replace('_', ' ')} a reservation with status {reservation.status.value}",
                details={
                    "command": command,
                    "status": reservation.status.value,
                    "allowed_from": sorted(s.value for s in TRANSITIONS[command]),
                },
            )


def hold_range(reservation: Reservation) -> DateRange:
    """Nights the assigned room is held for"""
    start = reservation.check_in_date
    if reservation.actual_check_in_date and reservation.actual_check_in_date < start:
        start = reservation.actual_check_in_date
    return DateRange(check_in=start, check_out=reservation.check_out_date)


def _commit(reservation: Reservation, **changes) -> Reservation:
    """Build the next snapshot through full model validation"""
    data = reservation.model_dump()
    data.update(changes)
    data["version"] = reservation.version + 1
    return Reservation.model_validate(data)


def _pricing_fields(quote: StayQuote) -> dict:
    return {
        "nights_billed": quote.nights_billed,
        "billing_method": quote.billing_method,
        "room_subtotal": quote.room_subtotal,
        "tax_breakdown": list(quote.tax_result.per_tax),
        "grand_total": quote.grand_total,
    }


def _payment_fields(
    reservation: Reservation,
    outcome: PaymentOutcome,
    payment: PaymentInstruction,
    recorded_on: date
) -> dict:
    fields = {
        "amount_paid": outcome.new_amount_paid,
        "payment_status": outcome.new_status,
    }
    if outcome.applied_amount > 0:
        record = PaymentRecord(
            amount=outcome.applied_amount,
            method=payment.method,
            recorded_on=recorded_on,
            notes=payment.notes
        )
        fields["payment_method"] = payment.method
        fields["payments"] = list(reservation.payments) + [record]
    return fields


def _payment_effects(outcome: PaymentOutcome, changes: dict) -> List[SideEffect]:
    if outcome.applied_amount <= 0:
        return []
    record = changes["payments"][-1]
    return [SideEffect(
        kind=SideEffectKind.PERSIST_PAYMENT,
        payload=record.model_dump(mode="json")
    )]


def _release_effects(reservation: Reservation) -> List[SideEffect]:
    if not reservation.room_number:
        return []
    return [SideEffect(
        kind=SideEffectKind.RELEASE_ROOM,
        room_number=reservation.room_number,
        date_range=hold_range(reservation)
    )]


def _ensure_not_overpaid(amount_paid: Decimal, grand_total: Decimal) -> None:
    if amount_paid > grand_total:
        raise InvalidPaymentAmount(
            f"Amount already paid {amount_paid} exceeds the recomputed total {grand_total}",
            details={
                "reason": "amount_paid_exceeds_total",
                "attempted": amount_paid,
                "limit": grand_total,
            },
        )


def _with_payment(quote: StayQuote, outcome: PaymentOutcome) -> StayQuote:
    return quote.model_copy(update={
        "amount_paid": outcome.new_amount_paid,
        "balance_due": outcome.remaining_balance,
    })
