"""Application Services - Business use cases"""
import logging
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Callable, List, Optional
from uuid import UUID

from application.room_assignment import RoomAssignmentCoordinator
from domain.billing import StayBillingCalculator
from domain.entities import Reservation, TaxRule
from domain.enums import BillingMethod, ReservationStatus, SideEffectKind, StayPhase
from domain.errors import ReservationError, ReservationNotFound
from domain.lifecycle import ReservationLifecycle, TransitionResult, hold_range
from domain.repositories import ReservationRepository, TaxConfigurationStore
from domain.value_objects import (
    DateRange, ExtraCharge, PaymentInstruction, PaymentRecord, StayQuote
)
from infrastructure.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


class ReservationService:
    """Service for reservation billing and lifecycle use cases"""

    def __init__(self,
                 repository: ReservationRepository,
                 tax_store: TaxConfigurationStore,
                 room_coordinator: RoomAssignmentCoordinator,
                 settings: Optional[Settings] = None,
                 clock: Optional[Callable[[], datetime]] = None):
        self.repository = repository
        self.tax_store = tax_store
        self.room_coordinator = room_coordinator
        self.settings = settings or default_settings
        self.clock = clock or datetime.now
        self.lifecycle = ReservationLifecycle(
            calculator=StayBillingCalculator(self.settings.DEFAULT_BILLING_METHOD),
            no_show_grace=timedelta(hours=self.settings.NO_SHOW_GRACE_HOURS),
            standard_check_in_time=self.settings.STANDARD_CHECK_IN_TIME
        )

    def _today(self) -> date:
        return self.clock().date()

    # ==================== BOOKING ====================
    async def create_reservation(
        self,
        check_in: date,
        check_out: date,
        price_per_night: Decimal,
        guest_name: str = "",
        room_type: Optional[str] = None,
        currency: Optional[str] = None,
        confirm: bool = False,
        deposit: Optional[PaymentInstruction] = None,
        created_by: str = "SYSTEM"
    ) -> Reservation:
        """Create new reservation priced over its reserved nights"""
        reservation = Reservation.create(
            date_range=DateRange(check_in=check_in, check_out=check_out),
            price_per_night=price_per_night,
            guest_name=guest_name,
            room_type=room_type,
            currency=currency or self.settings.DEFAULT_CURRENCY,
            confirmed=confirm,
            reference_prefix=self.settings.BOOKING_REFERENCE_PREFIX,
            created_by=created_by
        )
        rules = await self.tax_store.list_enabled_tax_rules()
        result = self.lifecycle.book(reservation, rules, self._today(), deposit)

        saved = await self.repository.add(result.reservation)
        logger.info(
            "Reservation %s booked (%s), total %s %s",
            saved.booking_reference, saved.status.value, saved.grand_total, saved.currency
        )
        return saved

    # ==================== QUERIES ====================
    async def get_reservation(self, reservation_id: UUID) -> Reservation:
        return await self.repository.load(reservation_id)

    async def get_reservation_by_booking_reference(self, reference: str) -> Reservation:
        reservation = await self.repository.find_by_booking_reference(reference)
        if reservation is None:
            raise ReservationNotFound(
                "Reservation not found", details={"booking_reference": reference}
            )
        return reservation

    async def get_all_reservations(self) -> List[Reservation]:
        return await self.repository.find_all()

    async def list_payments(self, reservation_id: UUID) -> List[PaymentRecord]:
        reservation = await self.repository.load(reservation_id)
        return list(reservation.payments)

    async def preview_price(
        self,
        reservation_id: UUID,
        billing_method: Optional[BillingMethod] = None,
        today: Optional[date] = None,
        phase: Optional[StayPhase] = None
    ) -> StayQuote:
        """Price the stay as of today without committing anything"""
        reservation = await self.repository.load(reservation_id)
        return await self.preview_reservation_price(reservation, billing_method, today, phase)

    async def preview_reservation_price(
        self,
        reservation: Reservation,
        billing_method: Optional[BillingMethod] = None,
        today: Optional[date] = None,
        phase: Optional[StayPhase] = None
    ) -> StayQuote:
        """Booking quote by default; pass ARRIVAL to price a check-in on ``today``"""
        rules = await self.tax_store.list_enabled_tax_rules()
        return self.lifecycle.calculator.price_stay(
            reservation, rules, today=today or self._today(),
            billing_method=billing_method, phase=phase
        )

    async def list_no_show_candidates(self, now: Optional[datetime] = None) -> List[UUID]:
        """Reservations the scheduler may mark as no-show"""
        now = now or self.clock()
        candidates = await self.repository.find_by_status(
            [ReservationStatus.PENDING, ReservationStatus.CONFIRMED]
        )
        return [
            r.reservation_id for r in candidates
            if self.lifecycle.is_no_show_eligible(r, now)
        ]

    # ==================== COMMANDS ====================
    async def confirm(self, reservation_id: UUID) -> TransitionResult:
        return await self._apply("confirm", reservation_id, self.lifecycle.confirm)

    async def assign_room(self, reservation_id: UUID, room_number: str) -> TransitionResult:
        return await self._apply(
            "assign_room", reservation_id,
            lambda r: self.lifecycle.assign_room(r, room_number)
        )

    async def check_in(
        self,
        reservation_id: UUID,
        actual_date: Optional[date] = None,
        actual_time: Optional[time] = None,
        payment: Optional[PaymentInstruction] = None
    ) -> TransitionResult:
        rules = await self.tax_store.list_enabled_tax_rules()
        now = self.clock()
        return await self._apply(
            "check_in", reservation_id,
            lambda r: self.lifecycle.check_in(
                r, rules,
                actual_date=actual_date or now.date(),
                actual_time=actual_time or now.time().replace(second=0, microsecond=0),
                payment=payment
            )
        )

    async def check_out(
        self,
        reservation_id: UUID,
        actual_date: Optional[date] = None,
        actual_time: Optional[time] = None,
        billing_method: Optional[BillingMethod] = None,
        extra_charges: Optional[List[ExtraCharge]] = None,
        discount: Optional[Decimal] = None,
        late_checkout_fee: Optional[Decimal] = None,
        payment: Optional[PaymentInstruction] = None
    ) -> TransitionResult:
        rules = await self.tax_store.list_enabled_tax_rules()
        now = self.clock()
        return await self._apply(
            "check_out", reservation_id,
            lambda r: self.lifecycle.check_out(
                r, rules,
                actual_date=actual_date or now.date(),
                actual_time=actual_time or now.time().replace(second=0, microsecond=0),
                billing_method=billing_method or self.settings.DEFAULT_BILLING_METHOD,
                extra_charges=extra_charges,
                discount=discount,
                late_checkout_fee=late_checkout_fee,
                payment=payment
            )
        )

    async def record_payment(
        self,
        reservation_id: UUID,
        payment: PaymentInstruction,
        today: Optional[date] = None
    ) -> TransitionResult:
        rules = await self.tax_store.list_enabled_tax_rules()
        return await self._apply(
            "record_payment", reservation_id,
            lambda r: self.lifecycle.record_payment(r, payment, rules, today or self._today())
        )

    async def add_charge(
        self,
        reservation_id: UUID,
        charge: ExtraCharge,
        today: Optional[date] = None
    ) -> TransitionResult:
        rules = await self.tax_store.list_enabled_tax_rules()
        return await self._apply(
            "add_charge", reservation_id,
            lambda r: self.lifecycle.add_charge(r, charge, rules, today or self._today())
        )

    async def cancel(self, reservation_id: UUID) -> TransitionResult:
        return await self._apply("cancel", reservation_id, self.lifecycle.cancel)

    async def mark_no_show(self, reservation_id: UUID, now: Optional[datetime] = None) -> TransitionResult:
        return await self._apply(
            "mark_no_show", reservation_id,
            lambda r: self.lifecycle.mark_no_show(r, now or self.clock())
        )

    # ==================== EFFECT EXECUTION ====================
    async def _apply(
        self,
        command: str,
        reservation_id: UUID,
        transition: Callable[[Reservation], TransitionResult]
    ) -> TransitionResult:
        """Load fresh state, run the transition, execute effects, save"""
        reservation = await self.repository.load(reservation_id)
        try:
            result = transition(reservation)
        except ReservationError as e:
            logger.warning("%s rejected for %s: %s", command, reservation_id, e.code)
            raise

        if result.reservation.version == reservation.version:
            return result

        saved = await self._commit(command, reservation, result)
        logger.info(
            "%s committed for %s: status=%s paid=%s/%s",
            command, reservation.booking_reference, saved.status.value,
            saved.amount_paid, saved.grand_total
        )
        return TransitionResult(reservation=saved, effects=result.effects, quote=result.quote)

    async def _commit(
        self,
        command: str,
        original: Reservation,
        result: TransitionResult
    ) -> Reservation:
        # Rooms are held before the save so a conflict leaves nothing persisted.
        newly_held: List[str] = []
        widened: List[str] = []
        try:
            for effect in result.effects:
                if effect.kind != SideEffectKind.RESERVE_ROOM:
                    continue
                await self.room_coordinator.reserve(
                    original.reservation_id, effect.room_number, effect.date_range
                )
                if effect.room_number != original.room_number:
                    newly_held.append(effect.room_number)
                elif effect.date_range != hold_range(original):
                    widened.append(effect.room_number)
            saved = await self.repository.save(result.reservation, expected_version=original.version)
        except Exception as e:
            for room_number in newly_held:
                await self.room_coordinator.release(original.reservation_id, room_number)
            # Put a widened hold back to the range it had before this command.
            for room_number in widened:
                await self.room_coordinator.reserve(
                    original.reservation_id, room_number, hold_range(original)
                )
            if isinstance(e, ReservationError):
                logger.warning("%s rejected for %s: %s", command, original.reservation_id, e.code)
            raise

        for effect in result.effects:
            if effect.kind == SideEffectKind.RELEASE_ROOM:
                await self.room_coordinator.release(original.reservation_id, effect.room_number)
            elif effect.kind in (SideEffectKind.PERSIST_PAYMENT, SideEffectKind.PERSIST_CHARGE):
                logger.info("%s for %s: %s", effect.kind.value, original.booking_reference, effect.payload)
        return saved


class TaxRuleService:
    """Settings-side service for tax rules; the engine itself only reads them"""

    def __init__(self, store: TaxConfigurationStore):
        self.store = store

    async def list_tax_rules(self) -> List[TaxRule]:
        rules = await self.store.list_tax_rules()
        return sorted(rules, key=lambda r: (r.display_order, r.id))

    async def save_tax_rule(self, rule: TaxRule) -> TaxRule:
        saved = await self.store.upsert(rule)
        logger.info("Tax rule %s saved (enabled=%s)", saved.id, saved.is_enabled)
        return saved
