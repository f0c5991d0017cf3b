"""Stay Billing Calculator - nights to bill, pre-tax subtotal and final price"""
from datetime import date
from decimal import Decimal
from typing import Iterable, List, Optional, Tuple

from domain.entities import Reservation, TaxRule
from domain.enums import BillingMethod, ReservationStatus, StayPhase, StayVariance
from domain.errors import DiscountExceedsSubtotal, NegativeChargeAmount
from domain.tax_engine import compute_taxes
from domain.value_objects import (
    ZERO, ExtraCharge, StayQuote, TaxResult, nights_between, round_money, to_decimal
)


class StayBillingCalculator:
    """
    Prices a reservation's stay.

    The calculator never reads the clock: callers pass the hotel-local
    ``today`` they want the stay priced as of. It is side-effect free and
    safe to call repeatedly for live previews.
    """

    def __init__(self, default_billing_method: BillingMethod = BillingMethod.RESERVED):
        self.default_billing_method = default_billing_method

    # ==================== NIGHTS ====================
    @staticmethod
    def default_phase(reservation: Reservation, today: Optional[date]) -> StayPhase:
        """Arrival pricing is only used when asked for; bookings keep their reserved nights"""
        if today is not None and reservation.status == ReservationStatus.CHECKED_IN:
            return StayPhase.DEPARTURE
        return StayPhase.BOOKING

    def resolve_nights(
        self,
        reservation: Reservation,
        today: Optional[date],
        billing_method: BillingMethod,
        phase: StayPhase
    ) -> Tuple[int, StayVariance]:
        """Nights to bill and which arrival/departure variance produced them"""
        check_in = reservation.check_in_date
        check_out = reservation.check_out_date
        reserved = nights_between(check_in, check_out)

        if phase == StayPhase.BOOKING or today is None:
            nights, variance = reserved, StayVariance.ON_TIME

        elif phase == StayPhase.ARRIVAL:
            if today < check_in:
                nights, variance = nights_between(today, check_out), StayVariance.EARLY_ARRIVAL
            else:
                nights, variance = reserved, StayVariance.ON_TIME

        else:
            # An early arrival recorded at check-in is still billed at departure.
            start = check_in
            if reservation.actual_check_in_date and reservation.actual_check_in_date < check_in:
                start = reservation.actual_check_in_date

            if today < check_out:
                variance = StayVariance.EARLY_CHECKOUT
                if billing_method == BillingMethod.ACTUAL:
                    nights = nights_between(start, today)
                else:
                    nights = nights_between(start, check_out)
            elif today > check_out:
                nights, variance = nights_between(start, today), StayVariance.LATE_CHECKOUT
            else:
                nights = nights_between(start, check_out)
                variance = (
                    StayVariance.EARLY_ARRIVAL if start < check_in else StayVariance.ON_TIME
                )

        return max(1, nights), variance

    @staticmethod
    def effective_billing_method(variance: StayVariance, chosen: BillingMethod) -> BillingMethod:
        if variance == StayVariance.EARLY_CHECKOUT:
            return chosen
        if variance in (StayVariance.LATE_CHECKOUT, StayVariance.EARLY_ARRIVAL):
            return BillingMethod.ACTUAL
        return BillingMethod.RESERVED

    # ==================== PRICING ====================
    def price_stay(
        self,
        reservation: Reservation,
        tax_rules: Iterable[TaxRule],
        today: Optional[date] = None,
        billing_method: Optional[BillingMethod] = None,
        phase: Optional[StayPhase] = None,
        extra_charges: Optional[List[ExtraCharge]] = None,
        discount: Optional[Decimal] = None,
        late_checkout_fee: Optional[Decimal] = None
    ) -> StayQuote:
        """
        Price the stay as of ``today``.

        ``extra_charges`` are appended to the charges already posted on the
        reservation; ``discount`` and ``late_checkout_fee`` replace the stored
        values when given. A checked-out reservation is never re-priced.
        """
        if reservation.is_price_frozen:
            return self.frozen_quote(reservation)

        currency = reservation.currency
        billing_method = billing_method or self.default_billing_method
        phase = phase or self.default_phase(reservation, today)

        charges = list(reservation.extra_charges) + list(extra_charges or [])
        validate_charges(charges)

        discount = to_decimal(reservation.discount if discount is None else discount)
        late_checkout_fee = to_decimal(
            reservation.late_checkout_fee if late_checkout_fee is None else late_checkout_fee
        )
        _require_non_negative("late_checkout_fee", late_checkout_fee)
        _require_non_negative("discount", discount)

        nights, variance = self.resolve_nights(reservation, today, billing_method, phase)

        room_subtotal = round_money(nights * reservation.price_per_night, currency)
        extras_total = round_money(sum((c.amount for c in charges), ZERO), currency)
        late_checkout_fee = round_money(late_checkout_fee, currency)
        discount = round_money(discount, currency)

        max_discount = room_subtotal + extras_total + late_checkout_fee
        if discount > max_discount:
            raise DiscountExceedsSubtotal(
                f"Discount {discount} exceeds subtotal {max_discount}",
                details={"attempted": discount, "limit": max_discount},
            )

        subtotal_before_tax = max(ZERO, max_discount - discount)
        tax_result = compute_taxes(
            room_subtotal,
            extras_total + late_checkout_fee,
            tax_rules,
            discount=discount,
            currency=currency
        )
        grand_total = tax_result.grand_total

        return StayQuote(
            nights_reserved=reservation.get_nights(),
            nights_billed=nights,
            stay_variance=variance,
            billing_method=self.effective_billing_method(variance, billing_method),
            room_subtotal=room_subtotal,
            extra_charges_total=extras_total,
            late_checkout_fee=late_checkout_fee,
            discount=discount,
            subtotal_before_tax=subtotal_before_tax,
            tax_result=tax_result,
            grand_total=grand_total,
            amount_paid=reservation.amount_paid,
            balance_due=max(ZERO, grand_total - reservation.amount_paid),
            currency=currency
        )

    def frozen_quote(self, reservation: Reservation) -> StayQuote:
        """Rebuild the quote of a checked-out stay from its stored snapshot"""
        departure = reservation.actual_check_out_date
        if departure < reservation.check_out_date:
            variance = StayVariance.EARLY_CHECKOUT
        elif departure > reservation.check_out_date:
            variance = StayVariance.LATE_CHECKOUT
        else:
            variance = StayVariance.ON_TIME

        lines = list(reservation.tax_breakdown)
        extras_total = reservation.extra_charges_total()
        subtotal = reservation.room_subtotal + extras_total + reservation.late_checkout_fee
        return StayQuote(
            nights_reserved=reservation.get_nights(),
            nights_billed=reservation.nights_billed,
            stay_variance=variance,
            billing_method=reservation.billing_method or BillingMethod.RESERVED,
            room_subtotal=reservation.room_subtotal,
            extra_charges_total=extras_total,
            late_checkout_fee=reservation.late_checkout_fee,
            discount=reservation.discount,
            subtotal_before_tax=max(ZERO, subtotal - reservation.discount),
            tax_result=TaxResult(
                per_tax=lines,
                total_tax=sum((l.amount for l in lines if not l.is_inclusive), ZERO),
                inclusive_tax=sum((l.amount for l in lines if l.is_inclusive), ZERO),
                grand_total=reservation.grand_total
            ),
            grand_total=reservation.grand_total,
            amount_paid=reservation.amount_paid,
            balance_due=max(ZERO, reservation.grand_total - reservation.amount_paid),
            currency=reservation.currency,
            is_frozen=True
        )


def validate_charges(charges: Iterable[ExtraCharge]) -> None:
    for charge in charges:
        if charge.amount < 0:
            raise NegativeChargeAmount(
                f"Charge '{charge.label}' has a negative amount",
                details={"label": charge.label, "attempted": charge.amount, "limit": ZERO},
            )


def _require_non_negative(label: str, amount: Decimal) -> None:
    if amount < 0:
        raise NegativeChargeAmount(
            f"{label} cannot be negative",
            details={"label": label, "attempted": amount, "limit": ZERO},
        )
