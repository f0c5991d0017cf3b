"""Tax Engine - turns a room charge, extra charges and tax rules into a breakdown"""
from decimal import Decimal
from typing import Iterable, List

from domain.entities import TaxRule
from domain.enums import TaxAppliesTo, TaxType
from domain.value_objects import ZERO, TaxLine, TaxResult, round_money, to_decimal


def order_rules(rules: Iterable[TaxRule]) -> List[TaxRule]:
    """Enabled rules in evaluation order: display_order, then id"""
    return sorted(
        (rule for rule in rules if rule.is_enabled),
        key=lambda rule: (rule.display_order, rule.id)
    )


def tax_base(applies_to: TaxAppliesTo, room_charge: Decimal, extra_charges: Decimal) -> Decimal:
    # SUBTOTAL and TOTAL share a base; taxes never compound on other taxes.
    if applies_to == TaxAppliesTo.ROOM_RATE:
        return room_charge
    return room_charge + extra_charges


def tax_amount(rule: TaxRule, base: Decimal, currency: str) -> Decimal:
    if rule.tax_type == TaxType.FIXED:
        return round_money(rule.rate, currency)
    return round_money(base * rule.rate / Decimal(100), currency)


def compute_taxes(
    room_charge,
    extra_charges,
    rules: Iterable[TaxRule],
    discount=ZERO,
    currency: str = "XAF"
) -> TaxResult:
    """
    Compute the tax breakdown and grand total for a stay.

    Inclusive taxes are listed but already embedded in the room charge, so
    they are kept out of total_tax and grand_total. The discount is applied
    to the grand total only; tax bases are never reduced by it.
    """
    room_charge = round_money(to_decimal(room_charge), currency)
    extra_charges = round_money(to_decimal(extra_charges), currency)
    discount = round_money(to_decimal(discount), currency)

    lines: List[TaxLine] = []
    total_tax = ZERO
    inclusive_tax = ZERO

    for rule in order_rules(rules):
        base = tax_base(rule.applies_to, room_charge, extra_charges)
        amount = tax_amount(rule, base, currency)

        if rule.is_inclusive:
            inclusive_tax += amount
        else:
            total_tax += amount

        lines.append(TaxLine(
            tax_id=rule.id,
            name=rule.name,
            tax_type=rule.tax_type,
            rate=rule.rate,
            applies_to=rule.applies_to,
            is_inclusive=rule.is_inclusive,
            base_amount=base,
            amount=amount
        ))

    grand_total = max(ZERO, room_charge + extra_charges - discount + total_tax)

    return TaxResult(
        per_tax=lines,
        total_tax=round_money(total_tax, currency),
        inclusive_tax=round_money(inclusive_tax, currency),
        grand_total=round_money(grand_total, currency)
    )
