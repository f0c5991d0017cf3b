"""Payment Ledger - validates a payment against the balance due"""
from decimal import Decimal

from pydantic import BaseModel, ConfigDict

from domain.enums import PaymentStatus, PaymentType
from domain.errors import InvalidPaymentAmount
from domain.value_objects import ZERO, PaymentInstruction, round_money, to_decimal


class PaymentOutcome(BaseModel):
    new_amount_paid: Decimal
    new_status: PaymentStatus
    applied_amount: Decimal
    remaining_balance: Decimal

    model_config = ConfigDict(frozen=True)


def derive_payment_status(amount_paid: Decimal, remaining_balance: Decimal) -> PaymentStatus:
    """Payment status is always a function of the amounts, never an input"""
    if remaining_balance <= 0:
        return PaymentStatus.PAID
    if amount_paid > 0:
        return PaymentStatus.PARTIAL
    return PaymentStatus.PENDING


class PaymentLedger:
    """
    Applies one payment instruction.

    Callers must pass the amount paid and balance due they read right before
    the call; the repository's version check rejects a save computed from a
    stale read.
    """

    def __init__(self, currency: str = "XAF"):
        self.currency = currency

    def apply_payment(
        self,
        current_amount_paid,
        balance_due,
        instruction: PaymentInstruction
    ) -> PaymentOutcome:
        current_amount_paid = to_decimal(current_amount_paid)
        balance_due = max(ZERO, to_decimal(balance_due))

        if instruction.type == PaymentType.FULL:
            applied = self._full_amount(balance_due, instruction)
        elif instruction.type == PaymentType.PARTIAL:
            applied = self._partial_amount(balance_due, instruction)
        else:
            applied = ZERO

        new_amount_paid = current_amount_paid + applied
        remaining = balance_due - applied
        return PaymentOutcome(
            new_amount_paid=new_amount_paid,
            new_status=derive_payment_status(new_amount_paid, remaining),
            applied_amount=applied,
            remaining_balance=remaining
        )

    def _full_amount(self, balance_due: Decimal, instruction: PaymentInstruction) -> Decimal:
        # The engine settles the balance itself; a caller-supplied amount must agree.
        if instruction.amount is not None:
            supplied = round_money(instruction.amount, self.currency)
            if supplied != balance_due:
                raise InvalidPaymentAmount(
                    f"Full payment of {supplied} does not match balance due {balance_due}",
                    details={
                        "reason": "full_amount_mismatch",
                        "attempted": supplied,
                        "limit": balance_due,
                    },
                )
        return balance_due

    def _partial_amount(self, balance_due: Decimal, instruction: PaymentInstruction) -> Decimal:
        if instruction.amount is None:
            raise InvalidPaymentAmount(
                "Partial payment requires an amount",
                details={"reason": "missing_amount", "limit": balance_due},
            )
        amount = round_money(instruction.amount, self.currency)
        if amount <= 0:
            raise InvalidPaymentAmount(
                "Payment amount must be greater than 0",
                details={"reason": "non_positive", "attempted": amount, "limit": ZERO},
            )
        if amount > balance_due:
            raise InvalidPaymentAmount(
                f"Payment amount {amount} exceeds balance due {balance_due}",
                details={"reason": "exceeds_balance", "attempted": amount, "limit": balance_due},
            )
        return amount
