"""
Pure money rules for the billing ledger.

Discounts, invoice totals, payment allocation and the payment status rule live
here so the invoice builder, the payment processor and the tests all share one
definition. Every amount is a Decimal quantized to the currency unit.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Union

from core.config import BILLING_DISCOUNT_RATE
from core.constants import (
    CURRENCY_QUANTUM,
    DISCOUNTED_TYPES,
    PAYMENT_EPSILON,
    PAYMENT_STATUS_PAID,
    PAYMENT_STATUS_PARTIAL,
    PAYMENT_STATUS_UNPAID,
)

MoneyLike = Union[Decimal, int, float, str]

ZERO = Decimal("0.00")


def to_money(value: MoneyLike) -> Decimal:
    """
    Convert a number to a Decimal rounded to the currency unit.

    Floats are converted through str() so 0.1 becomes Decimal("0.10"), not its
    binary approximation.
    """
    if isinstance(value, float):
        value = str(value)
    return Decimal(value).quantize(CURRENCY_QUANTUM, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class InvoiceTotals:
    """Computed header amounts for an invoice."""
    total_amount: Decimal
    discount_amount: Decimal
    net_amount: Decimal


@dataclass(frozen=True)
class PaymentAllocation:
    """How a tendered amount is split between the invoice and change."""
    amount_applied: Decimal
    change_amount: Decimal
    new_paid_amount: Decimal
    new_status: str
    remaining_after: Decimal


def line_subtotal(unit_price: MoneyLike, quantity: int) -> Decimal:
    """Subtotal for one line (unit_price * quantity)."""
    return to_money(to_money(unit_price) * quantity)


def compute_discount(total_amount: MoneyLike, discount_type: str) -> Decimal:
    """
    Discount for a classification.

    Senior citizen and PWD invoices get a flat BILLING_DISCOUNT_RATE (20%) off
    the total; everything else gets none.
    """
    if discount_type in DISCOUNTED_TYPES:
        return to_money(to_money(total_amount) * BILLING_DISCOUNT_RATE)
    return ZERO


def compute_invoice_totals(subtotals: Iterable[MoneyLike], discount_type: str) -> InvoiceTotals:
    """Compute total, discount and net amounts from line subtotals."""
    total_amount = to_money(sum((to_money(s) for s in subtotals), ZERO))
    discount_amount = compute_discount(total_amount, discount_type)
    return InvoiceTotals(
        total_amount=total_amount,
        discount_amount=discount_amount,
        net_amount=total_amount - discount_amount,
    )


def derive_payment_status(paid_amount: MoneyLike, net_amount: MoneyLike) -> str:
    """
    Derive payment_status from paid_amount vs net_amount.

    - unpaid: nothing has been paid
    - paid: something was paid and the balance is within PAYMENT_EPSILON of zero
    - partial: anything in between
    """
    paid = to_money(paid_amount)
    net = to_money(net_amount)
    if paid <= ZERO:
        return PAYMENT_STATUS_UNPAID
    if paid >= net - PAYMENT_EPSILON:
        return PAYMENT_STATUS_PAID
    return PAYMENT_STATUS_PARTIAL


def allocate_payment(cash_tendered: MoneyLike, paid_amount: MoneyLike, net_amount: MoneyLike) -> PaymentAllocation:
    """
    Split cash tendered into the amount applied to the invoice and change.

    The applied amount is capped at the outstanding balance, so paid_amount can
    never exceed net_amount; any excess is returned as change.
    """
    tendered = to_money(cash_tendered)
    paid = to_money(paid_amount)
    net = to_money(net_amount)

    remaining = max(net - paid, ZERO)
    amount_applied = min(tendered, remaining)
    new_paid_amount = paid + amount_applied
    return PaymentAllocation(
        amount_applied=amount_applied,
        change_amount=tendered - amount_applied,
        new_paid_amount=new_paid_amount,
        new_status=derive_payment_status(new_paid_amount, net),
        remaining_after=net - new_paid_amount,
    )
