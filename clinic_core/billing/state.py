# clinic_core/billing/state.py
"""
Invoice arithmetic and status rules. Pure functions, no ORM access.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from types import MappingProxyType
from typing import Iterable, Mapping, Tuple

from clinic_core.billing.models import InvoiceStatus as S

MONEY = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")

# Amounts are quantised to cents before comparison, so anything below half
# a cent is rounding noise.
PAYMENT_EPSILON = Decimal("0.005")

INVOICE_TRANSITIONS: Mapping[str, frozenset] = MappingProxyType({
    S.DRAFT: frozenset({S.SENT, S.CANCELLED}),
    S.SENT: frozenset({S.OVERDUE, S.CANCELLED}),
    S.PARTIALLY_PAID: frozenset({S.OVERDUE, S.CANCELLED}),
    S.OVERDUE: frozenset({S.CANCELLED}),
    S.PAID: frozenset({S.REFUNDED}),
    S.CANCELLED: frozenset({S.DRAFT}),
    S.REFUNDED: frozenset(),
})

# Reached only through payments and refunds, never by an explicit request.
DERIVED_STATUSES = frozenset({S.PARTIALLY_PAID, S.PAID, S.REFUNDED})

PAYMENT_BLOCKED_STATUSES = frozenset({S.CANCELLED, S.REFUNDED})


def to_money(value) -> Decimal:
    try:
        return Decimal(str(value)).quantize(MONEY, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError, TypeError):
        raise ValueError(f"Not a valid amount: {value!r}")


@dataclass(frozen=True)
class InvoiceTotals:
    subtotal: Decimal
    tax_amount: Decimal
    discount: Decimal
    total: Decimal


def compute_totals(lines: Iterable[Tuple[int, Decimal]], tax_rate: Decimal, discount: Decimal) -> InvoiceTotals:
    """
    lines: (quantity, unit_price) pairs.
    """
    subtotal = sum((to_money(Decimal(q) * to_money(p)) for q, p in lines), ZERO)
    tax_amount = to_money(subtotal * Decimal(tax_rate) / HUNDRED)
    discount = to_money(discount)
    return InvoiceTotals(
        subtotal=to_money(subtotal),
        tax_amount=tax_amount,
        discount=discount,
        total=to_money(subtotal + tax_amount - discount),
    )


def allowed_targets(current: str) -> frozenset:
    return INVOICE_TRANSITIONS.get(current, frozenset())


def can_transition(current: str, target: str) -> bool:
    """Explicit (user-requested) transitions only."""
    if target in DERIVED_STATUSES:
        return False
    return target in allowed_targets(current)


def exceeds_balance(amount: Decimal, balance_due: Decimal) -> bool:
    return amount > balance_due + PAYMENT_EPSILON


def status_after_payment(current: str, paid_amount: Decimal, total: Decimal) -> str:
    if paid_amount >= total:
        return S.PAID
    if paid_amount > ZERO:
        return S.PARTIALLY_PAID
    return current


def status_after_refund(current: str, paid_amount: Decimal, total: Decimal) -> str:
    if paid_amount <= ZERO:
        return S.REFUNDED
    return S.PARTIALLY_PAID
