from decimal import Decimal

import pytest

from clinic_core.billing.models import InvoiceStatus as S
from clinic_core.billing.state import (
    can_transition,
    compute_totals,
    exceeds_balance,
    status_after_payment,
    status_after_refund,
    to_money,
)


def test_totals_round_half_up_to_cents():
    totals = compute_totals([(1, Decimal("20000"))], Decimal("18"), Decimal("500"))
    assert totals.subtotal == Decimal("20000.00")
    assert totals.tax_amount == Decimal("3600.00")
    assert totals.total == Decimal("23100.00")

    assert compute_totals([(3, Decimal("0.335"))], Decimal("0"), Decimal("0")).subtotal == Decimal("1.02")
    assert to_money("2.675") == Decimal("2.68")


def test_to_money_rejects_garbage():
    with pytest.raises(ValueError):
        to_money("ten")


@pytest.mark.parametrize(
    "current,target,ok",
    [
        (S.DRAFT, S.SENT, True),
        (S.DRAFT, S.PAID, False),
        (S.SENT, S.OVERDUE, True),
        (S.SENT, S.DRAFT, False),
        (S.CANCELLED, S.DRAFT, True),
        (S.REFUNDED, S.DRAFT, False),
        (S.PAID, S.CANCELLED, False),
        (S.PAID, S.REFUNDED, False),
    ],
)
def test_explicit_transitions(current, target, ok):
    assert can_transition(current, target) is ok


def test_balance_check_tolerates_sub_cent_noise():
    assert not exceeds_balance(Decimal("100.00"), Decimal("100.00"))
    assert not exceeds_balance(Decimal("100.004"), Decimal("100.00"))
    assert exceeds_balance(Decimal("100.01"), Decimal("100.00"))


def test_derived_statuses():
    total = Decimal("100.00")
    assert status_after_payment(S.SENT, Decimal("40.00"), total) == S.PARTIALLY_PAID
    assert status_after_payment(S.OVERDUE, Decimal("100.00"), total) == S.PAID
    assert status_after_refund(S.PAID, Decimal("60.00"), total) == S.PARTIALLY_PAID
    assert status_after_refund(S.PARTIALLY_PAID, Decimal("0.00"), total) == S.REFUNDED
