from decimal import Decimal

import pytest
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError

from clinic_core.billing.models import Invoice, InvoiceStatus
from clinic_core.billing.services import InvoiceLineInput, InvoiceService, PaymentService
from clinic_core.common.api.exceptions import ImmutableState, InvalidTransition
from clinic_core.iam.catalog import RoleName

pytestmark = pytest.mark.django_db


def _invoice(ctx, patient, **extra):
    return InvoiceService.create(
        ctx,
        patient_id=patient.id,
        items=[{"description": "Scaling", "quantity": 2, "unit_price": "750.00"}],
        **extra,
    )


def test_create_computes_totals_and_numbers_sequentially(owner_ctx, patient):
    first = _invoice(owner_ctx, patient, tax_rate=10, discount="50")
    second = _invoice(owner_ctx, patient)

    assert first.status == InvoiceStatus.DRAFT
    assert first.subtotal == Decimal("1500.00")
    assert first.tax_amount == Decimal("150.00")
    assert first.total == Decimal("1600.00")
    assert first.items.count() == 1
    assert first.items.first().amount == Decimal("1500.00")

    assert first.invoice_number == "INV-000001"
    assert second.invoice_number == "INV-000002"


def test_invoice_numbers_are_per_clinic(owner_ctx, other_ctx, patient, other_patient):
    _invoice(owner_ctx, patient)
    assert _invoice(other_ctx, other_patient).invoice_number == "INV-000001"


def test_line_validation(owner_ctx, patient):
    with pytest.raises(ValidationError):
        InvoiceService.create(owner_ctx, patient_id=patient.id, items=[])
    with pytest.raises(ValidationError):
        InvoiceService.create(
            owner_ctx, patient_id=patient.id, items=[InvoiceLineInput("X", 0, Decimal("1"))]
        )
    with pytest.raises(ValidationError):
        InvoiceService.create(owner_ctx, patient_id=patient.id, items=[{"description": "X", "unit_price": "-1"}])
    with pytest.raises(ValidationError):
        _invoice(owner_ctx, patient, discount="99999")
    with pytest.raises(ValidationError):
        _invoice(owner_ctx, patient, tax_rate=101)


def test_foreign_patient_is_not_found(owner_ctx, other_patient):
    with pytest.raises(NotFound):
        _invoice(owner_ctx, other_patient)


def test_assistant_cannot_create(make_member, patient):
    _, ctx = make_member(RoleName.ASSISTANT)
    with pytest.raises(PermissionDenied):
        _invoice(ctx, patient)


def test_draft_can_be_edited_and_then_freezes(owner_ctx, patient):
    inv = _invoice(owner_ctx, patient)

    inv = InvoiceService.update(
        owner_ctx,
        invoice_id=inv.id,
        items=[{"description": "Crown", "quantity": 1, "unit_price": "5000"}],
        notes="updated",
    )
    assert inv.total == Decimal("5000.00")
    assert [i.description for i in inv.items.all()] == ["Crown"]

    InvoiceService.transition(owner_ctx, invoice_id=inv.id, target=InvoiceStatus.SENT)

    with pytest.raises(ImmutableState):
        InvoiceService.update(owner_ctx, invoice_id=inv.id, discount="10")
    with pytest.raises(ImmutableState):
        InvoiceService.delete(owner_ctx, invoice_id=inv.id)


def test_delete_draft(owner_ctx, patient):
    inv = _invoice(owner_ctx, patient)
    InvoiceService.delete(owner_ctx, invoice_id=inv.id)
    assert not Invoice.objects.filter(id=inv.id).exists()


def test_transition_rules(owner_ctx, patient):
    inv = _invoice(owner_ctx, patient)

    with pytest.raises(InvalidTransition):
        InvoiceService.transition(owner_ctx, invoice_id=inv.id, target=InvoiceStatus.PAID)
    with pytest.raises(InvalidTransition):
        InvoiceService.transition(owner_ctx, invoice_id=inv.id, target=InvoiceStatus.OVERDUE)
    with pytest.raises(ValidationError):
        InvoiceService.transition(owner_ctx, invoice_id=inv.id, target="ARCHIVED")

    inv = InvoiceService.transition(owner_ctx, invoice_id=inv.id, target=InvoiceStatus.CANCELLED)
    inv = InvoiceService.transition(owner_ctx, invoice_id=inv.id, target=InvoiceStatus.DRAFT)
    assert inv.status == InvoiceStatus.DRAFT


def test_cancelled_invoice_rejects_payments(owner_ctx, patient):
    inv = _invoice(owner_ctx, patient)
    InvoiceService.transition(owner_ctx, invoice_id=inv.id, target=InvoiceStatus.CANCELLED)

    with pytest.raises(InvalidTransition):
        PaymentService.record_payment(owner_ctx, invoice_id=inv.id, amount="10")
