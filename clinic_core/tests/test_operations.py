import pytest

from clinic_core.billing.services import InvoiceService, PaymentService
from clinic_core.common.operations import run_operation
from clinic_core.iam.catalog import RoleName
from clinic_core.inventory.ledger import InventoryLedger
from clinic_core.inventory.services import InventoryItemService

pytestmark = pytest.mark.django_db


def test_success_carries_the_new_id(owner_ctx, patient):
    out = run_operation(
        InvoiceService.create,
        owner_ctx,
        patient_id=patient.id,
        items=[{"description": "Consultation", "quantity": 1, "unit_price": "500"}],
    )
    assert out["success"] is True
    assert len(out["id"]) == 36


def test_success_without_result_has_no_id(owner_ctx):
    item = InventoryItemService.create_item(owner_ctx, data={"name": "Masks"})
    assert run_operation(InventoryItemService.delete_item, owner_ctx, item_id=item.id) == {"success": True}


def test_domain_failures_are_folded(owner_ctx, make_member, patient):
    item = InventoryItemService.create_item(owner_ctx, data={"name": "Masks", "current_stock": 1})
    out = run_operation(InventoryLedger.record_movement, owner_ctx, item_id=item.id, movement_type="out", quantity=2)
    assert out == {"error": "InsufficientStock", "message": "Insufficient stock. Available: 1 pcs"}

    _, reception = make_member(RoleName.RECEPTION)
    inv = InvoiceService.create(
        owner_ctx, patient_id=patient.id, items=[{"description": "X", "quantity": 1, "unit_price": "10"}]
    )
    assert run_operation(PaymentService.refund_payment, reception, invoice_id=inv.id, amount="1")["error"] == "Forbidden"

    out = run_operation(InvoiceService.create, owner_ctx, patient_id=patient.id, items=[])
    assert out["error"] == "ValidationFailed"
    assert out["message"].startswith("items:")

    assert run_operation(InvoiceService.delete, owner_ctx, invoice_id="nope")["error"] == "NotFound"


def test_unexpected_errors_propagate(owner_ctx):
    def broken(ctx):
        raise ZeroDivisionError

    with pytest.raises(ZeroDivisionError):
        run_operation(broken, owner_ctx)
