import pytest
from django.core import mail
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError

from clinic_core.common.api.exceptions import InsufficientStock
from clinic_core.iam.catalog import RoleName
from clinic_core.inventory.ledger import InventoryLedger, signed_delta
from clinic_core.inventory.models import InventoryItem, MovementType, StockMovement
from clinic_core.inventory.services import InventoryItemService

pytestmark = pytest.mark.django_db


@pytest.fixture
def gloves(owner_ctx):
    return InventoryItemService.create_item(
        owner_ctx, data={"name": "Nitrile gloves", "unit": "box", "current_stock": 5, "min_stock": 10}
    )


def test_signed_delta():
    assert signed_delta(MovementType.IN, 3) == 3
    assert signed_delta(MovementType.OUT, 3) == -3
    assert signed_delta(MovementType.ADJUSTMENT, -2) == -2
    for mt, qty in ((MovementType.IN, 0), (MovementType.OUT, -1), (MovementType.ADJUSTMENT, 0), (MovementType.IN, 1.5)):
        with pytest.raises(ValidationError):
            signed_delta(mt, qty)
    with pytest.raises(ValidationError):
        signed_delta("transfer", 1)


def test_stock_out_cannot_go_negative(owner_ctx, gloves):
    with pytest.raises(InsufficientStock) as exc:
        InventoryLedger.record_movement(owner_ctx, item_id=gloves.id, movement_type=MovementType.OUT, quantity=6)
    assert "Available: 5 box" in str(exc.value.detail)

    gloves.refresh_from_db()
    assert gloves.current_stock == 5
    assert not StockMovement.objects.filter(item=gloves).exists()

    m = InventoryLedger.record_movement(owner_ctx, item_id=gloves.id, movement_type=MovementType.OUT, quantity=5)
    gloves.refresh_from_db()
    assert gloves.current_stock == 0
    assert (m.quantity, m.delta, m.stock_after) == (5, -5, 0)


def test_movements_keep_counter_and_history_in_step(owner_ctx, gloves):
    InventoryLedger.record_movement(owner_ctx, item_id=gloves.id, movement_type=MovementType.IN, quantity=20, reason="PO-7")
    InventoryLedger.record_movement(owner_ctx, item_id=gloves.id, movement_type=MovementType.ADJUSTMENT, quantity=-3)

    gloves.refresh_from_db()
    deltas = list(StockMovement.objects.filter(item=gloves).values_list("delta", flat=True))
    assert gloves.current_stock == 5 + sum(deltas) == 22


def test_low_stock_event_fires_after_commit(owner_ctx, gloves, django_capture_on_commit_callbacks):
    with django_capture_on_commit_callbacks(execute=True):
        InventoryLedger.record_movement(owner_ctx, item_id=gloves.id, movement_type=MovementType.OUT, quantity=1)

    assert len(mail.outbox) == 1
    assert mail.outbox[0].subject == "Low stock: Nitrile gloves"
    assert "owner@example.com" in mail.outbox[0].to


def test_stock_in_does_not_alert(owner_ctx, gloves, django_capture_on_commit_callbacks):
    with django_capture_on_commit_callbacks(execute=True):
        InventoryLedger.record_movement(owner_ctx, item_id=gloves.id, movement_type=MovementType.IN, quantity=1)
    assert mail.outbox == []


def test_low_stock_query(owner_ctx, gloves):
    InventoryItemService.create_item(owner_ctx, data={"name": "Bibs", "current_stock": 100, "min_stock": 10})
    low = InventoryItem.objects.for_tenant(owner_ctx.tenant_id).low_stock()
    assert [i.name for i in low] == ["Nitrile gloves"]


def test_assistant_can_read_but_not_move_stock(make_member, gloves):
    _, assistant = make_member(RoleName.ASSISTANT)
    with pytest.raises(PermissionDenied):
        InventoryLedger.record_movement(assistant, item_id=gloves.id, movement_type=MovementType.IN, quantity=1)


def test_foreign_item_is_not_found(other_ctx, gloves):
    with pytest.raises(NotFound):
        InventoryLedger.record_movement(other_ctx, item_id=gloves.id, movement_type=MovementType.IN, quantity=1)


def test_movement_locks_the_item_row(owner_ctx, gloves, row_locks):
    InventoryLedger.record_movement(owner_ctx, item_id=gloves.id, movement_type=MovementType.OUT, quantity=1)
    assert row_locks == ["InventoryItem"]
