# clinic_core/inventory/ledger.py
from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from django.db import transaction
from rest_framework.exceptions import ValidationError

from clinic_core.audit.services import AuditService
from clinic_core.common.api.exceptions import InsufficientStock
from clinic_core.common.events import publish_after_commit
from clinic_core.common.scoping import scoped
from clinic_core.iam.catalog import Perm
from clinic_core.iam.context import TenantContext, require_permissions
from clinic_core.inventory.models import InventoryItem, MovementType, StockMovement

logger = logging.getLogger(__name__)

REASON_MAX_LENGTH = 500

LOW_STOCK_EVENT = "inventory.low_stock"


def _whole_number(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError({"quantity": "Quantity must be a whole number."})
    return value


def signed_delta(movement_type: str, quantity: Any) -> int:
    """
    in/out take a positive magnitude; an adjustment takes the signed change itself.
    """
    quantity = _whole_number(quantity)

    if movement_type == MovementType.ADJUSTMENT:
        if quantity == 0:
            raise ValidationError({"quantity": "Adjustment must not be zero."})
        return quantity

    if quantity < 1:
        raise ValidationError({"quantity": "Quantity must be at least 1."})
    if movement_type == MovementType.IN:
        return quantity
    if movement_type == MovementType.OUT:
        return -quantity

    raise ValidationError({"movement_type": f"Invalid type. Allowed: {list(MovementType.values)}"})


class InventoryLedger:
    @staticmethod
    @transaction.atomic
    def record_movement(
        ctx: TenantContext,
        *,
        item_id: UUID,
        movement_type: str,
        quantity: int,
        reason: str = "",
    ) -> StockMovement:
        """
        Apply one stock movement under a row lock on the item.

        The movement row and the stock counter are written together; stock
        never drops below zero.
        """
        require_permissions(ctx, Perm.INVENTORY_WRITE)

        delta = signed_delta(movement_type, quantity)
        reason = (reason or "").strip()
        if len(reason) > REASON_MAX_LENGTH:
            raise ValidationError({"reason": f"Ensure this field has no more than {REASON_MAX_LENGTH} characters."})

        item = scoped(InventoryItem, ctx).get(item_id, lock=True)

        new_stock = item.current_stock + delta
        if new_stock < 0:
            raise InsufficientStock(f"Insufficient stock. Available: {item.current_stock} {item.unit}")

        item.current_stock = new_stock
        item.save(update_fields=["current_stock", "updated_at"])

        movement = scoped(StockMovement, ctx).create(
            item=item,
            movement_type=movement_type,
            quantity=abs(delta),
            delta=delta,
            stock_after=new_stock,
            reason=reason,
            created_by_user_id=ctx.user_id,
        )

        AuditService.record_after_commit(
            ctx,
            action=f"inventory.stock.{movement_type}",
            entity_type="InventoryItem",
            entity_id=item.id,
            metadata={"quantity": abs(delta), "delta": delta, "reason": reason},
        )

        if delta < 0 and item.is_low_stock:
            publish_after_commit(
                LOW_STOCK_EVENT,
                {
                    "tenant_id": str(ctx.tenant_id),
                    "item_id": str(item.id),
                    "item_name": item.name,
                    "current_stock": item.current_stock,
                    "min_stock": item.min_stock,
                },
            )

        logger.info(
            "Stock movement tenant=%s item=%s type=%s delta=%s stock=%s",
            ctx.tenant_id,
            item.id,
            movement_type,
            delta,
            new_stock,
        )
        return movement
