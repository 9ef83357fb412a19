# clinic_core/notifications/subscribers.py
from __future__ import annotations

import logging
from typing import Any, Dict

from clinic_core.common.events import subscribe
from clinic_core.iam.catalog import Perm
from clinic_core.iam.models import Membership
from clinic_core.notifications.dispatch import LowStockAlert, get_dispatcher

logger = logging.getLogger(__name__)


def _inventory_manager_emails(tenant_id) -> tuple[str, ...]:
    emails = (
        Membership.objects.filter(
            tenant_id=tenant_id,
            is_active=True,
            role__permissions__code=Perm.INVENTORY_WRITE,
        )
        .exclude(user__email="")
        .values_list("user__email", flat=True)
        .distinct()
    )
    return tuple(sorted(emails))


@subscribe("inventory.low_stock")
def notify_low_stock(payload: Dict[str, Any]) -> None:
    alert = LowStockAlert(
        tenant_id=str(payload["tenant_id"]),
        item_id=str(payload["item_id"]),
        item_name=payload["item_name"],
        current_stock=payload["current_stock"],
        min_stock=payload["min_stock"],
        recipients=_inventory_manager_emails(payload["tenant_id"]),
    )
    logger.info("Dispatching low-stock alert for item=%s", alert.item_id)
    get_dispatcher().send_low_stock_alert(alert)
