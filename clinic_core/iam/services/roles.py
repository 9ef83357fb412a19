# clinic_core/iam/services/roles.py
from __future__ import annotations

import logging

from django.db import transaction

from clinic_core.iam.catalog import DEFAULT_ROLE_PERMISSIONS, PERMISSION_DESCRIPTIONS, module_of
from clinic_core.iam.models import Permission, Role, RolePermission
from clinic_core.tenants.models import Tenant

logger = logging.getLogger(__name__)


@transaction.atomic
def ensure_permission_catalog() -> dict[str, Permission]:
    """
    Upsert one Permission row per catalog code. Idempotent.
    """
    existing = {p.code: p for p in Permission.objects.all()}
    missing = [
        Permission(code=code, module=module_of(code), description=desc)
        for code, desc in PERMISSION_DESCRIPTIONS.items()
        if code not in existing
    ]
    if missing:
        Permission.objects.bulk_create(missing, ignore_conflicts=True)
        existing = {p.code: p for p in Permission.objects.all()}
        logger.info("Permission catalog: created %s codes", len(missing))
    return existing


@transaction.atomic
def provision_default_roles(tenant: Tenant) -> dict[str, Role]:
    """
    Create the canonical roles for a clinic and grant their default codes.
    Existing roles keep their grants; only missing grants are added.
    """
    perms = ensure_permission_catalog()
    roles: dict[str, Role] = {}

    for role_name, codes in DEFAULT_ROLE_PERMISSIONS.items():
        role, _ = Role.objects.get_or_create(
            tenant=tenant,
            name=role_name,
            defaults={"is_system": True},
        )
        RolePermission.objects.bulk_create(
            [RolePermission(role=role, permission=perms[code]) for code in sorted(codes)],
            ignore_conflicts=True,
        )
        roles[role_name] = role

    return roles


def get_role_by_name(*, tenant_id, name: str) -> Role | None:
    return Role.objects.filter(tenant_id=tenant_id, name=name).first()
