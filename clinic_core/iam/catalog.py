# clinic_core/iam/catalog.py
"""
Static permission catalog.

Permission codes are `module:action` strings. The catalog and the default
role grants are immutable at runtime; the database rows created by
`sync_permissions` / tenant onboarding are projections of these constants.
"""
from __future__ import annotations

from types import MappingProxyType
from typing import Mapping


class Perm:
    PATIENTS_READ = "patients:read"
    PATIENTS_WRITE = "patients:write"
    PATIENTS_DELETE = "patients:delete"

    APPOINTMENTS_READ = "appointments:read"
    APPOINTMENTS_WRITE = "appointments:write"
    APPOINTMENTS_DELETE = "appointments:delete"

    TREATMENTS_READ = "treatments:read"
    TREATMENTS_WRITE = "treatments:write"
    TREATMENTS_APPROVE = "treatments:approve"

    BILLING_READ = "billing:read"
    BILLING_WRITE = "billing:write"
    BILLING_REFUND = "billing:refund"

    INVENTORY_READ = "inventory:read"
    INVENTORY_WRITE = "inventory:write"

    REPORTS_READ = "reports:read"
    REPORTS_EXPORT = "reports:export"

    SETTINGS_READ = "settings:read"
    SETTINGS_WRITE = "settings:write"

    MEMBERS_READ = "members:read"
    MEMBERS_WRITE = "members:write"
    MEMBERS_DELETE = "members:delete"


PERMISSION_DESCRIPTIONS: Mapping[str, str] = MappingProxyType({
    Perm.PATIENTS_READ: "View patients",
    Perm.PATIENTS_WRITE: "Create and edit patients",
    Perm.PATIENTS_DELETE: "Delete patients",
    Perm.APPOINTMENTS_READ: "View appointments",
    Perm.APPOINTMENTS_WRITE: "Create and edit appointments",
    Perm.APPOINTMENTS_DELETE: "Delete appointments",
    Perm.TREATMENTS_READ: "View treatment plans",
    Perm.TREATMENTS_WRITE: "Create and edit treatment plans",
    Perm.TREATMENTS_APPROVE: "Approve treatment plans",
    Perm.BILLING_READ: "View invoices and payments",
    Perm.BILLING_WRITE: "Create invoices and record payments",
    Perm.BILLING_REFUND: "Refund payments",
    Perm.INVENTORY_READ: "View inventory",
    Perm.INVENTORY_WRITE: "Manage inventory and stock movements",
    Perm.REPORTS_READ: "View reports",
    Perm.REPORTS_EXPORT: "Export reports",
    Perm.SETTINGS_READ: "View clinic settings and audit log",
    Perm.SETTINGS_WRITE: "Edit clinic settings",
    Perm.MEMBERS_READ: "View clinic members",
    Perm.MEMBERS_WRITE: "Invite members and change roles",
    Perm.MEMBERS_DELETE: "Deactivate members",
})

ALL_PERMISSIONS: frozenset[str] = frozenset(PERMISSION_DESCRIPTIONS)


class RoleName:
    OWNER = "Owner"
    ADMIN = "Admin"
    DENTIST = "Dentist"
    RECEPTION = "Reception"
    ASSISTANT = "Assistant"
    ACCOUNTANT = "Accountant"


# Role that owns the clinic; cannot be invited, deactivated or reassigned.
OWNER_ROLE = RoleName.OWNER

# Roles whose members get a practitioner profile (bookable in the calendar).
PRACTITIONER_ROLES: frozenset[str] = frozenset({RoleName.DENTIST})

DEFAULT_ROLE_PERMISSIONS: Mapping[str, frozenset[str]] = MappingProxyType({
    RoleName.OWNER: ALL_PERMISSIONS,
    RoleName.ADMIN: ALL_PERMISSIONS,
    RoleName.DENTIST: frozenset({
        Perm.PATIENTS_READ,
        Perm.PATIENTS_WRITE,
        Perm.APPOINTMENTS_READ,
        Perm.APPOINTMENTS_WRITE,
        Perm.TREATMENTS_READ,
        Perm.TREATMENTS_WRITE,
        Perm.TREATMENTS_APPROVE,
        Perm.BILLING_READ,
        Perm.REPORTS_READ,
    }),
    RoleName.RECEPTION: frozenset({
        Perm.PATIENTS_READ,
        Perm.PATIENTS_WRITE,
        Perm.APPOINTMENTS_READ,
        Perm.APPOINTMENTS_WRITE,
        Perm.BILLING_READ,
        Perm.BILLING_WRITE,
    }),
    RoleName.ASSISTANT: frozenset({
        Perm.PATIENTS_READ,
        Perm.APPOINTMENTS_READ,
        Perm.TREATMENTS_READ,
        Perm.INVENTORY_READ,
    }),
    RoleName.ACCOUNTANT: frozenset({
        Perm.BILLING_READ,
        Perm.BILLING_WRITE,
        Perm.REPORTS_READ,
        Perm.REPORTS_EXPORT,
    }),
})


def module_of(code: str) -> str:
    return code.split(":", 1)[0]


def is_known_permission(code: str) -> bool:
    return code in ALL_PERMISSIONS


def default_permissions_for(role_name: str) -> frozenset[str]:
    return DEFAULT_ROLE_PERMISSIONS.get(role_name, frozenset())
