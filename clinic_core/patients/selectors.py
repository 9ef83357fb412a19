# clinic_core/patients/selectors.py
from __future__ import annotations

from uuid import UUID

from django.db.models import Q, QuerySet

from clinic_core.common.scoping import scoped
from clinic_core.iam.catalog import Perm
from clinic_core.iam.context import TenantContext, require_permissions
from clinic_core.patients.models import Patient


def get_patient(ctx: TenantContext, *, patient_id: UUID) -> Patient:
    require_permissions(ctx, Perm.PATIENTS_READ)
    return scoped(Patient, ctx).get(patient_id)


def search_patients(ctx: TenantContext, *, q: str | None = None) -> QuerySet[Patient]:
    require_permissions(ctx, Perm.PATIENTS_READ)
    qs = scoped(Patient, ctx).all()

    qv = (q or "").strip()
    if qv:
        qs = qs.filter(
            Q(first_name__icontains=qv)
            | Q(last_name__icontains=qv)
            | Q(phone__icontains=qv)
            | Q(email__icontains=qv)
        )

    return qs.order_by("-created_at")
