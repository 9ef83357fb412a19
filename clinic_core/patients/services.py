# clinic_core/patients/services.py
from __future__ import annotations

from uuid import UUID

from django.db import transaction
from rest_framework.exceptions import ValidationError

from clinic_core.audit.services import AuditService
from clinic_core.common.scoping import scoped
from clinic_core.iam.catalog import Perm
from clinic_core.iam.context import TenantContext, require_permissions
from clinic_core.patients.models import Gender, Patient

EDITABLE_FIELDS = {
    "first_name",
    "last_name",
    "phone",
    "email",
    "date_of_birth",
    "gender",
    "address",
    "notes",
}


def _clean(data: dict) -> dict:
    updates = {k: v for k, v in (data or {}).items() if k in EDITABLE_FIELDS}
    for key in ("first_name", "last_name"):
        if key in updates:
            updates[key] = (updates[key] or "").strip()
            if not updates[key]:
                raise ValidationError({key: "This field is required."})
    if updates.get("gender") and updates["gender"] not in Gender.values:
        raise ValidationError({"gender": f"Invalid gender. Allowed: {list(Gender.values)}"})
    for key in ("phone", "email", "address", "notes", "gender"):
        if key in updates and updates[key] is None:
            updates[key] = ""
    return updates


class PatientService:
    @staticmethod
    @transaction.atomic
    def create_patient(ctx: TenantContext, *, first_name: str, last_name: str, **extra) -> Patient:
        require_permissions(ctx, Perm.PATIENTS_WRITE)

        fields = _clean({"first_name": first_name, "last_name": last_name, **extra})
        patient = scoped(Patient, ctx).create(created_by_user_id=ctx.user_id, **fields)

        AuditService.record_after_commit(
            ctx,
            action="patient.create",
            entity_type="Patient",
            entity_id=patient.id,
        )
        return patient

    @staticmethod
    @transaction.atomic
    def update_patient(ctx: TenantContext, *, patient_id: UUID, data: dict) -> Patient:
        require_permissions(ctx, Perm.PATIENTS_WRITE)

        patient = scoped(Patient, ctx).get(patient_id, lock=True)
        updates = _clean(data)

        for k, v in updates.items():
            setattr(patient, k, v)
        patient.save()

        AuditService.record_after_commit(
            ctx,
            action="patient.update",
            entity_type="Patient",
            entity_id=patient.id,
            metadata={"updated_fields": sorted(updates.keys())},
        )
        return patient
