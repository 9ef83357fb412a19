import pytest
from rest_framework.exceptions import NotFound, PermissionDenied

from clinic_core.common.api.exceptions import DoubleBooked
from clinic_core.iam.catalog import RoleName
from clinic_core.iam.models import Membership
from clinic_core.scheduling.conflicts import SchedulingConflictDetector, intervals_overlap
from clinic_core.scheduling.models import Appointment, AppointmentStatus
from clinic_core.scheduling.services.appointments import AppointmentService
from clinic_core.scheduling.services.practitioners import ensure_practitioner_profile

pytestmark = pytest.mark.django_db


def _book(ctx, patient, practitioner, start, end, **extra):
    return AppointmentService.create(
        ctx,
        patient_id=patient.id,
        practitioner_id=practitioner.id,
        start_at=start,
        end_at=end,
        **extra,
    )


def test_half_open_intervals(slot):
    a = slot(10, 0)
    assert intervals_overlap(*a, *slot(10, 15))
    assert not intervals_overlap(*a, *slot(10, 30))
    assert not intervals_overlap(*a, *slot(9, 30))


def test_overlap_rejected_and_adjacent_slot_accepted(owner_ctx, patient, practitioner, slot):
    _book(owner_ctx, patient, practitioner, *slot(10, 0))

    with pytest.raises(DoubleBooked):
        _book(owner_ctx, patient, practitioner, *slot(10, 15))

    adjacent = _book(owner_ctx, patient, practitioner, *slot(10, 30))
    assert adjacent.status == AppointmentStatus.SCHEDULED
    assert Appointment.objects.for_tenant(owner_ctx.tenant_id).count() == 2


def test_other_practitioner_is_free(owner_ctx, patient, practitioner, make_member, slot):
    _book(owner_ctx, patient, practitioner, *slot(10, 0))

    user, _ = make_member(RoleName.DENTIST)
    other = Membership.objects.get(user=user).practitioner_profile
    assert _book(owner_ctx, patient, other, *slot(10, 0)).id


def test_cancelled_appointment_frees_the_slot(owner_ctx, patient, practitioner, slot):
    first = _book(owner_ctx, patient, practitioner, *slot(10, 0))
    AppointmentService.set_status(owner_ctx, appointment_id=first.id, status=AppointmentStatus.CANCELLED)

    second = _book(owner_ctx, patient, practitioner, *slot(10, 0))

    # reclaiming the first would now double-book
    with pytest.raises(DoubleBooked):
        AppointmentService.set_status(owner_ctx, appointment_id=first.id, status=AppointmentStatus.SCHEDULED)
    assert second.status == AppointmentStatus.SCHEDULED


def test_reschedule_excludes_itself(owner_ctx, patient, practitioner, slot):
    appt = _book(owner_ctx, patient, practitioner, *slot(10, 0))
    start, end = slot(10, 15)

    moved = AppointmentService.update(owner_ctx, appointment_id=appt.id, data={"start_at": start, "end_at": end})
    assert moved.start_at == start


def test_reschedule_into_a_taken_slot_fails(owner_ctx, patient, practitioner, slot):
    _book(owner_ctx, patient, practitioner, *slot(10, 0))
    other = _book(owner_ctx, patient, practitioner, *slot(11, 0))

    start, end = slot(10, 20)
    with pytest.raises(DoubleBooked):
        AppointmentService.update(owner_ctx, appointment_id=other.id, data={"start_at": start, "end_at": end})


def test_detector_ignores_non_blocking_statuses(owner_ctx, patient, practitioner, slot):
    appt = _book(owner_ctx, patient, practitioner, *slot(10, 0))
    start, end = slot(10, 0)
    assert SchedulingConflictDetector.has_conflict(
        tenant_id=owner_ctx.tenant_id, practitioner_id=practitioner.id, start=start, end=end
    )

    AppointmentService.set_status(owner_ctx, appointment_id=appt.id, status=AppointmentStatus.NO_SHOW)
    assert not SchedulingConflictDetector.has_conflict(
        tenant_id=owner_ctx.tenant_id, practitioner_id=practitioner.id, start=start, end=end
    )


def test_foreign_patient_is_not_found(owner_ctx, other_patient, practitioner, slot):
    with pytest.raises(NotFound):
        _book(owner_ctx, other_patient, practitioner, *slot(10, 0))


def test_foreign_appointment_is_not_found(owner_ctx, other_ctx, patient, practitioner, slot):
    appt = _book(owner_ctx, patient, practitioner, *slot(10, 0))
    with pytest.raises(NotFound):
        AppointmentService.set_status(other_ctx, appointment_id=appt.id, status=AppointmentStatus.CANCELLED)


@pytest.mark.parametrize("status", [AppointmentStatus.SCHEDULED, AppointmentStatus.CANCELLED])
def test_foreign_practitioner_is_not_found_on_update(owner_ctx, other_ctx, patient, practitioner, slot, status):
    foreign = ensure_practitioner_profile(Membership.objects.get(id=other_ctx.membership_id))
    appt = _book(owner_ctx, patient, practitioner, *slot(10, 0))
    if status != appt.status:
        AppointmentService.set_status(owner_ctx, appointment_id=appt.id, status=status)

    with pytest.raises(NotFound):
        AppointmentService.update(owner_ctx, appointment_id=appt.id, data={"practitioner_id": foreign.id})

    appt.refresh_from_db()
    assert appt.practitioner_id == practitioner.id


def test_assistant_cannot_book_and_reception_cannot_delete(make_member, patient, practitioner, slot):
    _, assistant = make_member(RoleName.ASSISTANT)
    with pytest.raises(PermissionDenied):
        _book(assistant, patient, practitioner, *slot(10, 0))

    _, reception = make_member(RoleName.RECEPTION)
    appt = _book(reception, patient, practitioner, *slot(10, 0))
    with pytest.raises(PermissionDenied):
        AppointmentService.delete(reception, appointment_id=appt.id)


def test_booking_locks_the_practitioner_before_checking(owner_ctx, patient, practitioner, slot, row_locks):
    _book(owner_ctx, patient, practitioner, *slot(10, 0))
    assert row_locks == ["PractitionerProfile"]
