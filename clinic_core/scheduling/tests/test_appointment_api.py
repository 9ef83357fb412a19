import pytest
from rest_framework.test import APIClient

from clinic_core.tests.helpers import error_kind, tenant_headers

pytestmark = pytest.mark.django_db


def _payload(patient, practitioner, start, end):
    return {
        "patient_id": str(patient.id),
        "practitioner_id": str(practitioner.id),
        "start_at": start.isoformat(),
        "end_at": end.isoformat(),
        "title": "Filling",
    }


def test_double_booking_over_http_is_409(api_client, tenant, patient, practitioner, slot):
    h = tenant_headers(tenant)

    res = api_client.post("/api/v1/appointments/", _payload(patient, practitioner, *slot(10, 0)), format="json", **h)
    assert res.status_code == 201, res.content

    res = api_client.post("/api/v1/appointments/", _payload(patient, practitioner, *slot(10, 15)), format="json", **h)
    assert res.status_code == 409
    assert error_kind(res) == "DoubleBooked"

    res = api_client.post("/api/v1/appointments/", _payload(patient, practitioner, *slot(10, 30)), format="json", **h)
    assert res.status_code == 201


def test_list_filters_by_practitioner_and_paginates(api_client, tenant, patient, practitioner, slot):
    h = tenant_headers(tenant)
    api_client.post("/api/v1/appointments/", _payload(patient, practitioner, *slot(9, 0)), format="json", **h)

    res = api_client.get(f"/api/v1/appointments/?practitioner={practitioner.id}", **h)
    assert res.status_code == 200
    assert res.json()["count"] == 1
    assert res.json()["results"][0]["patient_name"] == "Test Patient"


def test_invalid_uuid_filter_is_validation_error(api_client, tenant):
    res = api_client.get("/api/v1/appointments/?patient=nope", **tenant_headers(tenant))
    assert res.status_code == 400
    assert error_kind(res) == "ValidationFailed"


def test_status_action_and_cross_tenant_lookup(api_client, tenant, other_owner, other_tenant, patient, practitioner, slot):
    h = tenant_headers(tenant)
    appt_id = api_client.post(
        "/api/v1/appointments/", _payload(patient, practitioner, *slot(10, 0)), format="json", **h
    ).json()["id"]

    res = api_client.post(f"/api/v1/appointments/{appt_id}/status/", {"status": "CONFIRMED"}, format="json", **h)
    assert res.status_code == 200
    assert res.json()["status"] == "CONFIRMED"

    foreign = APIClient()
    foreign.force_authenticate(user=other_owner)
    res = foreign.get(f"/api/v1/appointments/{appt_id}/")
    assert res.status_code == 404
    assert error_kind(res) == "NotFound"
