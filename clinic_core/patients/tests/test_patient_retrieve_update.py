# clinic_core/patients/tests/test_patient_retrieve_update.py
import pytest
from rest_framework.test import APIClient

from clinic_core.iam.catalog import RoleName
from clinic_core.tests.helpers import error_kind, tenant_headers

pytestmark = pytest.mark.django_db


def _create(api_client, tenant, **data):
    payload = {"first_name": "Pat", "last_name": "One", **data}
    res = api_client.post("/api/v1/patients/", payload, format="json", **tenant_headers(tenant))
    assert res.status_code == 201, res.data
    return res.data["id"]


def test_patient_retrieve_ok(api_client, tenant):
    pid = _create(api_client, tenant, phone="9999999999")

    r = api_client.get(f"/api/v1/patients/{pid}/", **tenant_headers(tenant))
    assert r.status_code == 200, r.data
    assert r.data["id"] == pid
    assert r.data["full_name"] == "Pat One"


def test_patient_patch_updates_fields(api_client, tenant):
    pid = _create(api_client, tenant)

    p = api_client.patch(
        f"/api/v1/patients/{pid}/",
        {"phone": "8888888888", "email": "pat2@example.com"},
        format="json",
        **tenant_headers(tenant),
    )
    assert p.status_code == 200, p.data
    assert p.data["phone"] == "8888888888"
    assert p.data["email"] == "pat2@example.com"


def test_blank_name_is_rejected(api_client, tenant):
    pid = _create(api_client, tenant)
    p = api_client.patch(f"/api/v1/patients/{pid}/", {"last_name": "  "}, format="json", **tenant_headers(tenant))
    assert p.status_code == 400
    assert error_kind(p) == "ValidationFailed"


def test_search(api_client, tenant):
    _create(api_client, tenant, first_name="Grace", last_name="Hopper")
    _create(api_client, tenant, first_name="Alan", last_name="Turing")

    res = api_client.get("/api/v1/patients/?q=hop", **tenant_headers(tenant))
    assert [r["last_name"] for r in res.data["results"]] == ["Hopper"]


def test_patients_of_another_clinic_are_invisible(api_client, tenant, other_owner, other_tenant):
    pid = _create(api_client, tenant)

    foreign = APIClient()
    foreign.force_authenticate(user=other_owner)
    assert foreign.get(f"/api/v1/patients/{pid}/").status_code == 404
    assert foreign.get("/api/v1/patients/").data["count"] == 0


def test_accountant_cannot_read_patients(make_member, tenant):
    user, _ = make_member(RoleName.ACCOUNTANT)
    c = APIClient()
    c.force_authenticate(user=user)
    assert c.get("/api/v1/patients/", **tenant_headers(tenant)).status_code == 403
