import pytest
from rest_framework.test import APIClient

from clinic_core.iam.catalog import RoleName
from clinic_core.tests.helpers import error_kind, tenant_headers

pytestmark = pytest.mark.django_db


def test_plan_to_invoice_over_http(api_client, tenant, patient):
    h = tenant_headers(tenant)

    res = api_client.post("/api/v1/treatments/plans/", {"patient_id": str(patient.id), "name": "Braces"}, format="json", **h)
    assert res.status_code == 201, res.content
    plan_id = res.json()["id"]

    for target in ("PROPOSED", "ACCEPTED"):
        res = api_client.post(f"/api/v1/treatments/plans/{plan_id}/transition/", {"status": target}, format="json", **h)
        assert res.status_code == 200, res.content

    res = api_client.post(
        f"/api/v1/treatments/plans/{plan_id}/items/",
        {"procedure": "Bracket bonding", "cost": "25000.00"},
        format="json",
        **h,
    )
    assert res.status_code == 201, res.content
    item_id = res.json()["id"]
    assert api_client.get(f"/api/v1/treatments/plans/{plan_id}/", **h).json()["status"] == "IN_PROGRESS"

    api_client.post(f"/api/v1/treatments/items/{item_id}/status/", {"status": "COMPLETED"}, format="json", **h)
    plan = api_client.get(f"/api/v1/treatments/plans/{plan_id}/", **h).json()
    assert plan["status"] == "COMPLETED"

    unbilled = api_client.get(f"/api/v1/treatments/plans/{plan_id}/unbilled-items/", **h).json()
    assert [i["id"] for i in unbilled] == [item_id]

    res = api_client.post(
        f"/api/v1/treatments/plans/{plan_id}/generate-invoice/", {"item_ids": [item_id]}, format="json", **h
    )
    assert res.status_code == 201, res.content
    assert res.json()["total"] == "25000.00"
    assert res.json()["treatment_plan"] == plan_id

    res = api_client.post(
        f"/api/v1/treatments/plans/{plan_id}/generate-invoice/", {"item_ids": [item_id]}, format="json", **h
    )
    assert res.status_code == 400
    assert error_kind(res) == "ValidationFailed"


def test_assistant_cannot_accept_plan(make_member, api_client, tenant, patient):
    h = tenant_headers(tenant)
    plan_id = api_client.post(
        "/api/v1/treatments/plans/", {"patient_id": str(patient.id), "name": "Whitening"}, format="json", **h
    ).json()["id"]
    api_client.post(f"/api/v1/treatments/plans/{plan_id}/transition/", {"status": "PROPOSED"}, format="json", **h)

    user, _ = make_member(RoleName.ASSISTANT)
    c = APIClient()
    c.force_authenticate(user=user)
    res = c.post(f"/api/v1/treatments/plans/{plan_id}/transition/", {"status": "ACCEPTED"}, format="json", **h)
    assert res.status_code == 403
