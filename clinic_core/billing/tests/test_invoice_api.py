import pytest
from rest_framework.test import APIClient

from clinic_core.iam.catalog import RoleName
from clinic_core.tests.helpers import error_kind, tenant_headers

pytestmark = pytest.mark.django_db


@pytest.fixture
def invoice_id(api_client, tenant, patient):
    res = api_client.post(
        "/api/v1/billing/invoices/",
        {
            "patient_id": str(patient.id),
            "items": [{"description": "Root canal", "quantity": 1, "unit_price": "20000.00"}],
            "tax_rate": "18",
            "discount": "500",
        },
        format="json",
        **tenant_headers(tenant),
    )
    assert res.status_code == 201, res.content
    return res.json()["id"]


def test_create_then_pay_over_http(api_client, tenant, invoice_id):
    h = tenant_headers(tenant)

    res = api_client.get(f"/api/v1/billing/invoices/{invoice_id}/", **h)
    assert res.json()["total"] == "23100.00"
    assert res.json()["items"][0]["description"] == "Root canal"

    api_client.post(f"/api/v1/billing/invoices/{invoice_id}/transition/", {"status": "SENT"}, format="json", **h)

    res = api_client.post(
        f"/api/v1/billing/invoices/{invoice_id}/payments/", {"amount": "10000.00", "method": "CARD"}, format="json", **h
    )
    assert res.status_code == 201, res.content

    body = api_client.get(f"/api/v1/billing/invoices/{invoice_id}/", **h).json()
    assert body["status"] == "PARTIALLY_PAID"
    assert body["balance_due"] == "13100.00"
    assert len(body["payments"]) == 1


def test_overpayment_is_422(api_client, tenant, invoice_id):
    h = tenant_headers(tenant)
    res = api_client.post(f"/api/v1/billing/invoices/{invoice_id}/payments/", {"amount": "99999"}, format="json", **h)
    assert res.status_code == 422
    assert error_kind(res) == "BalanceExceeded"


def test_reception_refund_is_forbidden(make_member, tenant, api_client, invoice_id):
    h = tenant_headers(tenant)
    api_client.post(f"/api/v1/billing/invoices/{invoice_id}/payments/", {"amount": "100"}, format="json", **h)

    user, _ = make_member(RoleName.RECEPTION)
    reception = APIClient()
    reception.force_authenticate(user=user)

    res = reception.post(f"/api/v1/billing/invoices/{invoice_id}/refund/", {"amount": "50"}, format="json", **h)
    assert res.status_code == 403
    assert error_kind(res) == "Forbidden"


def test_derived_status_cannot_be_requested(api_client, tenant, invoice_id):
    res = api_client.post(
        f"/api/v1/billing/invoices/{invoice_id}/transition/", {"status": "PAID"}, format="json", **tenant_headers(tenant)
    )
    assert res.status_code == 409
    assert error_kind(res) == "InvalidTransition"


def test_list_is_tenant_scoped(api_client, tenant, other_owner, other_tenant, invoice_id):
    assert api_client.get("/api/v1/billing/invoices/", **tenant_headers(tenant)).json()["count"] == 1

    foreign = APIClient()
    foreign.force_authenticate(user=other_owner)
    assert foreign.get("/api/v1/billing/invoices/").json()["count"] == 0
    assert foreign.get(f"/api/v1/billing/invoices/{invoice_id}/").status_code == 404
