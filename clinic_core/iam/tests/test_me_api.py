import pytest
from rest_framework.test import APIClient

from clinic_core.tests.helpers import tenant_headers

pytestmark = pytest.mark.django_db


def test_me_requires_authentication():
    res = APIClient().get("/api/v1/me/")
    assert res.status_code in (401, 403)


def test_me_returns_memberships_and_active_context(api_client, owner, tenant):
    res = api_client.get("/api/v1/me/")
    assert res.status_code == 200

    body = res.json()
    assert body["user"]["id"] == owner.id
    assert [m["tenant_id"] for m in body["memberships"]] == [str(tenant.id)]
    assert body["active_context"]["tenant_id"] == str(tenant.id)
    assert "billing:refund" in body["active_context"]["permissions"]


def test_me_without_membership_has_null_context(django_user_model):
    c = APIClient()
    c.force_authenticate(user=django_user_model.objects.create_user(username="new", password="x"))

    res = c.get("/api/v1/me/")
    assert res.status_code == 200
    assert res.json()["memberships"] == []
    assert res.json()["active_context"] is None


def test_me_with_foreign_tenant_header_is_forbidden(api_client, other_tenant):
    res = api_client.get("/api/v1/me/", **tenant_headers(other_tenant))
    assert res.status_code == 403
    assert res.json()["error"]["kind"] == "Forbidden"
