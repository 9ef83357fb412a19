import pytest
from django.core.management import call_command
from rest_framework.test import APIClient

from clinic_core.iam.catalog import DEFAULT_ROLE_PERMISSIONS, RoleName
from clinic_core.iam.models import Membership, Permission, Role, RolePermission
from clinic_core.tenants.models import TenantStatus
from clinic_core.tenants.services import TenantService
from clinic_core.tests.helpers import error_kind, tenant_headers

pytestmark = pytest.mark.django_db


def test_onboard_makes_caller_owner(owner, tenant):
    assert tenant.slug == "smile-dental"
    m = Membership.objects.get(tenant=tenant, user=owner)
    assert m.role.name == RoleName.OWNER


def test_slugs_are_unique(owner):
    first = TenantService.onboard(name="Smile Dental", owner=owner)
    second = TenantService.onboard(name="Smile Dental", owner=owner)
    assert (first.slug, second.slug) == ("smile-dental", "smile-dental-2")


def test_onboarding_api(django_user_model):
    user = django_user_model.objects.create_user(username="founder", password="x")
    c = APIClient()
    c.force_authenticate(user=user)

    res = c.post("/api/v1/onboarding/", {"name": "Bright Teeth", "timezone": "Asia/Kolkata"}, format="json")
    assert res.status_code == 201, res.content
    assert res.json()["timezone"] == "Asia/Kolkata"

    me = c.get("/api/v1/me/").json()
    assert me["active_context"]["role"] == RoleName.OWNER


def test_platform_admin_can_suspend_a_clinic(django_user_model, api_client, tenant):
    admin = django_user_model.objects.create_superuser(username="root", email="root@example.com", password="x")
    platform = APIClient()
    platform.force_authenticate(user=admin)

    res = platform.post(f"/api/v1/tenants/{tenant.id}/set-status/", {"status": "SUSPENDED"}, format="json")
    assert res.status_code == 200
    tenant.refresh_from_db()
    assert tenant.status == TenantStatus.SUSPENDED

    # members of a suspended clinic cannot resolve a context
    res = api_client.get("/api/v1/patients/", **tenant_headers(tenant))
    assert res.status_code == 403


def test_clinic_owner_is_not_a_platform_admin(api_client, tenant):
    res = api_client.get("/api/v1/tenants/")
    assert res.status_code == 403
    assert error_kind(res) == "Forbidden"


def test_sync_permissions_backfills_missing_grants(tenant, capsys):
    reception = Role.objects.get(tenant=tenant, name=RoleName.RECEPTION)
    RolePermission.objects.filter(role=reception).delete()

    call_command("sync_permissions")

    granted = set(reception.permissions.values_list("code", flat=True))
    assert granted == set(DEFAULT_ROLE_PERMISSIONS[RoleName.RECEPTION])
    assert Permission.objects.count() > 0
    assert "Permissions synced" in capsys.readouterr().out
