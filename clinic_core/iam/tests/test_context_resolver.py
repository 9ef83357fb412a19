import pytest
from django.contrib.auth.models import AnonymousUser
from rest_framework.exceptions import NotAuthenticated, PermissionDenied

from clinic_core.common.api.exceptions import NoActiveMembership
from clinic_core.iam.catalog import ALL_PERMISSIONS, DEFAULT_ROLE_PERMISSIONS, Perm, RoleName
from clinic_core.iam.context import PermissionEnforcer, TenantContextResolver, require_permissions
from clinic_core.iam.models import Membership
from clinic_core.tenants.models import TenantStatus

pytestmark = pytest.mark.django_db


def test_owner_resolves_with_full_permission_set(owner, tenant):
    ctx = TenantContextResolver.resolve(owner)
    assert ctx.tenant_id == tenant.id
    assert ctx.user_id == owner.id
    assert ctx.role_name == RoleName.OWNER
    assert ctx.permissions == ALL_PERMISSIONS


def test_reception_gets_its_role_grants(make_member):
    _, ctx = make_member(RoleName.RECEPTION)
    assert ctx.role_name == RoleName.RECEPTION
    assert ctx.permissions == DEFAULT_ROLE_PERMISSIONS[RoleName.RECEPTION]


def test_anonymous_is_unauthenticated():
    with pytest.raises(NotAuthenticated):
        TenantContextResolver.resolve(AnonymousUser())


def test_user_without_membership_is_rejected(django_user_model):
    loner = django_user_model.objects.create_user(username="loner", password="x")
    with pytest.raises(NoActiveMembership):
        TenantContextResolver.resolve(loner)


def test_explicit_tenant_must_be_one_of_the_callers(owner, other_tenant):
    with pytest.raises(NoActiveMembership):
        TenantContextResolver.resolve(owner, tenant_id=other_tenant.id)


def test_inactive_membership_is_not_resolved(make_member, tenant):
    user, _ = make_member(RoleName.ASSISTANT)
    Membership.objects.filter(user=user).update(is_active=False)
    with pytest.raises(NoActiveMembership):
        TenantContextResolver.resolve(user, tenant_id=tenant.id)


def test_suspended_clinic_is_not_resolved(owner, tenant):
    tenant.status = TenantStatus.SUSPENDED
    tenant.save(update_fields=["status"])
    with pytest.raises(NoActiveMembership):
        TenantContextResolver.resolve(owner)


def test_without_header_earliest_membership_wins(owner, tenant, other_tenant, other_owner):
    from clinic_core.iam.services.roles import get_role_by_name

    Membership.objects.create(
        tenant=other_tenant,
        user=owner,
        role=get_role_by_name(tenant_id=other_tenant.id, name=RoleName.RECEPTION),
    )
    assert TenantContextResolver.resolve(owner).tenant_id == tenant.id
    assert TenantContextResolver.resolve(owner, tenant_id=other_tenant.id).role_name == RoleName.RECEPTION


def test_enforcer_requires_every_code(make_member):
    _, ctx = make_member(RoleName.RECEPTION)

    PermissionEnforcer.require(ctx, [Perm.BILLING_READ, Perm.BILLING_WRITE])
    assert PermissionEnforcer.has(ctx, [Perm.PATIENTS_READ])
    assert not PermissionEnforcer.has(ctx, [Perm.BILLING_WRITE, Perm.BILLING_REFUND])

    with pytest.raises(PermissionDenied):
        require_permissions(ctx, Perm.BILLING_WRITE, Perm.BILLING_REFUND)


def test_platform_context_requires_superuser(owner, django_user_model):
    with pytest.raises(PermissionDenied):
        TenantContextResolver.resolve_platform(owner)

    admin = django_user_model.objects.create_superuser(username="root", email="root@example.com", password="x")
    assert TenantContextResolver.resolve_platform(admin).user_id == admin.id
