import pytest
from django.core import mail
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError

from clinic_core.audit.models import AuditEvent
from clinic_core.common.api.exceptions import NoActiveMembership
from clinic_core.iam.catalog import RoleName
from clinic_core.iam.context import TenantContextResolver
from clinic_core.iam.models import Membership
from clinic_core.iam.services.membership import MembershipService
from clinic_core.scheduling.models import PractitionerProfile

pytestmark = pytest.mark.django_db


def test_invite_creates_member_and_notifies_after_commit(owner_ctx, django_capture_on_commit_callbacks):
    with django_capture_on_commit_callbacks(execute=True):
        m = MembershipService.invite(owner_ctx, email="Nurse@Example.com", role_name=RoleName.ASSISTANT)

    assert m.is_active
    assert m.role.name == RoleName.ASSISTANT
    assert m.user.email == "nurse@example.com"
    assert len(mail.outbox) == 1
    assert mail.outbox[0].to == ["nurse@example.com"]
    assert AuditEvent.objects.filter(action="member.invite", entity_id=str(m.id)).exists()


def test_inviting_a_dentist_creates_practitioner_profile(owner_ctx):
    m = MembershipService.invite(owner_ctx, email="doc@example.com", role_name=RoleName.DENTIST)
    assert PractitionerProfile.objects.filter(membership=m, tenant_id=owner_ctx.tenant_id).exists()


def test_cannot_invite_owner_or_unknown_role(owner_ctx):
    with pytest.raises(ValidationError):
        MembershipService.invite(owner_ctx, email="x@example.com", role_name=RoleName.OWNER)
    with pytest.raises(ValidationError):
        MembershipService.invite(owner_ctx, email="x@example.com", role_name="Janitor")


def test_duplicate_active_member_rejected(owner_ctx):
    MembershipService.invite(owner_ctx, email="dup@example.com", role_name=RoleName.RECEPTION)
    with pytest.raises(ValidationError):
        MembershipService.invite(owner_ctx, email="dup@example.com", role_name=RoleName.RECEPTION)


def test_reception_cannot_invite(make_member):
    _, ctx = make_member(RoleName.RECEPTION)
    with pytest.raises(PermissionDenied):
        MembershipService.invite(ctx, email="x@example.com", role_name=RoleName.ASSISTANT)


def test_deactivated_member_loses_access(owner_ctx, make_member, tenant):
    user, ctx = make_member(RoleName.ACCOUNTANT)

    MembershipService.deactivate(owner_ctx, membership_id=ctx.membership_id)

    with pytest.raises(NoActiveMembership):
        TenantContextResolver.resolve(user, tenant_id=tenant.id)


def test_owner_and_self_cannot_be_deactivated(owner_ctx, make_member):
    with pytest.raises(ValidationError):
        MembershipService.deactivate(owner_ctx, membership_id=owner_ctx.membership_id)

    _, admin_ctx = make_member(RoleName.ADMIN)
    with pytest.raises(ValidationError):
        MembershipService.deactivate(admin_ctx, membership_id=admin_ctx.membership_id)


def test_foreign_membership_is_not_found(owner_ctx, other_ctx):
    with pytest.raises(NotFound):
        MembershipService.deactivate(owner_ctx, membership_id=other_ctx.membership_id)
    assert Membership.objects.get(id=other_ctx.membership_id).is_active
