# clinic_core/conftest.py
from datetime import timedelta

import pytest
from django.contrib.auth import get_user_model
from django.db.models import QuerySet
from django.utils import timezone
from rest_framework.test import APIClient

from clinic_core.iam.catalog import RoleName
from clinic_core.iam.context import TenantContextResolver
from clinic_core.iam.models import Membership
from clinic_core.iam.services.roles import get_role_by_name
from clinic_core.patients.models import Patient
from clinic_core.scheduling.services.practitioners import ensure_practitioner_profile
from clinic_core.tenants.services import TenantService


def _make_user(username, **extra):
    User = get_user_model()
    return User.objects.create_user(
        username=username,
        email=f"{username}@example.com",
        password="testpass",
        **extra,
    )


@pytest.fixture
def owner(db):
    return _make_user("owner")


@pytest.fixture
def tenant(owner):
    return TenantService.onboard(name="Smile Dental", owner=owner)


@pytest.fixture
def other_owner(db):
    return _make_user("other-owner")


@pytest.fixture
def other_tenant(other_owner):
    return TenantService.onboard(name="Other Dental", owner=other_owner)


@pytest.fixture
def owner_ctx(owner, tenant):
    return TenantContextResolver.resolve(owner, tenant_id=tenant.id)


@pytest.fixture
def other_ctx(other_owner, other_tenant):
    return TenantContextResolver.resolve(other_owner, tenant_id=other_tenant.id)


@pytest.fixture
def make_member(tenant):
    """
    make_member("Reception") -> (user, ctx) for a fresh member of `tenant`.
    """
    counter = {"n": 0}

    def _make(role_name, *, clinic=None):
        clinic = clinic or tenant
        counter["n"] += 1
        user = _make_user(f"{role_name.lower()}-{counter['n']}")
        role = get_role_by_name(tenant_id=clinic.id, name=role_name)
        membership = Membership.objects.create(tenant=clinic, user=user, role=role)
        if role_name == RoleName.DENTIST:
            ensure_practitioner_profile(membership)
        return user, TenantContextResolver.resolve(user, tenant_id=clinic.id)

    return _make


@pytest.fixture
def patient(tenant):
    return Patient.objects.create(
        tenant_id=tenant.id,
        first_name="Test",
        last_name="Patient",
        email="patient@example.com",
    )


@pytest.fixture
def other_patient(other_tenant):
    return Patient.objects.create(tenant_id=other_tenant.id, first_name="Foreign", last_name="Patient")


@pytest.fixture
def practitioner(make_member):
    user, _ = make_member(RoleName.DENTIST)
    return Membership.objects.get(user=user).practitioner_profile


@pytest.fixture
def slot():
    """
    slot(hour, minute=0, minutes=30) -> (start, end) on tomorrow's date.
    """
    base = (timezone.now() + timedelta(days=1)).replace(hour=0, minute=0, second=0, microsecond=0)

    def _slot(hour, minute=0, minutes=30):
        start = base + timedelta(hours=hour, minutes=minute)
        return start, start + timedelta(minutes=minutes)

    return _slot


@pytest.fixture
def api_client(owner):
    c = APIClient()
    c.force_authenticate(user=owner)
    return c


@pytest.fixture
def row_locks(monkeypatch):
    """
    Names of the models a test locked with select_for_update, in call order.
    """
    locked = []
    original = QuerySet.select_for_update

    def _spy(self, *args, **kwargs):
        locked.append(self.model.__name__)
        return original(self, *args, **kwargs)

    monkeypatch.setattr(QuerySet, "select_for_update", _spy)
    return locked
