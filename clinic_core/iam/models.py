# clinic_core/iam/models.py
import uuid
from django.conf import settings
from django.db import models
from clinic_core.tenants.models import Tenant


class Permission(models.Model):
    """
    Global catalog entry: `module:action`, e.g. "billing:write".
    Rows mirror clinic_core.iam.catalog and are never edited by hand.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    code = models.CharField(max_length=64, unique=True)
    module = models.CharField(max_length=32, db_index=True)
    description = models.CharField(max_length=255, blank=True)

    class Meta:
        db_table = "iam_permission"
        ordering = ["code"]

    def __str__(self) -> str:
        return self.code


class Role(models.Model):
    """
    Role is tenant-scoped; name is unique per tenant.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    tenant = models.ForeignKey(Tenant, on_delete=models.CASCADE, related_name="roles")
    name = models.CharField(max_length=64)

    # provisioned from the default catalog at onboarding
    is_system = models.BooleanField(default=False)

    permissions = models.ManyToManyField(
        Permission,
        through="RolePermission",
        related_name="roles",
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "iam_role"
        constraints = [
            models.UniqueConstraint(fields=["tenant", "name"], name="uq_role_tenant_name"),
        ]

    def __str__(self) -> str:
        return self.name


class RolePermission(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    role = models.ForeignKey(Role, on_delete=models.CASCADE, related_name="role_permissions")
    permission = models.ForeignKey(Permission, on_delete=models.PROTECT, related_name="permission_roles")

    class Meta:
        db_table = "iam_role_permission"
        constraints = [
            models.UniqueConstraint(fields=["role", "permission"], name="uq_role_permission"),
        ]


class Membership(models.Model):
    """
    Binds one identity to one clinic with exactly one role.
    Deactivation flips `is_active`; rows are never deleted so audit and
    created-by references stay resolvable.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    tenant = models.ForeignKey(Tenant, on_delete=models.CASCADE, related_name="memberships")
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="clinic_memberships")
    role = models.ForeignKey(Role, on_delete=models.PROTECT, related_name="memberships")

    is_active = models.BooleanField(default=True)
    joined_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        db_table = "iam_membership"
        constraints = [
            models.UniqueConstraint(fields=["tenant", "user"], name="uq_membership_tenant_user"),
        ]
        indexes = [
            models.Index(fields=["user", "is_active"]),
            models.Index(fields=["tenant", "is_active"]),
        ]

    def __str__(self) -> str:
        return f"{self.user_id}@{self.tenant_id} ({self.role_id})"
