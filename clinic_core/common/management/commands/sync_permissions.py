# clinic_core/common/management/commands/sync_permissions.py

from django.core.management.base import BaseCommand

from clinic_core.iam.services.roles import ensure_permission_catalog, provision_default_roles
from clinic_core.tenants.models import Tenant


class Command(BaseCommand):
    help = "Sync the permission catalog and back-fill default roles for every clinic (idempotent)."

    def handle(self, *args, **options):
        perms = ensure_permission_catalog()

        tenants = 0
        for tenant in Tenant.objects.order_by("created_at").iterator():
            provision_default_roles(tenant)
            tenants += 1

        self.stdout.write(self.style.SUCCESS(f"Permissions synced: {len(perms)} codes, {tenants} clinic(s) checked."))
