# clinic_core/api/urls.py
from __future__ import annotations

from django.urls import path
from rest_framework.routers import DefaultRouter

from clinic_core.audit.api.views import AuditEventViewSet
from clinic_core.billing.api.views import InvoiceViewSet
from clinic_core.iam.api.me import MeView
from clinic_core.iam.api.members import MembershipViewSet
from clinic_core.inventory.api.views import InventoryItemViewSet, SupplierViewSet
from clinic_core.patients.api.views import PatientViewSet
from clinic_core.scheduling.api.views import AppointmentViewSet, PractitionerViewSet
from clinic_core.tenants.api.views import OnboardingViewSet, TenantViewSet
from clinic_core.treatments.api.views import TreatmentItemViewSet, TreatmentPlanViewSet

router = DefaultRouter()

# ViewSet-backed modules (centralized)
router.register(r"patients", PatientViewSet, basename="patients")
router.register(r"practitioners", PractitionerViewSet, basename="practitioners")
router.register(r"appointments", AppointmentViewSet, basename="appointments")
router.register(r"billing/invoices", InvoiceViewSet, basename="billing-invoices")
router.register(r"treatments/plans", TreatmentPlanViewSet, basename="treatment-plans")
router.register(r"treatments/items", TreatmentItemViewSet, basename="treatment-items")
router.register(r"inventory/items", InventoryItemViewSet, basename="inventory-items")
router.register(r"inventory/suppliers", SupplierViewSet, basename="inventory-suppliers")
router.register(r"members", MembershipViewSet, basename="members")
router.register(r"audit/events", AuditEventViewSet, basename="audit-events")
router.register(r"tenants", TenantViewSet, basename="tenants")
router.register(r"onboarding", OnboardingViewSet, basename="onboarding")

urlpatterns = [
    path("me/", MeView.as_view(), name="me"),

    # Router URLs last (so explicit paths win if ever overlapping)
    *router.urls,
]
