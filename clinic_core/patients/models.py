# clinic_core/patients/models.py
from django.db import models
from clinic_core.common.models import TenantScopedModel


class Gender(models.TextChoices):
    MALE = "male", "Male"
    FEMALE = "female", "Female"
    OTHER = "other", "Other"


class Patient(TenantScopedModel):
    first_name = models.CharField(max_length=120)
    last_name = models.CharField(max_length=120)
    phone = models.CharField(max_length=32, blank=True)
    email = models.EmailField(blank=True)
    date_of_birth = models.DateField(null=True, blank=True)
    gender = models.CharField(max_length=16, choices=Gender.choices, blank=True)
    address = models.TextField(blank=True)
    notes = models.TextField(blank=True)

    created_by_user_id = models.BigIntegerField(null=True, blank=True)

    class Meta:
        db_table = "patients_patient"
        indexes = [
            models.Index(fields=["tenant_id", "last_name", "first_name"]),
            models.Index(fields=["tenant_id", "phone"]),
        ]

    def __str__(self) -> str:
        return self.full_name

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
