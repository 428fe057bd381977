from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    ROLE_USER = "user"
    ROLE_ADMIN = "admin"
    ROLE_STAFF = "staff"
    ROLE_LAB_TECHNICIAN = "lab_technician"
    ROLES = [
        (ROLE_USER, "Patient"),
        (ROLE_ADMIN, "Administrator"),
        (ROLE_STAFF, "Staff"),
        (ROLE_LAB_TECHNICIAN, "Lab Technician"),
    ]
    LAB_ROLES = (ROLE_ADMIN, ROLE_STAFF, ROLE_LAB_TECHNICIAN)

    phone = models.CharField(max_length=30, blank=True)
    role = models.CharField(max_length=20, choices=ROLES, default=ROLE_USER)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def is_lab_staff(self) -> bool:
        return self.is_staff or self.role in self.LAB_ROLES
