from django.contrib.auth.models import AbstractUser
from django.db import models

from core.models import School

class User(AbstractUser):
    GENDER_CHOICES = [
        ("male", "Male"),
        ("female", "Female"),
        ("other", "Other"),
    ]

    email = models.EmailField(unique=True)
    mobile = models.CharField(max_length=16, blank=True)
    gender = models.CharField(max_length=10, choices=GENDER_CHOICES, blank=True)
    dob = models.DateField(null=True, blank=True)
    current_address = models.TextField(blank=True)
    permanent_address = models.TextField(blank=True)
    image = models.FileField(upload_to="users/", blank=True)

    # Pending code while a challenge is open; both columns are written together.
    two_factor_secret = models.CharField(max_length=12, null=True, blank=True)
    two_factor_expires_at = models.DateTimeField(null=True, blank=True)

    school = models.ForeignKey(School, on_delete=models.SET_NULL, null=True, blank=True, related_name="users")

    def role_names(self) -> set[str]:
        return set(self.rbac_roles.values_list("role__name", flat=True))

    def has_role(self, name: str) -> bool:
        return self.rbac_roles.filter(role__name=name).exists()

    def set_two_factor(self, secret: str, expires_at) -> None:
        self.two_factor_secret = secret
        self.two_factor_expires_at = expires_at
        self.save(update_fields=["two_factor_secret", "two_factor_expires_at"])

    def clear_two_factor(self) -> None:
        self.two_factor_secret = None
        self.two_factor_expires_at = None
        self.save(update_fields=["two_factor_secret", "two_factor_expires_at"])

    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip() or self.username
