from django.conf import settings
from django.db import models

User = settings.AUTH_USER_MODEL

SUPER_ADMIN = "Super Admin"
SCHOOL_ADMIN = "School Admin"
TEACHER = "Teacher"
GUARDIAN = "Guardian"
STUDENT = "Student"

class Permission(models.Model):
    code = models.CharField(max_length=120, unique=True)  # "<resource>-<action>", e.g. "notification-create"
    name = models.CharField(max_length=200)

    class Meta:
        ordering = ["code"]

    @property
    def resource(self) -> str:
        return self.code.rsplit("-", 1)[0]

    def __str__(self):
        return self.code

class RoleQuerySet(models.QuerySet):
    def recipients(self):
        """Roles an announcement can target by name (guardians are resolved through students)."""
        return self.exclude(name=GUARDIAN)

class Role(models.Model):
    name = models.CharField(max_length=80, unique=True)
    description = models.CharField(max_length=255, blank=True)
    # built-in roles are seeded and cannot be renamed from the UI
    editable = models.BooleanField(default=True)
    permissions = models.ManyToManyField(Permission, blank=True, related_name="roles")

    objects = RoleQuerySet.as_manager()

    class Meta:
        ordering = ["name"]

    def grant(self, *codes: str) -> None:
        self.permissions.add(*Permission.objects.filter(code__in=codes))

    def __str__(self):
        return self.name

class UserRoleQuerySet(models.QuerySet):
    def permission_codes(self, user, codes=None) -> set[str]:
        lookup = {"user": user, "role__permissions__isnull": False}
        if codes is not None:
            lookup["role__permissions__code__in"] = list(codes)
        return set(self.filter(**lookup).values_list("role__permissions__code", flat=True))

class UserRole(models.Model):
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name="rbac_roles")
    role = models.ForeignKey(Role, on_delete=models.CASCADE, related_name="users")
    assigned_at = models.DateTimeField(auto_now_add=True)

    objects = UserRoleQuerySet.as_manager()

    class Meta:
        unique_together = ("user", "role")

    def __str__(self):
        return f"{self.user} as {self.role}"
