from django.core.management.base import BaseCommand
from rbac.models import GUARDIAN, SCHOOL_ADMIN, STUDENT, SUPER_ADMIN, TEACHER, Permission, Role

PERMISSIONS = [
    ("notification-list", "Announcements: list"),
    ("notification-create", "Announcements: create"),
    ("notification-delete", "Announcements: delete"),
]

ROLES = [
    (SUPER_ADMIN, "Full access to every school"),
    (SCHOOL_ADMIN, "Manages one school"),
    (TEACHER, "Teaching staff"),
    (GUARDIAN, "Parent or guardian of a student"),
    (STUDENT, "Enrolled student"),
]

GRANTS = {
    SCHOOL_ADMIN: [code for code, _ in PERMISSIONS],
}

class Command(BaseCommand):
    help = "Create the built-in roles and announcement permissions (safe to re-run)."

    def handle(self, *args, **options):
        for code, name in PERMISSIONS:
            _, created = Permission.objects.get_or_create(code=code, defaults={"name": name})
            if created:
                self.stdout.write(f"Permission {code} created")

        for name, description in ROLES:
            role, created = Role.objects.get_or_create(
                name=name, defaults={"description": description, "editable": False}
            )
            if created:
                self.stdout.write(f"Role {name} created")
            role.grant(*GRANTS.get(name, []))

        self.stdout.write(self.style.SUCCESS("Roles and permissions are up to date."))
