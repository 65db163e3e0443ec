import io
import itertools
from datetime import date

import pytest
from django.core.cache import cache
from django.core.management import call_command

from academics.models import ClassGroup
from accounts.models import User
from accounts.two_factor import SESSION_VERIFIED_KEY
from core.models import AcademicYear, School
from people.models import Student
from rbac.models import SCHOOL_ADMIN, STUDENT, Role, UserRole


@pytest.fixture(autouse=True)
def _isolated(settings, tmp_path):
    settings.MEDIA_ROOT = tmp_path / "media"
    settings.PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]
    settings.NOTIFICATION_BACKEND = "notifications.notifiers.ConsoleNotifier"
    settings.DEMO_MODE = False
    settings.TWO_FACTOR_ENABLED = True
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def roles(db):
    call_command("seed_roles", stdout=io.StringIO())
    return {r.name: r for r in Role.objects.all()}


@pytest.fixture
def school(db):
    return School.objects.create(name="Greenfield High", code="GFH")


@pytest.fixture
def other_school(db):
    return School.objects.create(name="Riverside Academy", code="RVA")


@pytest.fixture
def session_year(db):
    return AcademicYear.objects.create(
        name="2026", start_date=date(2026, 1, 1), end_date=date(2026, 12, 31), is_current=True
    )


@pytest.fixture
def class_group(school, session_year):
    return ClassGroup.objects.create(name="Form 2A", grade_level="Form 2", academic_year=session_year, school=school)


@pytest.fixture
def make_user(roles):
    counter = itertools.count(1)

    def _make(*role_names, school=None, password="pw-secret-1", **extra):
        n = next(counter)
        extra.setdefault("username", f"user{n}")
        extra.setdefault("email", f"user{n}@example.com")
        user = User.objects.create_user(password=password, school=school, **extra)
        for name in role_names:
            UserRole.objects.create(user=user, role=roles[name])
        return user

    return _make


@pytest.fixture
def make_student(make_user):
    def _make(class_group, guardians=()):
        user = make_user(STUDENT, school=class_group.school)
        student = Student.objects.create(
            user=user,
            student_id=f"S{user.pk:04d}",
            first_name="Student",
            last_name=str(user.pk),
            date_of_birth=date(2012, 5, 1),
            admission_date=date(2020, 1, 15),
            class_group=class_group,
        )
        student.parent_users.add(*guardians)
        return student

    return _make


@pytest.fixture
def school_admin(make_user, school):
    return make_user(SCHOOL_ADMIN, school=school, first_name="Ada", last_name="Admin")


@pytest.fixture
def login(client):
    """Log a user in with a session that has already passed the code challenge."""

    def _login(user):
        client.force_login(user)
        session = client.session
        session[SESSION_VERIFIED_KEY] = True
        session.save()
        return client

    return _login
