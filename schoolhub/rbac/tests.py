import io

import pytest
from django.contrib.auth.models import AnonymousUser
from django.core.management import call_command
from django.http import HttpResponse
from django.test import RequestFactory

from rbac.models import GUARDIAN, SCHOOL_ADMIN, SUPER_ADMIN, TEACHER, Permission, Role
from rbac.policy import evaluate, permission_required


@permission_required("notification-create")
def create_view(request):
    return HttpResponse("ok")


def test_seed_roles_is_idempotent(roles):
    call_command("seed_roles", stdout=io.StringIO())
    assert Role.objects.count() == 5
    assert Permission.objects.count() == 3
    assert set(roles[SCHOOL_ADMIN].permissions.values_list("code", flat=True)) == {
        "notification-list", "notification-create", "notification-delete",
    }


def test_anonymous_is_denied(db):
    decision = evaluate(AnonymousUser(), "notification-list")
    assert not decision
    assert decision.reason == "Login required."


def test_inactive_user_is_denied(make_user):
    user = make_user(SCHOOL_ADMIN, is_active=False)
    assert not evaluate(user, "notification-list")


def test_super_admin_is_always_allowed(make_user):
    assert evaluate(make_user(SUPER_ADMIN), "anything-at-all")


def test_role_permissions(make_user):
    admin = make_user(SCHOOL_ADMIN)
    teacher = make_user(TEACHER)

    assert evaluate(admin, "notification-list", "notification-create")
    denied = evaluate(teacher, "notification-create")
    assert not denied
    assert "notification-create" in denied.reason


def test_any_of(make_user, roles):
    guardian = make_user(GUARDIAN)
    roles[GUARDIAN].permissions.add(Permission.objects.get(code="notification-list"))

    assert evaluate(guardian, "notification-create", "notification-list", any_of=True)
    assert not evaluate(guardian, "notification-create", "notification-list")


@pytest.mark.parametrize("role, status", [(SCHOOL_ADMIN, 200), (TEACHER, 403)])
def test_permission_required(make_user, role, status):
    request = RequestFactory().post("/notifications/")
    request.user = make_user(role)

    response = create_view(request)

    assert response.status_code == status


def test_permission_required_redirects_anonymous(db):
    request = RequestFactory().get("/notifications/")
    request.user = AnonymousUser()

    response = create_view(request)

    assert response.status_code == 302
    assert response["Location"].startswith("/login/")
