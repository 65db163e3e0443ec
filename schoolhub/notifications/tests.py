import json
from datetime import timedelta

import httpx
import pytest
from django.core.files.uploadedfile import SimpleUploadedFile
from django.urls import reverse
from django.utils import timezone

from academics.models import ClassGroup
from core.constants import GENERIC_ERROR_MESSAGE
from core.exceptions import NotifierError, TransientDeliveryError, ValidationError
from finance.models import Fee, FeePaid
from notifications import services
from notifications.models import ALL_USERS, OVER_DUE_FEES, ROLES, SPECIFIC_USERS, Notification, NotificationLog
from notifications.notifiers import BaseNotifier, WebhookNotifier
from notifications.recipients import all_users_for, resolve_recipients
from rbac.models import GUARDIAN, SCHOOL_ADMIN, TEACHER


class RecordingNotifier(BaseNotifier):
    sent = []

    def send(self, recipient_ids, title, body, type="Notification", metadata=None):
        RecordingNotifier.sent.append((list(recipient_ids), title, body, type, metadata))


class UnreachableNotifier(BaseNotifier):
    def send(self, recipient_ids, title, body, type="Notification", metadata=None):
        raise TransientDeliveryError("Push endpoint unreachable: connection refused")


class BrokenNotifier(BaseNotifier):
    def send(self, recipient_ids, title, body, type="Notification", metadata=None):
        raise RuntimeError("serializer exploded")


@pytest.fixture
def notifier(monkeypatch):
    RecordingNotifier.sent = []
    monkeypatch.setattr(services, "get_notifier", RecordingNotifier)
    return RecordingNotifier


# recipient resolution

def test_roles_mode_unions_guardians_and_role_members(school, other_school, class_group, make_user, make_student, school_admin):
    guardian = make_user(GUARDIAN)
    make_student(class_group, guardians=[guardian])
    teacher = make_user(TEACHER, school=school)
    make_user(TEACHER, school=other_school)
    # same school and role, but no linked student: not picked up by the role query
    make_user(GUARDIAN, school=school)

    ids = resolve_recipients(school_admin, ROLES, roles=["Guardian", "Teacher"])

    assert set(ids) == {guardian.pk, teacher.pk}


def test_roles_mode_without_guardian(school, make_user, school_admin):
    teacher = make_user(TEACHER, school=school)
    assert resolve_recipients(school_admin, ROLES, roles=["Teacher"]) == [teacher.pk]


def test_over_due_fees_mode(school, session_year, class_group, make_user, make_student, school_admin):
    today = timezone.localdate()
    other_class = ClassGroup.objects.create(name="Form 3A", grade_level="Form 3", academic_year=session_year, school=school)
    overdue = Fee.objects.create(name="Term 1", class_group=class_group, amount=100, due_date=today - timedelta(days=1))
    Fee.objects.create(name="Term 2", class_group=other_class, amount=100, due_date=today + timedelta(days=1))

    guardian = make_user(GUARDIAN)
    unpaid = make_student(class_group, guardians=[guardian])
    partial = make_student(class_group)
    FeePaid.objects.create(fee=overdue, student=partial, amount=40, is_fully_paid=False)
    paid = make_student(class_group, guardians=[make_user(GUARDIAN)])
    FeePaid.objects.create(fee=overdue, student=paid, amount=100, is_fully_paid=True)
    make_student(other_class, guardians=[make_user(GUARDIAN)])
    left = make_student(class_group, guardians=[make_user(GUARDIAN)])
    left.status = "left"
    left.save()

    ids = resolve_recipients(school_admin, OVER_DUE_FEES, today=today)

    assert set(ids) == {unpaid.user_id, partial.user_id, guardian.pk}


def test_over_due_fees_recipients_are_deduplicated(school, class_group, make_user, make_student, school_admin):
    today = timezone.localdate()
    Fee.objects.create(name="Term 1", class_group=class_group, amount=100, due_date=today - timedelta(days=3))
    Fee.objects.create(name="Trip", class_group=class_group, amount=20, due_date=today - timedelta(days=1))
    guardian = make_user(GUARDIAN)
    first = make_student(class_group, guardians=[guardian])
    second = make_student(class_group, guardians=[guardian])

    ids = resolve_recipients(school_admin, OVER_DUE_FEES, today=today)

    assert ids == [first.user_id, second.user_id, guardian.pk]


def test_fee_due_today_is_not_overdue(class_group, make_student, school_admin):
    today = timezone.localdate()
    Fee.objects.create(name="Term 1", class_group=class_group, amount=100, due_date=today)
    make_student(class_group)
    assert resolve_recipients(school_admin, OVER_DUE_FEES, today=today) == []


def test_all_users_and_specific_users_modes(school_admin):
    assert resolve_recipients(school_admin, ALL_USERS, all_users="3, 5,3,") == [3, 5]
    assert resolve_recipients(school_admin, SPECIFIC_USERS, users=[4, 4, 2]) == [4, 2]
    with pytest.raises(ValidationError):
        resolve_recipients(school_admin, ALL_USERS, all_users="3,abc")
    with pytest.raises(ValidationError):
        resolve_recipients(school_admin, "Everyone")


def test_all_users_for_index(school, class_group, make_user, make_student, school_admin):
    guardian = make_user(GUARDIAN)
    make_student(class_group, guardians=[guardian])
    teacher = make_user(TEACHER, school=school)
    stray_guardian = make_user(GUARDIAN)

    ids = all_users_for(school_admin)

    assert guardian.pk in ids
    assert teacher.pk in ids
    assert school_admin.pk in ids
    assert stray_guardian.pk not in ids


# store

def test_store_sends_to_role_members(login, school, school_admin, session_year, make_user, notifier):
    teacher = make_user(TEACHER, school=school)
    client = login(school_admin)

    r = client.post(reverse("notifications:index"), {
        "title": "Sports day", "message": "Friday at 9", "type": ROLES, "roles": ["Teacher"],
    })

    assert r.json() == {"error": False, "message": "Data Stored Successfully"}
    n = Notification.objects.get()
    assert (n.send_to, n.school, n.session_year, n.created_by) == (ROLES, school, session_year, school_admin)
    assert notifier.sent == [([teacher.pk], "Sports day", "Friday at 9", "Notification", {})]
    log = NotificationLog.objects.get()
    assert (log.status, log.recipients_count) == ("sent", 1)


def test_store_specific_users_with_image(login, school, school_admin, session_year, make_user, notifier):
    a, b = make_user(TEACHER, school=school), make_user(TEACHER, school=school)
    client = login(school_admin)
    banner = SimpleUploadedFile("banner.png", b"\x89PNG fake", content_type="image/png")

    r = client.post(reverse("notifications:index"), {
        "title": "Photo day", "message": "Smile", "type": SPECIFIC_USERS, "user": [a.pk, b.pk], "image": banner,
    })

    assert r.json()["error"] is False
    recipients, _, _, _, metadata = notifier.sent[0]
    assert recipients == [a.pk, b.pk]
    assert "notifications/banner" in metadata["image"]


def test_store_keeps_notification_when_endpoint_unreachable(login, school_admin, session_year, monkeypatch):
    monkeypatch.setattr(services, "get_notifier", UnreachableNotifier)
    client = login(school_admin)

    r = client.post(reverse("notifications:index"), {
        "title": "Closure", "message": "Snow day", "type": ALL_USERS, "all_users": str(school_admin.pk),
    })

    assert r.json() == {"error": False, "warning": True, "message": services.STORED_NOT_DELIVERED}
    assert Notification.objects.count() == 1
    assert NotificationLog.objects.get().status == "skipped"


def test_store_rolls_back_on_unexpected_error(login, school_admin, session_year, monkeypatch):
    monkeypatch.setattr(services, "get_notifier", BrokenNotifier)
    client = login(school_admin)

    r = client.post(reverse("notifications:index"), {
        "title": "Closure", "message": "Snow day", "type": ALL_USERS, "all_users": str(school_admin.pk),
    })

    assert r.json() == {"error": True, "message": GENERIC_ERROR_MESSAGE}
    assert b"serializer" not in r.content
    assert not Notification.objects.exists()


def test_rollback_removes_uploaded_image(login, school_admin, session_year, monkeypatch, settings):
    monkeypatch.setattr(services, "get_notifier", BrokenNotifier)
    client = login(school_admin)
    banner = SimpleUploadedFile("banner.png", b"\x89PNG fake", content_type="image/png")

    r = client.post(reverse("notifications:index"), {
        "title": "Closure", "message": "Snow day", "type": ALL_USERS, "all_users": str(school_admin.pk), "image": banner,
    })

    assert r.json()["error"] is True
    assert not Notification.objects.exists()
    upload_dir = settings.MEDIA_ROOT / "notifications"
    assert not upload_dir.exists() or not any(upload_dir.iterdir())


def test_store_rejects_users_of_another_school(login, other_school, school_admin, session_year, make_user, notifier):
    outsider = make_user(TEACHER, school=other_school)
    client = login(school_admin)

    r = client.post(reverse("notifications:index"), {
        "title": "t", "message": "m", "type": SPECIFIC_USERS, "user": [outsider.pk],
    })

    assert r.json()["error"] is True
    assert not Notification.objects.exists()
    assert notifier.sent == []


@pytest.mark.parametrize("data, message", [
    ({"message": "m", "type": ALL_USERS}, "Title is required."),
    ({"title": "t", "message": "m", "type": ROLES}, 'Please select roles if the notification type is "Roles".'),
    ({"title": "t", "message": "m", "type": SPECIFIC_USERS},
     'Please select users if the notification type is "Specific users".'),
])
def test_store_validation(login, school_admin, session_year, notifier, data, message):
    r = login(school_admin).post(reverse("notifications:index"), data)
    assert r.json() == {"error": True, "message": message}
    assert not Notification.objects.exists()


def test_store_requires_current_session_year(login, school_admin, notifier):
    r = login(school_admin).post(reverse("notifications:index"), {"title": "t", "message": "m", "type": ALL_USERS})
    assert r.json() == {"error": True, "message": "Current session year is not set."}


def test_store_requires_permission(login, school, session_year, make_user, notifier):
    client = login(make_user(TEACHER, school=school))
    r = client.post(reverse("notifications:index"), {"title": "t", "message": "m", "type": ALL_USERS})
    assert r.status_code == 403
    assert not Notification.objects.exists()


def test_index_page(login, school_admin):
    r = login(school_admin).get(reverse("notifications:index"))
    assert r.status_code == 200
    assert "Guardian" not in r.context["roles"]
    assert str(school_admin.pk) in r.context["all_users"].split(",")


# list / delete

def _notification(school, session_year, title, message="body"):
    return Notification.objects.create(title=title, message=message, send_to=ALL_USERS, school=school, session_year=session_year)


def test_list_is_paginated_sorted_and_scoped(login, school, other_school, school_admin, session_year):
    for title in ("Charlie", "Alpha", "Bravo"):
        _notification(school, session_year, title)
    _notification(other_school, session_year, "Elsewhere")

    r = login(school_admin).get(reverse("notifications:list"), {"limit": 2, "sort": "title", "order": "ASC"})

    data = r.json()
    assert data["total"] == 3
    assert [row["title"] for row in data["rows"]] == ["Alpha", "Bravo"]
    assert [row["no"] for row in data["rows"]] == [1, 2]


def test_list_search_and_bad_sort(login, school, school_admin, session_year):
    _notification(school, session_year, "Exam timetable", "Week 3")
    _notification(school, session_year, "Sports day", "Bring exam forms")
    _notification(school, session_year, "Holiday")

    r = login(school_admin).get(reverse("notifications:list"), {"search": "exam", "sort": "password; drop"})

    data = r.json()
    assert data["total"] == 2
    assert {row["title"] for row in data["rows"]} == {"Exam timetable", "Sports day"}


def test_delete(login, school, other_school, school_admin, session_year):
    mine = _notification(school, session_year, "Mine")
    theirs = _notification(other_school, session_year, "Theirs")
    client = login(school_admin)

    r = client.delete(reverse("notifications:delete", args=[mine.pk]))
    assert r.json() == {"error": False, "message": "Data Deleted Successfully"}
    assert not Notification.objects.filter(pk=mine.pk).exists()

    r = client.delete(reverse("notifications:delete", args=[theirs.pk]))
    assert r.status_code == 404
    assert Notification.objects.filter(pk=theirs.pk).exists()


def test_user_picker_excludes_school_admins(login, school, class_group, make_user, make_student, school_admin):
    teacher = make_user(TEACHER, school=school, first_name="Tom", last_name="Teach")
    guardian = make_user(GUARDIAN, first_name="Gina", last_name="Guard")
    make_student(class_group, guardians=[guardian])
    make_user(SCHOOL_ADMIN, school=school)
    client = login(school_admin)

    data = client.get(reverse("notifications:users"), {"roles": ["Teacher", "Guardian"], "limit": 50}).json()
    assert {row["id"] for row in data["rows"]} == {teacher.pk, guardian.pk}

    data = client.get(reverse("notifications:users"), {"search": "Tom Teach"}).json()
    assert [row["id"] for row in data["rows"]] == [teacher.pk]
    assert data["rows"][0]["roles"] == ["Teacher"]


# webhook notifier

def _webhook(handler):
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return WebhookNotifier(endpoint="https://push.example.test/send", server_key="k-123", client=client)


def test_webhook_posts_payload():
    seen = {}

    def handler(request):
        seen["body"] = json.loads(request.content)
        seen["auth"] = request.headers["Authorization"]
        return httpx.Response(200, json={"success": 2})

    _webhook(handler).send([1, 2], "Title", "Body", metadata={"image": "/media/x.png"})

    assert seen["body"] == {
        "registration_ids": [1, 2], "title": "Title", "body": "Body", "type": "Notification",
        "data": {"image": "/media/x.png"},
    }
    assert seen["auth"] == "key=k-123"


def test_webhook_connection_error_is_transient():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(TransientDeliveryError):
        _webhook(handler).send([1], "t", "b")


def test_webhook_server_error_is_not_transient():
    with pytest.raises(NotifierError) as exc:
        _webhook(lambda request: httpx.Response(500)).send([1], "t", "b")
    assert not isinstance(exc.value, TransientDeliveryError)


def test_webhook_without_endpoint_or_recipients():
    def handler(request):
        raise AssertionError("no request expected")

    _webhook(handler).send([], "t", "b")
    with pytest.raises(TransientDeliveryError):
        WebhookNotifier(endpoint="", server_key="").send([1], "t", "b")
