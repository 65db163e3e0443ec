import io
from datetime import timedelta

import pytest
from django.core.management import CommandError, call_command
from django.utils import timezone

from finance.models import Fee
from notifications import services
from notifications.models import OVER_DUE_FEES, Notification
from notifications.notifiers import BaseNotifier
from core.exceptions import TransientDeliveryError
from rbac.models import GUARDIAN


class DownNotifier(BaseNotifier):
    def send(self, recipient_ids, title, body, type="Notification", metadata=None):
        raise TransientDeliveryError("down")


def _run(**options):
    out = io.StringIO()
    call_command("send_fee_reminders", stdout=out, **options)
    return out.getvalue()


def test_reminders_reach_students_and_guardians(school_admin, class_group, make_user, make_student):
    Fee.objects.create(name="Term 1", class_group=class_group, amount=100, due_date=timezone.localdate() - timedelta(days=2))
    make_student(class_group, guardians=[make_user(GUARDIAN)])

    out = _run(username=school_admin.username)

    assert "Reminder sent to 2 users." in out
    n = Notification.objects.get()
    assert (n.send_to, n.title) == (OVER_DUE_FEES, "School Fees Reminder")


def test_nothing_overdue(school_admin, session_year):
    assert "No reminders to send." in _run(username=school_admin.username)


def test_unreachable_endpoint_warns(school_admin, class_group, make_student, monkeypatch):
    monkeypatch.setattr(services, "get_notifier", DownNotifier)
    Fee.objects.create(name="Term 1", class_group=class_group, amount=100, due_date=timezone.localdate() - timedelta(days=2))
    make_student(class_group)

    out = _run(username=school_admin.username, title="Pay up")

    assert services.STORED_NOT_DELIVERED in out
    assert Notification.objects.get().title == "Pay up"


def test_unknown_user(db):
    with pytest.raises(CommandError):
        _run(username="nobody")


def test_missing_session_year(school_admin):
    with pytest.raises(CommandError, match="Current session year is not set."):
        _run(username=school_admin.username)
