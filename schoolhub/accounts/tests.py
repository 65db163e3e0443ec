from datetime import timedelta

import pytest
from django.core.cache import cache
from django.urls import reverse
from django.utils import timezone

from accounts import two_factor
from core.cache import get_system_settings
from core.exceptions import AuthError, LockoutError
from core.models import SystemSetting
from rbac.models import SUPER_ADMIN, TEACHER

PASSWORD = "pw-secret-1"

PROFILE = {
    "first_name": "Grace",
    "last_name": "Hopper",
    "mobile": "5551234",
    "gender": "female",
    "dob": "1990-12-09",
    "email": "grace@example.com",
    "current_address": "1 Main St",
    "permanent_address": "1 Main St",
}


def _assert_two_factor_consistent(user):
    user.refresh_from_db()
    assert (user.two_factor_secret is None) == (user.two_factor_expires_at is None)


def _start_challenge(client, user):
    client.post(reverse("accounts:login"), {"username": user.username, "password": PASSWORD})
    user.refresh_from_db()
    return user.two_factor_secret


def test_login_rejects_bad_password(client, make_user):
    user = make_user(TEACHER)
    r = client.post(reverse("accounts:login"), {"username": user.username, "password": "wrong"})
    assert r.status_code == 200
    assert b"Invalid username/password." in r.content
    assert "_auth_user_id" not in client.session


def test_login_issues_challenge_and_mails_code(client, make_user, mailoutbox):
    user = make_user(TEACHER)
    r = client.post(reverse("accounts:login"), {"username": user.username, "password": PASSWORD})
    assert r.status_code == 302
    assert r["Location"] == reverse("accounts:two_factor")

    user.refresh_from_db()
    assert len(user.two_factor_secret) == 6
    assert user.two_factor_expires_at > timezone.now()
    assert len(mailoutbox) == 1
    assert user.two_factor_secret in mailoutbox[0].body
    _assert_two_factor_consistent(user)


def test_login_without_two_factor_goes_to_dashboard(client, make_user, settings):
    settings.TWO_FACTOR_ENABLED = False
    user = make_user(TEACHER)
    r = client.post(reverse("accounts:login"), {"username": user.username, "password": PASSWORD})
    assert r["Location"] == reverse("accounts:dashboard")
    user.refresh_from_db()
    assert user.two_factor_secret is None


def test_unverified_session_is_sent_to_challenge(client, make_user):
    user = make_user(TEACHER)
    _start_challenge(client, user)
    r = client.get(reverse("accounts:dashboard"))
    assert r.status_code == 302
    assert r["Location"].startswith(reverse("accounts:two_factor"))
    assert "next=%2Fdashboard%2F" in r["Location"]


def test_correct_code_verifies_session(client, make_user):
    user = make_user(TEACHER)
    code = _start_challenge(client, user)

    r = client.post(reverse("accounts:two_factor"), {"two_factor_secret": code})
    assert r.status_code == 302
    assert r["Location"] == reverse("accounts:dashboard")

    user.refresh_from_db()
    assert user.two_factor_expires_at > timezone.now() + timedelta(hours=23)
    assert client.session[two_factor.SESSION_VERIFIED_KEY] is True
    assert client.get(reverse("accounts:dashboard")).status_code == 200
    _assert_two_factor_consistent(user)


def test_correct_code_sets_expiry_to_one_day_and_clears_attempts(make_user):
    user = make_user(TEACHER)
    now = timezone.now()
    user.set_two_factor("123456", now + timedelta(minutes=10))
    cache.set(f"two_factor_attempts:{user.pk}", 2, 60)

    two_factor.verify_code(user, "123456", now=now)

    user.refresh_from_db()
    assert user.two_factor_expires_at == now + timedelta(days=1)
    assert two_factor.failed_attempts(user) == 0


def test_wrong_code_counts_attempts(client, make_user):
    user = make_user(TEACHER)
    _start_challenge(client, user)

    for expected in (1, 2):
        r = client.post(reverse("accounts:two_factor"), {"two_factor_secret": "000000x"})
        assert r.status_code == 200
        assert b"Invalid code. Please try again." in r.content
        assert two_factor.failed_attempts(user) == expected

    user.refresh_from_db()
    assert user.two_factor_secret is not None
    _assert_two_factor_consistent(user)


def test_third_wrong_code_locks_out(client, make_user):
    user = make_user(TEACHER)
    _start_challenge(client, user)

    for _ in range(2):
        client.post(reverse("accounts:two_factor"), {"two_factor_secret": "bad"})
    r = client.post(reverse("accounts:two_factor"), {"two_factor_secret": "bad"})

    assert r.status_code == 302
    assert r["Location"] == reverse("accounts:home")
    assert "_auth_user_id" not in client.session
    user.refresh_from_db()
    assert user.two_factor_secret is None
    assert user.two_factor_expires_at is None
    assert two_factor.failed_attempts(user) == 0


def test_stale_counter_locks_out_on_next_failure(make_user):
    user = make_user(TEACHER)
    user.set_two_factor("123456", timezone.now() + timedelta(minutes=10))
    cache.set(f"two_factor_attempts:{user.pk}", 7, 60)

    with pytest.raises(LockoutError):
        two_factor.verify_code(user, "654321")
    _assert_two_factor_consistent(user)


def test_expired_code_is_rejected(make_user):
    user = make_user(TEACHER)
    now = timezone.now()
    user.set_two_factor("123456", now - timedelta(seconds=1))

    with pytest.raises(AuthError) as exc:
        two_factor.verify_code(user, "123456", now=now)
    assert not isinstance(exc.value, LockoutError)
    assert two_factor.failed_attempts(user) == 1


def test_logout_clears_two_factor(login, make_user):
    user = make_user(TEACHER)
    user.set_two_factor("123456", timezone.now() + timedelta(days=1))
    client = login(user)

    r = client.get(reverse("accounts:logout"))
    assert r["Location"] == reverse("accounts:home")
    assert "_auth_user_id" not in client.session
    user.refresh_from_db()
    assert user.two_factor_secret is None
    assert user.two_factor_expires_at is None


def test_change_password_success(login, make_user):
    user = make_user(TEACHER)
    client = login(user)
    old_hash = user.password

    r = client.post(reverse("accounts:change_password"), {
        "old_password": PASSWORD, "new_password": "new-pass-123", "confirm_password": "new-pass-123",
    })
    assert r.json() == {"error": False, "message": "Data Updated Successfully"}
    user.refresh_from_db()
    assert user.password != old_hash
    assert user.check_password("new-pass-123")
    # still logged in after the hash changed
    assert client.get(reverse("accounts:dashboard")).status_code == 200


def test_change_password_wrong_old_password(login, make_user):
    user = make_user(TEACHER)
    client = login(user)
    old_hash = user.password

    r = client.post(reverse("accounts:change_password"), {
        "old_password": "nope-nope", "new_password": "new-pass-123", "confirm_password": "new-pass-123",
    })
    assert r.json() == {"error": True, "message": "Invalid old password"}
    user.refresh_from_db()
    assert user.password == old_hash


@pytest.mark.parametrize("new, confirm, message", [
    ("short", "short", "The new password must be at least 8 characters."),
    ("new-pass-123", "other-pass-123", "The confirm password and new password must match."),
])
def test_change_password_validation(login, make_user, new, confirm, message):
    client = login(make_user(TEACHER))
    r = client.post(reverse("accounts:change_password"), {
        "old_password": PASSWORD, "new_password": new, "confirm_password": confirm,
    })
    assert r.json() == {"error": True, "message": message}


def test_demo_mode_blocks_password_and_profile(login, make_user, settings):
    settings.DEMO_MODE = True
    user = make_user(TEACHER)
    client = login(user)
    old_hash = user.password
    blocked = {"error": True, "message": "This is not allowed in the Demo Version.", "code": 112}

    r = client.post(reverse("accounts:change_password"), {
        "old_password": PASSWORD, "new_password": "new-pass-123", "confirm_password": "new-pass-123",
    })
    assert r.json() == blocked
    r = client.post(reverse("accounts:profile"), PROFILE)
    assert r.json() == blocked

    user.refresh_from_db()
    assert user.password == old_hash
    assert user.first_name == ""
    assert user.email != PROFILE["email"]


def test_check_password(login, make_user):
    client = login(make_user(TEACHER))
    assert client.post(reverse("accounts:check_password"), {"old_password": PASSWORD}).json() == 1
    assert client.post(reverse("accounts:check_password"), {"old_password": "x"}).json() == 0


def test_profile_update(login, make_user):
    user = make_user(TEACHER)
    client = login(user)

    r = client.post(reverse("accounts:profile"), PROFILE)
    assert r.json() == {"error": False, "message": "Data Stored Successfully"}
    user.refresh_from_db()
    assert user.full_name() == "Grace Hopper"
    assert user.mobile == "5551234"
    assert str(user.dob) == "1990-12-09"
    assert not SystemSetting.objects.exists()


def test_super_admin_profile_updates_system_settings(login, make_user):
    user = make_user(SUPER_ADMIN)
    client = login(user)
    assert get_system_settings() == {}

    client.post(reverse("accounts:profile"), PROFILE)

    assert SystemSetting.objects.get(name="super_admin_name").data == "Grace Hopper"
    assert get_system_settings()["super_admin_name"] == "Grace Hopper"


@pytest.mark.parametrize("field, value, message", [
    ("first_name", "", "The first name field is required."),
    ("mobile", "12ab", "The mobile must be between 1 and 16 digits."),
    ("mobile", "1" * 17, "The mobile must be between 1 and 16 digits."),
])
def test_profile_validation(login, make_user, field, value, message):
    client = login(make_user(TEACHER))
    r = client.post(reverse("accounts:profile"), {**PROFILE, field: value})
    assert r.json() == {"error": True, "message": message}


def test_profile_email_must_be_unique(login, make_user):
    other = make_user(TEACHER)
    client = login(make_user(TEACHER))
    r = client.post(reverse("accounts:profile"), {**PROFILE, "email": other.email})
    assert r.json()["error"] is True


def test_challenge_page_sends_code_to_session_logged_in_elsewhere(client, make_user, mailoutbox):
    user = make_user(TEACHER, is_staff=True)
    # the admin site logs in through its own view, which never issues a code
    client.post(reverse("admin:login"), {"username": user.username, "password": PASSWORD, "next": "/admin/"})
    r = client.get("/admin/")
    assert r["Location"].startswith(reverse("accounts:two_factor"))

    r = client.get(r["Location"])
    assert r.status_code == 200
    user.refresh_from_db()
    assert len(mailoutbox) == 1
    assert user.two_factor_secret in mailoutbox[0].body

    # reloading the page does not mail a new code or reset the counter
    client.get(reverse("accounts:two_factor"))
    assert len(mailoutbox) == 1

    r = client.post(reverse("accounts:two_factor"), {"two_factor_secret": user.two_factor_secret, "next": "/admin/"})
    assert r["Location"] == "/admin/"


def test_challenge_page_does_not_resend_after_login(client, make_user, mailoutbox):
    user = make_user(TEACHER)
    _start_challenge(client, user)
    client.get(reverse("accounts:two_factor"))
    assert len(mailoutbox) == 1


class _StaleReads:
    """Cache whose reads always miss, as when parallel requests read before either writes."""

    def __init__(self, real):
        self.real = real

    def get(self, key, default=None, version=None):
        return default

    def __getattr__(self, name):
        return getattr(self.real, name)


def test_attempts_are_counted_without_read_then_write(make_user, monkeypatch):
    user = make_user(TEACHER)
    user.set_two_factor("123456", timezone.now() + timedelta(minutes=10))
    monkeypatch.setattr(two_factor, "cache", _StaleReads(cache))

    for _ in range(2):
        with pytest.raises(AuthError) as exc:
            two_factor.verify_code(user, "000000")
        assert not isinstance(exc.value, LockoutError)
    with pytest.raises(LockoutError):
        two_factor.verify_code(user, "000000")


def test_correct_code_redirects_to_next(client, make_user):
    user = make_user(TEACHER)
    code = _start_challenge(client, user)

    r = client.post(reverse("accounts:two_factor"), {"two_factor_secret": code, "next": "/profile/"})

    assert r["Location"] == "/profile/"


def test_off_site_next_falls_back_to_dashboard(client, make_user):
    user = make_user(TEACHER)
    code = _start_challenge(client, user)

    r = client.post(reverse("accounts:two_factor"), {"two_factor_secret": code, "next": "https://evil.example/"})

    assert r["Location"] == reverse("accounts:dashboard")
