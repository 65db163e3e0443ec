"""
Two-factor challenge for password-verified sessions.

A challenge stores a short-lived code in `User.two_factor_secret` and its
deadline in `User.two_factor_expires_at`. A correct code extends the deadline to
one day; a lockout or logout clears both columns. Failed attempts are counted
server-side in the cache, keyed by user id, and always compared after being
incremented.
"""
import hmac
import logging
import secrets
from datetime import timedelta

from django.conf import settings
from django.contrib.auth import logout
from django.core.cache import cache
from django.core.mail import send_mail
from django.utils import timezone

from core.exceptions import AuthError, LockoutError

logger = logging.getLogger(__name__)

SESSION_VERIFIED_KEY = "two_factor_verified"
SESSION_CHALLENGE_KEY = "two_factor_challenge_sent"
VERIFIED_FOR = timedelta(days=1)
INVALID_CODE_MESSAGE = "Invalid code. Please try again."


def _attempts_key(user_id) -> str:
    return f"two_factor_attempts:{user_id}"


def failed_attempts(user) -> int:
    return int(cache.get(_attempts_key(user.pk), 0))


def reset_attempts(user) -> None:
    cache.delete(_attempts_key(user.pk))


def _count_failure(user) -> int:
    key = _attempts_key(user.pk)
    cache.add(key, 0, settings.TWO_FACTOR_ATTEMPT_WINDOW)
    try:
        return cache.incr(key)
    except ValueError:
        # expired between add and incr
        cache.set(key, 1, settings.TWO_FACTOR_ATTEMPT_WINDOW)
        return 1


def generate_code() -> str:
    return f"{secrets.randbelow(10**6):06d}"


def issue_challenge(user, now=None) -> str:
    now = now or timezone.now()
    code = generate_code()
    user.set_two_factor(code, now + timedelta(seconds=settings.TWO_FACTOR_CODE_TTL))
    reset_attempts(user)
    minutes = max(settings.TWO_FACTOR_CODE_TTL // 60, 1)
    send_mail(
        "Your verification code",
        f"Your verification code is {code}. It expires in {minutes} minutes.",
        None,
        [user.email],
    )
    logger.info("Two-factor challenge issued for user=%s", user.pk)
    return code


def start_challenge(request) -> str:
    """Issue a code for the session's user and remember that this session has one."""
    code = issue_challenge(request.user)
    request.session[SESSION_CHALLENGE_KEY] = True
    return code


def has_challenge(request) -> bool:
    return bool(request.session.get(SESSION_CHALLENGE_KEY))


def verify_code(user, code: str, now=None) -> None:
    """
    Check a submitted code. Raises AuthError while attempts remain and
    LockoutError (with both 2FA columns cleared) once the limit is reached.
    """
    now = now or timezone.now()
    pending = user.two_factor_secret or ""
    live = user.two_factor_expires_at is not None and user.two_factor_expires_at >= now
    submitted = (code or "").strip()

    if pending and live and hmac.compare_digest(pending.encode(), submitted.encode()):
        reset_attempts(user)
        user.set_two_factor(pending, now + VERIFIED_FOR)
        logger.info("Two-factor verified for user=%s", user.pk)
        return

    attempts = _count_failure(user)
    if attempts >= settings.TWO_FACTOR_MAX_ATTEMPTS:
        reset_attempts(user)
        user.clear_two_factor()
        logger.warning("Two-factor lockout for user=%s after %d attempts", user.pk, attempts)
        raise LockoutError()

    raise AuthError(INVALID_CODE_MESSAGE)


def is_verified(request) -> bool:
    if not settings.TWO_FACTOR_ENABLED:
        return True
    return bool(request.session.get(SESSION_VERIFIED_KEY))


def mark_verified(request) -> None:
    request.session[SESSION_VERIFIED_KEY] = True


def end_session(request) -> None:
    user = request.user
    if user.is_authenticated:
        user.clear_two_factor()
        reset_attempts(user)
    # flushes the session (tenant selection included) and rotates its key
    logout(request)
