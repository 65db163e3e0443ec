"""
Single place where access decisions are made.

Views ask `evaluate()` (or wrap themselves in `permission_required`) instead of
checking role flags inline.
"""
import logging
from dataclasses import dataclass
from functools import wraps

from django.contrib.auth.views import redirect_to_login
from django.http import JsonResponse

from .models import SUPER_ADMIN, UserRole

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: str = ""

    def __bool__(self) -> bool:
        return self.allowed


def evaluate(user, *codes: str, any_of: bool = False) -> Decision:
    if user is None or not user.is_authenticated:
        return Decision(False, "Login required.")
    if not user.is_active:
        return Decision(False, "Account is disabled.")
    if user.is_superuser or user.has_role(SUPER_ADMIN):
        return Decision(True, "super admin")
    if not codes:
        return Decision(True)

    granted = UserRole.objects.permission_codes(user, codes)
    if any_of:
        if granted:
            return Decision(True)
        return Decision(False, f"You need one of these permissions: {', '.join(codes)}.")

    missing = [c for c in codes if c not in granted]
    if missing:
        return Decision(False, f"You don't have enough permissions ({', '.join(missing)}).")
    return Decision(True)


def permission_required(*codes: str, any_of: bool = False):
    def decorator(view):
        @wraps(view)
        def wrapped(request, *args, **kwargs):
            decision = evaluate(request.user, *codes, any_of=any_of)
            if not decision:
                if not request.user.is_authenticated:
                    return redirect_to_login(request.get_full_path())
                logger.warning(
                    "Denied %s %s for user=%s: %s",
                    request.method, request.path, request.user.pk, decision.reason,
                )
                return JsonResponse({"error": True, "message": decision.reason}, status=403)
            return view(request, *args, **kwargs)

        return wrapped

    return decorator
