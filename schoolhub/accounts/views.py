import logging
from urllib.parse import urlencode

from django.conf import settings
from django.contrib import messages
from django.contrib.auth import authenticate, login, update_session_auth_hash
from django.contrib.auth.decorators import login_required
from django.http import JsonResponse
from django.shortcuts import redirect, render
from django.urls import reverse
from django.utils import timezone
from django.utils.http import url_has_allowed_host_and_scheme
from django.views.decorators.http import require_http_methods

from core.exceptions import AuthError, LockoutError
from core.responses import (
    demo_blocked_response,
    error_response,
    first_form_error,
    log_error_response,
    success_response,
)
from finance.models import Fee
from notifications.models import Notification
from people.models import Student
from . import services, two_factor
from .forms import ChangePasswordForm, ProfileForm

logger = logging.getLogger(__name__)

SEND_FAILED_MESSAGE = "Could not send the verification code. Please try again."


def _safe_next(request) -> str:
    nxt = (request.POST.get("next") or request.GET.get("next") or "").strip()
    if nxt and url_has_allowed_host_and_scheme(nxt, allowed_hosts={request.get_host()}):
        return nxt
    return ""


def home(request):
    if request.user.is_authenticated:
        return redirect("accounts:dashboard")
    return redirect("accounts:login")


@require_http_methods(["GET", "POST"])
def login_view(request):
    if request.user.is_authenticated and two_factor.is_verified(request):
        return redirect("accounts:dashboard")

    error = None
    nxt = _safe_next(request)
    if request.method == "POST":
        username = request.POST.get("username", "").strip()
        password = request.POST.get("password", "")
        user = authenticate(request, username=username, password=password)
        if user:
            login(request, user)
            if not settings.TWO_FACTOR_ENABLED:
                two_factor.mark_verified(request)
                return redirect(nxt or "accounts:dashboard")
            try:
                two_factor.start_challenge(request)
            except Exception:
                logger.exception("Could not send two-factor code to user=%s", user.pk)
                two_factor.end_session(request)
                error = SEND_FAILED_MESSAGE
            else:
                url = reverse("accounts:two_factor")
                return redirect(f"{url}?{urlencode({'next': nxt})}" if nxt else url)
        else:
            error = "Invalid username/password."
    return render(request, "accounts/login.html", {"error": error, "next": nxt})


def logout_view(request):
    two_factor.end_session(request)
    return redirect("accounts:home")


@login_required
@require_http_methods(["GET", "POST"])
def two_factor_view(request):
    if two_factor.is_verified(request):
        return redirect("accounts:dashboard")

    error = None
    nxt = _safe_next(request)
    if request.method == "GET" and not two_factor.has_challenge(request):
        # logged in outside login_view (e.g. the admin site): no code was sent yet
        try:
            two_factor.start_challenge(request)
        except Exception:
            logger.exception("Could not send two-factor code to user=%s", request.user.pk)
            error = SEND_FAILED_MESSAGE
    elif request.method == "POST":
        try:
            two_factor.verify_code(request.user, request.POST.get("two_factor_secret", ""))
        except LockoutError as exc:
            two_factor.end_session(request)
            messages.error(request, exc.message)
            return redirect("accounts:home")
        except AuthError as exc:
            error = exc.message
        else:
            two_factor.mark_verified(request)
            return redirect(nxt or "accounts:dashboard")
    return render(request, "accounts/two_factor.html", {"error": error, "next": nxt})


@login_required
def dashboard(request):
    u = request.user
    notifications = Notification.objects.all()
    students = Student.objects.all()
    overdue = Fee.objects.filter(due_date__lt=timezone.localdate())
    if u.school_id:
        notifications = notifications.filter(school_id=u.school_id)
        students = students.filter(user__school_id=u.school_id)
        overdue = overdue.filter(class_group__school_id=u.school_id)

    ctx = {
        "roles": sorted(u.role_names()),
        "students_count": students.count(),
        "overdue_fees_count": overdue.count(),
        "notifications": notifications[:10],
    }
    return render(request, "accounts/dashboard.html", ctx)


@login_required
@require_http_methods(["GET", "POST"])
def change_password(request):
    if request.method == "GET":
        return render(request, "accounts/change_password.html")
    if settings.DEMO_MODE:
        return demo_blocked_response()

    form = ChangePasswordForm(request.POST)
    if not form.is_valid():
        return error_response(first_form_error(form))
    try:
        services.change_password(request.user, form.cleaned_data["old_password"], form.cleaned_data["new_password"])
        update_session_auth_hash(request, request.user)
    except AuthError as exc:
        return error_response(exc.message)
    except Exception as exc:
        return log_error_response(exc, "accounts.change_password")
    return success_response("Data Updated Successfully")


@login_required
@require_http_methods(["POST"])
def check_password(request):
    ok = request.user.check_password(request.POST.get("old_password", ""))
    return JsonResponse(1 if ok else 0, safe=False)


@login_required
@require_http_methods(["GET", "POST"])
def profile(request):
    if request.method == "GET":
        return render(request, "accounts/profile.html", {"form": ProfileForm(instance=request.user)})
    if settings.DEMO_MODE:
        return demo_blocked_response()

    form = ProfileForm(request.POST, request.FILES, instance=request.user)
    if not form.is_valid():
        return error_response(first_form_error(form))
    try:
        services.save_profile(form)
    except Exception as exc:
        return log_error_response(exc, "accounts.profile")
    return success_response("Data Stored Successfully")
