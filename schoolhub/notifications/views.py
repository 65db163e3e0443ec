import logging

from django.contrib.auth import get_user_model
from django.db.models import Q, Value
from django.db.models.functions import Concat
from django.http import JsonResponse
from django.shortcuts import get_object_or_404, render
from django.urls import reverse
from django.views.decorators.http import require_http_methods

from core import exceptions
from core.responses import (
    error_response,
    first_form_error,
    log_error_response,
    success_response,
    warning_response,
)
from core.tables import page, table_params
from rbac.models import Role
from rbac.policy import permission_required

from .forms import NotificationForm
from .models import Notification
from .recipients import all_users_for, pickable_users
from .services import create_notification, delete_notification

logger = logging.getLogger(__name__)

User = get_user_model()

NOTIFICATION_SORTS = {"id", "title", "message", "send_to", "created_at"}
USER_SORTS = {"id", "first_name", "last_name", "email"}


def _notifications_for(user):
    qs = Notification.objects.all()
    if user.school_id:
        qs = qs.filter(school_id=user.school_id)
    return qs


@require_http_methods(["GET", "POST"])
def notifications_home(request):
    if request.method == "POST":
        return store(request)
    return index(request)


@permission_required("notification-create", "notification-list", any_of=True)
def index(request):
    roles = Role.objects.recipients().values_list("name", flat=True)
    all_users = ",".join(str(uid) for uid in all_users_for(request.user))
    return render(
        request,
        "notifications/index.html",
        {"form": NotificationForm(actor=request.user), "roles": list(roles), "all_users": all_users},
    )


@permission_required("notification-create")
def store(request):
    form = NotificationForm(request.POST, request.FILES, actor=request.user)
    if not form.is_valid():
        return error_response(first_form_error(form))

    try:
        result = create_notification(request.user, form.cleaned_data, image=form.cleaned_data.get("image"))
    except exceptions.ValidationError as exc:
        return error_response(exc.message)
    except Exception as exc:
        return log_error_response(exc, "notifications.store")

    if not result.delivered:
        return warning_response(result.warning)
    return success_response("Data Stored Successfully")


@require_http_methods(["GET"])
@permission_required("notification-list")
def notification_list(request):
    params = table_params(request, NOTIFICATION_SORTS)
    qs = _notifications_for(request.user)
    if params.search:
        qs = qs.filter(Q(title__icontains=params.search) | Q(message__icontains=params.search))

    total, res = page(qs, params)
    rows = []
    for no, n in enumerate(res, start=params.offset + 1):
        rows.append({
            "id": n.id,
            "no": no,
            "title": n.title,
            "message": n.message,
            "send_to": n.send_to,
            "image": n.image.url if n.image else None,
            "session_year_id": n.session_year_id,
            "created_at": n.created_at.isoformat(),
            "delete_url": reverse("notifications:delete", args=[n.id]),
        })
    return JsonResponse({"total": total, "rows": rows})


@require_http_methods(["GET"])
@permission_required("notification-create")
def user_list(request):
    """Recipient picker for "Specific users": everyone with a role other than School Admin."""
    params = table_params(request, USER_SORTS)
    qs = pickable_users(request.user)
    if params.search:
        qs = qs.annotate(full_name=Concat("first_name", Value(" "), "last_name")).filter(
            Q(first_name__icontains=params.search) |
            Q(last_name__icontains=params.search) |
            Q(full_name__icontains=params.search)
        )
    roles = request.GET.getlist("roles")
    if roles:
        qs = qs.filter(rbac_roles__role__name__in=roles)
    qs = qs.distinct()

    total, res = page(qs, params)
    rows = []
    for no, u in enumerate(res, start=params.offset + 1):
        rows.append({
            "id": u.id,
            "no": no,
            "first_name": u.first_name,
            "last_name": u.last_name,
            "email": u.email,
            "roles": sorted(u.role_names()),
        })
    return JsonResponse({"total": total, "rows": rows})


@require_http_methods(["DELETE", "POST"])
@permission_required("notification-delete")
def notification_delete(request, notification_id: int):
    notification = get_object_or_404(_notifications_for(request.user), id=notification_id)
    try:
        delete_notification(notification)
    except Exception as exc:
        return log_error_response(exc, "notifications.delete")
    logger.info("Notification %s deleted by user=%s", notification_id, request.user.pk)
    return success_response("Data Deleted Successfully")
