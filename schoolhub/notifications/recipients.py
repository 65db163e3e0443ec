"""
Turns an announcement's "send to" mode into the list of user ids to notify.

All queries are limited to the acting user's school. An actor without a school
(a global Super Admin) sees every school.
"""
from django.contrib.auth import get_user_model
from django.db.models import Q
from django.utils import timezone

from academics.models import ClassGroup
from core.exceptions import ValidationError
from finance.models import Fee
from people.models import Student
from rbac.models import GUARDIAN, SCHOOL_ADMIN, Role

from .models import ALL_USERS, OVER_DUE_FEES, ROLES, SPECIFIC_USERS

User = get_user_model()


def _scoped(qs, actor, path="school"):
    if actor.school_id:
        return qs.filter(**{path: actor.school_id})
    return qs


def dedupe(ids) -> list[int]:
    seen = set()
    out = []
    for raw in ids:
        if raw is None or raw == "":
            continue
        uid = int(raw)
        if uid not in seen:
            seen.add(uid)
            out.append(uid)
    return out


def parse_id_list(raw: str) -> list[int]:
    out = []
    for part in (raw or "").split(","):
        part = part.strip()
        if not part:
            continue
        if not part.isdigit():
            raise ValidationError(f"Invalid user id: {part}")
        out.append(int(part))
    return out


def guardians_in_scope(actor):
    """Guardians linked to at least one student of the actor's school."""
    qs = User.objects.filter(rbac_roles__role__name=GUARDIAN, linked_students__isnull=False)
    return _scoped(qs, actor, "linked_students__user__school").distinct()


def users_with_roles(actor, roles):
    qs = User.objects.filter(rbac_roles__role__name__in=list(roles))
    return _scoped(qs, actor).distinct()


def pickable_users(actor):
    """Users that can be picked by hand: anyone in the actor's school holding a role other than School Admin."""
    qs = User.objects.filter(rbac_roles__role__in=Role.objects.exclude(name=SCHOOL_ADMIN))
    if actor.school_id:
        qs = qs.filter(Q(school_id=actor.school_id) | Q(linked_students__user__school_id=actor.school_id))
    return qs.distinct()


def all_users_for(actor) -> list[int]:
    roles = Role.objects.recipients().values_list("name", flat=True)
    guardian_ids = guardians_in_scope(actor).order_by("id").values_list("id", flat=True)
    other_ids = users_with_roles(actor, roles).order_by("id").values_list("id", flat=True)
    return dedupe([*guardian_ids, *other_ids])


def overdue_fee_recipients(actor, today=None) -> list[int]:
    today = today or timezone.localdate()
    student_ids = []
    guardian_ids = []

    classes = ClassGroup.objects.for_school(actor.school_id)
    for fee in Fee.objects.filter(due_date__lt=today, class_group__in=classes):
        students = Student.objects.active().owing(fee).prefetch_related("parent_users").order_by("id")
        for student in students:
            student_ids.append(student.user_id)
            guardian_ids.extend(student.guardian_ids())

    return student_ids + guardian_ids


def role_recipients(actor, roles) -> list[int]:
    roles = list(roles or [])
    guardian_ids = []
    if GUARDIAN in roles:
        guardian_ids = list(guardians_in_scope(actor).order_by("id").values_list("id", flat=True))
        roles = [r for r in roles if r != GUARDIAN]
    role_ids = []
    if roles:
        role_ids = list(users_with_roles(actor, roles).order_by("id").values_list("id", flat=True))
    return guardian_ids + role_ids


def resolve_recipients(actor, send_to: str, *, all_users: str = "", users=None, roles=None, today=None) -> list[int]:
    if send_to == ALL_USERS:
        ids = parse_id_list(all_users)
    elif send_to == SPECIFIC_USERS:
        ids = list(users or [])
    elif send_to == OVER_DUE_FEES:
        ids = overdue_fee_recipients(actor, today=today)
    elif send_to == ROLES:
        ids = role_recipients(actor, roles)
    else:
        raise ValidationError(f"Unknown notification type: {send_to}")
    return dedupe(ids)
