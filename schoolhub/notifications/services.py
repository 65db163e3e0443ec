import logging
from dataclasses import dataclass, field

from django.db import transaction
from django.utils import timezone

from core.cache import get_default_session_year
from core.exceptions import TransientDeliveryError, ValidationError

from .models import Notification, NotificationLog
from .notifiers import get_notifier
from .recipients import resolve_recipients

logger = logging.getLogger(__name__)

STORED_NOT_DELIVERED = "Data Stored successfully. But App push notification not send."


@dataclass
class DispatchResult:
    notification: Notification
    recipient_ids: list[int] = field(default_factory=list)
    delivered: bool = True
    warning: str = ""


def create_notification(actor, data: dict, *, image=None, notifier=None, today=None) -> DispatchResult:
    """
    Store a broadcast and hand it to the push notifier in one transaction.

    An unreachable push endpoint keeps the stored row and reports a warning;
    any other failure rolls the row back and propagates.
    """
    session_year = get_default_session_year()
    if session_year is None:
        raise ValidationError("Current session year is not set.")

    notifier = notifier or get_notifier()
    notification = None

    try:
        with transaction.atomic():
            notification = Notification.objects.create(
                title=data["title"],
                message=data["message"],
                send_to=data["type"],
                image=image or "",
                session_year=session_year,
                school_id=actor.school_id,
                created_by=actor,
            )
            recipient_ids = resolve_recipients(
                actor,
                data["type"],
                all_users=data.get("all_users") or "",
                users=data.get("users"),
                roles=data.get("roles"),
                today=today,
            )

            metadata = {}
            if notification.image:
                metadata["image"] = notification.image.url

            try:
                notifier.send(recipient_ids, notification.title, notification.message, type="Notification", metadata=metadata)
            except TransientDeliveryError as exc:
                logger.warning("Notification %s stored but not delivered: %s", notification.pk, exc)
                NotificationLog.objects.create(
                    notification=notification,
                    recipients_count=len(recipient_ids),
                    status="skipped",
                    error=str(exc),
                )
                return DispatchResult(notification, recipient_ids, delivered=False, warning=STORED_NOT_DELIVERED)

            NotificationLog.objects.create(
                notification=notification,
                recipients_count=len(recipient_ids),
                status="sent",
                sent_at=timezone.now(),
            )
    except Exception:
        # a rolled-back row leaves its upload behind in storage
        if notification is not None and notification.image:
            notification.image.delete(save=False)
        raise

    logger.info("Notification %s sent to %d users (%s)", notification.pk, len(recipient_ids), notification.send_to)
    return DispatchResult(notification, recipient_ids)


def delete_notification(notification: Notification) -> None:
    if notification.image:
        notification.image.delete(save=False)
    notification.delete()
