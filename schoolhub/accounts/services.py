import logging

from django.db import transaction

from core.cache import upsert_system_settings
from core.constants import SUPER_ADMIN_NAME_SETTING
from core.exceptions import AuthError
from rbac.models import SUPER_ADMIN

logger = logging.getLogger(__name__)


def change_password(user, old_password: str, new_password: str) -> None:
    if not user.check_password(old_password):
        raise AuthError("Invalid old password")
    user.set_password(new_password)
    user.save(update_fields=["password"])
    logger.info("Password changed for user=%s", user.pk)


def save_profile(form):
    """Persist a valid ProfileForm; a Super Admin's name is mirrored into system settings."""
    with transaction.atomic():
        user = form.save()
        if user.has_role(SUPER_ADMIN):
            upsert_system_settings([
                {"name": SUPER_ADMIN_NAME_SETTING, "data": f"{user.first_name} {user.last_name}", "type": "string"},
            ])
    return user
