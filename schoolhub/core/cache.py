import logging

from django.core.cache import cache

from .constants import CACHE_DEFAULT_SESSION_YEAR, CACHE_SYSTEM_SETTINGS, CACHE_TIMEOUT
from .models import AcademicYear, SystemSetting

logger = logging.getLogger(__name__)


def get_system_settings() -> dict:
    data = cache.get(CACHE_SYSTEM_SETTINGS)
    if data is None:
        data = dict(SystemSetting.objects.values_list("name", "data"))
        cache.set(CACHE_SYSTEM_SETTINGS, data, CACHE_TIMEOUT)
    return data


def get_default_session_year():
    year = cache.get(CACHE_DEFAULT_SESSION_YEAR)
    if year is None:
        year = AcademicYear.objects.filter(is_current=True).order_by("-start_date").first()
        if year is not None:
            cache.set(CACHE_DEFAULT_SESSION_YEAR, year, CACHE_TIMEOUT)
    return year


def remove_system_cache(key: str) -> None:
    logger.debug("Invalidating cache key %s", key)
    cache.delete(key)


def upsert_system_settings(rows: list[dict]) -> None:
    """
    Insert or update SystemSetting rows keyed by name, then drop the cached copy.
    """
    for row in rows:
        SystemSetting.objects.update_or_create(
            name=row["name"],
            defaults={"data": row.get("data", ""), "type": row.get("type", "string")},
        )
    remove_system_cache(CACHE_SYSTEM_SETTINGS)
