from datetime import date

from django.test import RequestFactory

from core.cache import get_default_session_year, get_system_settings, upsert_system_settings
from core.constants import GENERIC_ERROR_MESSAGE
from core.models import AcademicYear, SystemSetting
from core.responses import log_error_response
from core.tables import table_params


def test_table_params_defaults():
    params = table_params(RequestFactory().get("/"), {"id", "title"})
    assert (params.offset, params.limit, params.sort, params.order, params.search) == (0, 10, "id", "DESC", "")


def test_table_params_rejects_unknown_values():
    request = RequestFactory().get("/", {
        "offset": "-5", "limit": "abc", "sort": "password", "order": "sideways", "search": "  exam ",
    })
    params = table_params(request, {"id", "title"})
    assert (params.offset, params.limit, params.sort, params.order, params.search) == (0, 10, "id", "DESC", "exam")


def test_system_settings_are_cached_until_upsert(db):
    SystemSetting.objects.create(name="school_name", data="Greenfield")
    assert get_system_settings() == {"school_name": "Greenfield"}

    SystemSetting.objects.filter(name="school_name").update(data="changed behind the cache")
    assert get_system_settings()["school_name"] == "Greenfield"

    upsert_system_settings([{"name": "school_name", "data": "Riverside"}, {"name": "super_admin_name", "data": "Ada"}])
    assert get_system_settings() == {"school_name": "Riverside", "super_admin_name": "Ada"}


def test_default_session_year(db):
    assert get_default_session_year() is None
    AcademicYear.objects.create(name="2025", start_date=date(2025, 1, 1), end_date=date(2025, 12, 31))
    current = AcademicYear.objects.create(
        name="2026", start_date=date(2026, 1, 1), end_date=date(2026, 12, 31), is_current=True
    )
    assert get_default_session_year() == current


def test_log_error_response_hides_detail():
    response = log_error_response(RuntimeError("db password is hunter2"), "tests")
    assert b"hunter2" not in response.content
    assert GENERIC_ERROR_MESSAGE.encode() in response.content


def test_switching_current_year_refreshes_cached_default(db):
    old = AcademicYear.objects.create(
        name="2025", start_date=date(2025, 1, 1), end_date=date(2025, 12, 31), is_current=True
    )
    assert get_default_session_year() == old

    old.is_current = False
    old.save()
    new = AcademicYear.objects.create(
        name="2026", start_date=date(2026, 1, 1), end_date=date(2026, 12, 31), is_current=True
    )
    assert get_default_session_year() == new

    new.delete()
    assert get_default_session_year() is None
