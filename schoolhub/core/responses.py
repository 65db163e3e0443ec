import logging

from django.http import JsonResponse

from .constants import DEMO_ERROR_CODE, DEMO_ERROR_MESSAGE, GENERIC_ERROR_MESSAGE

logger = logging.getLogger(__name__)


def success_response(message: str = "Data Stored Successfully", data=None) -> JsonResponse:
    payload = {"error": False, "message": message}
    if data is not None:
        payload["data"] = data
    return JsonResponse(payload)


def warning_response(message: str) -> JsonResponse:
    return JsonResponse({"error": False, "warning": True, "message": message})


def error_response(message: str = GENERIC_ERROR_MESSAGE, code=None, status: int = 200) -> JsonResponse:
    payload = {"error": True, "message": message}
    if code is not None:
        payload["code"] = code
    return JsonResponse(payload, status=status)


def demo_blocked_response() -> JsonResponse:
    return error_response(DEMO_ERROR_MESSAGE, code=DEMO_ERROR_CODE)


def log_error_response(exc: BaseException, where: str) -> JsonResponse:
    # full detail stays in the log; the client only gets the generic message
    logger.error("%s failed: %s", where, exc, exc_info=exc)
    return error_response()


def first_form_error(form) -> str:
    for errors in form.errors.values():
        if errors:
            return str(errors[0])
    return "Invalid input."
