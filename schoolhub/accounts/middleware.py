from urllib.parse import urlencode

from django.conf import settings
from django.shortcuts import redirect
from django.urls import reverse

from . import two_factor

class TwoFactorMiddleware:
    """
    Sends logged-in users whose session has not passed the code challenge
    back to the challenge page.
    """

    EXEMPT_URL_NAMES = ("accounts:login", "accounts:logout", "accounts:two_factor", "accounts:home")

    def __init__(self, get_response):
        self.get_response = get_response

    def _exempt(self, path: str) -> bool:
        prefixes = ["/" + settings.STATIC_URL.lstrip("/"), "/" + settings.MEDIA_URL.lstrip("/")]
        if any(path.startswith(p) for p in prefixes):
            return True
        return path in {reverse(name) for name in self.EXEMPT_URL_NAMES}

    def __call__(self, request):
        user = getattr(request, "user", None)
        if user is not None and user.is_authenticated and not two_factor.is_verified(request):
            if not self._exempt(request.path):
                url = reverse("accounts:two_factor")
                return redirect(f"{url}?{urlencode({'next': request.get_full_path()})}")
        return self.get_response(request)
