from django.urls import path
from .views import (
    home, login_view, logout_view, dashboard, two_factor_view,
    change_password, check_password, profile,
)

app_name = "accounts"

urlpatterns = [
    path("", home, name="home"),
    path("login/", login_view, name="login"),
    path("logout/", logout_view, name="logout"),
    path("dashboard/", dashboard, name="dashboard"),
    path("two-factor/", two_factor_view, name="two_factor"),
    path("change-password/", change_password, name="change_password"),
    path("check-password/", check_password, name="check_password"),
    path("profile/", profile, name="profile"),
]
