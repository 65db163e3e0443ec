from django.urls import path
from .views import notifications_home, notification_list, user_list, notification_delete

app_name = "notifications"

urlpatterns = [
    path("", notifications_home, name="index"),
    path("list/", notification_list, name="list"),
    path("users/", user_list, name="users"),
    path("<int:notification_id>/delete/", notification_delete, name="delete"),
]
