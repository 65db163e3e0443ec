from django.conf import settings
from django.db import models
from django.utils import timezone

from core.models import AcademicYear, School

User = settings.AUTH_USER_MODEL

ALL_USERS = "All users"
SPECIFIC_USERS = "Specific users"
OVER_DUE_FEES = "Over Due Fees"
ROLES = "Roles"

SEND_TO_CHOICES = [
    (ALL_USERS, "All users"),
    (SPECIFIC_USERS, "Specific users"),
    (OVER_DUE_FEES, "Over Due Fees"),
    (ROLES, "Roles"),
]

class Notification(models.Model):
    title = models.CharField(max_length=255)
    message = models.TextField()
    send_to = models.CharField(max_length=30, choices=SEND_TO_CHOICES)
    image = models.FileField(upload_to="notifications/", blank=True)
    session_year = models.ForeignKey(AcademicYear, on_delete=models.PROTECT, related_name="notifications")
    school = models.ForeignKey(School, on_delete=models.CASCADE, null=True, blank=True, related_name="notifications")
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name="+")
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["-created_at", "-id"]

    def __str__(self):
        return f"{self.title} [{self.send_to}]"

class NotificationLog(models.Model):
    STATUS_CHOICES = [
        ("sent", "Sent"),
        ("skipped", "Stored, not delivered"),
        ("failed", "Failed"),
    ]
    notification = models.ForeignKey(Notification, on_delete=models.CASCADE, related_name="logs")
    channel = models.CharField(max_length=20, default="push")
    recipients_count = models.PositiveIntegerField(default=0)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES)
    error = models.TextField(blank=True)
    created_at = models.DateTimeField(default=timezone.now)
    sent_at = models.DateTimeField(null=True, blank=True)

    def __str__(self):
        return f"{self.channel} x{self.recipients_count} [{self.status}]"
