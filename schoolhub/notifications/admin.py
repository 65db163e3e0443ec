from django.contrib import admin
from .models import Notification, NotificationLog

class NotificationLogInline(admin.TabularInline):
    model = NotificationLog
    extra = 0
    readonly_fields = ("channel", "recipients_count", "status", "error", "created_at", "sent_at")

@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ("title", "send_to", "school", "session_year", "created_at")
    list_filter = ("send_to", "school", "session_year")
    search_fields = ("title", "message")
    inlines = [NotificationLogInline]

@admin.register(NotificationLog)
class NotificationLogAdmin(admin.ModelAdmin):
    list_display = ("notification", "channel", "recipients_count", "status", "created_at", "sent_at")
    list_filter = ("channel", "status")
    search_fields = ("notification__title", "error")
