from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as DjangoUserAdmin
from .models import User

@admin.register(User)
class UserAdmin(DjangoUserAdmin):
    fieldsets = (
        *DjangoUserAdmin.fieldsets,
        ("Profile", {"fields": ("mobile", "gender", "dob", "current_address", "permanent_address", "image", "school")}),
        ("Two-factor", {"fields": ("two_factor_secret", "two_factor_expires_at")}),
    )
    readonly_fields = ("two_factor_secret", "two_factor_expires_at")
    list_display = ("username", "email", "first_name", "last_name", "school", "is_staff")
    list_filter = ("school", "is_staff", "is_superuser", "is_active")
