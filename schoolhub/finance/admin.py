from django.contrib import admin
from .models import Fee, FeePaid

class FeePaidInline(admin.TabularInline):
    model = FeePaid
    extra = 0

@admin.register(Fee)
class FeeAdmin(admin.ModelAdmin):
    list_display = ("name", "class_group", "amount", "due_date")
    list_filter = ("due_date", "class_group")
    search_fields = ("name",)
    inlines = [FeePaidInline]

@admin.register(FeePaid)
class FeePaidAdmin(admin.ModelAdmin):
    list_display = ("fee", "student", "amount", "is_fully_paid", "paid_on")
    list_filter = ("is_fully_paid",)
    search_fields = ("student__student_id", "student__first_name", "student__last_name")
