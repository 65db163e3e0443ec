from django.contrib import admin
from .models import Student

@admin.register(Student)
class StudentAdmin(admin.ModelAdmin):
    list_display = ("student_id", "last_name", "first_name", "class_group", "status")
    list_filter = ("status", "class_group__school", "class_group")
    list_select_related = ("class_group__school",)
    search_fields = ("student_id", "first_name", "last_name", "user__username")
    raw_id_fields = ("user",)
    filter_horizontal = ("parent_users",)
