from django.contrib import admin
from people.models import Student
from .models import ClassGroup

class StudentInline(admin.TabularInline):
    model = Student
    fields = ("student_id", "first_name", "last_name", "status")
    extra = 0
    show_change_link = True

@admin.register(ClassGroup)
class ClassGroupAdmin(admin.ModelAdmin):
    list_display = ("name", "school", "grade_level", "academic_year")
    list_filter = ("school", "academic_year")
    list_select_related = ("school", "academic_year")
    search_fields = ("name", "school__name")
    inlines = [StudentInline]
