from django.contrib import admin
from .models import Permission, Role, UserRole

@admin.register(Permission)
class PermissionAdmin(admin.ModelAdmin):
    list_display = ("code", "resource", "name")
    search_fields = ("code", "name")

class UserRoleInline(admin.TabularInline):
    model = UserRole
    extra = 0
    raw_id_fields = ("user",)
    readonly_fields = ("assigned_at",)

@admin.register(Role)
class RoleAdmin(admin.ModelAdmin):
    list_display = ("name", "editable", "description")
    list_filter = ("editable",)
    filter_horizontal = ("permissions",)
    inlines = [UserRoleInline]

    def get_readonly_fields(self, request, obj=None):
        if obj is not None and not obj.editable:
            return ("name", "editable")
        return ()
