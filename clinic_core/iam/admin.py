from __future__ import annotations

from django.contrib import admin

from clinic_core.iam.models import Membership, Permission, Role, RolePermission


@admin.register(Permission)
class PermissionAdmin(admin.ModelAdmin):
    list_display = ("code", "module", "description")
    list_filter = ("module",)
    search_fields = ("code", "description")
    ordering = ("code",)


class RolePermissionInline(admin.TabularInline):
    model = RolePermission
    extra = 0
    autocomplete_fields = ("permission",)


@admin.register(Role)
class RoleAdmin(admin.ModelAdmin):
    list_display = ("name", "tenant", "is_system", "created_at")
    list_filter = ("tenant", "is_system")
    search_fields = ("name",)
    inlines = [RolePermissionInline]
    ordering = ("tenant", "name")


@admin.register(Membership)
class MembershipAdmin(admin.ModelAdmin):
    list_display = ("tenant", "user", "role", "is_active", "joined_at")
    list_filter = ("tenant", "role__name", "is_active")
    search_fields = ("user__username", "user__email", "tenant__name")
    autocomplete_fields = ("role",)
    ordering = ("-joined_at",)
