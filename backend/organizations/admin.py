from django.contrib import admin
from .models import Organization, OrganizationStatusEvent


class OrganizationStatusEventInline(admin.TabularInline):
    model = OrganizationStatusEvent
    extra = 0
    can_delete = False
    fields = ("status_before", "status_after", "actor", "sections", "notes", "created_at")
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Organization)
class OrganizationAdmin(admin.ModelAdmin):
    """
    Status is read-only here.
    Status changes go through the onboarding and review flows.
    """

    list_display = ("name", "owner", "status", "email_verified_at", "created_at")
    list_filter = ("status",)
    search_fields = ("name", "owner__username")
    readonly_fields = ("status", "email_verified_at", "created_at", "updated_at")
    inlines = [OrganizationStatusEventInline]


@admin.register(OrganizationStatusEvent)
class OrganizationStatusEventAdmin(admin.ModelAdmin):
    """
    Read-only audit log for organization status changes.
    """

    list_display = (
        "organization",
        "status_before",
        "status_after",
        "actor",
        "created_at",
    )
    list_filter = ("status_after",)
    readonly_fields = (
        "organization",
        "actor",
        "status_before",
        "status_after",
        "notes",
        "sections",
        "created_at",
    )

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
