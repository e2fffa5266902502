from django.contrib import admin
from .models import OnboardingReview


@admin.register(OnboardingReview)
class OnboardingReviewAdmin(admin.ModelAdmin):
    """
    Admin inspection only.
    Reviews are created through the GM/COO decision flow.
    """

    list_display = (
        "organization",
        "stage",
        "reviewer",
        "decision",
        "status_after",
        "created_at",
    )
    list_filter = ("stage", "decision")

    readonly_fields = (
        "organization",
        "stage",
        "reviewer",
        "decision",
        "sections",
        "notes",
        "status_before",
        "status_after",
        "created_at",
    )

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
