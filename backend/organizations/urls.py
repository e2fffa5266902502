from django.urls import path

from organizations.views import (
    create_organization_view,
    onboarding_progress_view,
    onboarding_section_view,
    return_to_section_view,
    review_status_view,
    save_section_draft_view,
    submit_section_view,
    verify_email_view,
)


urlpatterns = [
    path(
        "api/organizations/create",
        create_organization_view,
        name="create_organization",
    ),
    path(
        "api/organizations/<uuid:organization_id>/progress",
        onboarding_progress_view,
        name="organization_progress",
    ),
    path(
        "api/organizations/<uuid:organization_id>/review-status",
        review_status_view,
        name="organization_review_status",
    ),
    path(
        "api/organizations/<uuid:organization_id>/verify-email",
        verify_email_view,
        name="organization_verify_email",
    ),
    path(
        "api/organizations/<uuid:organization_id>/sections/<str:section>",
        onboarding_section_view,
        name="organization_section",
    ),
    path(
        "api/organizations/<uuid:organization_id>/sections/<str:section>/save",
        save_section_draft_view,
        name="organization_save_section_draft",
    ),
    path(
        "api/organizations/<uuid:organization_id>/sections/<str:section>/submit",
        submit_section_view,
        name="organization_submit_section",
    ),
    path(
        "api/organizations/<uuid:organization_id>/return-to-section",
        return_to_section_view,
        name="organization_return_to_section",
    ),
]
