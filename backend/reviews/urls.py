from django.urls import path

from reviews.views import (
    review_organization_detail_view,
    review_queue_view,
    submit_review_decision_view,
)


urlpatterns = [
    path(
        "api/reviews/onboarding/<str:stage>/queue",
        review_queue_view,
        name="onboarding_review_queue",
    ),
    path(
        "api/reviews/onboarding/<str:stage>/<uuid:organization_id>",
        review_organization_detail_view,
        name="onboarding_review_detail",
    ),
    path(
        "api/reviews/onboarding/<str:stage>/<uuid:organization_id>/decision",
        submit_review_decision_view,
        name="onboarding_review_decision",
    ),
]
