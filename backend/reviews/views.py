import json

from django.core.exceptions import PermissionDenied, ValidationError
from django.http import JsonResponse
from django.views.decorators.http import require_GET, require_POST

from organizations.models import Organization, OrganizationStatusEvent
from organizations.state_machine import InvalidTransitionError
from reviews.models import OnboardingReview
from reviews.services import (
    QUEUE_NAMES,
    can_review_stage,
    review_organization_detail,
    review_queue,
    submit_onboarding_review,
)


def _serialize_queue_item(organization: Organization):
    return {
        "organization_id": str(organization.id),
        "name": organization.name,
        "status": organization.status,
        "owner_username": organization.owner.username,
        "completed_sections": sorted(organization.completed_sections or []),
        "created_at": organization.created_at.isoformat(),
        "updated_at": organization.updated_at.isoformat(),
    }


def _serialize_status_event(event: OrganizationStatusEvent):
    return {
        "status_before": event.status_before,
        "status_after": event.status_after,
        "actor_username": event.actor.username if event.actor else None,
        "sections": event.sections,
        "notes": event.notes,
        "created_at": event.created_at.isoformat(),
    }


def _serialize_review(review: OnboardingReview):
    return {
        "review_id": str(review.id),
        "organization_id": str(review.organization_id),
        "stage": review.stage,
        "decision": review.decision,
        "sections": review.sections,
        "notes": review.notes,
        "status_before": review.status_before,
        "status_after": review.status_after,
        "created_at": review.created_at.isoformat(),
    }


def _invalid_stage_response():
    return JsonResponse(
        {"detail": f"Invalid review stage. Allowed: {sorted(OnboardingReview.Stage.values)}"},
        status=404,
    )


@require_GET
def review_queue_view(request, stage):
    user = request.user
    if not user.is_authenticated:
        return JsonResponse({"detail": "Authentication required."}, status=401)
    if stage not in OnboardingReview.Stage.values:
        return _invalid_stage_response()
    if not can_review_stage(user, stage):
        return JsonResponse({"detail": "Access denied."}, status=403)

    items = [_serialize_queue_item(org) for org in review_queue(stage)]
    return JsonResponse({"stage": stage, "items": items})


@require_GET
def review_organization_detail_view(request, stage, organization_id):
    user = request.user
    if not user.is_authenticated:
        return JsonResponse({"detail": "Authentication required."}, status=401)
    if stage not in OnboardingReview.Stage.values:
        return _invalid_stage_response()
    if not can_review_stage(user, stage):
        return JsonResponse({"detail": "Access denied."}, status=403)

    try:
        organization, events = review_organization_detail(
            stage=stage,
            organization_id=organization_id,
        )
    except Organization.DoesNotExist:
        return JsonResponse(
            {"detail": f"Organization not found in {QUEUE_NAMES[stage]} queue."},
            status=404,
        )

    return JsonResponse(
        {
            "stage": stage,
            "organization": _serialize_queue_item(organization),
            "section_data": organization.section_data or {},
            "status_history": [_serialize_status_event(e) for e in events],
            "reviews": [
                _serialize_review(review)
                for review in organization.reviews.order_by("created_at")
            ],
        }
    )


@require_POST
def submit_review_decision_view(request, stage, organization_id):
    user = request.user
    if not user.is_authenticated:
        return JsonResponse({"detail": "Authentication required."}, status=401)
    if stage not in OnboardingReview.Stage.values:
        return _invalid_stage_response()

    try:
        payload = json.loads(request.body or "{}")
    except json.JSONDecodeError:
        return JsonResponse({"detail": "Invalid JSON body."}, status=400)
    if not isinstance(payload, dict):
        return JsonResponse({"detail": "JSON body must be an object."}, status=400)

    decision = str(payload.get("decision") or "").strip()
    notes = str(payload.get("notes") or "").strip()
    sections = payload.get("sections") or []

    valid_decisions = set(OnboardingReview.Decision.values)
    if decision not in valid_decisions:
        return JsonResponse(
            {"detail": f"Invalid decision. Allowed: {sorted(valid_decisions)}"},
            status=400,
        )
    if not isinstance(sections, list):
        return JsonResponse({"detail": "sections must be a list."}, status=400)

    try:
        organization = Organization.objects.get(id=organization_id)
    except Organization.DoesNotExist:
        return JsonResponse({"detail": "Organization not found."}, status=404)

    try:
        organization, review = submit_onboarding_review(
            organization=organization,
            reviewer=user,
            stage=stage,
            decision=decision,
            notes=notes,
            sections=sections,
        )
    except PermissionDenied as exc:
        return JsonResponse({"detail": str(exc) or "Access denied."}, status=403)
    except InvalidTransitionError as exc:
        return JsonResponse({"detail": exc.messages[0]}, status=409)
    except ValidationError as exc:
        return JsonResponse({"detail": exc.messages[0]}, status=400)

    return JsonResponse(
        {
            "ok": True,
            "organization_id": str(organization.id),
            "status": organization.status,
            "review": _serialize_review(review),
        }
    )
