import json

from django.core.exceptions import ValidationError
from django.http import JsonResponse
from django.views.decorators.http import require_GET, require_POST

from organizations.models import Organization
from organizations.services import (
    create_organization,
    get_onboarding_section,
    onboarding_progress,
    return_to_section,
    review_status,
    save_onboarding_section_draft,
    submit_onboarding_section,
    verify_organization_email,
)
from organizations.state_machine import InvalidTransitionError


def _require_authenticated(request):
    if request.user.is_authenticated:
        return None
    return JsonResponse({"detail": "Authentication required."}, status=401)


def _parse_json_body(request):
    try:
        payload = json.loads(request.body or "{}")
    except json.JSONDecodeError:
        return None, JsonResponse({"detail": "Invalid JSON body."}, status=400)
    if not isinstance(payload, dict):
        return None, JsonResponse({"detail": "JSON body must be an object."}, status=400)
    return payload, None


def _load_organization(request, organization_id, *, allow_staff=False):
    """
    Return (organization, error_response).

    Owners can always act on their own organization; staff can only read.
    """

    try:
        organization = Organization.objects.get(id=organization_id)
    except Organization.DoesNotExist:
        return None, JsonResponse({"detail": "Organization not found."}, status=404)

    user = request.user
    if organization.owner_id == user.id:
        return organization, None
    if allow_staff and (user.is_staff or user.is_superuser):
        return organization, None
    return None, JsonResponse({"detail": "Access denied."}, status=403)


def _transition_error_response(exc):
    if isinstance(exc, InvalidTransitionError):
        return JsonResponse(
            {
                "detail": exc.messages[0],
                "from_status": exc.from_status,
                "to_status": exc.to_status,
            },
            status=409,
        )
    return JsonResponse({"detail": exc.messages[0]}, status=400)


def _serialize_organization(organization: Organization):
    return {
        "organization_id": str(organization.id),
        "name": organization.name,
        "status": organization.status,
        "owner_username": organization.owner.username,
        "email_verified_at": (
            organization.email_verified_at.isoformat()
            if organization.email_verified_at
            else None
        ),
        "created_at": organization.created_at.isoformat(),
        "updated_at": organization.updated_at.isoformat(),
    }


@require_POST
def create_organization_view(request):
    auth_error = _require_authenticated(request)
    if auth_error:
        return auth_error

    payload, error = _parse_json_body(request)
    if error:
        return error

    try:
        organization = create_organization(
            owner=request.user,
            name=str(payload.get("name") or ""),
        )
    except ValidationError as exc:
        return JsonResponse({"detail": exc.messages[0]}, status=400)

    return JsonResponse(_serialize_organization(organization), status=201)


@require_GET
def onboarding_progress_view(request, organization_id):
    auth_error = _require_authenticated(request)
    if auth_error:
        return auth_error

    organization, error = _load_organization(request, organization_id, allow_staff=True)
    if error:
        return error
    return JsonResponse(onboarding_progress(organization))


@require_GET
def review_status_view(request, organization_id):
    auth_error = _require_authenticated(request)
    if auth_error:
        return auth_error

    organization, error = _load_organization(request, organization_id, allow_staff=True)
    if error:
        return error
    return JsonResponse(review_status(organization))


@require_POST
def verify_email_view(request, organization_id):
    auth_error = _require_authenticated(request)
    if auth_error:
        return auth_error

    organization, error = _load_organization(request, organization_id)
    if error:
        return error

    try:
        organization = verify_organization_email(
            organization=organization,
            actor=request.user,
        )
    except ValidationError as exc:
        return _transition_error_response(exc)

    return JsonResponse(onboarding_progress(organization))


@require_GET
def onboarding_section_view(request, organization_id, section):
    auth_error = _require_authenticated(request)
    if auth_error:
        return auth_error

    organization, error = _load_organization(request, organization_id)
    if error:
        return error

    try:
        payload = get_onboarding_section(organization=organization, section=section)
    except ValidationError as exc:
        return JsonResponse({"detail": exc.messages[0]}, status=400)
    return JsonResponse(payload)


@require_POST
def save_section_draft_view(request, organization_id, section):
    auth_error = _require_authenticated(request)
    if auth_error:
        return auth_error

    organization, error = _load_organization(request, organization_id)
    if error:
        return error

    payload, error = _parse_json_body(request)
    if error:
        return error

    try:
        organization = save_onboarding_section_draft(
            organization=organization,
            section=section,
            data=payload.get("data"),
            actor=request.user,
        )
    except ValidationError as exc:
        return JsonResponse({"detail": exc.messages[0]}, status=400)

    return JsonResponse(
        {
            "detail": "Draft saved.",
            **get_onboarding_section(organization=organization, section=section),
        }
    )


@require_POST
def submit_section_view(request, organization_id, section):
    auth_error = _require_authenticated(request)
    if auth_error:
        return auth_error

    organization, error = _load_organization(request, organization_id)
    if error:
        return error

    payload, error = _parse_json_body(request)
    if error:
        return error

    data = payload.get("data") or {}
    if not isinstance(data, dict):
        return JsonResponse({"detail": "data must be an object."}, status=400)

    try:
        organization = submit_onboarding_section(
            organization=organization,
            section=section,
            data=data,
            actor=request.user,
        )
    except ValidationError as exc:
        return _transition_error_response(exc)

    return JsonResponse(onboarding_progress(organization))


@require_POST
def return_to_section_view(request, organization_id):
    auth_error = _require_authenticated(request)
    if auth_error:
        return auth_error

    organization, error = _load_organization(request, organization_id)
    if error:
        return error

    payload, error = _parse_json_body(request)
    if error:
        return error

    section = str(payload.get("section") or "").strip()
    if not section:
        return JsonResponse({"detail": "section is required."}, status=400)

    try:
        organization = return_to_section(
            organization=organization,
            section=section,
            actor=request.user,
            notes=str(payload.get("notes") or "").strip(),
        )
    except ValidationError as exc:
        return _transition_error_response(exc)

    return JsonResponse(onboarding_progress(organization))
