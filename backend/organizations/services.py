import logging

from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from organizations.models import Organization, OrganizationStatus, OrganizationStatusEvent
from organizations.state_machine import (
    InvalidTransitionError,
    assert_transition,
    can_proceed,
    client_review_status,
    is_terminal,
    next_step_from,
)

logger = logging.getLogger(__name__)

# section -> (status it is filled in at, status reached on submission)
SECTION_SUBMISSIONS = {
    Organization.Section.A: (OrganizationStatus.A_PENDING, OrganizationStatus.B_PENDING),
    Organization.Section.B: (OrganizationStatus.B_PENDING, OrganizationStatus.C_PENDING),
    Organization.Section.C: (OrganizationStatus.C_PENDING, OrganizationStatus.UNDER_REVIEW_GM),
}

SECTION_PENDING_STATUS = {
    section: pending for section, (pending, _) in SECTION_SUBMISSIONS.items()
}


def _require_section(section: str) -> str:
    if section not in Organization.Section.values:
        raise ValidationError(
            f"Unknown onboarding section: {section!r}. "
            f"Allowed: {sorted(Organization.Section.values)}"
        )
    return section


def clean_sections(sections) -> list:
    """Validate and de-duplicate a list of section codes, keeping order."""

    result = []
    for section in sections or []:
        _require_section(section)
        if section not in result:
            result.append(section)
    return result


def lock_organization(organization: Organization) -> Organization:
    """Re-read the organization row under a lock; callers must be in a transaction."""

    return Organization.objects.select_for_update().get(pk=organization.pk)


def _sync_instance(organization: Organization, locked: Organization) -> None:
    organization.status = locked.status
    organization.section_data = locked.section_data
    organization.completed_sections = locked.completed_sections
    organization.updated_at = locked.updated_at


@transaction.atomic
def transition_organization_status(
    *,
    organization: Organization,
    to_status: str,
    actor=None,
    notes="",
    sections=None,
) -> Organization:
    """
    Central organization status gate.

    Re-reads the row under a lock so that two concurrent requests cannot
    both validate against the same stale status.
    """

    locked = lock_organization(organization)
    status_before = locked.status

    try:
        assert_transition(status_before, to_status)
    except InvalidTransitionError:
        logger.warning(
            "Rejected organization status change %s: %s -> %s",
            locked.pk,
            status_before,
            to_status,
        )
        raise

    locked.status = to_status
    locked.save(update_fields=["status", "updated_at"])

    OrganizationStatusEvent.objects.create(
        organization=locked,
        actor=actor,
        status_before=status_before,
        status_after=to_status,
        notes=notes,
        sections=clean_sections(sections),
    )
    logger.info(
        "Organization %s status changed: %s -> %s",
        locked.pk,
        status_before,
        to_status,
    )

    _sync_instance(organization, locked)
    return locked


def create_organization(*, owner, name: str) -> Organization:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Organization name is required.")

    organization = Organization.objects.create(
        owner=owner,
        name=name,
        status=OrganizationStatus.EMAIL_PENDING,
    )
    logger.info("Organization %s registered by user %s", organization.pk, owner.pk)
    return organization


@transaction.atomic
def verify_organization_email(*, organization: Organization, actor=None) -> Organization:
    organization = transition_organization_status(
        organization=organization,
        to_status=OrganizationStatus.A_PENDING,
        actor=actor,
        notes="Email verified.",
    )
    organization.email_verified_at = timezone.now()
    organization.save(update_fields=["email_verified_at"])
    return organization


def _require_section_open(organization: Organization, section: str) -> None:
    if organization.status != SECTION_PENDING_STATUS[section]:
        raise ValidationError("Organization status does not allow this action.")


def _require_section_data(data) -> dict:
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Section data must be an object.")
    return data


def get_onboarding_section(*, organization: Organization, section: str) -> dict:
    _require_section(section)
    _require_section_open(organization, section)
    data = (organization.section_data or {}).get(section)
    return {
        "organization_id": str(organization.id),
        "organization_status": organization.status,
        "section": section,
        "data": data,
        "completed": section in (organization.completed_sections or []),
    }


@transaction.atomic
def save_onboarding_section_draft(
    *,
    organization: Organization,
    section: str,
    data=None,
    actor=None,
) -> Organization:
    """Store a partial section without moving the organization on."""

    _require_section(section)
    data = _require_section_data(data)

    locked = lock_organization(organization)
    _require_section_open(locked, section)

    section_data = dict(locked.section_data or {})
    section_data[section] = data
    locked.section_data = section_data
    locked.save(update_fields=["section_data", "updated_at"])
    logger.info(
        "Organization %s section %s draft saved by user %s",
        locked.pk,
        section,
        actor.pk if actor else None,
    )

    _sync_instance(organization, locked)
    return locked


@transaction.atomic
def submit_onboarding_section(
    *,
    organization: Organization,
    section: str,
    data=None,
    actor=None,
) -> Organization:
    _require_section(section)
    data = _require_section_data(data)
    _, next_status = SECTION_SUBMISSIONS[section]

    # The stage check must see the stored status, not the caller's copy.
    locked = lock_organization(organization)
    _require_section_open(locked, section)

    locked = transition_organization_status(
        organization=locked,
        to_status=next_status,
        actor=actor,
        sections=[section],
    )

    section_data = dict(locked.section_data or {})
    section_data[section] = data
    locked.section_data = section_data
    completed = [s for s in (locked.completed_sections or []) if s != section]
    locked.completed_sections = sorted(completed + [section])
    locked.save(update_fields=["section_data", "completed_sections"])

    _sync_instance(organization, locked)
    return locked


@transaction.atomic
def return_to_section(
    *,
    organization: Organization,
    section: str,
    actor=None,
    notes="",
) -> Organization:
    """
    Send an organization with requested changes back to one section.

    The caller picks the section; the status machine only checks that the
    organization is currently at ``changes_requested``. The reopened section
    no longer counts as completed.
    """

    _require_section(section)
    locked = transition_organization_status(
        organization=organization,
        to_status=SECTION_PENDING_STATUS[section],
        actor=actor,
        notes=notes,
        sections=[section],
    )

    locked.completed_sections = [
        s for s in (locked.completed_sections or []) if s != section
    ]
    locked.save(update_fields=["completed_sections"])

    _sync_instance(organization, locked)
    return locked


def latest_change_request(organization: Organization):
    return (
        organization.status_events.filter(
            status_after=OrganizationStatus.CHANGES_REQUESTED,
        )
        .order_by("-created_at")
        .first()
    )


def onboarding_progress(organization: Organization) -> dict:
    return {
        "organization_id": str(organization.id),
        "status": organization.status,
        "next_step": next_step_from(organization.status),
        "completed_sections": sorted(organization.completed_sections or []),
        "is_terminal": is_terminal(organization.status),
    }


def review_status(organization: Organization) -> dict:
    flags = []
    if organization.status == OrganizationStatus.CHANGES_REQUESTED:
        change_request = latest_change_request(organization)
        if change_request:
            flags = list(change_request.sections or [])

    return {
        "organization_id": str(organization.id),
        "organization_status": client_review_status(organization.status),
        "flags": flags,
        "can_proceed": can_proceed(organization.status),
    }
