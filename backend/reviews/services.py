"""
reviews/services.py

Two-tier review of partner organization onboarding.

This file controls:
- Reviewer role checks
- Stage queues (Grants Manager, COO)
- Mapping review decisions to organization status changes
"""

import logging

from django.core.exceptions import PermissionDenied, ValidationError
from django.db import transaction

from .models import OnboardingReview
from organizations.models import LEGACY_UNDER_REVIEW, Organization, OrganizationStatus
from organizations.services import (
    clean_sections,
    lock_organization,
    transition_organization_status,
)

logger = logging.getLogger(__name__)

GRANTS_MANAGER_GROUP = "Grants Manager"
COO_GROUP = "COO"
ADMIN_GROUP = "Admin"

STAGE_GROUPS = {
    OnboardingReview.Stage.GM: GRANTS_MANAGER_GROUP,
    OnboardingReview.Stage.COO: COO_GROUP,
}

# Statuses an organization must be at to sit in a stage's queue.
STAGE_STATUSES = {
    OnboardingReview.Stage.GM: (
        OrganizationStatus.UNDER_REVIEW_GM,
        LEGACY_UNDER_REVIEW,
    ),
    OnboardingReview.Stage.COO: (OrganizationStatus.UNDER_REVIEW_COO,),
}

APPROVAL_TARGETS = {
    OnboardingReview.Stage.GM: OrganizationStatus.UNDER_REVIEW_COO,
    OnboardingReview.Stage.COO: OrganizationStatus.FINALIZED,
}

QUEUE_NAMES = {
    OnboardingReview.Stage.GM: "GM",
    OnboardingReview.Stage.COO: "COO",
}

DEFAULT_REASONS = {
    (OnboardingReview.Stage.GM, OnboardingReview.Decision.CHANGES_REQUESTED): (
        "Please review and update the requested sections"
    ),
    (OnboardingReview.Stage.COO, OnboardingReview.Decision.CHANGES_REQUESTED): (
        "Please review and update the requested sections"
    ),
    (OnboardingReview.Stage.GM, OnboardingReview.Decision.REJECT): (
        "Application does not meet requirements"
    ),
    (OnboardingReview.Stage.COO, OnboardingReview.Decision.REJECT): (
        "Application does not meet final requirements"
    ),
}


# ============================================================
# ROLE HELPERS
# ============================================================

def is_admin(user):
    """Return True if user is admin (superuser OR Admin group)."""
    return user.is_superuser or user.groups.filter(name=ADMIN_GROUP).exists()


def can_review_stage(user, stage):
    if not user.is_authenticated:
        return False
    if is_admin(user):
        return True
    return user.groups.filter(name=STAGE_GROUPS[stage]).exists()


def _require_stage(stage):
    if stage not in OnboardingReview.Stage.values:
        raise ValidationError(
            f"Invalid review stage. Allowed: {sorted(OnboardingReview.Stage.values)}"
        )
    return stage


# ============================================================
# QUEUES
# ============================================================

def review_queue(stage):
    _require_stage(stage)
    return (
        Organization.objects.filter(status__in=STAGE_STATUSES[stage])
        .select_related("owner")
        .order_by("created_at")
    )


def review_organization_detail(*, stage, organization_id):
    """
    Organization as a reviewer at ``stage`` sees it.

    Raises ``Organization.DoesNotExist`` unless it sits in that stage's queue.
    """

    _require_stage(stage)
    organization = review_queue(stage).get(id=organization_id)
    return organization, list(
        organization.status_events.select_related("actor").order_by("created_at")
    )


# ============================================================
# DECISIONS
# ============================================================

def target_status_for(stage, decision):
    if decision == OnboardingReview.Decision.APPROVE:
        return APPROVAL_TARGETS[stage]
    if decision == OnboardingReview.Decision.CHANGES_REQUESTED:
        return OrganizationStatus.CHANGES_REQUESTED
    if decision == OnboardingReview.Decision.REJECT:
        return OrganizationStatus.REJECTED
    raise ValidationError(
        f"Invalid decision. Allowed: {sorted(OnboardingReview.Decision.values)}"
    )


@transaction.atomic
def submit_onboarding_review(
    *,
    organization: Organization,
    reviewer,
    stage,
    decision,
    notes="",
    sections=None,
):
    """
    Record a reviewer decision and move the organization accordingly.

    Rules:
    - GM approval hands over to the COO queue; only COO approval finalizes.
    - Either stage may request changes (naming the sections to fix) or reject.
    - Missing notes on a change request or rejection fall back to a stock reason.
    """

    _require_stage(stage)
    if not can_review_stage(reviewer, stage):
        raise PermissionDenied(
            f"Only {STAGE_GROUPS[stage]} reviewers can decide at this stage."
        )

    to_status = target_status_for(stage, decision)
    notes = (notes or "").strip()
    sections = clean_sections(sections)

    if decision == OnboardingReview.Decision.CHANGES_REQUESTED and not sections:
        raise ValidationError("Requesting changes requires at least one section.")
    if decision != OnboardingReview.Decision.CHANGES_REQUESTED:
        sections = []
    if not notes:
        notes = DEFAULT_REASONS.get((stage, decision), "")

    # Stage check runs against the locked row, not the reviewer's copy.
    locked = lock_organization(organization)
    if locked.status not in STAGE_STATUSES[stage]:
        raise ValidationError(f"Organization not in {QUEUE_NAMES[stage]} queue.")

    status_before = locked.status
    locked = transition_organization_status(
        organization=locked,
        to_status=to_status,
        actor=reviewer,
        notes=notes,
        sections=sections,
    )
    organization.status = locked.status
    organization.updated_at = locked.updated_at

    review = OnboardingReview.objects.create(
        organization=locked,
        reviewer=reviewer,
        stage=stage,
        decision=decision,
        sections=sections,
        notes=notes,
        status_before=status_before,
        status_after=locked.status,
    )
    logger.info(
        "%s review of organization %s by user %s: %s",
        QUEUE_NAMES[stage],
        locked.pk,
        reviewer.pk,
        decision,
    )
    return locked, review
