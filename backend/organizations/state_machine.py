from django.core.exceptions import ValidationError

from organizations.models import LEGACY_UNDER_REVIEW, OrganizationStatus


class OnboardingStep:
    SECTION_A = "section-a"
    SECTION_B = "section-b"
    SECTION_C = "section-c"
    REVIEW = "review"
    PARTNER_DASHBOARD = "partner-dashboard"

    values = (SECTION_A, SECTION_B, SECTION_C, REVIEW, PARTNER_DASHBOARD)


class InvalidTransitionError(ValidationError):
    def __init__(self, from_status, to_status):
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Invalid transition: {from_status} → {to_status}",
            code="invalid_transition",
        )


# "No state change is allowed outside this table."
VALID_TRANSITIONS = {
    OrganizationStatus.EMAIL_PENDING: frozenset({OrganizationStatus.A_PENDING}),
    OrganizationStatus.A_PENDING: frozenset({OrganizationStatus.B_PENDING}),
    OrganizationStatus.B_PENDING: frozenset({OrganizationStatus.C_PENDING}),
    OrganizationStatus.C_PENDING: frozenset({OrganizationStatus.UNDER_REVIEW_GM}),
    OrganizationStatus.UNDER_REVIEW_GM: frozenset(
        {
            OrganizationStatus.UNDER_REVIEW_COO,
            OrganizationStatus.CHANGES_REQUESTED,
            OrganizationStatus.REJECTED,
        }
    ),
    OrganizationStatus.UNDER_REVIEW_COO: frozenset(
        {
            OrganizationStatus.FINALIZED,
            OrganizationStatus.CHANGES_REQUESTED,
            OrganizationStatus.REJECTED,
        }
    ),
    OrganizationStatus.CHANGES_REQUESTED: frozenset(
        {
            OrganizationStatus.A_PENDING,
            OrganizationStatus.B_PENDING,
            OrganizationStatus.C_PENDING,
        }
    ),
    OrganizationStatus.REJECTED: frozenset(),
    OrganizationStatus.FINALIZED: frozenset(),
}

NEXT_STEPS = {
    OrganizationStatus.EMAIL_PENDING: OnboardingStep.SECTION_A,
    OrganizationStatus.A_PENDING: OnboardingStep.SECTION_A,
    OrganizationStatus.B_PENDING: OnboardingStep.SECTION_B,
    OrganizationStatus.C_PENDING: OnboardingStep.SECTION_C,
    OrganizationStatus.UNDER_REVIEW_GM: OnboardingStep.REVIEW,
    OrganizationStatus.UNDER_REVIEW_COO: OnboardingStep.REVIEW,
    OrganizationStatus.CHANGES_REQUESTED: OnboardingStep.REVIEW,
    OrganizationStatus.REJECTED: OnboardingStep.SECTION_A,
    OrganizationStatus.FINALIZED: OnboardingStep.PARTNER_DASHBOARD,
}

TERMINAL_STATUSES = frozenset(
    {OrganizationStatus.REJECTED, OrganizationStatus.FINALIZED}
)

REVIEW_STATUSES = frozenset(
    {OrganizationStatus.UNDER_REVIEW_GM, OrganizationStatus.UNDER_REVIEW_COO}
)


def is_valid_status(value) -> bool:
    return isinstance(value, str) and value in OrganizationStatus.values


def normalize_status(value):
    """
    Map a stored or requested status to its canonical member.

    The legacy ``under_review`` alias resolves to the GM review stage.
    Unknown values resolve to ``None``.
    """

    if not isinstance(value, str):
        return None
    if value == LEGACY_UNDER_REVIEW:
        return OrganizationStatus.UNDER_REVIEW_GM
    if value in OrganizationStatus.values:
        return OrganizationStatus(value)
    return None


def is_terminal(value) -> bool:
    return normalize_status(value) in TERMINAL_STATUSES


def allowed_transitions(from_status: str) -> frozenset:
    canonical = normalize_status(from_status)
    if canonical is None:
        # Unknown current status permits nothing.
        return frozenset()
    return VALID_TRANSITIONS[canonical]


def can_transition(from_status: str, to_status: str) -> bool:
    # Only canonical values are legal targets; the legacy alias is read-only.
    if not is_valid_status(to_status):
        return False
    return to_status in allowed_transitions(from_status)


def assert_transition(from_status: str, to_status: str) -> None:
    if can_transition(from_status, to_status):
        return
    raise InvalidTransitionError(from_status, to_status)


def next_step_from(status) -> str:
    """
    Onboarding screen for an organization at ``status``.

    Never raises: anything unrecognised routes to section A.
    """

    canonical = normalize_status(status)
    if canonical is None:
        return OnboardingStep.SECTION_A
    return NEXT_STEPS[canonical]


def client_review_status(status):
    """Collapse both review stages into the partner-facing ``under_review``."""

    if normalize_status(status) in REVIEW_STATUSES:
        return LEGACY_UNDER_REVIEW
    return status


def can_proceed(status) -> bool:
    return status == OrganizationStatus.FINALIZED
