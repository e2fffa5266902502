import uuid
from django.conf import settings
from django.db import models


class OrganizationStatus(models.TextChoices):
    EMAIL_PENDING = "email_pending", "Email Pending"
    A_PENDING = "a_pending", "Section A Pending"
    B_PENDING = "b_pending", "Section B Pending"
    C_PENDING = "c_pending", "Section C Pending"
    UNDER_REVIEW_GM = "under_review_gm", "Under Review (Grants Manager)"
    UNDER_REVIEW_COO = "under_review_coo", "Under Review (COO)"
    CHANGES_REQUESTED = "changes_requested", "Changes Requested"
    REJECTED = "rejected", "Rejected"
    FINALIZED = "finalized", "Finalized"


# Older records were written before the review stage was split in two.
LEGACY_UNDER_REVIEW = "under_review"

STATUS_CHOICES = OrganizationStatus.choices + [
    (LEGACY_UNDER_REVIEW, "Under Review (legacy)"),
]


class Organization(models.Model):
    class Section(models.TextChoices):
        A = "a", "Section A"
        B = "b", "Section B"
        C = "c", "Section C"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    name = models.CharField(max_length=255)

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="organizations",
    )

    # Only written through organizations.services.transition_organization_status.
    status = models.CharField(
        max_length=30,
        choices=STATUS_CHOICES,
        default=OrganizationStatus.EMAIL_PENDING,
    )

    section_data = models.JSONField(
        default=dict,
        blank=True,
        help_text="Submitted onboarding data keyed by section (a, b, c).",
    )
    completed_sections = models.JSONField(
        default=list,
        blank=True,
        help_text="Sections submitted and not reopened by a change request.",
    )

    email_verified_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["created_at"]

    def __str__(self):
        return f"{self.name} ({self.status})"


class OrganizationStatusEvent(models.Model):
    """
    Append-only audit trail of organization status changes.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    organization = models.ForeignKey(
        Organization,
        on_delete=models.CASCADE,
        related_name="status_events",
    )

    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="organization_status_events",
    )

    status_before = models.CharField(max_length=30)
    status_after = models.CharField(max_length=30)

    notes = models.TextField(blank=True)
    sections = models.JSONField(default=list, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at"]

    def __str__(self):
        return f"{self.organization_id}: {self.status_before}->{self.status_after}"
