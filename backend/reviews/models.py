import uuid
from django.conf import settings
from django.db import models
from organizations.models import Organization


class OnboardingReview(models.Model):
    class Stage(models.TextChoices):
        GM = "gm", "Grants Manager"
        COO = "coo", "Chief Operating Officer"

    class Decision(models.TextChoices):
        APPROVE = "approve", "Approve"
        CHANGES_REQUESTED = "changes_requested", "Request Changes"
        REJECT = "reject", "Reject"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    organization = models.ForeignKey(
        Organization,
        on_delete=models.CASCADE,
        related_name="reviews",
    )

    reviewer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="onboarding_reviews_given",
    )

    stage = models.CharField(max_length=10, choices=Stage.choices)

    decision = models.CharField(
        max_length=20,
        choices=Decision.choices,
    )

    sections = models.JSONField(default=list, blank=True)
    notes = models.TextField(blank=True)

    status_before = models.CharField(max_length=30)
    status_after = models.CharField(max_length=30)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at"]

    def __str__(self):
        return f"{self.reviewer} → {self.decision} ({self.stage})"
