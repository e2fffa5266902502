import logging

from django.core.management.base import BaseCommand
from django.db import transaction

from organizations.models import (
    LEGACY_UNDER_REVIEW,
    Organization,
    OrganizationStatusEvent,
)
from organizations.state_machine import normalize_status

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = (
        "Rewrite organizations stored with the legacy 'under_review' status "
        "to 'under_review_gm'."
    )

    def add_arguments(self, parser):
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Report affected organizations without changing them.",
        )

    def handle(self, *args, **options):
        dry_run = options["dry_run"]
        legacy = Organization.objects.filter(status=LEGACY_UNDER_REVIEW)

        if dry_run:
            for organization in legacy:
                self.stdout.write(f"{organization.pk} {organization.name}")
            self.stdout.write(
                self.style.WARNING(
                    f"Dry run: {legacy.count()} organization(s) use the legacy status."
                )
            )
            return

        migrated = self._migrate(legacy)
        self.stdout.write(
            self.style.SUCCESS(f"Legacy review status migrated: organizations={migrated}")
        )

    @transaction.atomic
    def _migrate(self, queryset):
        # Alias rewrite, not a workflow transition: both values mean GM review.
        target = normalize_status(LEGACY_UNDER_REVIEW)

        count = 0
        for organization in queryset.select_for_update():
            organization.status = target
            organization.save(update_fields=["status", "updated_at"])
            OrganizationStatusEvent.objects.create(
                organization=organization,
                status_before=LEGACY_UNDER_REVIEW,
                status_after=target,
                notes="Legacy review status migrated.",
            )
            logger.info("Organization %s legacy status migrated", organization.pk)
            count += 1
        return count
