import uuid

from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Organization",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("name", models.CharField(max_length=255)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("email_pending", "Email Pending"),
                            ("a_pending", "Section A Pending"),
                            ("b_pending", "Section B Pending"),
                            ("c_pending", "Section C Pending"),
                            ("under_review_gm", "Under Review (Grants Manager)"),
                            ("under_review_coo", "Under Review (COO)"),
                            ("changes_requested", "Changes Requested"),
                            ("rejected", "Rejected"),
                            ("finalized", "Finalized"),
                            ("under_review", "Under Review (legacy)"),
                        ],
                        default="email_pending",
                        max_length=30,
                    ),
                ),
                (
                    "section_data",
                    models.JSONField(
                        blank=True,
                        default=dict,
                        help_text="Submitted onboarding data keyed by section (a, b, c).",
                    ),
                ),
                ("email_verified_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "owner",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="organizations",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={"ordering": ["created_at"]},
        ),
        migrations.CreateModel(
            name="OrganizationStatusEvent",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("status_before", models.CharField(max_length=30)),
                ("status_after", models.CharField(max_length=30)),
                ("notes", models.TextField(blank=True)),
                ("sections", models.JSONField(blank=True, default=list)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "actor",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="organization_status_events",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "organization",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="status_events",
                        to="organizations.organization",
                    ),
                ),
            ],
            options={"ordering": ["created_at"]},
        ),
    ]
