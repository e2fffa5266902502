import json

from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group
from django.core.exceptions import PermissionDenied, ValidationError
from django.test import TestCase

from organizations.models import (
    LEGACY_UNDER_REVIEW,
    Organization,
    OrganizationStatus,
    OrganizationStatusEvent,
)
from organizations.services import return_to_section, submit_onboarding_section
from organizations.state_machine import next_step_from
from reviews.models import OnboardingReview
from reviews.services import (
    review_organization_detail,
    review_queue,
    submit_onboarding_review,
)


User = get_user_model()

Stage = OnboardingReview.Stage
Decision = OnboardingReview.Decision


class ReviewFixturesMixin:
    def setUp(self):
        self.gm_group, _ = Group.objects.get_or_create(name="Grants Manager")
        self.coo_group, _ = Group.objects.get_or_create(name="COO")
        self.admin_group, _ = Group.objects.get_or_create(name="Admin")

        self.owner = User.objects.create_user(
            username="partner",
            password="testpass123",
        )
        self.gm = User.objects.create_user(
            username="grants_manager",
            password="testpass123",
        )
        self.gm.groups.add(self.gm_group)

        self.coo = User.objects.create_user(
            username="coo",
            password="testpass123",
        )
        self.coo.groups.add(self.coo_group)

        self.admin = User.objects.create_user(
            username="admin1",
            password="testpass123",
        )
        self.admin.groups.add(self.admin_group)

    def _organization(self, status, name="Sunrise Collective"):
        return Organization.objects.create(
            name=name,
            owner=self.owner,
            status=status,
        )


class OnboardingReviewServicesTests(ReviewFixturesMixin, TestCase):
    def test_gm_approval_moves_to_coo_queue(self):
        organization = self._organization(OrganizationStatus.UNDER_REVIEW_GM)

        organization, review = submit_onboarding_review(
            organization=organization,
            reviewer=self.gm,
            stage=Stage.GM,
            decision=Decision.APPROVE,
        )

        self.assertEqual(organization.status, OrganizationStatus.UNDER_REVIEW_COO)
        self.assertEqual(review.status_before, OrganizationStatus.UNDER_REVIEW_GM)
        self.assertEqual(review.status_after, OrganizationStatus.UNDER_REVIEW_COO)

    def test_coo_approval_finalizes(self):
        organization = self._organization(OrganizationStatus.UNDER_REVIEW_COO)

        organization, _ = submit_onboarding_review(
            organization=organization,
            reviewer=self.coo,
            stage=Stage.COO,
            decision=Decision.APPROVE,
        )

        organization.refresh_from_db()
        self.assertEqual(organization.status, OrganizationStatus.FINALIZED)
        self.assertEqual(next_step_from(organization.status), "partner-dashboard")

    def test_gm_cannot_decide_at_coo_stage(self):
        organization = self._organization(OrganizationStatus.UNDER_REVIEW_COO)

        with self.assertRaises(PermissionDenied):
            submit_onboarding_review(
                organization=organization,
                reviewer=self.gm,
                stage=Stage.COO,
                decision=Decision.APPROVE,
            )

    def test_owner_cannot_self_approve(self):
        organization = self._organization(OrganizationStatus.UNDER_REVIEW_GM)

        with self.assertRaises(PermissionDenied):
            submit_onboarding_review(
                organization=organization,
                reviewer=self.owner,
                stage=Stage.GM,
                decision=Decision.APPROVE,
            )

        organization.refresh_from_db()
        self.assertEqual(organization.status, OrganizationStatus.UNDER_REVIEW_GM)

    def test_admin_can_decide_at_any_stage(self):
        organization = self._organization(OrganizationStatus.UNDER_REVIEW_COO)

        organization, _ = submit_onboarding_review(
            organization=organization,
            reviewer=self.admin,
            stage=Stage.COO,
            decision=Decision.APPROVE,
        )

        self.assertEqual(organization.status, OrganizationStatus.FINALIZED)

    def test_organization_must_be_in_stage_queue(self):
        organization = self._organization(OrganizationStatus.C_PENDING)

        with self.assertRaises(ValidationError) as ctx:
            submit_onboarding_review(
                organization=organization,
                reviewer=self.gm,
                stage=Stage.GM,
                decision=Decision.APPROVE,
            )

        self.assertEqual(ctx.exception.messages[0], "Organization not in GM queue.")

    def test_coo_cannot_skip_gm_stage(self):
        organization = self._organization(OrganizationStatus.UNDER_REVIEW_GM)

        with self.assertRaises(ValidationError):
            submit_onboarding_review(
                organization=organization,
                reviewer=self.coo,
                stage=Stage.COO,
                decision=Decision.APPROVE,
            )

    def test_legacy_alias_sits_in_gm_queue(self):
        organization = self._organization(LEGACY_UNDER_REVIEW)

        self.assertIn(organization, list(review_queue(Stage.GM)))

        organization, _ = submit_onboarding_review(
            organization=organization,
            reviewer=self.gm,
            stage=Stage.GM,
            decision=Decision.APPROVE,
        )

        self.assertEqual(organization.status, OrganizationStatus.UNDER_REVIEW_COO)

    def test_changes_requested_requires_sections(self):
        organization = self._organization(OrganizationStatus.UNDER_REVIEW_GM)

        with self.assertRaises(ValidationError):
            submit_onboarding_review(
                organization=organization,
                reviewer=self.gm,
                stage=Stage.GM,
                decision=Decision.CHANGES_REQUESTED,
            )

    def test_changes_requested_rejects_unknown_sections(self):
        organization = self._organization(OrganizationStatus.UNDER_REVIEW_GM)

        with self.assertRaises(ValidationError):
            submit_onboarding_review(
                organization=organization,
                reviewer=self.gm,
                stage=Stage.GM,
                decision=Decision.CHANGES_REQUESTED,
                sections=["z"],
            )

    def test_rejection_without_notes_uses_stock_reason(self):
        organization = self._organization(OrganizationStatus.UNDER_REVIEW_GM)

        _, review = submit_onboarding_review(
            organization=organization,
            reviewer=self.gm,
            stage=Stage.GM,
            decision=Decision.REJECT,
            notes="   ",
        )

        self.assertEqual(review.notes, "Application does not meet requirements")
        event = OrganizationStatusEvent.objects.get(organization=organization)
        self.assertEqual(event.notes, "Application does not meet requirements")

    def test_coo_rejection_stock_reason(self):
        organization = self._organization(OrganizationStatus.UNDER_REVIEW_COO)

        _, review = submit_onboarding_review(
            organization=organization,
            reviewer=self.coo,
            stage=Stage.COO,
            decision=Decision.REJECT,
        )

        self.assertEqual(review.notes, "Application does not meet final requirements")

    def test_change_request_without_notes_uses_stock_reason(self):
        organization = self._organization(OrganizationStatus.UNDER_REVIEW_GM)

        _, review = submit_onboarding_review(
            organization=organization,
            reviewer=self.gm,
            stage=Stage.GM,
            decision=Decision.CHANGES_REQUESTED,
            sections=["a"],
        )

        self.assertEqual(review.notes, "Please review and update the requested sections")

    def test_approval_keeps_notes_empty(self):
        organization = self._organization(OrganizationStatus.UNDER_REVIEW_GM)

        _, review = submit_onboarding_review(
            organization=organization,
            reviewer=self.gm,
            stage=Stage.GM,
            decision=Decision.APPROVE,
        )

        self.assertEqual(review.notes, "")

    def test_decision_from_stale_copy_is_rejected(self):
        organization = self._organization(OrganizationStatus.UNDER_REVIEW_GM)
        stale = Organization.objects.get(pk=organization.pk)
        submit_onboarding_review(
            organization=organization,
            reviewer=self.gm,
            stage=Stage.GM,
            decision=Decision.APPROVE,
        )

        # The stale copy still reads under_review_gm.
        with self.assertRaises(ValidationError) as ctx:
            submit_onboarding_review(
                organization=stale,
                reviewer=self.gm,
                stage=Stage.GM,
                decision=Decision.CHANGES_REQUESTED,
                sections=["a"],
            )

        self.assertEqual(ctx.exception.messages[0], "Organization not in GM queue.")
        organization.refresh_from_db()
        self.assertEqual(organization.status, OrganizationStatus.UNDER_REVIEW_COO)
        self.assertEqual(OnboardingReview.objects.count(), 1)

    def test_status_before_comes_from_stored_row(self):
        organization = self._organization(OrganizationStatus.UNDER_REVIEW_GM)
        stale = Organization.objects.get(pk=organization.pk)
        Organization.objects.filter(pk=organization.pk).update(
            status=OrganizationStatus.UNDER_REVIEW_COO,
        )

        stale, review = submit_onboarding_review(
            organization=stale,
            reviewer=self.coo,
            stage=Stage.COO,
            decision=Decision.APPROVE,
        )

        self.assertEqual(review.status_before, OrganizationStatus.UNDER_REVIEW_COO)
        self.assertEqual(review.status_after, OrganizationStatus.FINALIZED)
        self.assertEqual(stale.status, OrganizationStatus.FINALIZED)

    def test_detail_lists_status_history(self):
        organization = self._organization(OrganizationStatus.C_PENDING)
        submit_onboarding_section(organization=organization, section="c", data={"x": 1})

        detail, events = review_organization_detail(
            stage=Stage.GM,
            organization_id=organization.id,
        )

        self.assertEqual(detail, organization)
        self.assertEqual(
            [(e.status_before, e.status_after) for e in events],
            [(OrganizationStatus.C_PENDING, OrganizationStatus.UNDER_REVIEW_GM)],
        )

    def test_detail_outside_stage_queue(self):
        organization = self._organization(OrganizationStatus.UNDER_REVIEW_GM)

        with self.assertRaises(Organization.DoesNotExist):
            review_organization_detail(stage=Stage.COO, organization_id=organization.id)

    def test_rejection_is_terminal(self):
        organization = self._organization(OrganizationStatus.UNDER_REVIEW_COO)

        organization, review = submit_onboarding_review(
            organization=organization,
            reviewer=self.coo,
            stage=Stage.COO,
            decision=Decision.REJECT,
            notes="Registration documents could not be verified.",
        )

        self.assertEqual(organization.status, OrganizationStatus.REJECTED)
        self.assertEqual(review.sections, [])
        self.assertFalse(review_queue(Stage.COO).exists())
        self.assertFalse(review_queue(Stage.GM).exists())

    def test_coo_change_request_round_trip(self):
        organization = self._organization(OrganizationStatus.UNDER_REVIEW_COO)

        organization, review = submit_onboarding_review(
            organization=organization,
            reviewer=self.coo,
            stage=Stage.COO,
            decision=Decision.CHANGES_REQUESTED,
            notes="Bank details incomplete.",
            sections=["b"],
        )
        self.assertEqual(organization.status, OrganizationStatus.CHANGES_REQUESTED)
        self.assertEqual(review.sections, ["b"])
        self.assertEqual(next_step_from(organization.status), "review")

        return_to_section(organization=organization, section="b", actor=self.owner)

        organization.refresh_from_db()
        self.assertEqual(organization.status, OrganizationStatus.B_PENDING)
        self.assertEqual(
            list(
                OrganizationStatusEvent.objects.filter(organization=organization)
                .order_by("created_at")
                .values_list("status_after", flat=True)
            ),
            [OrganizationStatus.CHANGES_REQUESTED, OrganizationStatus.B_PENDING],
        )

    def test_invalid_stage(self):
        organization = self._organization(OrganizationStatus.UNDER_REVIEW_GM)

        with self.assertRaises(ValidationError):
            submit_onboarding_review(
                organization=organization,
                reviewer=self.admin,
                stage="ceo",
                decision=Decision.APPROVE,
            )

    def test_queue_is_oldest_first(self):
        first = self._organization(OrganizationStatus.UNDER_REVIEW_GM, name="First")
        second = self._organization(OrganizationStatus.UNDER_REVIEW_GM, name="Second")
        self._organization(OrganizationStatus.C_PENDING, name="Not yet")

        self.assertEqual(list(review_queue(Stage.GM)), [first, second])


class OnboardingReviewApiTests(ReviewFixturesMixin, TestCase):
    def _decision_url(self, stage, organization):
        return f"/api/reviews/onboarding/{stage}/{organization.id}/decision"

    def _post(self, url, payload):
        return self.client.post(
            url,
            data=json.dumps(payload),
            content_type="application/json",
        )

    def _detail_url(self, stage, organization):
        return f"/api/reviews/onboarding/{stage}/{organization.id}"

    def test_detail_shows_sections_and_history(self):
        organization = self._organization(OrganizationStatus.C_PENDING)
        organization.section_data = {"a": {"legal_name": "Sunrise"}, "b": {}}
        organization.save()
        submit_onboarding_section(organization=organization, section="c", data={})
        self.client.force_login(self.gm)

        response = self.client.get(self._detail_url("gm", organization))

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["stage"], "gm")
        self.assertEqual(body["organization"]["organization_id"], str(organization.id))
        self.assertEqual(body["section_data"]["a"], {"legal_name": "Sunrise"})
        self.assertEqual(
            [event["status_after"] for event in body["status_history"]],
            [OrganizationStatus.UNDER_REVIEW_GM],
        )
        self.assertEqual(body["reviews"], [])

    def test_detail_outside_stage_queue_is_not_found(self):
        organization = self._organization(OrganizationStatus.UNDER_REVIEW_GM)
        self.client.force_login(self.coo)

        response = self.client.get(self._detail_url("coo", organization))

        self.assertEqual(response.status_code, 404)
        self.assertEqual(
            response.json()["detail"],
            "Organization not found in COO queue.",
        )

    def test_detail_requires_role(self):
        organization = self._organization(OrganizationStatus.UNDER_REVIEW_COO)
        self.client.force_login(self.gm)

        response = self.client.get(self._detail_url("coo", organization))

        self.assertEqual(response.status_code, 403)

    def test_detail_requires_authentication(self):
        organization = self._organization(OrganizationStatus.UNDER_REVIEW_GM)

        response = self.client.get(self._detail_url("gm", organization))

        self.assertEqual(response.status_code, 401)

    def test_queue_requires_role(self):
        self.client.force_login(self.owner)

        response = self.client.get("/api/reviews/onboarding/gm/queue")

        self.assertEqual(response.status_code, 403)

    def test_queue_lists_stage_organizations(self):
        organization = self._organization(OrganizationStatus.UNDER_REVIEW_GM)
        self._organization(OrganizationStatus.UNDER_REVIEW_COO, name="Later")
        self.client.force_login(self.gm)

        response = self.client.get("/api/reviews/onboarding/gm/queue")

        self.assertEqual(response.status_code, 200)
        ids = [item["organization_id"] for item in response.json()["items"]]
        self.assertEqual(ids, [str(organization.id)])

    def test_unknown_stage_is_not_found(self):
        self.client.force_login(self.admin)

        response = self.client.get("/api/reviews/onboarding/ceo/queue")

        self.assertEqual(response.status_code, 404)

    def test_decision_requires_authentication(self):
        organization = self._organization(OrganizationStatus.UNDER_REVIEW_GM)

        response = self._post(self._decision_url("gm", organization), {"decision": "approve"})

        self.assertEqual(response.status_code, 401)

    def test_gm_approve_via_api(self):
        organization = self._organization(OrganizationStatus.UNDER_REVIEW_GM)
        self.client.force_login(self.gm)

        response = self._post(self._decision_url("gm", organization), {"decision": "approve"})

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["status"], OrganizationStatus.UNDER_REVIEW_COO)
        self.assertEqual(body["review"]["stage"], "gm")

    def test_invalid_decision(self):
        organization = self._organization(OrganizationStatus.UNDER_REVIEW_GM)
        self.client.force_login(self.gm)

        response = self._post(self._decision_url("gm", organization), {"decision": "escalate"})

        self.assertEqual(response.status_code, 400)

    def test_wrong_role_is_forbidden(self):
        organization = self._organization(OrganizationStatus.UNDER_REVIEW_COO)
        self.client.force_login(self.gm)

        response = self._post(self._decision_url("coo", organization), {"decision": "approve"})

        self.assertEqual(response.status_code, 403)

    def test_not_in_queue_is_bad_request(self):
        organization = self._organization(OrganizationStatus.FINALIZED)
        self.client.force_login(self.coo)

        response = self._post(self._decision_url("coo", organization), {"decision": "approve"})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["detail"], "Organization not in COO queue.")

    def test_sections_must_be_a_list(self):
        organization = self._organization(OrganizationStatus.UNDER_REVIEW_GM)
        self.client.force_login(self.gm)

        response = self._post(
            self._decision_url("gm", organization),
            {"decision": "changes_requested", "sections": "a"},
        )

        self.assertEqual(response.status_code, 400)

    def test_missing_organization(self):
        self.client.force_login(self.gm)

        response = self._post(
            "/api/reviews/onboarding/gm/00000000-0000-0000-0000-000000000000/decision",
            {"decision": "approve"},
        )

        self.assertEqual(response.status_code, 404)
