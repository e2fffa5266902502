import json
from io import StringIO

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.core.management import call_command
from django.test import SimpleTestCase, TestCase

from organizations.models import (
    LEGACY_UNDER_REVIEW,
    Organization,
    OrganizationStatus,
    OrganizationStatusEvent,
)
from organizations.services import (
    create_organization,
    get_onboarding_section,
    onboarding_progress,
    return_to_section,
    review_status,
    save_onboarding_section_draft,
    submit_onboarding_section,
    transition_organization_status,
    verify_organization_email,
)
from organizations.state_machine import (
    NEXT_STEPS,
    VALID_TRANSITIONS,
    InvalidTransitionError,
    OnboardingStep,
    allowed_transitions,
    assert_transition,
    can_transition,
    client_review_status,
    is_terminal,
    is_valid_status,
    next_step_from,
    normalize_status,
)


User = get_user_model()

S = OrganizationStatus

EXPECTED_TRANSITIONS = {
    S.EMAIL_PENDING: {S.A_PENDING},
    S.A_PENDING: {S.B_PENDING},
    S.B_PENDING: {S.C_PENDING},
    S.C_PENDING: {S.UNDER_REVIEW_GM},
    LEGACY_UNDER_REVIEW: {S.UNDER_REVIEW_COO, S.CHANGES_REQUESTED, S.REJECTED},
    S.UNDER_REVIEW_GM: {S.UNDER_REVIEW_COO, S.CHANGES_REQUESTED, S.REJECTED},
    S.UNDER_REVIEW_COO: {S.FINALIZED, S.CHANGES_REQUESTED, S.REJECTED},
    S.CHANGES_REQUESTED: {S.A_PENDING, S.B_PENDING, S.C_PENDING},
    S.REJECTED: set(),
    S.FINALIZED: set(),
}

EXPECTED_STEPS = {
    S.A_PENDING: "section-a",
    S.B_PENDING: "section-b",
    S.C_PENDING: "section-c",
    LEGACY_UNDER_REVIEW: "review",
    S.UNDER_REVIEW_GM: "review",
    S.UNDER_REVIEW_COO: "review",
    S.CHANGES_REQUESTED: "review",
    S.FINALIZED: "partner-dashboard",
    S.EMAIL_PENDING: "section-a",
    S.REJECTED: "section-a",
}

ALL_TARGETS = list(S.values) + [LEGACY_UNDER_REVIEW, "bogus", ""]


class NextStepTests(SimpleTestCase):
    def test_every_status_routes_to_expected_step(self):
        for status, step in EXPECTED_STEPS.items():
            with self.subTest(status=status):
                self.assertEqual(next_step_from(status), step)

    def test_unknown_values_fall_back_to_section_a(self):
        for value in ("bogus", "", None, 42, "UNDER_REVIEW_GM", ["a_pending"]):
            with self.subTest(value=value):
                self.assertEqual(next_step_from(value), OnboardingStep.SECTION_A)

    def test_steps_are_within_closed_set(self):
        for status in ALL_TARGETS:
            self.assertIn(next_step_from(status), OnboardingStep.values)

    def test_every_canonical_status_has_a_step(self):
        self.assertEqual(set(NEXT_STEPS), set(S))


class AssertTransitionTests(SimpleTestCase):
    def test_every_canonical_status_has_a_transition_row(self):
        self.assertEqual(set(VALID_TRANSITIONS), set(S))

    def test_allowed_pairs_pass(self):
        for from_status, targets in EXPECTED_TRANSITIONS.items():
            for to_status in targets:
                with self.subTest(from_status=from_status, to_status=to_status):
                    self.assertIsNone(assert_transition(from_status, to_status))

    def test_disallowed_pairs_fail_with_both_values_in_message(self):
        for from_status, targets in EXPECTED_TRANSITIONS.items():
            for to_status in ALL_TARGETS:
                if to_status in targets:
                    continue
                with self.subTest(from_status=from_status, to_status=to_status):
                    with self.assertRaises(InvalidTransitionError) as ctx:
                        assert_transition(from_status, to_status)
                    message = ctx.exception.messages[0]
                    self.assertIn(str(from_status), message)
                    self.assertIn(str(to_status), message)

    def test_error_message_format_and_attributes(self):
        with self.assertRaises(InvalidTransitionError) as ctx:
            assert_transition("a_pending", "c_pending")

        self.assertEqual(
            ctx.exception.messages[0],
            "Invalid transition: a_pending → c_pending",
        )
        self.assertEqual(ctx.exception.from_status, "a_pending")
        self.assertEqual(ctx.exception.to_status, "c_pending")
        self.assertEqual(ctx.exception.code, "invalid_transition")
        self.assertIsInstance(ctx.exception, ValidationError)

    def test_unknown_from_status_is_fail_closed(self):
        for from_status in ("bogus", "", None, "Under_Review_GM"):
            self.assertEqual(allowed_transitions(from_status), frozenset())
            for to_status in S.values:
                with self.assertRaises(InvalidTransitionError):
                    assert_transition(from_status, to_status)

    def test_none_target_is_rejected(self):
        with self.assertRaises(InvalidTransitionError):
            assert_transition(S.EMAIL_PENDING, None)

    def test_terminal_states_allow_nothing(self):
        for terminal in (S.REJECTED, S.FINALIZED):
            for to_status in ALL_TARGETS:
                self.assertFalse(can_transition(terminal, to_status))

    def test_nothing_returns_to_email_pending(self):
        for from_status in EXPECTED_TRANSITIONS:
            self.assertFalse(can_transition(from_status, S.EMAIL_PENDING))

    def test_legacy_alias_is_never_a_target(self):
        for from_status in EXPECTED_TRANSITIONS:
            self.assertFalse(can_transition(from_status, LEGACY_UNDER_REVIEW))

    def test_legacy_alias_moves_to_coo_review(self):
        assert_transition("under_review", "under_review_coo")

    def test_review_stages_cannot_be_skipped(self):
        self.assertFalse(can_transition(S.C_PENDING, S.UNDER_REVIEW_COO))
        self.assertFalse(can_transition(S.C_PENDING, S.FINALIZED))
        self.assertFalse(can_transition(S.UNDER_REVIEW_GM, S.FINALIZED))

    def test_changes_requested_only_reachable_from_review_stages(self):
        sources = {
            status
            for status, targets in EXPECTED_TRANSITIONS.items()
            if S.CHANGES_REQUESTED in targets
        }
        self.assertEqual(
            sources,
            {LEGACY_UNDER_REVIEW, S.UNDER_REVIEW_GM, S.UNDER_REVIEW_COO},
        )

    def test_calls_are_repeatable(self):
        self.assertEqual(next_step_from("b_pending"), next_step_from("b_pending"))
        assert_transition("b_pending", "c_pending")
        assert_transition("b_pending", "c_pending")
        for _ in range(2):
            with self.assertRaises(InvalidTransitionError):
                assert_transition("finalized", "a_pending")


class StatusHelperTests(SimpleTestCase):
    def test_normalize_status(self):
        self.assertEqual(normalize_status("under_review"), S.UNDER_REVIEW_GM)
        self.assertEqual(normalize_status("finalized"), S.FINALIZED)
        self.assertIsNone(normalize_status("approved"))
        self.assertIsNone(normalize_status(None))

    def test_is_valid_status_excludes_legacy_alias(self):
        self.assertTrue(is_valid_status("c_pending"))
        self.assertFalse(is_valid_status(LEGACY_UNDER_REVIEW))
        self.assertFalse(is_valid_status(None))

    def test_is_terminal(self):
        self.assertTrue(is_terminal("rejected"))
        self.assertTrue(is_terminal("finalized"))
        self.assertFalse(is_terminal("changes_requested"))
        self.assertFalse(is_terminal("bogus"))

    def test_client_review_status_collapses_review_stages(self):
        self.assertEqual(client_review_status("under_review_gm"), "under_review")
        self.assertEqual(client_review_status("under_review_coo"), "under_review")
        self.assertEqual(client_review_status("under_review"), "under_review")
        self.assertEqual(client_review_status("changes_requested"), "changes_requested")


class OnboardingScenarioTests(SimpleTestCase):
    def test_email_verification_opens_section_a(self):
        assert_transition("email_pending", "a_pending")
        self.assertEqual(next_step_from("a_pending"), "section-a")

    def test_section_c_submission_lands_in_gm_review_only(self):
        assert_transition("c_pending", "under_review_gm")
        with self.assertRaises(InvalidTransitionError):
            assert_transition("c_pending", "finalized")

    def test_coo_change_request_returns_to_section_b(self):
        assert_transition("under_review_coo", "changes_requested")
        assert_transition("changes_requested", "b_pending")
        self.assertEqual(next_step_from("changes_requested"), "review")

    def test_finalized_is_locked(self):
        assert_transition("under_review_coo", "finalized")
        with self.assertRaises(InvalidTransitionError):
            assert_transition("finalized", "a_pending")


class OrganizationServicesTests(TestCase):
    def setUp(self):
        self.owner = User.objects.create_user(
            username="partner_owner",
            password="testpass123",
        )

    def _organization(self, status=S.EMAIL_PENDING):
        return Organization.objects.create(
            name="Hope Partners",
            owner=self.owner,
            status=status,
        )

    def test_create_organization_starts_at_email_pending(self):
        organization = create_organization(owner=self.owner, name="  Hope Partners ")

        self.assertEqual(organization.status, S.EMAIL_PENDING)
        self.assertEqual(organization.name, "Hope Partners")

    def test_create_organization_requires_name(self):
        with self.assertRaises(ValidationError):
            create_organization(owner=self.owner, name="   ")

    def test_transition_persists_and_records_event(self):
        organization = self._organization(status=S.B_PENDING)

        with self.assertLogs("organizations.services", level="INFO"):
            transition_organization_status(
                organization=organization,
                to_status=S.C_PENDING,
                actor=self.owner,
                notes="Section B done.",
            )

        organization.refresh_from_db()
        self.assertEqual(organization.status, S.C_PENDING)
        event = OrganizationStatusEvent.objects.get(organization=organization)
        self.assertEqual(event.status_before, S.B_PENDING)
        self.assertEqual(event.status_after, S.C_PENDING)
        self.assertEqual(event.actor, self.owner)
        self.assertEqual(event.notes, "Section B done.")

    def test_transition_keeps_caller_instance_in_sync(self):
        organization = self._organization(status=S.A_PENDING)

        transition_organization_status(organization=organization, to_status=S.B_PENDING)

        self.assertEqual(organization.status, S.B_PENDING)

    def test_invalid_transition_leaves_status_untouched(self):
        organization = self._organization(status=S.A_PENDING)

        with self.assertLogs("organizations.services", level="WARNING"):
            with self.assertRaises(InvalidTransitionError):
                transition_organization_status(
                    organization=organization,
                    to_status=S.C_PENDING,
                )

        organization.refresh_from_db()
        self.assertEqual(organization.status, S.A_PENDING)
        self.assertFalse(OrganizationStatusEvent.objects.exists())

    def test_transition_validates_against_stored_status(self):
        organization = self._organization(status=S.A_PENDING)
        stale = Organization.objects.get(pk=organization.pk)

        transition_organization_status(organization=organization, to_status=S.B_PENDING)

        # The stale copy still believes it is at a_pending.
        with self.assertRaises(InvalidTransitionError):
            transition_organization_status(organization=stale, to_status=S.B_PENDING)

    def test_verify_email_moves_to_section_a(self):
        organization = self._organization()

        organization = verify_organization_email(organization=organization, actor=self.owner)

        organization.refresh_from_db()
        self.assertEqual(organization.status, S.A_PENDING)
        self.assertIsNotNone(organization.email_verified_at)

    def test_verify_email_twice_fails(self):
        organization = self._organization()
        verify_organization_email(organization=organization)

        with self.assertRaises(InvalidTransitionError):
            verify_organization_email(organization=organization)

    def test_sections_advance_one_at_a_time(self):
        organization = self._organization(status=S.A_PENDING)

        submit_onboarding_section(
            organization=organization,
            section="a",
            data={"legal_name": "Hope Partners Ltd"},
        )
        submit_onboarding_section(organization=organization, section="b", data={"bank": "X"})
        submit_onboarding_section(organization=organization, section="c", data={})

        organization.refresh_from_db()
        self.assertEqual(organization.status, S.UNDER_REVIEW_GM)
        self.assertEqual(
            organization.section_data["a"],
            {"legal_name": "Hope Partners Ltd"},
        )
        self.assertEqual(sorted(organization.section_data), ["a", "b", "c"])
        self.assertEqual(organization.completed_sections, ["a", "b", "c"])

    def test_section_out_of_order_is_rejected(self):
        organization = self._organization(status=S.A_PENDING)

        with self.assertRaises(ValidationError) as ctx:
            submit_onboarding_section(organization=organization, section="c", data={})

        self.assertIn("does not allow", ctx.exception.messages[0])
        organization.refresh_from_db()
        self.assertEqual(organization.status, S.A_PENDING)

    def test_unknown_section_is_rejected(self):
        organization = self._organization(status=S.A_PENDING)

        with self.assertRaises(ValidationError):
            submit_onboarding_section(organization=organization, section="d", data={})

    def test_return_to_section_after_changes_requested(self):
        organization = self._organization(status=S.CHANGES_REQUESTED)

        return_to_section(organization=organization, section="b", actor=self.owner)

        organization.refresh_from_db()
        self.assertEqual(organization.status, S.B_PENDING)

    def test_return_to_section_requires_changes_requested(self):
        organization = self._organization(status=S.UNDER_REVIEW_GM)

        with self.assertRaises(InvalidTransitionError):
            return_to_section(organization=organization, section="a")

    def test_section_submit_from_stale_copy_is_rejected(self):
        organization = self._organization(status=S.A_PENDING)
        stale = Organization.objects.get(pk=organization.pk)
        Organization.objects.filter(pk=organization.pk).update(
            status=S.CHANGES_REQUESTED,
            section_data={"a": {"legal_name": "Stored"}},
        )

        with self.assertRaises(ValidationError) as ctx:
            submit_onboarding_section(
                organization=stale,
                section="a",
                data={"legal_name": "Overwritten"},
            )

        self.assertEqual(
            ctx.exception.messages[0],
            "Organization status does not allow this action.",
        )
        organization.refresh_from_db()
        self.assertEqual(organization.status, S.CHANGES_REQUESTED)
        self.assertEqual(organization.section_data["a"], {"legal_name": "Stored"})
        self.assertFalse(OrganizationStatusEvent.objects.exists())

    def test_section_submit_keeps_caller_instance_in_sync(self):
        organization = self._organization(status=S.A_PENDING)

        submit_onboarding_section(organization=organization, section="a", data={"x": 1})

        self.assertEqual(organization.status, S.B_PENDING)
        self.assertEqual(organization.completed_sections, ["a"])

    def test_draft_save_keeps_status(self):
        organization = self._organization(status=S.B_PENDING)

        save_onboarding_section_draft(
            organization=organization,
            section="b",
            data={"bank_name": "First Bank"},
            actor=self.owner,
        )

        organization.refresh_from_db()
        self.assertEqual(organization.status, S.B_PENDING)
        self.assertEqual(organization.section_data["b"], {"bank_name": "First Bank"})
        self.assertEqual(organization.completed_sections, [])
        self.assertFalse(OrganizationStatusEvent.objects.exists())

    def test_draft_is_replaced_by_submission(self):
        organization = self._organization(status=S.B_PENDING)
        save_onboarding_section_draft(organization=organization, section="b", data={"bank_name": "Draft"})

        submit_onboarding_section(organization=organization, section="b", data={"bank_name": "Final"})

        organization.refresh_from_db()
        self.assertEqual(organization.section_data["b"], {"bank_name": "Final"})
        self.assertEqual(organization.status, S.C_PENDING)

    def test_draft_save_requires_section_to_be_open(self):
        organization = self._organization(status=S.A_PENDING)

        with self.assertRaises(ValidationError):
            save_onboarding_section_draft(organization=organization, section="b", data={})

    def test_draft_save_checks_stored_status(self):
        organization = self._organization(status=S.A_PENDING)
        stale = Organization.objects.get(pk=organization.pk)
        Organization.objects.filter(pk=organization.pk).update(status=S.UNDER_REVIEW_GM)

        with self.assertRaises(ValidationError):
            save_onboarding_section_draft(organization=stale, section="a", data={"x": 1})

        organization.refresh_from_db()
        self.assertEqual(organization.section_data, {})

    def test_draft_save_rejects_non_object_data(self):
        organization = self._organization(status=S.A_PENDING)

        with self.assertRaises(ValidationError):
            save_onboarding_section_draft(organization=organization, section="a", data=["x"])

    def test_get_section_returns_saved_draft(self):
        organization = self._organization(status=S.A_PENDING)
        save_onboarding_section_draft(organization=organization, section="a", data={"legal_name": "H"})

        section = get_onboarding_section(organization=organization, section="a")

        self.assertEqual(section["data"], {"legal_name": "H"})
        self.assertEqual(section["organization_status"], S.A_PENDING)
        self.assertFalse(section["completed"])

    def test_get_section_with_nothing_saved(self):
        organization = self._organization(status=S.C_PENDING)

        section = get_onboarding_section(organization=organization, section="c")

        self.assertIsNone(section["data"])

    def test_get_section_requires_section_to_be_open(self):
        organization = self._organization(status=S.UNDER_REVIEW_GM)

        with self.assertRaises(ValidationError):
            get_onboarding_section(organization=organization, section="a")

    def test_reopened_section_is_no_longer_completed(self):
        organization = self._organization(status=S.A_PENDING)
        for section in ("a", "b", "c"):
            submit_onboarding_section(organization=organization, section=section, data={})
        transition_organization_status(
            organization=organization,
            to_status=S.CHANGES_REQUESTED,
            sections=["b"],
        )

        return_to_section(organization=organization, section="b")

        progress = onboarding_progress(organization)
        self.assertEqual(progress["completed_sections"], ["a", "c"])
        self.assertEqual(progress["next_step"], "section-b")
        organization.refresh_from_db()
        self.assertEqual(organization.completed_sections, ["a", "c"])

        submit_onboarding_section(organization=organization, section="b", data={})
        organization.refresh_from_db()
        self.assertEqual(organization.completed_sections, ["a", "b", "c"])

    def test_progress_reports_next_step(self):
        organization = self._organization(status=S.B_PENDING)
        organization.completed_sections = ["a"]
        organization.save()

        progress = onboarding_progress(organization)

        self.assertEqual(progress["status"], S.B_PENDING)
        self.assertEqual(progress["next_step"], "section-b")
        self.assertEqual(progress["completed_sections"], ["a"])
        self.assertFalse(progress["is_terminal"])

    def test_review_status_flags_requested_sections(self):
        organization = self._organization(status=S.UNDER_REVIEW_GM)
        transition_organization_status(
            organization=organization,
            to_status=S.CHANGES_REQUESTED,
            sections=["c", "a", "c"],
        )

        status = review_status(organization)

        self.assertEqual(status["organization_status"], S.CHANGES_REQUESTED)
        self.assertEqual(status["flags"], ["c", "a"])
        self.assertFalse(status["can_proceed"])

    def test_review_status_collapses_review_stages(self):
        organization = self._organization(status=S.UNDER_REVIEW_COO)

        status = review_status(organization)

        self.assertEqual(status["organization_status"], "under_review")
        self.assertEqual(status["flags"], [])


class OrganizationApiTests(TestCase):
    def setUp(self):
        self.owner = User.objects.create_user(
            username="api_owner",
            password="testpass123",
        )
        self.other = User.objects.create_user(
            username="api_other",
            password="testpass123",
        )
        self.staff = User.objects.create_user(
            username="api_staff",
            password="testpass123",
            is_staff=True,
        )
        self.organization = Organization.objects.create(
            name="River Trust",
            owner=self.owner,
        )

    def _post(self, url, payload=None):
        return self.client.post(
            url,
            data=json.dumps(payload or {}),
            content_type="application/json",
        )

    def _url(self, suffix):
        return f"/api/organizations/{self.organization.id}/{suffix}"

    def test_create_requires_authentication(self):
        response = self._post("/api/organizations/create", {"name": "X"})
        self.assertEqual(response.status_code, 401)

    def test_create_organization(self):
        self.client.force_login(self.owner)

        response = self._post("/api/organizations/create", {"name": "New Partner"})

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["status"], S.EMAIL_PENDING)

    def test_create_rejects_invalid_json(self):
        self.client.force_login(self.owner)

        response = self.client.post(
            "/api/organizations/create",
            data="{not json",
            content_type="application/json",
        )

        self.assertEqual(response.status_code, 400)

    def test_full_onboarding_flow_through_api(self):
        self.client.force_login(self.owner)

        response = self._post(self._url("verify-email"))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["next_step"], "section-a")

        response = self._post(self._url("sections/a/submit"), {"data": {"name": "River"}})
        self.assertEqual(response.json()["next_step"], "section-b")

        response = self._post(self._url("sections/b/submit"), {"data": {}})
        self.assertEqual(response.json()["next_step"], "section-c")

        response = self._post(self._url("sections/c/submit"), {"data": {}})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], S.UNDER_REVIEW_GM)
        self.assertEqual(response.json()["next_step"], "review")

    def test_invalid_transition_returns_conflict(self):
        self.client.force_login(self.owner)
        self.organization.status = S.FINALIZED
        self.organization.save()

        response = self._post(self._url("return-to-section"), {"section": "a"})

        self.assertEqual(response.status_code, 409)
        body = response.json()
        self.assertEqual(body["from_status"], S.FINALIZED)
        self.assertEqual(body["to_status"], S.A_PENDING)
        self.assertIn("finalized", body["detail"])

    def test_section_out_of_order_returns_bad_request(self):
        self.client.force_login(self.owner)
        self.organization.status = S.A_PENDING
        self.organization.save()

        response = self._post(self._url("sections/b/submit"), {"data": {}})

        self.assertEqual(response.status_code, 400)

    def test_return_to_section_requires_section(self):
        self.client.force_login(self.owner)

        response = self._post(self._url("return-to-section"), {})

        self.assertEqual(response.status_code, 400)

    def test_other_user_cannot_act(self):
        self.client.force_login(self.other)

        response = self._post(self._url("verify-email"))

        self.assertEqual(response.status_code, 403)

    def test_staff_can_read_progress_but_not_act(self):
        self.client.force_login(self.staff)

        progress = self.client.get(self._url("progress"))
        action = self._post(self._url("verify-email"))

        self.assertEqual(progress.status_code, 200)
        self.assertEqual(action.status_code, 403)

    def test_progress_for_missing_organization(self):
        self.client.force_login(self.owner)

        response = self.client.get(
            "/api/organizations/00000000-0000-0000-0000-000000000000/progress"
        )

        self.assertEqual(response.status_code, 404)

    def test_section_read_back_and_draft_save(self):
        self.client.force_login(self.owner)
        self.organization.status = S.A_PENDING
        self.organization.save()

        saved = self._post(self._url("sections/a/save"), {"data": {"legal_name": "River"}})
        read = self.client.get(self._url("sections/a"))

        self.assertEqual(saved.status_code, 200)
        self.assertEqual(saved.json()["detail"], "Draft saved.")
        self.assertEqual(read.status_code, 200)
        self.assertEqual(read.json()["data"], {"legal_name": "River"})
        self.organization.refresh_from_db()
        self.assertEqual(self.organization.status, S.A_PENDING)

    def test_draft_save_for_closed_section_is_bad_request(self):
        self.client.force_login(self.owner)
        self.organization.status = S.A_PENDING
        self.organization.save()

        response = self._post(self._url("sections/c/save"), {"data": {}})

        self.assertEqual(response.status_code, 400)

    def test_section_read_for_closed_section_is_bad_request(self):
        self.client.force_login(self.owner)

        response = self.client.get(self._url("sections/a"))

        self.assertEqual(response.status_code, 400)

    def test_other_user_cannot_read_section(self):
        self.client.force_login(self.other)

        response = self.client.get(self._url("sections/a"))

        self.assertEqual(response.status_code, 403)

    def test_review_status_endpoint(self):
        self.client.force_login(self.owner)
        self.organization.status = S.FINALIZED
        self.organization.save()

        response = self.client.get(self._url("review-status"))

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["can_proceed"])


class MigrateLegacyReviewStatusCommandTests(TestCase):
    def setUp(self):
        owner = User.objects.create_user(username="legacy_owner", password="testpass123")
        self.legacy = Organization.objects.create(
            name="Legacy Org",
            owner=owner,
            status=LEGACY_UNDER_REVIEW,
        )
        self.current = Organization.objects.create(
            name="Current Org",
            owner=owner,
            status=S.UNDER_REVIEW_COO,
        )

    def test_dry_run_changes_nothing(self):
        out = StringIO()

        call_command("migrate_legacy_review_status", "--dry-run", stdout=out)

        self.legacy.refresh_from_db()
        self.assertEqual(self.legacy.status, LEGACY_UNDER_REVIEW)
        self.assertIn("1 organization(s)", out.getvalue())

    def test_migrates_legacy_alias_to_gm_review(self):
        out = StringIO()

        call_command("migrate_legacy_review_status", stdout=out)

        self.legacy.refresh_from_db()
        self.current.refresh_from_db()
        self.assertEqual(self.legacy.status, S.UNDER_REVIEW_GM)
        self.assertEqual(self.current.status, S.UNDER_REVIEW_COO)
        self.assertTrue(
            OrganizationStatusEvent.objects.filter(
                organization=self.legacy,
                status_before=LEGACY_UNDER_REVIEW,
                status_after=S.UNDER_REVIEW_GM,
            ).exists()
        )
        self.assertIn("organizations=1", out.getvalue())
