"""Tests for submission and status validation."""

import pytest

from intake_api.middleware.error_handler import ValidationFailedError
from intake_api.services.validation import (
    DUPLICATE_EMAIL_MESSAGE,
    ApplicationValidator,
    check_rules,
    validate_status,
)


def errors_by_field(errors):
    return {error["field"]: error["message"] for error in errors}


class TestFieldRules:
    def test_valid_payload_has_no_errors(self, payload):
        cleaned, errors = check_rules(payload)

        assert errors == []
        assert cleaned["email"] == "jane.doe@example.com"
        assert cleaned["skills"] == ["Python", "FastAPI"]
        assert cleaned["accuracyConsent"] is True

    def test_overlong_skill(self, payload):
        payload["skills"] = ["Python", "x" * 201]

        _, errors = check_rules(payload)

        assert errors_by_field(errors) == {"skills": "Each skill cannot exceed 200 characters"}

    def test_empty_payload_reports_every_required_field(self):
        _, errors = check_rules({})
        fields = errors_by_field(errors)

        assert fields["fullName"] == "Full name is required"
        assert fields["email"] == "Email is required"
        assert fields["skills"] == "At least one valid skill is required"
        assert fields["interest"] == "Interest statement is required"
        assert fields["accuracyConsent"] == "Accuracy consent must be accepted"
        assert fields["dataConsent"] == "Data consent must be accepted"
        # Optional and conditional fields stay quiet
        assert "summary" not in fields
        assert "portfolioLinks" not in fields
        assert "customRole" not in fields

    def test_strings_are_trimmed(self, payload):
        payload["fullName"] = "  Jane Doe  "
        payload["location"] = "\tLagos "

        cleaned, errors = check_rules(payload)

        assert errors == []
        assert cleaned["fullName"] == "Jane Doe"
        assert cleaned["location"] == "Lagos"

    def test_full_name_length(self, payload):
        payload["fullName"] = "x" * 101

        _, errors = check_rules(payload)

        assert errors_by_field(errors) == {"fullName": "Full name cannot exceed 100 characters"}

    def test_invalid_email(self, payload):
        payload["email"] = "not-an-email"

        _, errors = check_rules(payload)

        assert errors_by_field(errors) == {"email": "Please enter a valid email address"}

    def test_enum_membership(self, payload):
        payload["primaryRole"] = "Astronaut"
        payload["experience"] = "3-5"  # hyphen, not en dash
        payload["salaryRange"] = "Lots"

        _, errors = check_rules(payload)
        fields = errors_by_field(errors)

        assert fields["primaryRole"] == "Invalid primary role selected"
        assert fields["experience"] == "Invalid experience range"
        assert fields["salaryRange"] == "Invalid salary range"


class TestConditionalRules:
    def test_custom_role_required_for_other(self, payload):
        payload["primaryRole"] = "Other"

        _, errors = check_rules(payload)

        assert errors_by_field(errors) == {
            "customRole": 'Custom role is required when selecting "Other"'
        }

    def test_custom_role_kept_for_other(self, payload):
        payload["primaryRole"] = "Other"
        payload["customRole"] = " Technical Writer "

        cleaned, errors = check_rules(payload)

        assert errors == []
        assert cleaned["customRole"] == "Technical Writer"

    def test_custom_role_dropped_when_not_other(self, payload):
        payload["customRole"] = "Technical Writer"

        cleaned, errors = check_rules(payload)

        assert errors == []
        assert cleaned["customRole"] is None

    def test_availability_other_required(self, payload):
        payload["availability"] = "Other"
        payload["availabilityOther"] = "   "

        _, errors = check_rules(payload)

        assert errors_by_field(errors) == {
            "availabilityOther": 'Please specify your availability when selecting "Other"'
        }

    def test_uk_clients_details_required_for_yes(self, payload):
        payload["ukClients"] = "Yes"

        _, errors = check_rules(payload)

        assert "ukClientsDetails" in errors_by_field(errors)

    def test_uk_clients_details_length(self, payload):
        payload["ukClients"] = "Yes"
        payload["ukClientsDetails"] = "x" * 1001

        _, errors = check_rules(payload)

        assert errors_by_field(errors) == {
            "ukClientsDetails": "UK clients details cannot exceed 1000 characters"
        }


class TestListFields:
    def test_skills_accept_native_list(self, payload):
        payload["skills"] = [" Python ", "SQL"]

        cleaned, errors = check_rules(payload)

        assert errors == []
        assert cleaned["skills"] == ["Python", "SQL"]

    @pytest.mark.parametrize("skills", ["[]", "not json", '{"a": 1}', '["Python", ""]', "[1, 2]"])
    def test_invalid_skills(self, payload, skills):
        payload["skills"] = skills

        _, errors = check_rules(payload)

        assert errors_by_field(errors) == {"skills": "At least one valid skill is required"}

    def test_empty_portfolio_entries_dropped(self, payload):
        payload["portfolioLinks"] = '["https://dribbble.com/jane", "", "  "]'

        cleaned, errors = check_rules(payload)

        assert errors == []
        assert cleaned["portfolioLinks"] == ["https://dribbble.com/jane"]

    def test_invalid_portfolio_link(self, payload):
        payload["portfolioLinks"] = ["https://github.com/janedoe", "github.com/janedoe"]

        _, errors = check_rules(payload)

        assert errors_by_field(errors) == {"portfolioLinks": "All portfolio links must be valid URLs"}

    def test_missing_portfolio_is_fine(self, payload):
        del payload["portfolioLinks"]

        cleaned, errors = check_rules(payload)

        assert errors == []
        assert cleaned["portfolioLinks"] is None


class TestLengthsAndConsents:
    def test_short_summary_rejected(self, payload):
        payload["summary"] = "Too short"

        _, errors = check_rules(payload)

        assert errors_by_field(errors) == {
            "summary": "Summary must be between 50 and 2000 characters if you choose to provide one"
        }

    def test_blank_summary_is_skipped(self, payload):
        payload["summary"] = "   "

        cleaned, errors = check_rules(payload)

        assert errors == []
        assert cleaned["summary"] is None

    def test_interest_bounds(self, payload):
        payload["interest"] = "x" * 1001

        _, errors = check_rules(payload)

        assert errors_by_field(errors) == {
            "interest": "Interest statement must be between 50 and 1000 characters"
        }

    @pytest.mark.parametrize("value", [True, "true"])
    def test_consent_accepted(self, payload, value):
        payload["dataConsent"] = value

        cleaned, errors = check_rules(payload)

        assert errors == []
        assert cleaned["dataConsent"] is True

    @pytest.mark.parametrize("value", [False, "false", "yes", "TRUE", "1", None])
    def test_consent_rejected(self, payload, value):
        payload["dataConsent"] = value

        _, errors = check_rules(payload)

        assert errors_by_field(errors) == {"dataConsent": "Data consent must be accepted"}


class TestApplicationValidator:
    @pytest.mark.anyio
    async def test_returns_normalized_draft(self, store, payload):
        draft = await ApplicationValidator(store).validate(payload)

        assert draft.email == "jane.doe@example.com"
        assert draft.skills == ["Python", "FastAPI"]
        assert draft.custom_role is None
        assert draft.accuracy_consent is True

    @pytest.mark.anyio
    async def test_collects_all_errors(self, store, payload):
        payload["email"] = "bad"
        payload["interest"] = "short"

        with pytest.raises(ValidationFailedError) as exc_info:
            await ApplicationValidator(store).validate(payload)

        assert exc_info.value.status_code == 400
        assert exc_info.value.message == "Validation failed"
        assert set(errors_by_field(exc_info.value.errors)) == {"email", "interest"}

    @pytest.mark.anyio
    async def test_existing_email_rejected(self, store, payload, make_draft):
        store.create(make_draft(email="jane.doe@example.com"))

        with pytest.raises(ValidationFailedError) as exc_info:
            await ApplicationValidator(store).validate(payload)

        assert exc_info.value.errors == [{"field": "email", "message": DUPLICATE_EMAIL_MESSAGE}]


class TestStatusValidation:
    @pytest.mark.parametrize("status", ["pending", "reviewed", "shortlisted", "rejected"])
    def test_valid_statuses(self, status):
        assert validate_status(status) == status

    def test_missing_status(self):
        with pytest.raises(ValidationFailedError) as exc_info:
            validate_status(None)

        assert exc_info.value.errors == [{"field": "status", "message": "Status is required"}]

    @pytest.mark.parametrize("status", ["archived", "PENDING", 3])
    def test_unknown_status(self, status):
        with pytest.raises(ValidationFailedError) as exc_info:
            validate_status(status)

        assert exc_info.value.errors == [{"field": "status", "message": "Invalid status"}]
