"""Tests for validation results, field rules and subject/policy checks."""

from __future__ import annotations

import pytest

from tokenmeta.errors import PreconditionError
from tokenmeta.model import MetadataProperty
from tokenmeta.policy import SigScript, compute_policy_id, script_to_cbor_hex
from tokenmeta.rules import DEFAULT_RULES, validate_property, validate_subject_and_policy
from tokenmeta.validation import ValidationError, ValidationField, ValidationResult

from conftest import KEY_HASH_HEX


def _subject_and_policy():
    script = SigScript(KEY_HASH_HEX)
    return compute_policy_id(script) + "74657374", script_to_cbor_hex(script)


class TestValidationField:
    def test_from_property_name(self) -> None:
        assert ValidationField.from_property_name(" Name ") is ValidationField.NAME
        assert ValidationField.from_property_name("subject") is None
        assert ValidationField.from_property_name("extra") is None
        assert ValidationField.from_property_name(None) is None

    def test_to_property_name(self) -> None:
        assert ValidationField.DECIMALS.to_property_name() == "decimals"
        with pytest.raises(PreconditionError):
            ValidationField.SIGNATURE.to_property_name()

    def test_keys(self) -> None:
        assert ValidationField.SEQUENCE_NUMBER.key == "sequenceNumber"
        assert ValidationField.REQUIRED_PROPERTIES.key == "requiredProperties"


class TestValidationResult:
    def test_empty_is_valid(self) -> None:
        assert ValidationResult().valid

    def test_add_error(self) -> None:
        result = ValidationResult()
        result.add_error(ValidationField.NAME, "bad")
        assert not result.valid
        assert result.errors == [ValidationError(ValidationField.NAME, "bad")]
        assert str(result.errors[0]) == "[NAME] bad"

    @pytest.mark.parametrize("field, message", [(None, "m"), (ValidationField.NAME, None), (ValidationField.NAME, " ")])
    def test_add_error_preconditions(self, field, message) -> None:
        with pytest.raises(PreconditionError):
            ValidationResult().add_error(field, message)

    def test_merge_keeps_order(self) -> None:
        a = ValidationResult()
        a.add_error(ValidationField.NAME, "first")
        b = ValidationResult()
        b.add_error(ValidationField.URL, "second")

        merged = ValidationResult.merge([a, b])
        assert merged.messages == ["first", "second"]
        assert a.messages == ["first"]

    def test_to_dict(self) -> None:
        result = ValidationResult()
        result.add_error(ValidationField.SEQUENCE_NUMBER, "x")
        assert result.to_dict() == {
            "valid": False,
            "errors": [{"field": "sequenceNumber", "message": "x"}],
        }


class TestPropertyRules:
    def test_name_too_long(self) -> None:
        result = validate_property("name", MetadataProperty("A" * 51, 0))
        assert [e.field for e in result.errors] == [ValidationField.NAME]
        assert "only 50 characters allow but got 51" in result.messages[0]

    def test_name_at_limit(self) -> None:
        assert validate_property("name", MetadataProperty("A" * 50, 0)).valid

    def test_description_limit(self) -> None:
        assert validate_property("description", MetadataProperty("d" * 500, 0)).valid
        assert not validate_property("description", MetadataProperty("d" * 501, 0)).valid

    @pytest.mark.parametrize("ticker, ok", [("A", False), ("AB", True), ("ABCDEFGHI", True), ("ABCDEFGHIJ", False)])
    def test_ticker_interval(self, ticker, ok) -> None:
        result = validate_property("ticker", MetadataProperty(ticker, 0))
        assert result.valid is ok
        if not ok:
            assert "not in the allowed interval of [2, 9]" in result.messages[0]

    def test_decimals(self) -> None:
        assert validate_property("decimals", MetadataProperty(0, 0)).valid
        result = validate_property("decimals", MetadataProperty(-1, 0))
        assert result.errors_for(ValidationField.DECIMALS)
        assert "value -1 is not in the expected range of [0:)" in result.messages[0]

    def test_decimals_wrong_type(self) -> None:
        result = validate_property("decimals", MetadataProperty("6", 0))
        assert "not of expected type int" in result.messages[0]

    def test_text_wrong_type(self) -> None:
        result = validate_property("name", MetadataProperty(5, 0))
        assert "value is not of expected type str but int" in result.messages[0]

    def test_url_and_logo_limits(self) -> None:
        assert not validate_property("url", MetadataProperty("u" * 251, 0)).valid
        assert validate_property("logo", MetadataProperty("l" * 87400, 0)).valid
        assert not validate_property("logo", MetadataProperty("l" * 87401, 0)).valid

    def test_undefined_value_and_sequence_number(self) -> None:
        result = validate_property("name", MetadataProperty(None, None))
        assert [e.field for e in result.errors] == [ValidationField.NAME, ValidationField.SEQUENCE_NUMBER]
        assert "value is undefined" in result.messages[0]
        assert "sequenceNumber is undefined" in result.messages[1]

    def test_negative_sequence_number(self) -> None:
        result = validate_property("name", MetadataProperty("x", -1))
        assert [e.field for e in result.errors] == [ValidationField.SEQUENCE_NUMBER]

    def test_unknown_property_uses_default_rule(self) -> None:
        assert validate_property("website", MetadataProperty({"any": "shape"}, 0)).valid
        result = validate_property("website", MetadataProperty(None, 0))
        assert result.errors[0].field == ValidationField.GENERAL

    def test_rule_lookup_is_case_insensitive(self) -> None:
        assert not validate_property("NAME", MetadataProperty("A" * 51, 0)).valid

    def test_field_argument(self) -> None:
        assert validate_property(ValidationField.NAME, MetadataProperty("x", 0)).valid
        with pytest.raises(PreconditionError):
            validate_property(ValidationField.POLICY, MetadataProperty("x", 0))
        with pytest.raises(PreconditionError):
            validate_property("name", None)

    def test_required_properties(self) -> None:
        result = ValidationResult()
        DEFAULT_RULES.validate_has_required_properties(["name"], result)
        assert result.messages == [
            "Missing required properties. Required properties are [name, description]"
        ]

    def test_custom_required_properties(self) -> None:
        rules = DEFAULT_RULES.with_required_properties(["name"])
        result = ValidationResult()
        rules.validate_has_required_properties(["name"], result)
        assert result.valid
        assert DEFAULT_RULES.required_properties == ("name", "description")


class TestSubjectAndPolicy:
    def test_valid(self) -> None:
        subject, policy = _subject_and_policy()
        result = ValidationResult()
        validate_subject_and_policy(subject, policy, result)
        assert result.valid

    def test_valid_without_policy(self) -> None:
        result = ValidationResult()
        validate_subject_and_policy("ab" * 28, None, result)
        assert result.valid

    @pytest.mark.parametrize("subject", [None, "", "   "])
    def test_missing_subject(self, subject) -> None:
        result = ValidationResult()
        validate_subject_and_policy(subject, None, result)
        assert result.messages == ["Missing, empty or blank subject."]

    def test_short_subject(self) -> None:
        result = ValidationResult()
        validate_subject_and_policy("ab", None, result)
        assert result.messages == ["Subject must be at least 56 characters long."]

    def test_long_subject(self) -> None:
        result = ValidationResult()
        validate_subject_and_policy("ab" * 61, None, result)
        assert [e.field for e in result.errors] == [ValidationField.SUBJECT]

    def test_problems_accumulate(self) -> None:
        result = ValidationResult()
        validate_subject_and_policy("xyz", None, result)
        assert len(result.errors_for(ValidationField.SUBJECT)) == 3

    def test_policy_not_hex(self) -> None:
        subject, _ = _subject_and_policy()
        result = ValidationResult()
        validate_subject_and_policy(subject, "zz", result)
        assert [e.field for e in result.errors] == [ValidationField.POLICY]

    def test_policy_with_whitespace(self) -> None:
        subject, policy = _subject_and_policy()
        result = ValidationResult()
        validate_subject_and_policy(subject, policy[:4] + " " + policy[4:], result)
        assert [e.field for e in result.errors] == [ValidationField.POLICY]
        assert "invalid characters" in result.messages[0]

    def test_policy_not_a_script(self) -> None:
        subject, _ = _subject_and_policy()
        result = ValidationResult()
        validate_subject_and_policy(subject, "00", result)
        assert result.messages[0].startswith("Could not deserialize policy script from policy value")

    def test_policy_does_not_match_subject(self) -> None:
        _, policy = _subject_and_policy()
        result = ValidationResult()
        validate_subject_and_policy("ab" * 30, policy, result)
        assert result.messages == [
            "If a policy is given the first 28 bytes of the subject should match the policy id."
        ]

    def test_prefix_match_ignores_case(self) -> None:
        subject, policy = _subject_and_policy()
        result = ValidationResult()
        validate_subject_and_policy(subject.upper(), policy, result)
        assert result.valid
