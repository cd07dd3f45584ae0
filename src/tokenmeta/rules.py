"""Field-level validation rules for metadata properties.

Rules are looked up by lowercase property name. Names without a dedicated
rule fall back to the default rule, which only checks that a value is present
and the sequence number is a non-negative integer.
"""

from __future__ import annotations

import string
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, Optional, Sequence, Union

from tokenmeta.errors import DecodeError, PreconditionError, ScriptFormatError
from tokenmeta.model import MetadataProperty
from tokenmeta.policy import POLICY_ID_HEX_LENGTH, compute_policy_id, script_from_cbor
from tokenmeta.validation import ValidationField, ValidationResult

MAX_NAME_LENGTH = 50
MAX_DESCRIPTION_LENGTH = 500
MIN_TICKER_LENGTH = 2
MAX_TICKER_LENGTH = 9
MIN_DECIMALS_VALUE = 0
MAX_LOGO_LENGTH = 87400
MAX_URL_LENGTH = 250
MAX_ASSET_NAME_SIZE = 32
MAX_SUBJECT_LENGTH = POLICY_ID_HEX_LENGTH + MAX_ASSET_NAME_SIZE * 2
REQUIRED_PROPERTIES = ("name", "description")

_HEX_DIGITS = frozenset(string.hexdigits)


class FieldRule(ABC):
    """Validates a single property."""

    def __init__(self, field: ValidationField) -> None:
        self.field = field

    def _check_defaults(self, property_name: str, prop: MetadataProperty[Any]) -> ValidationResult:
        result = ValidationResult()
        if prop.value is None:
            result.add_error(self.field, f"property {property_name}: value is undefined")
        seq = prop.sequence_number
        if seq is None:
            result.add_error(
                ValidationField.SEQUENCE_NUMBER,
                f"property {property_name}: sequenceNumber is undefined",
            )
        elif isinstance(seq, bool) or not isinstance(seq, int):
            result.add_error(
                ValidationField.SEQUENCE_NUMBER,
                f"property {property_name}: sequenceNumber is not an integer ({seq!r})",
            )
        elif seq < 0:
            result.add_error(
                ValidationField.SEQUENCE_NUMBER,
                f"property {property_name}: sequenceNumber is negative ({seq})",
            )
        return result

    @abstractmethod
    def validate(self, property_name: str, prop: MetadataProperty[Any]) -> ValidationResult:
        ...


class DefaultRule(FieldRule):
    def validate(self, property_name: str, prop: MetadataProperty[Any]) -> ValidationResult:
        return self._check_defaults(property_name, prop)


class TextRule(FieldRule):
    """A string value with a maximum (and optionally minimum) length."""

    def __init__(self, field: ValidationField, max_length: int, min_length: Optional[int] = None) -> None:
        super().__init__(field)
        self.max_length = max_length
        self.min_length = min_length

    def validate(self, property_name: str, prop: MetadataProperty[Any]) -> ValidationResult:
        result = self._check_defaults(property_name, prop)
        if prop.value is None:
            return result

        if not isinstance(prop.value, str):
            result.add_error(
                self.field,
                f"property {property_name}: value is not of expected type str but {type(prop.value).__name__}",
            )
            return result

        length = len(prop.value)
        if self.min_length is not None:
            if length < self.min_length or length > self.max_length:
                result.add_error(
                    self.field,
                    f"property {property_name}: {self.field.value} length is {length} which is not "
                    f"in the allowed interval of [{self.min_length}, {self.max_length}]",
                )
        elif length > self.max_length:
            result.add_error(
                self.field,
                f"property {property_name}: only {self.max_length} characters allow but got {length}",
            )
        return result


class DecimalsRule(FieldRule):
    def __init__(self, field: ValidationField = ValidationField.DECIMALS, min_value: int = MIN_DECIMALS_VALUE) -> None:
        super().__init__(field)
        self.min_value = min_value

    def validate(self, property_name: str, prop: MetadataProperty[Any]) -> ValidationResult:
        result = self._check_defaults(property_name, prop)
        if prop.value is None:
            return result

        if isinstance(prop.value, bool) or not isinstance(prop.value, int):
            result.add_error(
                self.field,
                f"property {property_name}: value is not of expected type int but {type(prop.value).__name__}",
            )
            return result

        if prop.value < self.min_value:
            result.add_error(
                self.field,
                f"property {property_name}: value {prop.value} is not in the expected range of [{self.min_value}:)",
            )
        return result


class RuleSet:
    """Property rules keyed by lowercase property name, plus required names."""

    def __init__(
        self,
        rules: Optional[Dict[str, FieldRule]] = None,
        required_properties: Sequence[str] = REQUIRED_PROPERTIES,
        default_rule: Optional[FieldRule] = None,
    ) -> None:
        self._rules: Dict[str, FieldRule] = {}
        for name, rule in (rules or {}).items():
            self.register(name, rule)
        self.required_properties = tuple(required_properties)
        self.default_rule = default_rule or DefaultRule(ValidationField.GENERAL)

    def register(self, property_name: str, rule: FieldRule) -> None:
        self._rules[property_name.strip().lower()] = rule

    def rule_for(self, property_name: str) -> FieldRule:
        return self._rules.get(property_name.strip().lower(), self.default_rule)

    def with_required_properties(self, required_properties: Sequence[str]) -> RuleSet:
        return RuleSet(
            rules=dict(self._rules),
            required_properties=required_properties,
            default_rule=self.default_rule,
        )

    def validate_property(
        self,
        property_name: Union[str, ValidationField],
        prop: MetadataProperty[Any],
    ) -> ValidationResult:
        if property_name is None:
            raise PreconditionError("property_name cannot be None.")
        if isinstance(property_name, ValidationField):
            if not property_name.is_property:
                raise PreconditionError(f"field must be a property field, but got: {property_name.name}")
            property_name = property_name.to_property_name()
        if prop is None:
            raise PreconditionError("property cannot be None.")
        return self.rule_for(property_name).validate(property_name, prop)

    def validate_has_required_properties(self, property_names: Iterable[str], result: ValidationResult) -> None:
        present = set(property_names)
        if not all(name in present for name in self.required_properties):
            result.add_error(
                ValidationField.REQUIRED_PROPERTIES,
                "Missing required properties. Required properties are "
                f"[{', '.join(self.required_properties)}]",
            )


DEFAULT_RULES = RuleSet(
    rules={
        "name": TextRule(ValidationField.NAME, MAX_NAME_LENGTH),
        "description": TextRule(ValidationField.DESCRIPTION, MAX_DESCRIPTION_LENGTH),
        "ticker": TextRule(ValidationField.TICKER, MAX_TICKER_LENGTH, min_length=MIN_TICKER_LENGTH),
        "decimals": DecimalsRule(),
        "logo": TextRule(ValidationField.LOGO, MAX_LOGO_LENGTH),
        "url": TextRule(ValidationField.URL, MAX_URL_LENGTH),
    },
)


def validate_property(
    property_name: Union[str, ValidationField],
    prop: MetadataProperty[Any],
) -> ValidationResult:
    return DEFAULT_RULES.validate_property(property_name, prop)


def validate_subject_and_policy(subject: Optional[str], policy: Optional[str], result: ValidationResult) -> None:
    """Check subject shape and, if a policy is given, that it matches the subject."""
    if subject is None or not subject.strip():
        result.add_error(ValidationField.SUBJECT, "Missing, empty or blank subject.")
        return

    bad_chars = sorted({c for c in subject if c not in _HEX_DIGITS})
    if bad_chars:
        result.add_error(
            ValidationField.SUBJECT,
            "Cannot decode hex string representation of subject hash due to invalid "
            f"characters: {''.join(bad_chars)!r}",
        )

    if len(subject) % 2 != 0:
        result.add_error(
            ValidationField.SUBJECT,
            "Number of characters in the subject must be even to represent a complete byte sequence.",
        )

    if len(subject) < POLICY_ID_HEX_LENGTH:
        result.add_error(ValidationField.SUBJECT, f"Subject must be at least {POLICY_ID_HEX_LENGTH} characters long.")

    if len(subject) > MAX_SUBJECT_LENGTH:
        result.add_error(
            ValidationField.SUBJECT,
            f"Subject must not exceed {MAX_SUBJECT_LENGTH} characters but got {len(subject)}.",
        )

    if policy is None:
        return

    bad_policy_chars = sorted({c for c in policy if c not in _HEX_DIGITS})
    if bad_policy_chars:
        result.add_error(
            ValidationField.POLICY,
            "Cannot decode hex string representation of policy hash due to invalid "
            f"characters: {''.join(bad_policy_chars)!r}",
        )
        return

    try:
        policy_bytes = bytes.fromhex(policy)
    except ValueError as e:
        result.add_error(
            ValidationField.POLICY,
            f"Cannot decode hex string representation of policy hash due to {e}",
        )
        return

    try:
        policy_id = compute_policy_id(script_from_cbor(policy_bytes))
    except (DecodeError, ScriptFormatError) as e:
        result.add_error(
            ValidationField.POLICY,
            f"Could not deserialize policy script from policy value due to {e}",
        )
        return

    if not subject.lower().startswith(policy_id.lower()):
        result.add_error(
            ValidationField.POLICY,
            "If a policy is given the first 28 bytes of the subject should match the policy id.",
        )


__all__ = [
    "MAX_NAME_LENGTH",
    "MAX_DESCRIPTION_LENGTH",
    "MIN_TICKER_LENGTH",
    "MAX_TICKER_LENGTH",
    "MIN_DECIMALS_VALUE",
    "MAX_LOGO_LENGTH",
    "MAX_URL_LENGTH",
    "MAX_SUBJECT_LENGTH",
    "REQUIRED_PROPERTIES",
    "FieldRule",
    "DefaultRule",
    "TextRule",
    "DecimalsRule",
    "RuleSet",
    "DEFAULT_RULES",
    "validate_property",
    "validate_subject_and_policy",
]
