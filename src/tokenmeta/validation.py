"""Field-tagged validation results.

Validation never raises: every problem found is recorded as a
``ValidationError`` on a ``ValidationResult`` so callers see all of them at
once.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from tokenmeta.errors import PreconditionError


class ValidationField(str, Enum):
    """Fields a validation error can be attributed to."""

    NAME = "name"
    DESCRIPTION = "description"
    TICKER = "ticker"
    DECIMALS = "decimals"
    LOGO = "logo"
    URL = "url"
    SUBJECT = "subject"
    POLICY = "policy"
    SEQUENCE_NUMBER = "sequenceNumber"
    REQUIRED_PROPERTIES = "requiredProperties"
    SIGNATURE = "signature"
    GENERAL = "general"

    @property
    def key(self) -> str:
        return self.value

    @property
    def is_property(self) -> bool:
        return self in _PROPERTY_FIELDS

    @classmethod
    def from_property_name(cls, property_name: Optional[str]) -> Optional[ValidationField]:
        """Map a property name (trimmed, case-insensitive) to its field, if any."""
        if property_name is None:
            return None
        normalized = property_name.strip().lower()
        for f in _PROPERTY_FIELDS:
            if f.value == normalized:
                return f
        return None

    def to_property_name(self) -> str:
        if not self.is_property:
            raise PreconditionError(f"Cannot convert non-property field {self.name} to property name")
        return self.value


_PROPERTY_FIELDS = (
    ValidationField.NAME,
    ValidationField.DESCRIPTION,
    ValidationField.TICKER,
    ValidationField.DECIMALS,
    ValidationField.LOGO,
    ValidationField.URL,
)


@dataclass(frozen=True)
class ValidationError:
    field: ValidationField
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {"field": self.field.value, "message": self.message}

    def __str__(self) -> str:
        return f"[{self.field.name}] {self.message}"


@dataclass
class ValidationResult:
    """Accumulated validation errors; valid iff there are none."""

    errors: List[ValidationError] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors

    @property
    def messages(self) -> List[str]:
        return [e.message for e in self.errors]

    def add_error(self, field: ValidationField, message: str) -> None:
        if field is None:
            raise PreconditionError("field cannot be None.")
        if message is None:
            raise PreconditionError("message cannot be None.")
        if not message.strip():
            raise PreconditionError("message cannot be empty or blank.")
        self.errors.append(ValidationError(field=field, message=message))

    def errors_for(self, field: ValidationField) -> List[ValidationError]:
        return [e for e in self.errors if e.field == field]

    def merge_with(self, other: ValidationResult) -> None:
        self.errors.extend(other.errors)

    @classmethod
    def merge(cls, results: Iterable[ValidationResult]) -> ValidationResult:
        merged = cls()
        for result in results:
            merged.merge_with(result)
        return merged

    def to_dict(self) -> Dict[str, Any]:
        return {"valid": self.valid, "errors": [e.to_dict() for e in self.errors]}


__all__ = [
    "ValidationField",
    "ValidationError",
    "ValidationResult",
]
