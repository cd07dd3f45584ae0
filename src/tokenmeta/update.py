"""Anti-rollback validation of metadata updates."""

from __future__ import annotations

import logging
from typing import Optional

from tokenmeta.attestation import validate_metadata
from tokenmeta.keys import Verifier
from tokenmeta.model import Metadata
from tokenmeta.rules import DEFAULT_RULES, RuleSet
from tokenmeta.validation import ValidationField, ValidationResult

logger = logging.getLogger(__name__)


def _equal_ignore_case(a: Optional[str], b: Optional[str]) -> bool:
    if a is None or b is None:
        return a is b
    return a.lower() == b.lower()


def validate_metadata_update(
    latest: Metadata,
    verification_key: Optional[Verifier],
    base: Metadata,
    rules: RuleSet = DEFAULT_RULES,
) -> ValidationResult:
    """Check that ``latest`` is an acceptable successor of ``base``.

    Both snapshots are validated first; if either is invalid their merged
    errors are returned without comparing them. Otherwise subject and policy
    must match (case-insensitively) and every property present in both must
    carry a strictly greater sequence number in ``latest``.
    """
    result_for_latest = validate_metadata(latest, verification_key, rules=rules)
    result_for_base = validate_metadata(base, verification_key, rules=rules)
    if not (result_for_latest.valid and result_for_base.valid):
        return ValidationResult.merge([result_for_base, result_for_latest])

    result = ValidationResult()
    if not _equal_ignore_case(latest.subject, base.subject):
        result.add_error(
            ValidationField.SUBJECT,
            "Subject of updated metadata differs from subject of base metadata.",
        )
    if not _equal_ignore_case(latest.policy, base.policy):
        result.add_error(
            ValidationField.POLICY,
            "Policy of updated metadata differs from policy of base metadata.",
        )

    for name, prop in latest.properties.items():
        base_prop = base.properties.get(name)
        if base_prop is None:
            continue
        if base_prop.sequence_number >= prop.sequence_number:
            result.add_error(
                ValidationField.SEQUENCE_NUMBER,
                f"Sequence number ({prop.sequence_number}) for property {name} is not greater than "
                f"the sequence number ({base_prop.sequence_number}) of the base property.",
            )

    if not result.valid:
        logger.warning("Rejected update of %s: %d error(s)", latest.subject, len(result.errors))
    return result


__all__ = [
    "validate_metadata_update",
]
