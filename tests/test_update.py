"""Tests for anti-rollback update validation."""

from __future__ import annotations

import logging

import pytest

from tokenmeta.attestation import sign_metadata
from tokenmeta.keys import SigningKey
from tokenmeta.model import Metadata
from tokenmeta.update import validate_metadata_update
from tokenmeta.validation import ValidationField


def _snapshot(metadata: Metadata, signing_key: SigningKey, sequence_number: int) -> Metadata:
    copy = Metadata.from_json(metadata.to_json())
    for prop in copy.properties.values():
        prop.sequence_number = sequence_number
    sign_metadata(copy, signing_key)
    return copy


class TestValidateMetadataUpdate:
    def test_increment_accepted(self, metadata: Metadata, signing_key: SigningKey) -> None:
        base = _snapshot(metadata, signing_key, 3)
        latest = _snapshot(metadata, signing_key, 4)

        assert validate_metadata_update(latest, signing_key.verification_key(), base).valid

    @pytest.mark.parametrize("latest_seq", [3, 2])
    def test_rollback_rejected(self, metadata: Metadata, signing_key: SigningKey, latest_seq: int) -> None:
        base = _snapshot(metadata, signing_key, 3)
        latest = _snapshot(metadata, signing_key, 3)
        latest.properties["ticker"].sequence_number = latest_seq
        for name in ("name", "description", "decimals"):
            latest.properties[name].sequence_number = 4
        sign_metadata(latest, signing_key)

        result = validate_metadata_update(latest, signing_key.verification_key(), base)

        assert [e.field for e in result.errors] == [ValidationField.SEQUENCE_NUMBER]
        assert result.messages[0] == (
            f"Sequence number ({latest_seq}) for property ticker is not greater than "
            "the sequence number (3) of the base property."
        )

    def test_new_and_dropped_properties_are_not_compared(self, metadata: Metadata, signing_key: SigningKey) -> None:
        base = _snapshot(metadata, signing_key, 0)
        base.remove_property("ticker")
        latest = _snapshot(metadata, signing_key, 1)
        latest.remove_property("decimals")

        assert validate_metadata_update(latest, None, base).valid

    def test_subject_mismatch(self, metadata: Metadata, signing_key: SigningKey) -> None:
        base = _snapshot(metadata, signing_key, 0)
        latest = _snapshot(metadata, signing_key, 1)
        latest.subject = latest.subject[:-2] + "00"
        sign_metadata(latest, signing_key)

        result = validate_metadata_update(latest, None, base)
        assert [e.field for e in result.errors] == [ValidationField.SUBJECT]

    def test_policy_mismatch(self, metadata: Metadata, signing_key: SigningKey) -> None:
        base = _snapshot(metadata, signing_key, 0)
        latest = _snapshot(metadata, signing_key, 1)
        latest.policy = None

        result = validate_metadata_update(latest, None, base)
        assert [e.field for e in result.errors] == [ValidationField.POLICY]

    def test_case_insensitive_comparison(self, metadata: Metadata, signing_key: SigningKey) -> None:
        base = _snapshot(metadata, signing_key, 0)
        latest = _snapshot(metadata, signing_key, 1)
        latest.policy = latest.policy.upper()

        assert validate_metadata_update(latest, None, base).valid

    def test_invalid_snapshots_are_merged(self, metadata: Metadata, signing_key: SigningKey) -> None:
        base = _snapshot(metadata, signing_key, 5)
        base.properties["name"].value = "A" * 51
        latest = _snapshot(metadata, signing_key, 1)
        latest.properties["ticker"].value = "T"

        result = validate_metadata_update(latest, None, base)

        fields = [e.field for e in result.errors]
        assert fields == [
            ValidationField.NAME,
            ValidationField.SIGNATURE,
            ValidationField.TICKER,
            ValidationField.SIGNATURE,
        ]
        assert not result.errors_for(ValidationField.SEQUENCE_NUMBER)

    def test_rejection_is_logged(self, metadata: Metadata, signing_key: SigningKey, caplog) -> None:
        base = _snapshot(metadata, signing_key, 1)
        latest = _snapshot(metadata, signing_key, 1)

        with caplog.at_level(logging.WARNING, logger="tokenmeta.update"):
            validate_metadata_update(latest, None, base)
        assert "Rejected update" in caplog.text
