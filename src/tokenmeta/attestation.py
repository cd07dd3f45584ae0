"""Per-property attestation signing and metadata verification.

Each property is signed over a digest of digests::

    H( H(cbor(subject)) || H(cbor(name)) || H(cbor(value)) || H(cbor(sequenceNumber)) )

where ``H`` is BLAKE2b-256 and ``cbor`` the canonical scalar encoding. The
same construction is used by the CIP-26 token registry, so signatures
produced here verify there and vice versa.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from tokenmeta.canonical import ScalarValue, encode_value, is_scalar
from tokenmeta.core import blake2b_256, verify_signature
from tokenmeta.errors import PreconditionError
from tokenmeta.keys import KeyRole, Signer, Verifier
from tokenmeta.model import Metadata, MetadataProperty, sanitize_property_name
from tokenmeta.rules import DEFAULT_RULES, RuleSet, validate_subject_and_policy
from tokenmeta.validation import ValidationField, ValidationResult

logger = logging.getLogger(__name__)


def _field_hash(value: ScalarValue) -> bytes:
    return blake2b_256(encode_value(value))


def property_digest(subject: str, property_name: str, value: ScalarValue, sequence_number: int) -> bytes:
    """Compute the 32-byte digest a property attestation signs.

    Raises:
        PreconditionError: If any input lies outside the encodable scalar set
    """
    return blake2b_256(
        _field_hash(subject),
        _field_hash(property_name),
        _field_hash(value),
        _field_hash(sequence_number),
    )


def _check_signer(signer: Optional[Signer]) -> None:
    if signer is None:
        raise PreconditionError("Signing key cannot be None.")
    if signer.role != KeyRole.SIGNING:
        raise PreconditionError("Given key cannot be used for signing.")


def _check_signable(subject: Any, property_name: str, prop: MetadataProperty[Any]) -> None:
    if not isinstance(subject, str):
        raise PreconditionError("metadata subject must be set before signing.")
    if prop.value is None:
        raise PreconditionError(f"property {property_name}: value cannot be None.")
    if not is_scalar(prop.value):
        raise PreconditionError(
            f"property {property_name}: value of type {type(prop.value).__name__} cannot be signed."
        )
    seq = prop.sequence_number
    if seq is None or isinstance(seq, bool) or not isinstance(seq, int) or seq < 0:
        raise PreconditionError(
            f"property {property_name}: sequenceNumber cannot be None or less than zero."
        )


def _sign_property(metadata: Metadata, signer: Signer, property_name: str, prop: MetadataProperty[Any]) -> None:
    digest = property_digest(metadata.subject, property_name, prop.value, prop.sequence_number)
    signature = signer.sign(digest)
    public_key_hex = signer.verification_key().raw_public_key_bytes().hex()
    prop.add_or_update_signature(public_key_hex, signature.hex())
    logger.debug("Signed property %s of %s with key %s", property_name, metadata.subject, public_key_hex)


def sign_metadata(metadata: Metadata, signer: Signer, property_name: Optional[str] = None) -> None:
    """Sign one property, or every property when ``property_name`` is omitted.

    Signing mutates the target properties in place, upserting one signature
    per signer. Naming a property the metadata does not carry is a no-op.
    When signing all properties, every property is checked before any is
    signed, so a precondition failure leaves the metadata untouched.

    Raises:
        PreconditionError: On a missing or non-signing key, a blank property
            name, or a property without a signable value/sequence number
    """
    if metadata is None:
        raise PreconditionError("Metadata object cannot be None.")
    _check_signer(signer)

    if property_name is not None:
        name = sanitize_property_name(property_name)
        prop = metadata.properties.get(name)
        if prop is None:
            logger.info("Property %s not present on %s; nothing to sign", name, metadata.subject)
            return
        _check_signable(metadata.subject, name, prop)
        _sign_property(metadata, signer, name, prop)
        return

    targets = list(metadata.properties.items())
    for name, prop in targets:
        _check_signable(metadata.subject, name, prop)
    for name, prop in targets:
        _sign_property(metadata, signer, name, prop)


def _verify_hex(digest: bytes, signature_hex: str, public_key: bytes, verifier: Optional[Verifier]) -> bool:
    try:
        signature = bytes.fromhex(signature_hex)
    except ValueError:
        return False
    if verifier is not None:
        return verifier.verify(digest, signature, public_key)
    return verify_signature(digest, signature, public_key)


def _verify_property_signatures(
    metadata: Metadata,
    property_name: str,
    prop: MetadataProperty[Any],
    verification_key: Optional[Verifier],
    result: ValidationResult,
) -> None:
    try:
        digest = property_digest(metadata.subject, property_name, prop.value, prop.sequence_number)
    except PreconditionError as e:
        result.add_error(ValidationField.GENERAL, f"Could not verify due to an internal error: {e}")
        return

    def failed(public_key_hex: str) -> None:
        result.add_error(
            ValidationField.SIGNATURE,
            f"property {property_name}: signature verification failed for key {public_key_hex}.",
        )

    if verification_key is not None:
        key_bytes = verification_key.raw_public_key_bytes()
        key_hex = key_bytes.hex()
        for sig in prop.signatures:
            if sig.public_key.lower() == key_hex:
                if not _verify_hex(digest, sig.signature, key_bytes, verification_key):
                    failed(sig.public_key)
                break
        return

    for sig in prop.signatures:
        try:
            public_key = bytes.fromhex(sig.public_key)
        except ValueError:
            failed(sig.public_key)
            continue
        if not _verify_hex(digest, sig.signature, public_key, None):
            failed(sig.public_key)


def validate_metadata(
    metadata: Metadata,
    verification_key: Optional[Verifier] = None,
    signatures_only: bool = False,
    rules: RuleSet = DEFAULT_RULES,
) -> ValidationResult:
    """Validate a metadata document and the attestations it carries.

    With a verification key, only the signature recorded for that key is
    checked on each property (a property it never signed is not an error).
    Without one, every recorded signature is checked against the public key
    stored next to it. Errors accumulate; nothing stops at the first one.

    Raises:
        PreconditionError: If ``metadata`` is None or ``verification_key``
            is a signing key
    """
    if metadata is None:
        raise PreconditionError("metadata cannot be None.")
    if verification_key is not None and verification_key.role == KeyRole.SIGNING:
        raise PreconditionError(
            "This function expects a verification key. Public key derivation from "
            "private keys shall be done in client."
        )

    result = ValidationResult()
    validate_subject_and_policy(metadata.subject, metadata.policy, result)

    if not signatures_only:
        rules.validate_has_required_properties(metadata.properties.keys(), result)

    for name, prop in metadata.properties.items():
        if not signatures_only:
            result.merge_with(rules.validate_property(name, prop))
        if prop.signatures:
            _verify_property_signatures(metadata, name, prop, verification_key, result)

    return result


__all__ = [
    "property_digest",
    "sign_metadata",
    "validate_metadata",
]
