"""tokenmeta - offchain metadata attestation for Cardano native tokens."""

from tokenmeta.core import (
    blake2b_224,
    blake2b_256,
    verify_signature,
)
from tokenmeta.errors import (
    MetadataToolsError,
    DecodeError,
    ScriptFormatError,
    PreconditionError,
)
from tokenmeta.canonical import encode_value, decode_value
from tokenmeta.policy import (
    PolicyScript,
    SigScript,
    AllScript,
    AnyScript,
    AtLeastScript,
    BeforeScript,
    AfterScript,
    compute_policy_id,
    load_script,
    policy_id_from_file,
    policy_id_from_json,
    script_from_cbor,
    script_from_json,
    script_to_cbor,
)
from tokenmeta.keys import KeyRole, SigningKey, VerificationKey, load_signing_key, load_verification_key
from tokenmeta.model import AttestationSignature, Metadata, MetadataProperty
from tokenmeta.validation import ValidationError, ValidationField, ValidationResult
from tokenmeta.rules import DEFAULT_RULES, FieldRule, RuleSet, validate_property, validate_subject_and_policy
from tokenmeta.attestation import property_digest, sign_metadata, validate_metadata
from tokenmeta.update import validate_metadata_update

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Digests and Ed25519
    "blake2b_224",
    "blake2b_256",
    "verify_signature",
    # Errors
    "MetadataToolsError",
    "DecodeError",
    "ScriptFormatError",
    "PreconditionError",
    # Canonical CBOR
    "encode_value",
    "decode_value",
    # Policy scripts
    "PolicyScript",
    "SigScript",
    "AllScript",
    "AnyScript",
    "AtLeastScript",
    "BeforeScript",
    "AfterScript",
    "compute_policy_id",
    "load_script",
    "policy_id_from_file",
    "policy_id_from_json",
    "script_from_cbor",
    "script_from_json",
    "script_to_cbor",
    # Keys
    "KeyRole",
    "SigningKey",
    "VerificationKey",
    "load_signing_key",
    "load_verification_key",
    # Model
    "AttestationSignature",
    "Metadata",
    "MetadataProperty",
    # Validation
    "ValidationError",
    "ValidationField",
    "ValidationResult",
    "DEFAULT_RULES",
    "FieldRule",
    "RuleSet",
    "validate_property",
    "validate_subject_and_policy",
    # Attestation
    "property_digest",
    "sign_metadata",
    "validate_metadata",
    "validate_metadata_update",
]
