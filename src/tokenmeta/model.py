"""Token metadata documents in the CIP-26 registry layout.

A document looks like::

    {
      "subject": "<policy id><asset name hex>",
      "policy": "<policy script cbor hex>",
      "name": {"value": "...", "sequenceNumber": 0, "signatures": [...]},
      ...
    }

Every top-level key other than ``subject`` and ``policy`` is a property.
"""

from __future__ import annotations

import copy
import json
from dataclasses import dataclass, field
from typing import Any, Dict, Generic, List, Optional, TypeVar, Union

from tokenmeta.errors import PreconditionError
from tokenmeta.policy import PolicyScript, compute_policy_id, script_to_cbor_hex
from tokenmeta.validation import ValidationField

T = TypeVar("T")

_RESERVED_KEYS = {"subject", "policy"}


@dataclass
class AttestationSignature:
    public_key: str
    signature: str

    def to_dict(self) -> Dict[str, Any]:
        return {"signature": self.signature, "publicKey": self.public_key}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> AttestationSignature:
        if not isinstance(data, dict):
            raise ValueError("signature entry must be an object")
        public_key = data.get("publicKey")
        signature = data.get("signature")
        if not isinstance(public_key, str):
            raise ValueError("signature.publicKey must be a string")
        if not isinstance(signature, str):
            raise ValueError("signature.signature must be a string")
        return cls(public_key=public_key.strip().lower(), signature=signature.strip().lower())


def _sanitize_hex(value: Optional[str], label: str) -> str:
    if value is None:
        raise PreconditionError(f"{label} cannot be None.")
    sanitized = value.strip().lower()
    if not sanitized:
        raise PreconditionError(f"{label} cannot be empty or blank.")
    return sanitized


@dataclass
class MetadataProperty(Generic[T]):
    """A versioned property value and the attestations over it.

    ``signatures`` holds at most one entry per public key.
    """

    value: Optional[T] = None
    sequence_number: Optional[int] = 0
    signatures: List[AttestationSignature] = field(default_factory=list)

    def signature_for(self, public_key_hex: str) -> Optional[AttestationSignature]:
        wanted = public_key_hex.strip().lower()
        for sig in self.signatures:
            if sig.public_key.strip().lower() == wanted:
                return sig
        return None

    def add_or_update_signature(self, public_key_hex: str, signature_hex: str) -> None:
        """Record a signature, replacing any earlier one from the same key."""
        public_key = _sanitize_hex(public_key_hex, "public_key_hex")
        signature = _sanitize_hex(signature_hex, "signature_hex")

        existing = self.signature_for(public_key)
        if existing is not None:
            existing.signature = signature
            return
        self.signatures.append(AttestationSignature(public_key=public_key, signature=signature))

    def with_signature(self, public_key_hex: str, signature_hex: str) -> MetadataProperty[T]:
        """Return a copy carrying the signature; this property is left untouched."""
        updated = MetadataProperty(
            value=self.value,
            sequence_number=self.sequence_number,
            signatures=[copy.copy(s) for s in self.signatures],
        )
        updated.add_or_update_signature(public_key_hex, signature_hex)
        return updated

    def to_dict(self) -> Dict[str, Any]:
        if isinstance(self.value, (bytes, bytearray)):
            raise ValueError("raw byte values have no JSON representation")
        out: Dict[str, Any] = {
            "sequenceNumber": self.sequence_number,
            "value": self.value,
        }
        if self.signatures:
            out["signatures"] = [s.to_dict() for s in self.signatures]
        return out

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> MetadataProperty[Any]:
        if not isinstance(data, dict):
            raise ValueError("property must be an object")
        sequence_number = data.get("sequenceNumber")
        if sequence_number is not None and (
            isinstance(sequence_number, bool) or not isinstance(sequence_number, int)
        ):
            raise ValueError("property.sequenceNumber must be an integer")
        signatures_raw = data.get("signatures") or []
        if not isinstance(signatures_raw, list):
            raise ValueError("property.signatures must be a list")
        return cls(
            value=data.get("value"),
            sequence_number=sequence_number,
            signatures=[AttestationSignature.from_dict(s) for s in signatures_raw],
        )


def sanitize_property_name(property_name: Union[str, ValidationField, None]) -> str:
    if property_name is None:
        raise PreconditionError("property_name cannot be None.")
    if isinstance(property_name, ValidationField):
        return property_name.to_property_name()
    sanitized = property_name.strip()
    if not sanitized:
        raise PreconditionError("property_name cannot be empty or blank.")
    return sanitized


class Metadata:
    """A token metadata document: subject, optional policy, and properties."""

    def __init__(
        self,
        subject: Optional[str] = None,
        policy: Optional[str] = None,
        properties: Optional[Dict[str, MetadataProperty[Any]]] = None,
    ) -> None:
        self.subject = subject
        self.policy = policy
        self._properties: Dict[str, MetadataProperty[Any]] = {}
        for name, prop in (properties or {}).items():
            self.add_property(name, prop)

    @classmethod
    def for_asset(
        cls,
        asset_name: str,
        policy_script: Optional[PolicyScript] = None,
        properties: Optional[Dict[str, MetadataProperty[Any]]] = None,
    ) -> Metadata:
        """Create metadata whose subject is derived from a policy and asset name."""
        metadata = cls(properties=properties)
        if policy_script is not None:
            metadata.policy = script_to_cbor_hex(policy_script)
            metadata.set_subject(asset_name, compute_policy_id(policy_script))
        else:
            metadata.set_subject(asset_name)
        return metadata

    def set_subject(self, asset_name: str, policy_id: str = "") -> None:
        if asset_name is None:
            raise PreconditionError("asset_name cannot be None.")
        self.subject = policy_id + asset_name.encode("utf-8").hex()

    @property
    def properties(self) -> Dict[str, MetadataProperty[Any]]:
        return self._properties

    def add_property(
        self,
        property_name: Union[str, ValidationField],
        prop: Optional[MetadataProperty[Any]],
    ) -> None:
        """Set a property; ``None`` removes it."""
        name = sanitize_property_name(property_name)
        if name in _RESERVED_KEYS:
            raise PreconditionError(f"{name!r} is reserved and cannot be a property name.")
        if prop is None:
            self._properties.pop(name, None)
        else:
            self._properties[name] = prop

    def remove_property(self, property_name: Union[str, ValidationField]) -> None:
        self._properties.pop(sanitize_property_name(property_name), None)

    def get_property(self, property_name: Union[str, ValidationField]) -> Optional[MetadataProperty[Any]]:
        return self._properties.get(sanitize_property_name(property_name))

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"subject": self.subject}
        if self.policy is not None:
            out["policy"] = self.policy
        for name, prop in self._properties.items():
            out[name] = prop.to_dict()
        return out

    def to_json(self, indent: Optional[int] = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Metadata:
        if not isinstance(data, dict):
            raise ValueError("metadata must be an object")
        subject = data.get("subject")
        if subject is not None and not isinstance(subject, str):
            raise ValueError("metadata.subject must be a string")
        policy = data.get("policy")
        if policy is not None and not isinstance(policy, str):
            raise ValueError("metadata.policy must be a string")
        properties = {
            name: MetadataProperty.from_dict(raw)
            for name, raw in data.items()
            if name not in _RESERVED_KEYS
        }
        return cls(subject=subject, policy=policy, properties=properties)

    @classmethod
    def from_json(cls, json_str: str) -> Metadata:
        return cls.from_dict(json.loads(json_str))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Metadata):
            return NotImplemented
        return (
            self.subject == other.subject
            and self.policy == other.policy
            and self._properties == other._properties
        )

    def __repr__(self) -> str:
        return (
            f"Metadata(subject={self.subject!r}, policy={self.policy!r}, "
            f"properties={sorted(self._properties)!r})"
        )


__all__ = [
    "AttestationSignature",
    "MetadataProperty",
    "Metadata",
    "sanitize_property_name",
]
