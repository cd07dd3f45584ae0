"""Ed25519 keys used to sign and verify attestations.

Key material can come from raw hex or from a ``cardano-cli`` text envelope
(``{"type": ..., "description": ..., "cborHex": "5820..."}``). Only plain
32-byte Ed25519 keys are supported; extended (BIP32) keys are rejected.
"""

from __future__ import annotations

import json
import os
from enum import Enum
from typing import Protocol, Union

import cbor2
from nacl.signing import SigningKey as NaclSigningKey

from tokenmeta.core import verify_signature
from tokenmeta.errors import PreconditionError

ED25519_KEY_SIZE = 32


class KeyRole(str, Enum):
    SIGNING = "signing"
    VERIFICATION = "verification"


class Verifier(Protocol):
    @property
    def role(self) -> KeyRole: ...

    def raw_public_key_bytes(self) -> bytes: ...

    def verify(self, message: bytes, signature: bytes, public_key: bytes) -> bool: ...


class Signer(Protocol):
    @property
    def role(self) -> KeyRole: ...

    def sign(self, message: bytes) -> bytes: ...

    def verification_key(self) -> "VerificationKey": ...


def _key_bytes(raw: Union[bytes, str], label: str) -> bytes:
    if isinstance(raw, str):
        try:
            raw = bytes.fromhex(raw.strip())
        except ValueError as e:
            raise PreconditionError(f"{label} must be hex") from e
    if not isinstance(raw, (bytes, bytearray)) or len(raw) != ED25519_KEY_SIZE:
        raise PreconditionError(f"{label} must be {ED25519_KEY_SIZE} bytes")
    return bytes(raw)


class VerificationKey:
    """An Ed25519 public key."""

    role = KeyRole.VERIFICATION

    def __init__(self, public_key: Union[bytes, str]) -> None:
        self._public_key = _key_bytes(public_key, "verification key")

    @classmethod
    def from_hex(cls, public_key_hex: str) -> VerificationKey:
        return cls(public_key_hex)

    def raw_public_key_bytes(self) -> bytes:
        return self._public_key

    def hex(self) -> str:
        return self._public_key.hex()

    def verify(self, message: bytes, signature: bytes, public_key: bytes | None = None) -> bool:
        return verify_signature(message, signature, public_key or self._public_key)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, VerificationKey):
            return NotImplemented
        return self._public_key == other._public_key

    def __hash__(self) -> int:
        return hash(self._public_key)

    def __repr__(self) -> str:
        return f"VerificationKey({self.hex()})"


class SigningKey:
    """An Ed25519 signing key (32-byte seed)."""

    role = KeyRole.SIGNING

    def __init__(self, seed: Union[bytes, str]) -> None:
        self._key = NaclSigningKey(_key_bytes(seed, "signing key"))

    @classmethod
    def generate(cls) -> SigningKey:
        return cls(bytes(NaclSigningKey.generate()))

    @classmethod
    def from_hex(cls, seed_hex: str) -> SigningKey:
        return cls(seed_hex)

    def sign(self, message: bytes) -> bytes:
        return self._key.sign(message).signature

    def verification_key(self) -> VerificationKey:
        return VerificationKey(bytes(self._key.verify_key))

    def raw_public_key_bytes(self) -> bytes:
        return bytes(self._key.verify_key)

    def __repr__(self) -> str:
        return f"SigningKey(<{self.verification_key().hex()}>)"


def _read_key_material(path: Union[str, os.PathLike]) -> tuple[str | None, bytes]:
    """Return (envelope type or None, raw key bytes) from a key file."""
    with open(path, "r", encoding="utf-8") as f:
        text = f.read().strip()

    if not text.startswith("{"):
        try:
            return None, bytes.fromhex(text)
        except ValueError as e:
            raise PreconditionError(f"{path}: key file is neither hex nor a text envelope") from e

    try:
        envelope = json.loads(text)
    except json.JSONDecodeError as e:
        raise PreconditionError(f"{path}: invalid text envelope JSON: {e}") from e
    key_type = envelope.get("type")
    cbor_hex = envelope.get("cborHex")
    if not isinstance(key_type, str) or not isinstance(cbor_hex, str):
        raise PreconditionError(f"{path}: text envelope needs 'type' and 'cborHex'")
    try:
        raw = cbor2.loads(bytes.fromhex(cbor_hex))
    except (ValueError, cbor2.CBORDecodeError) as e:
        raise PreconditionError(f"{path}: cannot decode cborHex: {e}") from e
    if not isinstance(raw, bytes):
        raise PreconditionError(f"{path}: cborHex must hold a byte string")
    return key_type, raw


def load_signing_key(path: Union[str, os.PathLike]) -> SigningKey:
    key_type, raw = _read_key_material(path)
    if key_type is not None and "SigningKey" not in key_type:
        raise PreconditionError(f"{path}: expected a signing key but got {key_type}")
    if key_type is not None and "Extended" in key_type:
        raise PreconditionError(f"{path}: extended signing keys are not supported")
    return SigningKey(raw)


def load_verification_key(path: Union[str, os.PathLike]) -> VerificationKey:
    key_type, raw = _read_key_material(path)
    if key_type is not None and "VerificationKey" not in key_type:
        raise PreconditionError(f"{path}: expected a verification key but got {key_type}")
    if key_type is not None and "Extended" in key_type:
        raise PreconditionError(f"{path}: extended verification keys are not supported")
    return VerificationKey(raw)


__all__ = [
    "ED25519_KEY_SIZE",
    "KeyRole",
    "Signer",
    "Verifier",
    "SigningKey",
    "VerificationKey",
    "load_signing_key",
    "load_verification_key",
]
