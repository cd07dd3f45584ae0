"""Hashing and signing primitives for policy ids and attestations.

Provides BLAKE2b-224/256 hashing and Ed25519 signature verification.
Uses pycryptodome for BLAKE2b and PyNaCl for Ed25519.
"""

from __future__ import annotations

from Crypto.Hash import BLAKE2b
from nacl.exceptions import BadSignatureError
from nacl.signing import VerifyKey

BLAKE2B_224_DIGEST_SIZE = 28
BLAKE2B_256_DIGEST_SIZE = 32


def _blake2b(inputs: tuple[bytes, ...], digest_size: int) -> bytes:
    h = BLAKE2b.new(digest_bytes=digest_size)
    for data in inputs:
        h.update(data)
    return h.digest()


def blake2b_224(*inputs: bytes) -> bytes:
    """Compute BLAKE2b-224 over the given inputs, fed in order.

    Args:
        *inputs: Byte strings to hash

    Returns:
        28-byte digest
    """
    return _blake2b(inputs, BLAKE2B_224_DIGEST_SIZE)


def blake2b_256(*inputs: bytes) -> bytes:
    """Compute BLAKE2b-256 over the given inputs, fed in order.

    Args:
        *inputs: Byte strings to hash

    Returns:
        32-byte digest
    """
    return _blake2b(inputs, BLAKE2B_256_DIGEST_SIZE)


def blake2b_224_hex(*inputs: bytes) -> str:
    return blake2b_224(*inputs).hex()


def verify_signature(message: bytes, signature: bytes, public_key: bytes) -> bool:
    """Verify an Ed25519 signature.

    Args:
        message: Original message bytes
        signature: 64-byte signature
        public_key: 32-byte Ed25519 public key

    Returns:
        True if signature is valid, False otherwise
    """
    try:
        verify_key = VerifyKey(public_key)
        verify_key.verify(message, signature)
        return True
    except (BadSignatureError, ValueError, TypeError):
        return False


__all__ = [
    "BLAKE2B_224_DIGEST_SIZE",
    "BLAKE2B_256_DIGEST_SIZE",
    "blake2b_224",
    "blake2b_256",
    "blake2b_224_hex",
    "verify_signature",
]
