"""Canonical CBOR encoding for hashing and signing.

Produces deterministic CBOR (RFC 8949) for the scalar values that take part
in attestation digests and policy-script hashing:
- Definite lengths only
- Minimal-length integer and length heads
- No maps, no floats, no tags for in-range integers

Text strings and integers encode the same way as in other CIP-26 registry
tools, so digests are portable.
"""

from __future__ import annotations

import io
from typing import Any, Union

import cbor2

from tokenmeta.errors import DecodeError, PreconditionError

ScalarValue = Union[str, int, bytes]


def is_scalar(value: Any) -> bool:
    """Check whether ``value`` belongs to the encodable scalar set."""
    if isinstance(value, bool):
        return False
    return isinstance(value, (str, int, bytes))


def encode_value(value: ScalarValue) -> bytes:
    """Encode a scalar as canonical CBOR.

    Args:
        value: A ``str``, ``int`` or ``bytes`` value

    Returns:
        Canonical CBOR bytes

    Raises:
        PreconditionError: If value is outside the scalar set (``bool`` included)
    """
    if not is_scalar(value):
        raise PreconditionError(
            f"Unsupported type for canonical encoding: {type(value).__name__}"
        )
    return cbor2.dumps(value, canonical=True)


def encode_items(items: list[Any]) -> bytes:
    """Encode a (possibly nested) list of scalars as canonical CBOR."""
    return cbor2.dumps(items, canonical=True)


def loads_strict(data: bytes) -> Any:
    """Decode exactly one CBOR item, rejecting trailing bytes.

    Raises:
        DecodeError: If the input is not a single well-formed CBOR item
    """
    if not isinstance(data, (bytes, bytearray)):
        raise DecodeError(f"Expected bytes, got {type(data).__name__}")
    if not data:
        raise DecodeError("Cannot decode empty input")

    fp = io.BytesIO(bytes(data))
    try:
        item = cbor2.CBORDecoder(fp).decode()
    except (cbor2.CBORDecodeError, EOFError, ValueError) as e:
        raise DecodeError(f"Malformed CBOR: {e}") from e

    consumed = fp.tell()
    if consumed != len(data):
        raise DecodeError(
            f"Trailing bytes after CBOR item: {len(data) - consumed} byte(s) unread"
        )
    return item


def decode_value(data: bytes) -> ScalarValue:
    """Decode canonical CBOR bytes back into a scalar.

    Raises:
        DecodeError: If the bytes are malformed or hold a non-scalar item
    """
    item = loads_strict(data)
    if not is_scalar(item):
        raise DecodeError(f"Decoded item is not a scalar: {type(item).__name__}")

    # cbor2 accepts non-minimal heads; the canonical form must round-trip.
    if encode_value(item) != bytes(data):
        raise DecodeError("Input is not in canonical form")
    return item


__all__ = [
    "ScalarValue",
    "is_scalar",
    "encode_value",
    "encode_items",
    "loads_strict",
    "decode_value",
]
