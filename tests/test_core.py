"""Tests for tokenmeta.core digests and Ed25519 primitives."""

import hashlib

from nacl.signing import SigningKey

from tokenmeta.core import blake2b_224, blake2b_224_hex, blake2b_256, verify_signature


class TestBlake2b:
    def test_blake2b_224_matches_hashlib(self) -> None:
        expected = hashlib.blake2b(b"hello", digest_size=28).digest()
        result = blake2b_224(b"hello")
        assert len(result) == 28
        assert result == expected

    def test_blake2b_256_matches_hashlib(self) -> None:
        expected = hashlib.blake2b(b"hello", digest_size=32).digest()
        result = blake2b_256(b"hello")
        assert len(result) == 32
        assert result == expected

    def test_blake2b_256_empty(self) -> None:
        # Known BLAKE2b-256 of the empty string
        expected = bytes.fromhex(
            "0e5751c026e543b2e8ab2eb06099daa1d1e5df47778f7787faab45cdf12fe3a8"
        )
        assert blake2b_256(b"") == expected

    def test_multiple_inputs_equal_concatenation(self) -> None:
        assert blake2b_256(b"ab", b"cd") == blake2b_256(b"abcd")
        assert blake2b_224(b"\x00", b"xyz") == blake2b_224(b"\x00xyz")

    def test_widths_differ(self) -> None:
        assert blake2b_224(b"data") != blake2b_256(b"data")[:28]

    def test_hex_variants(self) -> None:
        assert blake2b_224_hex(b"x") == blake2b_224(b"x").hex()
        assert len(blake2b_224_hex(b"x")) == 56


class TestVerifySignature:
    def test_valid_signature(self) -> None:
        key = SigningKey.generate()
        signature = key.sign(b"test message").signature
        assert verify_signature(b"test message", signature, bytes(key.verify_key)) is True

    def test_wrong_message(self) -> None:
        key = SigningKey.generate()
        signature = key.sign(b"test message").signature
        assert verify_signature(b"wrong message", signature, bytes(key.verify_key)) is False

    def test_wrong_key(self) -> None:
        key = SigningKey.generate()
        other = SigningKey.generate()
        signature = key.sign(b"test message").signature
        assert verify_signature(b"test message", signature, bytes(other.verify_key)) is False

    def test_malformed_inputs(self) -> None:
        public_key = bytes(SigningKey.generate().verify_key)
        assert verify_signature(b"m", b"\x00" * 64, public_key) is False
        assert verify_signature(b"m", b"\x00" * 10, public_key) is False
        assert verify_signature(b"m", b"\x00" * 64, b"\x00" * 5) is False
