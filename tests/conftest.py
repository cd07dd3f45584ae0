"""Pytest configuration and fixtures."""

import sys
from pathlib import Path

import pytest

_SRC = Path(__file__).resolve().parents[1] / "src"
sys.path.insert(0, str(_SRC))

from tokenmeta.keys import SigningKey  # noqa: E402
from tokenmeta.model import Metadata, MetadataProperty  # noqa: E402
from tokenmeta.policy import AfterScript, AtLeastScript, BeforeScript, SigScript  # noqa: E402

KEY_HASH_HEX = "fb864e59bf8620349c3ebe29af5ad0f9ca2e319d39e115eb93aa58a4"


@pytest.fixture
def signing_key() -> SigningKey:
    """Deterministic test key (seed = 32 bytes of 0x01)."""
    return SigningKey(b"\x01" * 32)


@pytest.fixture
def other_signing_key() -> SigningKey:
    return SigningKey(b"\x02" * 32)


@pytest.fixture
def sig_script() -> SigScript:
    return SigScript(key_hash=KEY_HASH_HEX)


@pytest.fixture
def at_least_script() -> AtLeastScript:
    return AtLeastScript(
        required=1,
        scripts=[
            BeforeScript(slot=600),
            SigScript(key_hash=KEY_HASH_HEX),
            AfterScript(slot=500),
        ],
    )


@pytest.fixture
def sig_script_json() -> str:
    return '{"type": "sig", "keyHash": "%s"}' % KEY_HASH_HEX


@pytest.fixture
def metadata(sig_script: SigScript) -> Metadata:
    """Valid, unsigned metadata for asset ``TestToken``."""
    md = Metadata.for_asset("TestToken", sig_script)
    md.add_property("name", MetadataProperty("Test Token", 0))
    md.add_property("description", MetadataProperty("A test token for validation", 0))
    md.add_property("ticker", MetadataProperty("TEST", 0))
    md.add_property("decimals", MetadataProperty(6, 0))
    return md
