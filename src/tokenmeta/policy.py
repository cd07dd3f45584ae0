"""Native minting policy scripts and policy id derivation.

A policy script is one of six immutable variants. Their canonical CBOR form
follows the Cardano ledger's native script CDDL:

    native_script = [ script_pubkey    // 0, addr_keyhash
                    / script_all       // 1, [* native_script]
                    / script_any       // 2, [* native_script]
                    / script_n_of_k    // 3, n, [* native_script]
                    / invalid_before   // 4, slot
                    / invalid_hereafter  // 5, slot
                    ]

The policy id is BLAKE2b-224 over the native script namespace byte (0x00)
followed by that CBOR. Nested script order is part of the encoding and is
never normalized.

The textual form is the ``cardano-cli`` simple script JSON
(``{"type": "sig", "keyHash": ...}``, ``{"type": "atLeast", ...}``, ...).
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Tuple, Union

from tokenmeta.canonical import encode_items, loads_strict
from tokenmeta.core import blake2b_224_hex
from tokenmeta.errors import DecodeError, ScriptFormatError

NATIVE_SCRIPT_TAG = b"\x00"
KEY_HASH_SIZE = 28
POLICY_ID_SIZE = 28
POLICY_ID_HEX_LENGTH = POLICY_ID_SIZE * 2

SCRIPT_PUBKEY = 0
SCRIPT_ALL = 1
SCRIPT_ANY = 2
SCRIPT_N_OF_K = 3
INVALID_BEFORE = 4
INVALID_HEREAFTER = 5


def _check_int(value: Any, label: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ScriptFormatError(f"{label} must be an integer, got {type(value).__name__}")
    if value < 0:
        raise ScriptFormatError(f"{label} must be non-negative, got {value}")
    return value


def _coerce_scripts(scripts: Any, label: str) -> Tuple["PolicyScript", ...]:
    if not isinstance(scripts, (list, tuple)):
        raise ScriptFormatError(f"{label} must be a sequence of scripts")
    for s in scripts:
        if not isinstance(s, _SCRIPT_TYPES):
            raise ScriptFormatError(f"{label} contains a non-script: {type(s).__name__}")
    return tuple(scripts)


@dataclass(frozen=True)
class SigScript:
    """Requires a signature from the key whose hash is ``key_hash``."""

    key_hash: bytes

    def __post_init__(self) -> None:
        key_hash = self.key_hash
        if isinstance(key_hash, str):
            try:
                key_hash = bytes.fromhex(key_hash)
            except ValueError as e:
                raise ScriptFormatError("sig.keyHash must be hex") from e
        if not isinstance(key_hash, (bytes, bytearray)):
            raise ScriptFormatError("sig.keyHash must be bytes")
        if len(key_hash) != KEY_HASH_SIZE:
            raise ScriptFormatError(
                f"sig.keyHash must be {KEY_HASH_SIZE} bytes, got {len(key_hash)}"
            )
        object.__setattr__(self, "key_hash", bytes(key_hash))


@dataclass(frozen=True)
class AllScript:
    """Satisfied when every nested script is satisfied."""

    scripts: Tuple["PolicyScript", ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "scripts", _coerce_scripts(self.scripts, "all.scripts"))


@dataclass(frozen=True)
class AnyScript:
    """Satisfied when at least one nested script is satisfied."""

    scripts: Tuple["PolicyScript", ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "scripts", _coerce_scripts(self.scripts, "any.scripts"))


@dataclass(frozen=True)
class AtLeastScript:
    """Satisfied when ``required`` of the nested scripts are satisfied."""

    required: int
    scripts: Tuple["PolicyScript", ...] = ()

    def __post_init__(self) -> None:
        _check_int(self.required, "atLeast.required")
        scripts = _coerce_scripts(self.scripts, "atLeast.scripts")
        if self.required > len(scripts):
            raise ScriptFormatError(
                f"atLeast.required ({self.required}) exceeds the number of scripts ({len(scripts)})"
            )
        object.__setattr__(self, "scripts", scripts)


@dataclass(frozen=True)
class BeforeScript:
    """Valid only in slots strictly before ``slot``."""

    slot: int

    def __post_init__(self) -> None:
        _check_int(self.slot, "before.slot")


@dataclass(frozen=True)
class AfterScript:
    """Valid only from ``slot`` onwards."""

    slot: int

    def __post_init__(self) -> None:
        _check_int(self.slot, "after.slot")


PolicyScript = Union[SigScript, AllScript, AnyScript, AtLeastScript, BeforeScript, AfterScript]

_SCRIPT_TYPES = (SigScript, AllScript, AnyScript, AtLeastScript, BeforeScript, AfterScript)


# -- CBOR ---------------------------------------------------------------------


def _to_cbor_item(script: PolicyScript) -> list:
    if isinstance(script, SigScript):
        return [SCRIPT_PUBKEY, script.key_hash]
    if isinstance(script, AllScript):
        return [SCRIPT_ALL, [_to_cbor_item(s) for s in script.scripts]]
    if isinstance(script, AnyScript):
        return [SCRIPT_ANY, [_to_cbor_item(s) for s in script.scripts]]
    if isinstance(script, AtLeastScript):
        return [SCRIPT_N_OF_K, script.required, [_to_cbor_item(s) for s in script.scripts]]
    if isinstance(script, AfterScript):
        return [INVALID_BEFORE, script.slot]
    if isinstance(script, BeforeScript):
        return [INVALID_HEREAFTER, script.slot]
    raise ScriptFormatError(f"Not a policy script: {type(script).__name__}")


def _expect_arity(item: list, arity: int, label: str) -> None:
    if len(item) != arity:
        raise ScriptFormatError(f"{label} must have {arity} elements, got {len(item)}")


def _nested_from_cbor(raw: Any, label: str) -> List[PolicyScript]:
    if not isinstance(raw, list):
        raise ScriptFormatError(f"{label} must be an array")
    return [_from_cbor_item(s) for s in raw]


def _from_cbor_item(item: Any) -> PolicyScript:
    if not isinstance(item, list) or not item:
        raise ScriptFormatError("native script must be a non-empty array")

    tag = item[0]
    if isinstance(tag, bool) or not isinstance(tag, int):
        raise ScriptFormatError("native script tag must be an integer")

    if tag == SCRIPT_PUBKEY:
        _expect_arity(item, 2, "script_pubkey")
        if not isinstance(item[1], bytes):
            raise ScriptFormatError("script_pubkey key hash must be a byte string")
        return SigScript(key_hash=item[1])
    if tag == SCRIPT_ALL:
        _expect_arity(item, 2, "script_all")
        return AllScript(scripts=_nested_from_cbor(item[1], "script_all scripts"))
    if tag == SCRIPT_ANY:
        _expect_arity(item, 2, "script_any")
        return AnyScript(scripts=_nested_from_cbor(item[1], "script_any scripts"))
    if tag == SCRIPT_N_OF_K:
        _expect_arity(item, 3, "script_n_of_k")
        return AtLeastScript(
            required=item[1],
            scripts=_nested_from_cbor(item[2], "script_n_of_k scripts"),
        )
    if tag == INVALID_BEFORE:
        _expect_arity(item, 2, "invalid_before")
        return AfterScript(slot=item[1])
    if tag == INVALID_HEREAFTER:
        _expect_arity(item, 2, "invalid_hereafter")
        return BeforeScript(slot=item[1])
    raise ScriptFormatError(f"Unknown native script tag: {tag}")


def script_to_cbor(script: PolicyScript) -> bytes:
    """Encode a policy script as canonical CBOR."""
    return encode_items(_to_cbor_item(script))


def script_to_cbor_hex(script: PolicyScript) -> str:
    return script_to_cbor(script).hex()


def script_from_cbor(data: bytes) -> PolicyScript:
    """Decode canonical CBOR bytes into a policy script.

    Raises:
        DecodeError: If the bytes are not a single well-formed CBOR item
        ScriptFormatError: If the item is not a valid native script tree
    """
    return _from_cbor_item(loads_strict(data))


def script_from_cbor_hex(cbor_hex: str) -> PolicyScript:
    try:
        data = bytes.fromhex(cbor_hex)
    except (ValueError, TypeError) as e:
        raise DecodeError(f"policy must be hex: {e}") from e
    return script_from_cbor(data)


# -- JSON ---------------------------------------------------------------------

_JSON_FIELDS = {
    "sig": {"type", "keyHash"},
    "all": {"type", "scripts"},
    "any": {"type", "scripts"},
    "atLeast": {"type", "required", "scripts"},
    "before": {"type", "slot"},
    "after": {"type", "slot"},
}


def script_to_dict(script: PolicyScript) -> Dict[str, Any]:
    if isinstance(script, SigScript):
        return {"type": "sig", "keyHash": script.key_hash.hex()}
    if isinstance(script, AllScript):
        return {"type": "all", "scripts": [script_to_dict(s) for s in script.scripts]}
    if isinstance(script, AnyScript):
        return {"type": "any", "scripts": [script_to_dict(s) for s in script.scripts]}
    if isinstance(script, AtLeastScript):
        return {
            "type": "atLeast",
            "required": script.required,
            "scripts": [script_to_dict(s) for s in script.scripts],
        }
    if isinstance(script, BeforeScript):
        return {"type": "before", "slot": script.slot}
    if isinstance(script, AfterScript):
        return {"type": "after", "slot": script.slot}
    raise ScriptFormatError(f"Not a policy script: {type(script).__name__}")


def _nested_from_dict(data: Dict[str, Any], kind: str) -> List[PolicyScript]:
    raw = data.get("scripts")
    if not isinstance(raw, list):
        raise ScriptFormatError(f"{kind}.scripts must be a list")
    return [script_from_dict(s) for s in raw]


def script_from_dict(data: Any) -> PolicyScript:
    """Build a policy script from its ``cardano-cli`` JSON object form."""
    if not isinstance(data, dict):
        raise ScriptFormatError("policy script must be a JSON object")

    kind = data.get("type")
    if kind not in _JSON_FIELDS:
        raise ScriptFormatError(f"Unknown policy script type: {kind!r}")

    unknown = set(data.keys()) - _JSON_FIELDS[kind]
    if unknown:
        raise ScriptFormatError(f"Unknown {kind} field(s): {', '.join(sorted(unknown))}")

    if kind == "sig":
        key_hash = data.get("keyHash")
        if not isinstance(key_hash, str):
            raise ScriptFormatError("sig.keyHash must be a hex string")
        return SigScript(key_hash=key_hash)
    if kind == "all":
        return AllScript(scripts=_nested_from_dict(data, kind))
    if kind == "any":
        return AnyScript(scripts=_nested_from_dict(data, kind))
    if kind == "atLeast":
        return AtLeastScript(required=data.get("required"), scripts=_nested_from_dict(data, kind))
    if kind == "before":
        return BeforeScript(slot=data.get("slot"))
    return AfterScript(slot=data.get("slot"))


def script_from_json(text: str) -> PolicyScript:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ScriptFormatError(f"policy script is not valid JSON: {e}") from e
    return script_from_dict(data)


def script_from_file(path: Union[str, os.PathLike]) -> PolicyScript:
    with open(path, "r", encoding="utf-8") as f:
        return script_from_json(f.read())


def load_script(source: Union[PolicyScript, bytes, str]) -> PolicyScript:
    """Accept a parsed script, canonical CBOR bytes, or JSON text."""
    if isinstance(source, _SCRIPT_TYPES):
        return source
    if isinstance(source, (bytes, bytearray)):
        return script_from_cbor(bytes(source))
    if isinstance(source, str):
        return script_from_json(source)
    raise ScriptFormatError(f"Cannot load policy script from {type(source).__name__}")


# -- Policy id ----------------------------------------------------------------


def compute_policy_id(script: PolicyScript) -> str:
    """Derive the 56-char lowercase hex policy id of a native script."""
    return blake2b_224_hex(NATIVE_SCRIPT_TAG, script_to_cbor(script))


def policy_id_from_json(text: str) -> str:
    return compute_policy_id(script_from_json(text))


def policy_id_from_file(path: Union[str, os.PathLike]) -> str:
    return compute_policy_id(script_from_file(path))


def iter_key_hashes(script: PolicyScript) -> Iterator[bytes]:
    """Yield the key hashes a script references, depth-first in authored order."""
    if isinstance(script, SigScript):
        yield script.key_hash
    elif isinstance(script, (AllScript, AnyScript, AtLeastScript)):
        for s in script.scripts:
            yield from iter_key_hashes(s)


__all__ = [
    "NATIVE_SCRIPT_TAG",
    "KEY_HASH_SIZE",
    "POLICY_ID_SIZE",
    "POLICY_ID_HEX_LENGTH",
    "PolicyScript",
    "SigScript",
    "AllScript",
    "AnyScript",
    "AtLeastScript",
    "BeforeScript",
    "AfterScript",
    "script_to_cbor",
    "script_to_cbor_hex",
    "script_from_cbor",
    "script_from_cbor_hex",
    "script_to_dict",
    "script_from_dict",
    "script_from_json",
    "script_from_file",
    "load_script",
    "compute_policy_id",
    "policy_id_from_json",
    "policy_id_from_file",
    "iter_key_hashes",
]
