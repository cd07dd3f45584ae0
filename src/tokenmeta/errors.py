"""Exception types raised by tokenmeta.

Validation problems are not exceptions: they are collected in a
``ValidationResult`` so that every problem is reported in one pass.
"""

from __future__ import annotations


class MetadataToolsError(Exception):
    """Base class for all tokenmeta errors."""


class DecodeError(MetadataToolsError, ValueError):
    """Canonical bytes could not be decoded."""


class ScriptFormatError(MetadataToolsError, ValueError):
    """A policy script is structurally invalid."""


class PreconditionError(MetadataToolsError, ValueError):
    """An operation was called with arguments it cannot accept."""


__all__ = [
    "MetadataToolsError",
    "DecodeError",
    "ScriptFormatError",
    "PreconditionError",
]
