"""YAML configuration for the ``tokenmeta`` command."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Optional

import yaml

from .rules import DEFAULT_RULES, REQUIRED_PROPERTIES, RuleSet

DEFAULT_CONFIG_PATH = os.path.expanduser("~/.tokenmeta/config.yaml")


@dataclass
class ToolConfig:
    """Parsed tool configuration."""

    # Keys
    signing_key_path: Optional[str] = None
    verification_key_path: Optional[str] = None

    # Output
    output_dir: str = "."
    indent: int = 2

    # Validation
    required_properties: list[str] = field(default_factory=lambda: list(REQUIRED_PROPERTIES))

    def rules(self) -> RuleSet:
        return DEFAULT_RULES.with_required_properties(self.required_properties)


def _expand(path: str) -> str:
    return os.path.expanduser(os.path.expandvars(path))


def _optional_path(section: dict[str, Any], key: str) -> Optional[str]:
    value = section.get(key)
    return _expand(value) if value else None


def load_config(path: str = DEFAULT_CONFIG_PATH) -> ToolConfig:
    """Load tool configuration from a YAML file.

    A missing file at the default location yields the defaults; a missing
    file anywhere else is an error.
    """
    if path == DEFAULT_CONFIG_PATH and not os.path.exists(path):
        return ToolConfig()

    with open(path, "r") as f:
        raw: dict[str, Any] = yaml.safe_load(f) or {}

    keys_section = raw.get("keys", {}) or {}
    output_section = raw.get("output", {}) or {}
    validation_section = raw.get("validation", {}) or {}

    required = validation_section.get("required_properties", list(REQUIRED_PROPERTIES))
    if not isinstance(required, list) or not all(isinstance(p, str) for p in required):
        raise ValueError("validation.required_properties must be a list of strings")

    return ToolConfig(
        signing_key_path=_optional_path(keys_section, "signing_key"),
        verification_key_path=_optional_path(keys_section, "verification_key"),
        output_dir=_expand(output_section.get("dir", ".")),
        indent=int(output_section.get("indent", 2)),
        required_properties=[p.strip() for p in required],
    )
