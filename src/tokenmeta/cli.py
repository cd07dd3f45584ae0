"""CLI entry points (``tokenmeta`` command)."""

from __future__ import annotations

import logging
import os
import sys
from typing import Optional

import click

from .attestation import sign_metadata, validate_metadata
from .config import DEFAULT_CONFIG_PATH, ToolConfig, load_config
from .errors import MetadataToolsError
from .keys import load_signing_key, load_verification_key
from .model import Metadata, MetadataProperty
from .policy import compute_policy_id, iter_key_hashes, script_from_file, script_to_cbor_hex
from .update import validate_metadata_update
from .validation import ValidationResult

logger = logging.getLogger(__name__)


def _read_metadata(path: str) -> Metadata:
    with open(path, "r", encoding="utf-8") as f:
        return Metadata.from_json(f.read())


def _write_metadata(metadata: Metadata, path: str, indent: int) -> None:
    with open(path, "w", encoding="utf-8") as f:
        f.write(metadata.to_json(indent=indent))
        f.write("\n")


def _report(result: ValidationResult) -> None:
    if result.valid:
        click.echo("Metadata is VALID.")
        return
    for error in result.errors:
        click.echo(str(error), err=True)
    click.echo(f"Metadata is INVALID ({len(result.errors)} error(s)).", err=True)
    sys.exit(1)


def _fail(exc: Exception) -> None:
    click.echo(f"Error: {exc}", err=True)
    sys.exit(1)


@click.group()
@click.option(
    "--config", "-c",
    default=DEFAULT_CONFIG_PATH,
    envvar="TOKENMETA_CONFIG",
    help="Path to tool config YAML.",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.pass_context
def main(ctx: click.Context, config: str, verbose: bool) -> None:
    """Create, sign and validate offchain token metadata."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj["config"] = load_config(config)


@main.command("policy-id")
@click.argument("script_file", type=click.Path(exists=True))
def policy_id(script_file: str) -> None:
    """Print the policy id of a policy script JSON file."""
    try:
        script = script_from_file(script_file)
    except MetadataToolsError as exc:
        _fail(exc)
    click.echo(compute_policy_id(script))
    for key_hash in iter_key_hashes(script):
        logger.debug("Script references key hash %s", key_hash.hex())


@main.command("policy-cbor")
@click.argument("script_file", type=click.Path(exists=True))
def policy_cbor(script_file: str) -> None:
    """Print the canonical CBOR hex of a policy script JSON file."""
    try:
        click.echo(script_to_cbor_hex(script_from_file(script_file)))
    except MetadataToolsError as exc:
        _fail(exc)


@main.command()
@click.option("--asset-name", required=True, help="Asset name (UTF-8, hex-encoded into the subject).")
@click.option("--policy", "policy_file", type=click.Path(exists=True), help="Policy script JSON file.")
@click.option("--name", help="Token name.")
@click.option("--description", help="Token description.")
@click.option("--ticker", help="Token ticker.")
@click.option("--decimals", type=int, help="Number of decimals.")
@click.option("--url", help="Project URL.")
@click.option("--logo", help="Base64 PNG logo.")
@click.option("--sequence-number", default=0, show_default=True, type=int)
@click.option("--output", "-o", type=click.Path(), help="Output file (default: <output_dir>/<subject>.json).")
@click.pass_context
def create(
    ctx: click.Context,
    asset_name: str,
    policy_file: Optional[str],
    name: Optional[str],
    description: Optional[str],
    ticker: Optional[str],
    decimals: Optional[int],
    url: Optional[str],
    logo: Optional[str],
    sequence_number: int,
    output: Optional[str],
) -> None:
    """Create a new, unsigned metadata document."""
    cfg: ToolConfig = ctx.obj["config"]
    try:
        script = script_from_file(policy_file) if policy_file else None
        metadata = Metadata.for_asset(asset_name, script)
    except MetadataToolsError as exc:
        _fail(exc)

    values = {
        "name": name,
        "description": description,
        "ticker": ticker,
        "decimals": decimals,
        "url": url,
        "logo": logo,
    }
    for prop_name, value in values.items():
        if value is not None:
            metadata.add_property(prop_name, MetadataProperty(value, sequence_number))

    path = output or os.path.join(cfg.output_dir, f"{metadata.subject}.json")
    _write_metadata(metadata, path, cfg.indent)
    click.echo(f"Metadata for {metadata.subject} written to {path}.")


@main.command()
@click.argument("metadata_file", type=click.Path(exists=True))
@click.option("--skey", type=click.Path(exists=True), help="Signing key file (hex or text envelope).")
@click.option("--property", "property_name", help="Sign only this property.")
@click.option("--output", "-o", type=click.Path(), help="Output file (default: overwrite input).")
@click.pass_context
def sign(
    ctx: click.Context,
    metadata_file: str,
    skey: Optional[str],
    property_name: Optional[str],
    output: Optional[str],
) -> None:
    """Attest metadata properties with a signing key."""
    cfg: ToolConfig = ctx.obj["config"]
    key_path = skey or cfg.signing_key_path
    if key_path is None:
        _fail(click.UsageError("no signing key given (--skey or keys.signing_key in config)"))

    try:
        signer = load_signing_key(key_path)
        metadata = _read_metadata(metadata_file)
        sign_metadata(metadata, signer, property_name)
    except (MetadataToolsError, ValueError) as exc:
        _fail(exc)

    _write_metadata(metadata, output or metadata_file, cfg.indent)
    click.echo(f"Signed {metadata.subject} with key {signer.verification_key().hex()}.")


@main.command()
@click.argument("metadata_file", type=click.Path(exists=True))
@click.option("--vkey", type=click.Path(exists=True), help="Only check signatures from this verification key.")
@click.option("--signatures-only", is_flag=True, help="Skip property and required-field rules.")
@click.pass_context
def validate(ctx: click.Context, metadata_file: str, vkey: Optional[str], signatures_only: bool) -> None:
    """Validate a metadata document and its signatures."""
    cfg: ToolConfig = ctx.obj["config"]
    key_path = vkey or cfg.verification_key_path
    try:
        verification_key = load_verification_key(key_path) if key_path else None
        metadata = _read_metadata(metadata_file)
    except (MetadataToolsError, ValueError) as exc:
        _fail(exc)

    _report(validate_metadata(metadata, verification_key, signatures_only, rules=cfg.rules()))


@main.command("validate-update")
@click.argument("latest_file", type=click.Path(exists=True))
@click.argument("base_file", type=click.Path(exists=True))
@click.option("--vkey", type=click.Path(exists=True), help="Only check signatures from this verification key.")
@click.pass_context
def validate_update(ctx: click.Context, latest_file: str, base_file: str, vkey: Optional[str]) -> None:
    """Validate LATEST as an update of BASE (no rollbacks)."""
    cfg: ToolConfig = ctx.obj["config"]
    key_path = vkey or cfg.verification_key_path
    try:
        verification_key = load_verification_key(key_path) if key_path else None
        latest = _read_metadata(latest_file)
        base = _read_metadata(base_file)
    except (MetadataToolsError, ValueError) as exc:
        _fail(exc)

    _report(validate_metadata_update(latest, verification_key, base, rules=cfg.rules()))
