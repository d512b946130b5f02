"""CLI entry point for validator-keys.

Invoked as::

    validator-keys [OPTIONS] COMMAND [ARGS]...

or, during development::

    python -m validator_keys.cli.main

Commands
--------
create_keys                 Generate a new validator key file
create_external PUBKEY      Create a key file for an externally held master key
create_token                Generate a new validator token
start_token                 Stage a token for an external master signature
finish_token SIGNATURE      Complete a staged token
revoke_keys                 Revoke the validator keys
start_revoke_keys           Print the revocation bytes for an external signature
finish_revoke_keys SIG      Revoke with an external master signature
set_domain DOMAIN           Set the domain and generate a new token
clear_domain                Clear the domain and generate a new token
attest_domain               Print the domain attestation
sign DATA                   Sign a string with the master key
sign_hex HEX                Sign hex-encoded bytes with the master key
show_manifest [ENCODING]    Print the last manifest generated
version                     Show version information
"""
from __future__ import annotations

import logging
import sys
from collections.abc import Callable
from functools import wraps
from pathlib import Path
from typing import Any, TypeVar

import click
from rich.console import Console
from rich.markup import escape

from validator_keys import __version__, tool
from validator_keys.config import resolve_key_file
from validator_keys.errors import ValidatorKeysError

console = Console(stderr=True, highlight=False, emoji=False)

_F = TypeVar("_F", bound=Callable[..., Any])

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _reports_errors(func: _F) -> _F:
    """Print a ValidatorKeysError as ``Error: <message>`` and exit with status 1."""

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except ValidatorKeysError as exc:
            console.print(f"[red]Error:[/red] {escape(str(exc))}", markup=True, soft_wrap=True)
            sys.exit(1)

    return wrapper  # type: ignore[return-value]


def _key_file(ctx: click.Context) -> Path:
    return ctx.obj["keyfile"]


# ------------------------------------------------------------------
# Root group
# ------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="validator-keys")
@click.option(
    "--keyfile",
    type=click.Path(dir_okay=False),
    default=None,
    help="Key file path (default: $VALIDATOR_KEYS_FILE, else $HOME/.ripple/validator-keys.json).",
)
@click.option(
    "--log-level",
    type=click.Choice(_LOG_LEVELS, case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Logging verbosity.",
)
@click.pass_context
def cli(ctx: click.Context, keyfile: str | None, log_level: str) -> None:
    """Manage validator master keys, tokens and revocations"""
    logging.basicConfig(level=getattr(logging, log_level.upper()))
    ctx.ensure_object(dict)
    ctx.obj["keyfile"] = resolve_key_file(keyfile)


@cli.command(name="version")
def version_command() -> None:
    """Show detailed version information."""
    tool.console.print(f"validator-keys version {__version__}", markup=False)


# ------------------------------------------------------------------
# Key creation
# ------------------------------------------------------------------


@cli.command(name="create_keys")
@click.pass_context
@_reports_errors
def create_keys_command(ctx: click.Context) -> None:
    """Generate validator keys."""
    tool.create_key_file(_key_file(ctx))


@cli.command(name="create_external")
@click.argument("public_key")
@click.pass_context
@_reports_errors
def create_external_command(ctx: click.Context, public_key: str) -> None:
    """Create a key file for a master key held elsewhere.

    PUBLIC_KEY may be base58, hex or base64 encoded.
    """
    tool.create_external(public_key, _key_file(ctx))


# ------------------------------------------------------------------
# Tokens
# ------------------------------------------------------------------


@cli.command(name="create_token")
@click.pass_context
@_reports_errors
def create_token_command(ctx: click.Context) -> None:
    """Generate validator token."""
    tool.create_token(_key_file(ctx))


@cli.command(name="start_token")
@click.pass_context
@_reports_errors
def start_token_command(ctx: click.Context) -> None:
    """Start generating a token signed by an external master key."""
    tool.start_token(_key_file(ctx))


@cli.command(name="finish_token")
@click.argument("signature")
@click.pass_context
@_reports_errors
def finish_token_command(ctx: click.Context, signature: str) -> None:
    """Finish a started token with the hex or base64 master SIGNATURE."""
    tool.finish_token(signature, _key_file(ctx))


# ------------------------------------------------------------------
# Revocation
# ------------------------------------------------------------------


@cli.command(name="revoke_keys")
@click.pass_context
@_reports_errors
def revoke_keys_command(ctx: click.Context) -> None:
    """Revoke validator keys."""
    tool.create_revocation(_key_file(ctx))


@cli.command(name="start_revoke_keys")
@click.pass_context
@_reports_errors
def start_revoke_keys_command(ctx: click.Context) -> None:
    """Start revoking validator keys with an external master key."""
    tool.start_revocation(_key_file(ctx))


@cli.command(name="finish_revoke_keys")
@click.argument("signature")
@click.pass_context
@_reports_errors
def finish_revoke_keys_command(ctx: click.Context, signature: str) -> None:
    """Finish revoking validator keys with the master SIGNATURE."""
    tool.finish_revocation(signature, _key_file(ctx))


# ------------------------------------------------------------------
# Domain
# ------------------------------------------------------------------


@cli.command(name="set_domain")
@click.argument("domain")
@click.pass_context
@_reports_errors
def set_domain_command(ctx: click.Context, domain: str) -> None:
    """Associate a DOMAIN with the validator key."""
    tool.set_domain(domain, _key_file(ctx))


@cli.command(name="clear_domain")
@click.pass_context
@_reports_errors
def clear_domain_command(ctx: click.Context) -> None:
    """Disassociate a domain from the validator key."""
    tool.set_domain("", _key_file(ctx))


@cli.command(name="attest_domain")
@click.pass_context
@_reports_errors
def attest_domain_command(ctx: click.Context) -> None:
    """Produce the attestation string for the domain."""
    tool.attest_domain(_key_file(ctx))


# ------------------------------------------------------------------
# Signing and inspection
# ------------------------------------------------------------------


@cli.command(name="sign")
@click.argument("data")
@click.pass_context
@_reports_errors
def sign_command(ctx: click.Context, data: str) -> None:
    """Sign string DATA with the validator master key."""
    tool.sign_data(data, _key_file(ctx))


@cli.command(name="sign_hex")
@click.argument("data")
@click.pass_context
@_reports_errors
def sign_hex_command(ctx: click.Context, data: str) -> None:
    """Sign hex-encoded DATA with the validator master key."""
    tool.sign_hex_data(data, _key_file(ctx))


@cli.command(name="show_manifest")
@click.argument("encoding", default="base64")
@click.pass_context
@_reports_errors
def show_manifest_command(ctx: click.Context, encoding: str) -> None:
    """Display the last generated manifest in ENCODING (base64 or hex)."""
    tool.show_manifest(encoding, _key_file(ctx))


if __name__ == "__main__":
    cli()
