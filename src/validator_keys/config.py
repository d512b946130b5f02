"""Configuration constants and key file location resolution.

The key file location is resolved in this order:

1. An explicit path (the ``--keyfile`` CLI option).
2. The ``VALIDATOR_KEYS_FILE`` environment variable.
3. ``$HOME/.ripple/validator-keys.json``, or the same relative path under
   the current directory when ``HOME`` is unset.
"""
from __future__ import annotations

import os
from pathlib import Path

from validator_keys.keys.key_type import KeyType

KEY_FILE_ENV_VAR: str = "VALIDATOR_KEYS_FILE"

_DEFAULT_RELATIVE_PATH = Path(".ripple") / "validator-keys.json"

# Master keys created by ``create_keys`` and delegated keys minted for tokens.
DEFAULT_MASTER_KEY_TYPE: KeyType = KeyType.ED25519
DEFAULT_TOKEN_KEY_TYPE: KeyType = KeyType.SECP256K1

DOMAIN_MIN_LENGTH: int = 4
DOMAIN_MAX_LENGTH: int = 128

# Width of each line when printing base64 token and revocation blocks.
OUTPUT_LINE_WIDTH: int = 72


def default_key_file(environ: dict[str, str] | None = None) -> Path:
    """Return the key file used when none is given on the command line.

    Parameters
    ----------
    environ:
        Mapping to read environment variables from. Defaults to
        :data:`os.environ`.
    """
    env = os.environ if environ is None else environ
    override = env.get(KEY_FILE_ENV_VAR)
    if override:
        return Path(override)
    home = env.get("HOME")
    base = Path(home) if home else Path.cwd()
    return base / _DEFAULT_RELATIVE_PATH


def resolve_key_file(explicit: str | os.PathLike[str] | None) -> Path:
    """Return *explicit* as a :class:`Path`, or the default key file."""
    if explicit:
        return Path(explicit)
    return default_key_file()


__all__ = [
    "DEFAULT_MASTER_KEY_TYPE",
    "DEFAULT_TOKEN_KEY_TYPE",
    "DOMAIN_MAX_LENGTH",
    "DOMAIN_MIN_LENGTH",
    "KEY_FILE_ENV_VAR",
    "OUTPUT_LINE_WIDTH",
    "default_key_file",
    "resolve_key_file",
]
