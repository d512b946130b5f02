"""Exception hierarchy for validator-keys.

Every failure the library reports derives from :class:`ValidatorKeysError`
so the command layer can catch a single type and print its message. The
messages are part of the operator-facing surface and are kept stable.

Categories
----------
I/O
    :class:`KeyFileIOError`
Format
    :class:`KeyFileFormatError`
Protocol
    :class:`ManifestSignatureError`, :class:`NoPendingTokenError`,
    :class:`InvalidMasterSignatureError`, :class:`ManifestDecodeError`
Capability
    :class:`CannotSignError`
Validation
    :class:`DomainValidationError`, :class:`HexDecodeError`,
    :class:`PublicKeyParseError`
Command
    :class:`CommandError`

Running out of sequence numbers is not an error: the token-producing
operations return ``None`` instead.
"""
from __future__ import annotations

import json


class ValidatorKeysError(Exception):
    """Base class for all validator-keys errors."""


# ---------------------------------------------------------------------------
# I/O and format
# ---------------------------------------------------------------------------


class KeyFileIOError(ValidatorKeysError):
    """Raised when a key file or its directory cannot be read or written."""


class KeyFileFormatError(ValidatorKeysError):
    """Raised when a key file is unparseable or has a missing/invalid field.

    Parameters
    ----------
    message:
        The full human-readable message.
    field:
        The offending field name, or ``None`` for whole-document failures.
    raw_value:
        The raw JSON value found for *field*, if any.
    """

    def __init__(
        self,
        message: str,
        field: str | None = None,
        raw_value: object = None,
    ) -> None:
        self.field = field
        self.raw_value = raw_value
        super().__init__(message)

    @classmethod
    def missing(cls, path: str, field: str) -> "KeyFileFormatError":
        return cls(f"Key file '{path}' is missing \"{field}\" field", field=field)

    @classmethod
    def invalid(cls, path: str, field: str, raw_value: object) -> "KeyFileFormatError":
        return cls(
            f"Key file '{path}' contains invalid \"{field}\" field: "
            f"{_render_raw(raw_value)}",
            field=field,
            raw_value=raw_value,
        )


def _render_raw(value: object) -> str:
    try:
        return json.dumps(value)
    except (TypeError, ValueError):
        return repr(value)


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


class ManifestDecodeError(ValidatorKeysError):
    """Raised when manifest bytes cannot be decoded into a record."""


class ManifestSignatureError(ValidatorKeysError):
    """Raised when a manifest fails signature verification."""

    def __init__(self) -> None:
        super().__init__("Manifest is not properly signed")


class NoPendingTokenError(ValidatorKeysError):
    """Raised by ``finish_token`` when no token has been started."""

    def __init__(self) -> None:
        super().__init__("No pending token to finish")


class InvalidMasterSignatureError(ValidatorKeysError):
    """Raised when an externally supplied master signature cannot be decoded."""

    def __init__(self) -> None:
        super().__init__("Invalid master signature")


# ---------------------------------------------------------------------------
# Capability
# ---------------------------------------------------------------------------


class CannotSignError(ValidatorKeysError):
    """Raised when an operation needs the master secret but only a public key is held."""


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class DomainValidationError(ValidatorKeysError, ValueError):
    """Raised when a domain string fails the length or pattern rules."""


class HexDecodeError(ValidatorKeysError, ValueError):
    """Raised when operator-supplied hex cannot be decoded."""

    def __init__(self, data: str) -> None:
        self.data = data
        super().__init__(f"Could not decode hex string: {data}")


class PublicKeyParseError(ValidatorKeysError, ValueError):
    """Raised when a public key in any accepted text form cannot be parsed."""

    def __init__(self, data: str) -> None:
        self.data = data
        super().__init__(f"Unable to parse public key: {data}")


# ---------------------------------------------------------------------------
# Command layer
# ---------------------------------------------------------------------------


class CommandError(ValidatorKeysError):
    """Raised by the command layer when it refuses to carry out a command."""


__all__ = [
    "CannotSignError",
    "CommandError",
    "DomainValidationError",
    "HexDecodeError",
    "InvalidMasterSignatureError",
    "KeyFileFormatError",
    "KeyFileIOError",
    "ManifestDecodeError",
    "ManifestSignatureError",
    "NoPendingTokenError",
    "PublicKeyParseError",
    "ValidatorKeysError",
]
