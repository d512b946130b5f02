"""Hex and base64 helpers with the strictness the key tool needs."""
from __future__ import annotations

import base64
import binascii

from validator_keys.errors import HexDecodeError


def to_hex(data: bytes) -> str:
    """Return upper-case hex for *data*."""
    return data.hex().upper()


def from_hex(text: str) -> bytes | None:
    """Decode hex of either case; None on odd length or non-hex characters."""
    try:
        return bytes.fromhex(text) if _plain_hex(text) else None
    except ValueError:
        return None


def parse_hex(text: str) -> bytes:
    """Decode hex after trimming surrounding whitespace.

    Raises
    ------
    HexDecodeError
        If the trimmed text is not valid hex.
    """
    trimmed = text.strip()
    decoded = from_hex(trimmed)
    if decoded is None:
        raise HexDecodeError(trimmed)
    return decoded


def _plain_hex(text: str) -> bool:
    # bytes.fromhex tolerates embedded whitespace; operator input must not.
    return len(text) % 2 == 0 and all(c in "0123456789abcdefABCDEF" for c in text)


def to_base64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def from_base64_strict(text: str) -> bytes | None:
    """Decode standard base64, rejecting input that does not round-trip.

    Lenient decoders stop at the first bad character and return whatever
    they managed to read, so a truncated or corrupted value would still
    "decode". Re-encoding and comparing catches that.
    """
    try:
        decoded = base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError):
        return None
    if to_base64(decoded) != text:
        return None
    return decoded


__all__ = [
    "from_base64_strict",
    "from_hex",
    "parse_hex",
    "to_base64",
    "to_hex",
]
