"""Base58Check token codec using the ledger alphabet.

Token encoding
--------------
1. Prepend the one-byte token type to the payload.
2. Append the first four bytes of ``SHA256(SHA256(type || payload))``.
3. Encode the result with base58 over :data:`LEDGER_ALPHABET`.

Node public keys use token type 28 and node secret keys use 32, so an
encoded public key always starts with ``n`` and a secret key with ``p``.
"""
from __future__ import annotations

import hashlib
from enum import IntEnum

LEDGER_ALPHABET: bytes = b"rpshnaf39wBUDNEGHJKLM4PQRST7VWXYZ2bcdeCg65jkm8oFqi1tuvAxyz"

_CHECKSUM_SIZE = 4


class TokenType(IntEnum):
    """Leading type byte of a Base58Check token."""

    NODE_PUBLIC = 28
    NODE_PRIVATE = 32


def _base58_encode(data: bytes) -> str:
    """Encode *data* to a base58 string over the ledger alphabet."""
    n = int.from_bytes(data, "big")
    result: list[bytes] = []
    while n > 0:
        n, remainder = divmod(n, 58)
        result.append(LEDGER_ALPHABET[remainder : remainder + 1])
    # Preserve leading zero bytes as the alphabet's zero digit
    zero = LEDGER_ALPHABET[0:1]
    for byte in data:
        if byte == 0:
            result.append(zero)
        else:
            break
    return b"".join(reversed(result)).decode("ascii")


def _base58_decode(encoded: str) -> bytes:
    """Decode a base58 string over the ledger alphabet.

    Raises
    ------
    ValueError
        If the string contains a character not in the alphabet.
    """
    n = 0
    alphabet_str = LEDGER_ALPHABET.decode("ascii")
    for char in encoded:
        index = alphabet_str.find(char)
        if index < 0:
            raise ValueError(f"Invalid base58 character {char!r} in encoded string {encoded!r}")
        n = n * 58 + index
    result = n.to_bytes((n.bit_length() + 7) // 8, "big") if n > 0 else b""
    pad_size = 0
    for char in encoded:
        if char == alphabet_str[0]:
            pad_size += 1
        else:
            break
    return b"\x00" * pad_size + result


def _checksum(data: bytes) -> bytes:
    return hashlib.sha256(hashlib.sha256(data).digest()).digest()[:_CHECKSUM_SIZE]


def encode_base58_token(token_type: TokenType, payload: bytes) -> str:
    """Return the Base58Check encoding of *payload* tagged with *token_type*."""
    body = bytes([token_type]) + payload
    return _base58_encode(body + _checksum(body))


def decode_base58_token(token_type: TokenType, encoded: str) -> bytes | None:
    """Decode a Base58Check token of *token_type*.

    Returns
    -------
    bytes | None
        The payload, or None if *encoded* is not valid base58, has a bad
        checksum, or carries a different token type.
    """
    if not isinstance(encoded, str) or not encoded:
        return None
    try:
        raw = _base58_decode(encoded)
    except ValueError:
        return None
    if len(raw) < 1 + _CHECKSUM_SIZE:
        return None
    body, checksum = raw[:-_CHECKSUM_SIZE], raw[-_CHECKSUM_SIZE:]
    if _checksum(body) != checksum or body[0] != token_type:
        return None
    return body[1:]


__all__ = [
    "LEDGER_ALPHABET",
    "TokenType",
    "decode_base58_token",
    "encode_base58_token",
]
