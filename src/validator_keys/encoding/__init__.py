"""Text encodings used in key files and command output."""
from __future__ import annotations

from validator_keys.encoding.base58 import (
    TokenType,
    decode_base58_token,
    encode_base58_token,
)
from validator_keys.encoding.text import (
    from_base64_strict,
    from_hex,
    parse_hex,
    to_base64,
    to_hex,
)

__all__ = [
    "TokenType",
    "decode_base58_token",
    "encode_base58_token",
    "from_base64_strict",
    "from_hex",
    "parse_hex",
    "to_base64",
    "to_hex",
]
