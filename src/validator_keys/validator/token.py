"""ValidatorToken and the staged state of a two-phase token."""
from __future__ import annotations

import json
from dataclasses import dataclass, field

from validator_keys.encoding.text import to_base64, to_hex
from validator_keys.keys.key_type import KeyType


@dataclass(frozen=True)
class ValidatorToken:
    """A freshly minted delegation: the signed manifest plus the delegated secret.

    Parameters
    ----------
    manifest:
        Base64 encoding of the signed delegation manifest.
    secret_key:
        The delegated (ephemeral) secret key the validator signs with.
    """

    manifest: str
    secret_key: bytes = field(repr=False)

    def to_string(self) -> str:
        """Return the token blob an operator pastes into the node config.

        The blob is base64 of a compact JSON object with sorted keys:
        ``{"manifest": ..., "validation_secret_key": <HEX>}``.
        """
        payload = {
            "manifest": self.manifest,
            "validation_secret_key": to_hex(self.secret_key),
        }
        text = json.dumps(payload, sort_keys=True, separators=(",", ":"))
        return to_base64(text.encode("utf-8"))


@dataclass(frozen=True)
class PendingToken:
    """A delegated key staged by ``start_token`` awaiting a master signature.

    Secret and algorithm travel together, so a half-staged token cannot
    exist.
    """

    secret_key: bytes = field(repr=False)
    key_type: KeyType


__all__ = ["PendingToken", "ValidatorToken"]
