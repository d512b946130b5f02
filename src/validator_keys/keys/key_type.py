"""KeyType enumeration for the supported signature algorithms."""
from __future__ import annotations

from enum import Enum


class KeyType(str, Enum):
    """Signature algorithms a master or delegated key may use.

    The string values are the names persisted in key files under
    ``key_type`` and ``pending_key_type``.
    """

    SECP256K1 = "secp256k1"
    ED25519 = "ed25519"

    @classmethod
    def from_string(cls, name: object) -> "KeyType | None":
        """Return the KeyType named *name*, or None if there is none."""
        if not isinstance(name, str):
            return None
        try:
            return cls(name)
        except ValueError:
            return None

    def __str__(self) -> str:
        return self.value
