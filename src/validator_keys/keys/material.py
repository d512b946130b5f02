"""Master key material — local (secret held) or external (public key only).

Key material is immutable. A :class:`LocalKeyMaterial` always satisfies
``public_key == derive_public_key(key_type, secret_key)``; the only way to
build one is from a secret (fresh or loaded) so the pair cannot disagree.
An :class:`ExternalKeyMaterial` holds only the public key of a master secret
that lives elsewhere; it can never produce a master signature.

Callers that need the secret go through :func:`require_secret`, which is
the single place the capability check is made.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

from validator_keys.errors import CannotSignError
from validator_keys.keys.key_manager import (
    derive_public_key,
    generate_key_pair,
    public_key_type,
)
from validator_keys.keys.key_type import KeyType


@dataclass(frozen=True)
class LocalKeyMaterial:
    """A master key pair whose secret is held by this process.

    Parameters
    ----------
    key_type:
        Algorithm of the key pair.
    secret_key:
        The 32-byte secret key.
    public_key:
        Derived from *secret_key*; not accepted as a constructor argument.
    """

    key_type: KeyType
    secret_key: bytes = field(repr=False)
    public_key: bytes = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "public_key", derive_public_key(self.key_type, self.secret_key))

    @classmethod
    def generate(cls, key_type: KeyType) -> "LocalKeyMaterial":
        """Generate a fresh random master key pair of *key_type*."""
        _, secret = generate_key_pair(key_type)
        return cls(key_type=key_type, secret_key=secret)


@dataclass(frozen=True)
class ExternalKeyMaterial:
    """The public half of a master key whose secret is held externally.

    Raises
    ------
    ValueError
        If *public_key* is not a valid public key of *key_type*.
    """

    key_type: KeyType
    public_key: bytes

    def __post_init__(self) -> None:
        if public_key_type(self.public_key) is not self.key_type:
            raise ValueError(
                f"Public key is not a valid {self.key_type.value} key: {self.public_key.hex()}"
            )


KeyMaterial = Union[LocalKeyMaterial, ExternalKeyMaterial]


def require_secret(material: KeyMaterial, message: str) -> bytes:
    """Return the master secret, or raise :class:`CannotSignError` with *message*."""
    if isinstance(material, LocalKeyMaterial):
        return material.secret_key
    raise CannotSignError(message)


__all__ = [
    "ExternalKeyMaterial",
    "KeyMaterial",
    "LocalKeyMaterial",
    "require_secret",
]
