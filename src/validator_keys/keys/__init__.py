"""Signature algorithms and master key material.

Submodules
----------
key_type
    The :class:`KeyType` enumeration.
key_manager
    Generation, derivation, signing and verification over raw bytes.
material
    Local and external master key material.
"""
from __future__ import annotations

from validator_keys.keys.key_manager import (
    Ed25519KeyManager,
    Secp256k1KeyManager,
    derive_public_key,
    generate_key_pair,
    public_key_type,
    sign_message,
    verify_message,
)
from validator_keys.keys.key_type import KeyType
from validator_keys.keys.material import (
    ExternalKeyMaterial,
    KeyMaterial,
    LocalKeyMaterial,
    require_secret,
)

__all__ = [
    "Ed25519KeyManager",
    "ExternalKeyMaterial",
    "KeyMaterial",
    "KeyType",
    "LocalKeyMaterial",
    "Secp256k1KeyManager",
    "derive_public_key",
    "generate_key_pair",
    "public_key_type",
    "require_secret",
    "sign_message",
    "verify_message",
]
