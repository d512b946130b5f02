"""Key managers — key generation, derivation, signing, and verification.

This module is a thin wrapper around the ``cryptography`` package's
Ed25519 and ECDSA/secp256k1 primitives. All key material is handled as raw
bytes so callers can store or transmit keys without depending on this
module's internal types.

Key formats
-----------
Secret keys are 32 raw bytes for both algorithms. Public keys are 33 bytes
so that the algorithm can be recovered from the key itself:

- ed25519: ``0xED`` followed by the 32-byte raw public key.
- secp256k1: the SEC1 compressed point (``0x02`` or ``0x03`` prefix).

Signature formats
-----------------
- ed25519 signs the message itself and yields 64 bytes.
- secp256k1 signs :func:`sha512_half` of the message and yields a DER
  encoded ECDSA signature normalised to low-S. Verification rejects
  high-S and non-canonical DER encodings.
"""
from __future__ import annotations

import hashlib

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)
from cryptography.hazmat.primitives.asymmetric.utils import (
    Prehashed,
    decode_dss_signature,
    encode_dss_signature,
)
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
)

from validator_keys.keys.key_type import KeyType

PUBLIC_KEY_SIZE: int = 33
SECRET_KEY_SIZE: int = 32

_ED25519_PREFIX: int = 0xED

# Order of the secp256k1 group.
_SECP256K1_ORDER: int = int(
    "FFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141", 16
)


def sha512_half(data: bytes) -> bytes:
    """Return the first 32 bytes of the SHA-512 digest of *data*."""
    return hashlib.sha512(data).digest()[:32]


# ---------------------------------------------------------------------------
# Ed25519
# ---------------------------------------------------------------------------


class Ed25519KeyManager:
    """Ed25519 key management: generate, derive, sign, and verify.

    Example
    -------
    ::

        manager = Ed25519KeyManager()
        public_bytes, secret_bytes = manager.generate_keypair()
        signature = manager.sign(secret_bytes, b"hello world")
        assert manager.verify(public_bytes, signature, b"hello world")
    """

    key_type = KeyType.ED25519

    def generate_keypair(self) -> tuple[bytes, bytes]:
        """Generate a new Ed25519 keypair.

        Returns
        -------
        tuple[bytes, bytes]
            A ``(public_key_bytes, secret_key_bytes)`` pair; 33 and 32 bytes.
        """
        private_key = Ed25519PrivateKey.generate()
        secret = private_key.private_bytes(Encoding.Raw, PrivateFormat.Raw, NoEncryption())
        return self.derive_public_key(secret), secret

    def derive_public_key(self, secret_key: bytes) -> bytes:
        """Return the prefixed public key for *secret_key*.

        Raises
        ------
        ValueError
            If *secret_key* is not a 32-byte Ed25519 secret.
        """
        private_key = Ed25519PrivateKey.from_private_bytes(secret_key)
        raw = private_key.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw)
        return bytes([_ED25519_PREFIX]) + raw

    def sign(self, secret_key: bytes, data: bytes) -> bytes:
        """Sign *data* and return the 64-byte Ed25519 signature."""
        return Ed25519PrivateKey.from_private_bytes(secret_key).sign(data)

    def verify(self, public_key: bytes, signature: bytes, data: bytes) -> bool:
        """Return True if *signature* over *data* is valid for *public_key*."""
        if len(public_key) != PUBLIC_KEY_SIZE or public_key[0] != _ED25519_PREFIX:
            return False
        try:
            Ed25519PublicKey.from_public_bytes(public_key[1:]).verify(signature, data)
            return True
        except (InvalidSignature, ValueError):
            return False


# ---------------------------------------------------------------------------
# secp256k1
# ---------------------------------------------------------------------------


class Secp256k1KeyManager:
    """secp256k1 ECDSA key management: generate, derive, sign, and verify."""

    key_type = KeyType.SECP256K1

    def generate_keypair(self) -> tuple[bytes, bytes]:
        """Generate a new secp256k1 keypair.

        Returns
        -------
        tuple[bytes, bytes]
            A ``(public_key_bytes, secret_key_bytes)`` pair; 33 and 32 bytes.
        """
        private_key = ec.generate_private_key(ec.SECP256K1())
        secret = private_key.private_numbers().private_value.to_bytes(SECRET_KEY_SIZE, "big")
        return self.derive_public_key(secret), secret

    def derive_public_key(self, secret_key: bytes) -> bytes:
        """Return the compressed public key for *secret_key*.

        Raises
        ------
        ValueError
            If *secret_key* is not 32 bytes or is outside the group order.
        """
        private_key = self._private_key(secret_key)
        return private_key.public_key().public_bytes(
            Encoding.X962, PublicFormat.CompressedPoint
        )

    def sign(self, secret_key: bytes, data: bytes) -> bytes:
        """Sign the SHA-512 half of *data*; returns a low-S DER signature."""
        private_key = self._private_key(secret_key)
        der = private_key.sign(sha512_half(data), ec.ECDSA(Prehashed(hashes.SHA256())))
        r, s = decode_dss_signature(der)
        if s > _SECP256K1_ORDER // 2:
            s = _SECP256K1_ORDER - s
        return encode_dss_signature(r, s)

    def verify(self, public_key: bytes, signature: bytes, data: bytes) -> bool:
        """Return True if *signature* is a canonical valid signature over *data*."""
        if len(public_key) != PUBLIC_KEY_SIZE or public_key[0] not in (0x02, 0x03):
            return False
        try:
            r, s = decode_dss_signature(signature)
            if s > _SECP256K1_ORDER // 2 or encode_dss_signature(r, s) != signature:
                return False
            key = ec.EllipticCurvePublicKey.from_encoded_point(ec.SECP256K1(), public_key)
            key.verify(signature, sha512_half(data), ec.ECDSA(Prehashed(hashes.SHA256())))
            return True
        except (InvalidSignature, ValueError):
            return False

    @staticmethod
    def _private_key(secret_key: bytes) -> ec.EllipticCurvePrivateKey:
        if len(secret_key) != SECRET_KEY_SIZE:
            raise ValueError(
                f"secp256k1 secret key must be {SECRET_KEY_SIZE} bytes, got {len(secret_key)}"
            )
        return ec.derive_private_key(int.from_bytes(secret_key, "big"), ec.SECP256K1())


# ---------------------------------------------------------------------------
# Dispatch by algorithm
# ---------------------------------------------------------------------------

_MANAGERS: dict[KeyType, Ed25519KeyManager | Secp256k1KeyManager] = {
    KeyType.ED25519: Ed25519KeyManager(),
    KeyType.SECP256K1: Secp256k1KeyManager(),
}


def key_manager_for(key_type: KeyType) -> Ed25519KeyManager | Secp256k1KeyManager:
    """Return the key manager implementing *key_type*."""
    return _MANAGERS[key_type]


def generate_key_pair(key_type: KeyType) -> tuple[bytes, bytes]:
    """Generate a fresh ``(public, secret)`` pair of *key_type*."""
    return key_manager_for(key_type).generate_keypair()


def derive_public_key(key_type: KeyType, secret_key: bytes) -> bytes:
    """Derive the public key of *key_type* for *secret_key*."""
    return key_manager_for(key_type).derive_public_key(secret_key)


def public_key_type(public_key: bytes) -> KeyType | None:
    """Return the algorithm of a 33-byte public key, or None if it is not one.

    secp256k1 keys are also checked for being a point on the curve.
    """
    if len(public_key) != PUBLIC_KEY_SIZE:
        return None
    if public_key[0] == _ED25519_PREFIX:
        return KeyType.ED25519
    if public_key[0] in (0x02, 0x03):
        try:
            ec.EllipticCurvePublicKey.from_encoded_point(ec.SECP256K1(), public_key)
        except ValueError:
            return None
        return KeyType.SECP256K1
    return None


def sign_message(key_type: KeyType, secret_key: bytes, message: bytes) -> bytes:
    """Sign *message* with *secret_key* of *key_type*."""
    return key_manager_for(key_type).sign(secret_key, message)


def verify_message(public_key: bytes, message: bytes, signature: bytes) -> bool:
    """Verify *signature* over *message*; the algorithm comes from *public_key*.

    Never raises; malformed keys or signatures verify as False.
    """
    key_type = public_key_type(public_key)
    if key_type is None:
        return False
    return key_manager_for(key_type).verify(public_key, signature, message)


__all__ = [
    "Ed25519KeyManager",
    "PUBLIC_KEY_SIZE",
    "SECRET_KEY_SIZE",
    "Secp256k1KeyManager",
    "derive_public_key",
    "generate_key_pair",
    "key_manager_for",
    "public_key_type",
    "sha512_half",
    "sign_message",
    "verify_message",
]
