"""ValidatorKeys — the master key, its token sequence, and its revocation state.

A ValidatorKeys instance owns one master key and mints delegation
manifests ("tokens") from it. Each token names a fresh delegated key and a
sequence number one higher than the last. Revocation publishes a manifest
at the reserved maximum sequence, after which no further token can be
minted.

Two ways to sign
----------------
Local
    The master secret is held here. :meth:`ValidatorKeys.create_token` and
    :meth:`ValidatorKeys.revoke` sign in one step.
External
    Only the master public key is held; the secret lives on an offline or
    hardware device. :meth:`ValidatorKeys.start_token` /
    :meth:`ValidatorKeys.start_revoke` return the bytes that device must
    sign, and :meth:`ValidatorKeys.finish_token` /
    :meth:`ValidatorKeys.finish_revoke` assemble the manifest once the
    signature comes back.

States
------
::

    Active (no token)  --create_token / finish_token-->  Active (token)
    Active (any)       --start_token-->                  Active (pending)
    any                --revoke / finish_revoke-->       Revoked (terminal)

``start_revoke`` may be called from any state and only discards a pending
token. The pending token is the only state ``start_*`` methods change, and
every commit of a new manifest clears it.

Unavailable versus misuse
-------------------------
When the key simply cannot mint another token (it is revoked, or the
sequence space is exhausted) ``create_token``, ``start_token`` and
``finish_token`` return ``None``. Everything that is a misuse of the
protocol raises a :class:`~validator_keys.errors.ValidatorKeysError`.
"""
from __future__ import annotations

import logging

from validator_keys.config import DEFAULT_MASTER_KEY_TYPE, DEFAULT_TOKEN_KEY_TYPE
from validator_keys.encoding.text import parse_hex, to_base64, to_hex
from validator_keys.errors import ManifestSignatureError, NoPendingTokenError
from validator_keys.keys.key_manager import derive_public_key, generate_key_pair, sign_message
from validator_keys.keys.key_type import KeyType
from validator_keys.keys.material import (
    ExternalKeyMaterial,
    KeyMaterial,
    LocalKeyMaterial,
    require_secret,
)
from validator_keys.manifest.builder import (
    SEQUENCE_MAX,
    ManifestKind,
    build_delegation,
    build_revocation,
    sign_delegated,
    sign_master,
    signing_data,
    verify_manifest_bytes,
)
from validator_keys.manifest.serializer import ManifestRecord, encode
from validator_keys.validator.domain import validate_domain
from validator_keys.validator.token import PendingToken, ValidatorToken

logger = logging.getLogger(__name__)

CANNOT_SIGN_TOKENS = "This key file cannot be used to sign tokens."
CANNOT_SIGN = "This key file cannot be used to sign."


class ValidatorKeys:
    """Master key state machine for a single validator.

    Parameters
    ----------
    material:
        Local or external master key material.
    token_sequence:
        Sequence number of the last token minted (0 for a fresh key).
    revoked:
        True if the master key has been revoked.

    Example
    -------
    ::

        keys = ValidatorKeys.generate()
        token = keys.create_token()
        print(token.to_string())
    """

    def __init__(
        self,
        material: KeyMaterial,
        token_sequence: int = 0,
        revoked: bool = False,
    ) -> None:
        if not 0 <= token_sequence <= SEQUENCE_MAX:
            raise ValueError(f"token_sequence out of range: {token_sequence}")
        self._material = material
        self._token_sequence = token_sequence
        self._revoked = revoked
        self._domain = ""
        self._manifest = b""
        self._pending: PendingToken | None = None

    # ------------------------------------------------------------------
    # Factories
    # ------------------------------------------------------------------

    @classmethod
    def generate(cls, key_type: KeyType = DEFAULT_MASTER_KEY_TYPE) -> "ValidatorKeys":
        """Create keys around a freshly generated master key pair."""
        return cls(LocalKeyMaterial.generate(key_type))

    @classmethod
    def from_secret(
        cls,
        key_type: KeyType,
        secret_key: bytes,
        token_sequence: int = 0,
        revoked: bool = False,
    ) -> "ValidatorKeys":
        """Create keys from an existing master secret."""
        return cls(LocalKeyMaterial(key_type, secret_key), token_sequence, revoked)

    @classmethod
    def from_public_key(
        cls,
        key_type: KeyType,
        public_key: bytes,
        token_sequence: int = 0,
        revoked: bool = False,
    ) -> "ValidatorKeys":
        """Create external-mode keys holding only the master public key."""
        return cls(ExternalKeyMaterial(key_type, public_key), token_sequence, revoked)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def key_type(self) -> KeyType:
        return self._material.key_type

    @property
    def public_key(self) -> bytes:
        return self._material.public_key

    @property
    def secret_key(self) -> bytes | None:
        """The master secret, or None in external mode."""
        if isinstance(self._material, LocalKeyMaterial):
            return self._material.secret_key
        return None

    @property
    def is_external(self) -> bool:
        return isinstance(self._material, ExternalKeyMaterial)

    @property
    def revoked(self) -> bool:
        return self._revoked

    @property
    def sequence(self) -> int:
        """Sequence number of the last token minted."""
        return self._token_sequence

    @property
    def domain(self) -> str:
        return self._domain

    @domain.setter
    def domain(self, value: str) -> None:
        """Set the domain attached to future tokens; ``""`` clears it.

        Raises
        ------
        DomainValidationError
            If *value* fails the length or format rules. The current domain
            is left unchanged.
        """
        self._domain = validate_domain(value)

    @property
    def manifest(self) -> bytes:
        """The last manifest produced, re-verified; ``b""`` if there is none.

        Raises
        ------
        ManifestSignatureError
            If the stored manifest does not verify.
        """
        if self._manifest:
            self.verify_manifest()
        return self._manifest

    @property
    def stored_manifest(self) -> bytes:
        """The last manifest exactly as stored, without re-verification."""
        return self._manifest

    @property
    def pending(self) -> PendingToken | None:
        """The token staged by :meth:`start_token`, if any."""
        return self._pending

    def restore(
        self,
        manifest: bytes = b"",
        pending: PendingToken | None = None,
    ) -> None:
        """Reinstate persisted manifest and pending state after loading.

        The manifest is not verified here; it is verified whenever it is
        read back through :attr:`manifest`.
        """
        self._manifest = bytes(manifest)
        self._pending = pending

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ValidatorKeys):
            return NotImplemented
        return (
            self.key_type == other.key_type
            and self.public_key == other.public_key
            and self.secret_key == other.secret_key
            and self._token_sequence == other._token_sequence
            and self._revoked == other._revoked
            and self._domain == other._domain
            and self._manifest == other._manifest
        )

    def __repr__(self) -> str:
        mode = "external" if self.is_external else "local"
        return (
            f"ValidatorKeys(key_type={self.key_type.value!r}, mode={mode!r}, "
            f"sequence={self._token_sequence}, revoked={self._revoked})"
        )

    # ------------------------------------------------------------------
    # Tokens
    # ------------------------------------------------------------------

    def _can_mint(self) -> bool:
        # SEQUENCE_MAX belongs to revocations, so the last usable token
        # sequence is SEQUENCE_MAX - 1.
        return not self._revoked and self._token_sequence < SEQUENCE_MAX - 1

    def create_token(self, key_type: KeyType = DEFAULT_TOKEN_KEY_TYPE) -> ValidatorToken | None:
        """Mint the next token, signing locally with the master secret.

        Parameters
        ----------
        key_type:
            Algorithm of the delegated key.

        Returns
        -------
        ValidatorToken | None
            The new token, or None if the key is revoked or out of sequence
            numbers.

        Raises
        ------
        CannotSignError
            If this instance holds no master secret.
        """
        if not self._can_mint():
            return None
        master_secret = require_secret(self._material, CANNOT_SIGN_TOKENS)

        token_public, token_secret = generate_key_pair(key_type)
        sequence = self._token_sequence + 1
        record = build_delegation(sequence, self.public_key, token_public, self._domain)
        record = sign_delegated(record, key_type, token_secret)
        record = sign_master(record, self.key_type, master_secret)

        self._commit(record, sequence=sequence, revoked=False)
        logger.info("Minted validator token #%d", sequence)
        return ValidatorToken(manifest=to_base64(self._manifest), secret_key=token_secret)

    def start_token(self, key_type: KeyType = DEFAULT_TOKEN_KEY_TYPE) -> str | None:
        """Stage the next token for an external master signature.

        A fresh delegated key is generated and kept as the pending token.
        Neither the sequence number nor the stored manifest change.

        Returns
        -------
        str | None
            Hex of the bytes the master key must sign, or None if the key is
            revoked or out of sequence numbers.
        """
        if not self._can_mint():
            return None

        token_public, token_secret = generate_key_pair(key_type)
        record = build_delegation(
            self._token_sequence + 1, self.public_key, token_public, self._domain
        )
        self._pending = PendingToken(secret_key=token_secret, key_type=key_type)
        logger.debug("Staged %s token key for sequence %d", key_type.value, record.sequence)
        return to_hex(signing_data(record))

    def finish_token(self, master_signature: bytes) -> ValidatorToken | None:
        """Complete the pending token with an externally produced master signature.

        Returns
        -------
        ValidatorToken | None
            The new token, or None if the key is revoked or out of sequence
            numbers.

        Raises
        ------
        NoPendingTokenError
            If :meth:`start_token` has not staged a token.
        ManifestSignatureError
            If *master_signature* does not verify. Nothing is changed.
        """
        if not self._can_mint():
            return None
        if self._pending is None:
            raise NoPendingTokenError()

        pending = self._pending
        token_public = derive_public_key(pending.key_type, pending.secret_key)
        sequence = self._token_sequence + 1
        record = build_delegation(sequence, self.public_key, token_public, self._domain)
        record = sign_delegated(record, pending.key_type, pending.secret_key)
        record = record.with_fields(master_signature=bytes(master_signature))

        self._commit(record, sequence=sequence, revoked=False)
        logger.info("Finished externally signed validator token #%d", sequence)
        return ValidatorToken(manifest=to_base64(self._manifest), secret_key=pending.secret_key)

    # ------------------------------------------------------------------
    # Revocation
    # ------------------------------------------------------------------

    def revoke(self) -> str:
        """Revoke the master key, signing locally. Safe to repeat.

        Returns
        -------
        str
            Base64 of the revocation manifest.

        Raises
        ------
        CannotSignError
            If this instance holds no master secret.
        """
        master_secret = require_secret(self._material, CANNOT_SIGN_TOKENS)
        record = sign_master(build_revocation(self.public_key), self.key_type, master_secret)
        self._commit(record, sequence=self._token_sequence, revoked=True)
        logger.info("Master key revoked")
        return to_base64(self._manifest)

    def start_revoke(self) -> str:
        """Return hex of the revocation bytes for an external master signature.

        Any pending token is discarded; the key is not revoked yet.
        """
        if self._pending is not None:
            logger.debug("Discarding pending token in favour of a revocation")
        self._pending = None
        return to_hex(signing_data(build_revocation(self.public_key)))

    def finish_revoke(self, master_signature: bytes) -> str:
        """Revoke the master key with an externally produced signature. Safe to repeat.

        Returns
        -------
        str
            Base64 of the revocation manifest.

        Raises
        ------
        ManifestSignatureError
            If *master_signature* does not verify. Nothing is changed.
        """
        record = build_revocation(self.public_key).with_fields(
            master_signature=bytes(master_signature)
        )
        self._commit(record, sequence=self._token_sequence, revoked=True)
        logger.info("Master key revoked with external signature")
        return to_base64(self._manifest)

    # ------------------------------------------------------------------
    # Verification
    # ------------------------------------------------------------------

    def verify_manifest(self) -> None:
        """Verify the stored manifest against the signature rules.

        Raises
        ------
        ManifestSignatureError
            If there is no manifest, or it is not properly signed, or it
            does not belong to this key and state.
        """
        self._check_manifest(self._manifest, self._token_sequence, self._revoked)

    def _check_manifest(self, manifest: bytes, sequence: int, revoked: bool) -> None:
        if not manifest:
            raise ManifestSignatureError()
        record, kind = verify_manifest_bytes(manifest)
        if record.public_key != self.public_key:
            raise ManifestSignatureError()
        if revoked != (kind is ManifestKind.REVOCATION):
            raise ManifestSignatureError()
        if kind is ManifestKind.DELEGATION and record.sequence != sequence:
            raise ManifestSignatureError()

    def _commit(self, record: ManifestRecord, sequence: int, revoked: bool) -> None:
        """Verify *record* and, only if it passes, make it the current state."""
        manifest = encode(record)
        self._check_manifest(manifest, sequence, revoked)
        self._manifest = manifest
        self._token_sequence = sequence
        self._revoked = revoked
        self._pending = None

    # ------------------------------------------------------------------
    # Ad-hoc signing
    # ------------------------------------------------------------------

    def sign(self, data: str) -> str:
        """Sign *data* with the master key; returns upper-case hex.

        Raises
        ------
        CannotSignError
            If this instance holds no master secret.
        """
        secret = require_secret(self._material, CANNOT_SIGN)
        return to_hex(sign_message(self.key_type, secret, data.encode("utf-8")))

    def sign_hex(self, data: str) -> str:
        """Decode hex *data* and sign the bytes with the master key.

        Raises
        ------
        CannotSignError
            If this instance holds no master secret.
        HexDecodeError
            If *data* (trimmed) is not valid hex.
        """
        secret = require_secret(self._material, CANNOT_SIGN)
        return to_hex(sign_message(self.key_type, secret, parse_hex(data)))


__all__ = ["CANNOT_SIGN", "CANNOT_SIGN_TOKENS", "ValidatorKeys"]
