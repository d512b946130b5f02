"""Tests for validator_keys.validator.keys — the ValidatorKeys state machine."""
from __future__ import annotations

import base64
import json

import pytest

from validator_keys.errors import (
    CannotSignError,
    DomainValidationError,
    HexDecodeError,
    ManifestSignatureError,
    NoPendingTokenError,
)
from validator_keys.keys import (
    KeyType,
    derive_public_key,
    generate_key_pair,
    sign_message,
    verify_message,
)
from validator_keys.manifest import (
    SEQUENCE_MAX,
    ManifestKind,
    build_delegation,
    decode,
    encode,
    sign_delegated,
    sign_master,
    signing_data,
    verify_manifest_bytes,
    verify_record,
)
from validator_keys.validator import (
    CANNOT_SIGN,
    CANNOT_SIGN_TOKENS,
    PendingToken,
    ValidatorKeys,
    ValidatorToken,
)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def keys() -> ValidatorKeys:
    return ValidatorKeys.generate()


@pytest.fixture()
def master_pair() -> tuple[bytes, bytes]:
    return generate_key_pair(KeyType.ED25519)


@pytest.fixture()
def external(master_pair: tuple[bytes, bytes]) -> ValidatorKeys:
    return ValidatorKeys.from_public_key(KeyType.ED25519, master_pair[0])


def _offline_sign(master_pair: tuple[bytes, bytes], signing_hex: str) -> bytes:
    return sign_message(KeyType.ED25519, master_pair[1], bytes.fromhex(signing_hex))


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


class TestConstruction:
    def test_generate_defaults_to_ed25519(self, keys: ValidatorKeys) -> None:
        assert keys.key_type is KeyType.ED25519
        assert keys.public_key[0] == 0xED

    def test_fresh_state(self, keys: ValidatorKeys) -> None:
        assert keys.sequence == 0
        assert not keys.revoked
        assert keys.domain == ""
        assert keys.manifest == b""
        assert keys.pending is None
        assert not keys.is_external

    def test_generate_secp256k1(self) -> None:
        keys = ValidatorKeys.generate(KeyType.SECP256K1)
        assert keys.public_key[0] in (0x02, 0x03)

    def test_from_secret_derives_public_key(self) -> None:
        public, secret = generate_key_pair(KeyType.SECP256K1)
        keys = ValidatorKeys.from_secret(KeyType.SECP256K1, secret, token_sequence=4)
        assert keys.public_key == public
        assert keys.sequence == 4

    def test_external_has_no_secret(self, external: ValidatorKeys) -> None:
        assert external.is_external
        assert external.secret_key is None

    def test_sequence_out_of_range(self) -> None:
        _, secret = generate_key_pair(KeyType.ED25519)
        with pytest.raises(ValueError):
            ValidatorKeys.from_secret(KeyType.ED25519, secret, token_sequence=SEQUENCE_MAX + 1)

    def test_repr_hides_secret(self, keys: ValidatorKeys) -> None:
        assert keys.secret_key is not None
        assert keys.secret_key.hex() not in repr(keys)
        assert "ed25519" in repr(keys)


# ---------------------------------------------------------------------------
# Local tokens
# ---------------------------------------------------------------------------


class TestCreateToken:
    def test_token_advances_sequence(self, keys: ValidatorKeys) -> None:
        token = keys.create_token()
        assert isinstance(token, ValidatorToken)
        assert keys.sequence == 1
        assert keys.create_token() is not None
        assert keys.sequence == 2

    def test_manifest_matches_token(self, keys: ValidatorKeys) -> None:
        token = keys.create_token()
        assert token is not None
        assert base64.b64decode(token.manifest) == keys.manifest

    def test_manifest_is_valid_delegation(self, keys: ValidatorKeys) -> None:
        token = keys.create_token()
        assert token is not None
        record, kind = verify_manifest_bytes(keys.manifest)
        assert kind is ManifestKind.DELEGATION
        assert record.sequence == 1
        assert record.public_key == keys.public_key

    def test_delegated_key_defaults_to_secp256k1(self, keys: ValidatorKeys) -> None:
        keys.create_token()
        record = decode(keys.manifest)
        assert record.signing_pub_key is not None
        assert record.signing_pub_key[0] in (0x02, 0x03)

    def test_delegated_key_type_can_be_chosen(self, keys: ValidatorKeys) -> None:
        keys.create_token(KeyType.ED25519)
        record = decode(keys.manifest)
        assert record.signing_pub_key is not None
        assert record.signing_pub_key[0] == 0xED

    def test_each_token_has_fresh_key(self, keys: ValidatorKeys) -> None:
        first = keys.create_token()
        second = keys.create_token()
        assert first is not None and second is not None
        assert first.secret_key != second.secret_key

    def test_domain_is_embedded(self, keys: ValidatorKeys) -> None:
        keys.domain = "example.com"
        keys.create_token()
        assert decode(keys.manifest).domain == b"example.com"

    def test_no_domain_field_when_empty(self, keys: ValidatorKeys) -> None:
        keys.create_token()
        assert decode(keys.manifest).domain is None

    def test_secp256k1_master(self) -> None:
        keys = ValidatorKeys.generate(KeyType.SECP256K1)
        assert keys.create_token() is not None
        verify_manifest_bytes(keys.manifest)

    def test_revoked_returns_none(self, keys: ValidatorKeys) -> None:
        keys.revoke()
        manifest = keys.manifest
        assert keys.create_token() is None
        assert keys.manifest == manifest
        assert keys.sequence == 0

    def test_last_usable_sequence(self) -> None:
        _, secret = generate_key_pair(KeyType.ED25519)
        keys = ValidatorKeys.from_secret(KeyType.ED25519, secret, token_sequence=SEQUENCE_MAX - 2)
        assert keys.create_token() is not None
        assert keys.sequence == SEQUENCE_MAX - 1
        assert keys.create_token() is None
        assert keys.sequence == SEQUENCE_MAX - 1

    def test_external_cannot_create(self, external: ValidatorKeys) -> None:
        with pytest.raises(CannotSignError, match=CANNOT_SIGN_TOKENS):
            external.create_token()
        assert external.sequence == 0

    def test_clears_pending(self, keys: ValidatorKeys) -> None:
        keys.start_token()
        keys.create_token()
        assert keys.pending is None


class TestValidatorToken:
    def test_to_string_layout(self, keys: ValidatorKeys) -> None:
        token = keys.create_token()
        assert token is not None
        decoded = base64.b64decode(token.to_string()).decode("utf-8")
        payload = json.loads(decoded)
        assert payload == {
            "manifest": token.manifest,
            "validation_secret_key": token.secret_key.hex().upper(),
        }
        assert decoded.index('"manifest"') < decoded.index('"validation_secret_key"')
        assert " " not in decoded

    def test_repr_hides_secret(self, keys: ValidatorKeys) -> None:
        token = keys.create_token()
        assert token is not None
        assert token.secret_key.hex() not in repr(token)


# ---------------------------------------------------------------------------
# Two-phase tokens
# ---------------------------------------------------------------------------


class TestStartFinishToken:
    def test_start_stages_pending(self, external: ValidatorKeys) -> None:
        signing_hex = external.start_token()
        assert signing_hex is not None
        assert signing_hex.startswith("4D414E00")
        assert isinstance(external.pending, PendingToken)
        assert external.pending.key_type is KeyType.SECP256K1
        assert external.sequence == 0
        assert external.stored_manifest == b""

    def test_finish_with_valid_signature(
        self, external: ValidatorKeys, master_pair: tuple[bytes, bytes]
    ) -> None:
        signing_hex = external.start_token()
        assert signing_hex is not None
        pending = external.pending
        token = external.finish_token(_offline_sign(master_pair, signing_hex))
        assert token is not None
        assert pending is not None
        assert token.secret_key == pending.secret_key
        assert external.sequence == 1
        assert external.pending is None
        record, kind = verify_manifest_bytes(external.manifest)
        assert kind is ManifestKind.DELEGATION
        assert record.sequence == 1

    def test_finish_with_bad_signature_changes_nothing(
        self, external: ValidatorKeys
    ) -> None:
        external.start_token()
        pending = external.pending
        with pytest.raises(ManifestSignatureError):
            external.finish_token(b"\x00" * 64)
        assert external.pending == pending
        assert external.sequence == 0
        assert external.stored_manifest == b""

    def test_finish_with_signature_over_other_data(
        self, external: ValidatorKeys, master_pair: tuple[bytes, bytes]
    ) -> None:
        external.start_token()
        bogus = sign_message(KeyType.ED25519, master_pair[1], b"something else")
        with pytest.raises(ManifestSignatureError):
            external.finish_token(bogus)

    def test_finish_without_start(self, external: ValidatorKeys) -> None:
        with pytest.raises(NoPendingTokenError, match="No pending token to finish"):
            external.finish_token(b"\x00" * 64)

    def test_restart_replaces_pending(self, external: ValidatorKeys) -> None:
        external.start_token()
        first = external.pending
        external.start_token()
        assert external.pending != first

    def test_stale_signature_rejected_after_restart(
        self, external: ValidatorKeys, master_pair: tuple[bytes, bytes]
    ) -> None:
        old_hex = external.start_token()
        assert old_hex is not None
        external.start_token()
        with pytest.raises(ManifestSignatureError):
            external.finish_token(_offline_sign(master_pair, old_hex))

    def test_domain_included_in_signing_data(
        self, external: ValidatorKeys, master_pair: tuple[bytes, bytes]
    ) -> None:
        external.domain = "example.com"
        signing_hex = external.start_token()
        assert signing_hex is not None
        assert b"example.com" in bytes.fromhex(signing_hex)
        external.finish_token(_offline_sign(master_pair, signing_hex))
        assert decode(external.manifest).domain == b"example.com"

    def test_start_on_revoked_returns_none(self, keys: ValidatorKeys) -> None:
        keys.revoke()
        assert keys.start_token() is None
        assert keys.pending is None

    def test_finish_on_revoked_returns_none(self, keys: ValidatorKeys) -> None:
        keys.revoke()
        assert keys.finish_token(b"\x00" * 64) is None

    def test_start_at_exhaustion_returns_none(self, master_pair: tuple[bytes, bytes]) -> None:
        keys = ValidatorKeys.from_public_key(
            KeyType.ED25519, master_pair[0], token_sequence=SEQUENCE_MAX - 1
        )
        assert keys.start_token() is None

    def test_local_keys_can_use_two_phase_flow(self, keys: ValidatorKeys) -> None:
        signing_hex = keys.start_token()
        assert signing_hex is not None
        assert keys.secret_key is not None
        signature = sign_message(keys.key_type, keys.secret_key, bytes.fromhex(signing_hex))
        assert keys.finish_token(signature) is not None
        assert keys.sequence == 1

    def test_finish_twice_fails_second_time(
        self, external: ValidatorKeys, master_pair: tuple[bytes, bytes]
    ) -> None:
        signing_hex = external.start_token()
        assert signing_hex is not None
        signature = _offline_sign(master_pair, signing_hex)
        assert external.finish_token(signature) is not None
        manifest = external.stored_manifest
        with pytest.raises(NoPendingTokenError):
            external.finish_token(signature)
        assert external.sequence == 1
        assert external.stored_manifest == manifest

    @pytest.mark.parametrize("token_type", [KeyType.SECP256K1, KeyType.ED25519])
    def test_staged_token_matches_directly_signed_token(
        self, keys: ValidatorKeys, token_type: KeyType
    ) -> None:
        keys.domain = "example.com"
        signing_hex = keys.start_token(token_type)
        assert signing_hex is not None
        pending = keys.pending
        assert pending is not None
        assert keys.secret_key is not None
        signature = sign_message(keys.key_type, keys.secret_key, bytes.fromhex(signing_hex))
        assert keys.finish_token(signature) is not None

        direct = build_delegation(
            1,
            keys.public_key,
            derive_public_key(pending.key_type, pending.secret_key),
            "example.com",
        )
        direct = sign_delegated(direct, pending.key_type, pending.secret_key)
        direct = sign_master(direct, keys.key_type, keys.secret_key)

        assert verify_record(direct) is ManifestKind.DELEGATION
        assert signing_data(direct) == bytes.fromhex(signing_hex)
        assert encode(decode(keys.manifest), signing_only=True) == encode(
            direct, signing_only=True
        )


# ---------------------------------------------------------------------------
# Revocation
# ---------------------------------------------------------------------------


class TestRevoke:
    def test_revoke(self, keys: ValidatorKeys) -> None:
        keys.create_token()
        revocation = keys.revoke()
        assert keys.revoked
        assert keys.sequence == 1
        assert base64.b64decode(revocation) == keys.manifest
        record, kind = verify_manifest_bytes(keys.manifest)
        assert kind is ManifestKind.REVOCATION
        assert record.sequence == SEQUENCE_MAX

    def test_revoke_is_idempotent(self, keys: ValidatorKeys) -> None:
        first = keys.revoke()
        second = keys.revoke()
        assert first == second
        assert keys.revoked

    def test_revoke_clears_pending(self, keys: ValidatorKeys) -> None:
        keys.start_token()
        keys.revoke()
        assert keys.pending is None

    def test_external_cannot_revoke(self, external: ValidatorKeys) -> None:
        with pytest.raises(CannotSignError):
            external.revoke()
        assert not external.revoked

    def test_start_revoke_discards_pending(self, external: ValidatorKeys) -> None:
        external.start_token()
        signing_hex = external.start_revoke()
        assert signing_hex.startswith("4D414E00")
        assert external.pending is None
        assert not external.revoked

    def test_finish_revoke(
        self, external: ValidatorKeys, master_pair: tuple[bytes, bytes]
    ) -> None:
        signing_hex = external.start_revoke()
        revocation = external.finish_revoke(_offline_sign(master_pair, signing_hex))
        assert external.revoked
        assert base64.b64decode(revocation) == external.manifest

    def test_finish_revoke_bad_signature(self, external: ValidatorKeys) -> None:
        external.start_revoke()
        with pytest.raises(ManifestSignatureError):
            external.finish_revoke(b"\x01" * 64)
        assert not external.revoked
        assert external.stored_manifest == b""

    def test_finish_revoke_without_start(
        self, external: ValidatorKeys, master_pair: tuple[bytes, bytes]
    ) -> None:
        # The revocation bytes are fixed, so start_revoke is optional.
        signing_hex = ValidatorKeys.from_public_key(
            KeyType.ED25519, master_pair[0]
        ).start_revoke()
        external.finish_revoke(_offline_sign(master_pair, signing_hex))
        assert external.revoked


# ---------------------------------------------------------------------------
# Domain and manifest state
# ---------------------------------------------------------------------------


class TestState:
    def test_set_and_clear_domain(self, keys: ValidatorKeys) -> None:
        keys.domain = "example.com"
        assert keys.domain == "example.com"
        keys.domain = ""
        assert keys.domain == ""

    def test_invalid_domain_leaves_previous(self, keys: ValidatorKeys) -> None:
        keys.domain = "example.com"
        with pytest.raises(DomainValidationError):
            keys.domain = "nodots"
        assert keys.domain == "example.com"

    def test_verify_manifest_without_manifest(self, keys: ValidatorKeys) -> None:
        with pytest.raises(ManifestSignatureError):
            keys.verify_manifest()

    def test_tampered_manifest_detected_on_read(self, keys: ValidatorKeys) -> None:
        keys.create_token()
        tampered = bytearray(keys.stored_manifest)
        tampered[-1] ^= 0xFF
        keys.restore(manifest=bytes(tampered))
        with pytest.raises(ManifestSignatureError):
            _ = keys.manifest

    def test_tampered_delegated_signature_detected_on_read(self, keys: ValidatorKeys) -> None:
        keys.create_token()
        record = decode(keys.stored_manifest)
        assert record.signature is not None
        signature = bytearray(record.signature)
        signature[-1] ^= 0xFF
        keys.restore(manifest=encode(record.with_fields(signature=bytes(signature))))
        with pytest.raises(ManifestSignatureError):
            keys.verify_manifest()

    def test_manifest_of_other_key_rejected(self, keys: ValidatorKeys) -> None:
        other = ValidatorKeys.generate()
        other.create_token()
        keys.restore(manifest=other.stored_manifest)
        with pytest.raises(ManifestSignatureError):
            keys.verify_manifest()

    def test_manifest_sequence_must_match(self, keys: ValidatorKeys) -> None:
        keys.create_token()
        stale = keys.stored_manifest
        keys.create_token()
        keys.restore(manifest=stale)
        with pytest.raises(ManifestSignatureError):
            keys.verify_manifest()

    def test_equality(self) -> None:
        _, secret = generate_key_pair(KeyType.ED25519)
        first = ValidatorKeys.from_secret(KeyType.ED25519, secret, token_sequence=3)
        second = ValidatorKeys.from_secret(KeyType.ED25519, secret, token_sequence=3)
        assert first == second
        second.domain = "example.com"
        assert first != second

    def test_equality_ignores_pending(self) -> None:
        _, secret = generate_key_pair(KeyType.ED25519)
        first = ValidatorKeys.from_secret(KeyType.ED25519, secret)
        second = ValidatorKeys.from_secret(KeyType.ED25519, secret)
        second.start_token()
        assert first == second


# ---------------------------------------------------------------------------
# Ad-hoc signing
# ---------------------------------------------------------------------------


class TestSign:
    def test_sign_text(self, keys: ValidatorKeys) -> None:
        signature = keys.sign("hello world")
        assert signature == signature.upper()
        assert verify_message(keys.public_key, b"hello world", bytes.fromhex(signature))

    def test_sign_hex(self, keys: ValidatorKeys) -> None:
        signature = keys.sign_hex("  DEADbeef\n")
        assert verify_message(keys.public_key, b"\xde\xad\xbe\xef", bytes.fromhex(signature))

    def test_sign_hex_invalid(self, keys: ValidatorKeys) -> None:
        with pytest.raises(HexDecodeError, match="Could not decode hex string: xyz"):
            keys.sign_hex("xyz")

    def test_sign_works_when_revoked(self, keys: ValidatorKeys) -> None:
        keys.revoke()
        assert keys.sign("still works")

    def test_external_cannot_sign(self, external: ValidatorKeys) -> None:
        with pytest.raises(CannotSignError, match=CANNOT_SIGN):
            external.sign("data")
        with pytest.raises(CannotSignError):
            external.sign_hex("00")
