"""Manifest builder — assemble, sign, and verify manifest records.

Two kinds of record exist:

Delegation
    ``{sequence, master public key, delegated public key, domain?}``,
    signed first by the delegated key (``signature``) and then by the
    master key (``master_signature``).
Revocation
    ``{sequence = SEQUENCE_MAX, master public key}``, signed only by the
    master key. Revocation takes the highest representable sequence so a
    peer that only tracks "highest sequence seen" treats it as terminal.

Signatures cover :data:`MANIFEST_PREFIX` followed by the record encoded
without its signature fields, so a manifest signature can never be
mistaken for a signature made for any other purpose.
"""
from __future__ import annotations

from enum import Enum

from validator_keys.errors import ManifestDecodeError, ManifestSignatureError
from validator_keys.keys.key_manager import sign_message, verify_message
from validator_keys.keys.key_type import KeyType
from validator_keys.manifest.serializer import ManifestRecord, decode, encode

# "MAN\0": the hash prefix scoping signatures to the manifest protocol.
MANIFEST_PREFIX: bytes = b"MAN\x00"

# Highest sequence number; reserved for revocations.
SEQUENCE_MAX: int = 0xFFFFFFFF


class ManifestKind(str, Enum):
    DELEGATION = "delegation"
    REVOCATION = "revocation"


def build_delegation(
    sequence: int,
    master_public_key: bytes,
    signing_public_key: bytes,
    domain: str = "",
) -> ManifestRecord:
    """Return an unsigned delegation record.

    An empty *domain* leaves the field out entirely.
    """
    return ManifestRecord(
        sequence=sequence,
        public_key=master_public_key,
        signing_pub_key=signing_public_key,
        domain=domain.encode("utf-8") if domain else None,
    )


def build_revocation(master_public_key: bytes) -> ManifestRecord:
    """Return an unsigned revocation record at :data:`SEQUENCE_MAX`."""
    return ManifestRecord(sequence=SEQUENCE_MAX, public_key=master_public_key)


def signing_data(record: ManifestRecord) -> bytes:
    """Return the bytes that manifest signatures are computed over."""
    return MANIFEST_PREFIX + encode(record, signing_only=True)


def sign_delegated(record: ManifestRecord, key_type: KeyType, secret_key: bytes) -> ManifestRecord:
    """Attach the delegated-key signature to *record*."""
    return record.with_fields(signature=sign_message(key_type, secret_key, signing_data(record)))


def sign_master(record: ManifestRecord, key_type: KeyType, secret_key: bytes) -> ManifestRecord:
    """Attach the master-key signature to *record*."""
    return record.with_fields(
        master_signature=sign_message(key_type, secret_key, signing_data(record))
    )


def record_kind(record: ManifestRecord) -> ManifestKind:
    """Classify *record* by which fields it carries."""
    if record.signing_pub_key is None and record.signature is None:
        return ManifestKind.REVOCATION
    return ManifestKind.DELEGATION


def verify_record(record: ManifestRecord) -> ManifestKind:
    """Check every signature rule for *record* and return its kind.

    Raises
    ------
    ManifestSignatureError
        If the record is neither a correctly signed delegation nor a
        correctly signed revocation.
    """
    if record.sequence is None or record.public_key is None or record.master_signature is None:
        raise ManifestSignatureError()

    message = signing_data(record)
    kind = record_kind(record)

    if kind is ManifestKind.REVOCATION:
        if record.sequence != SEQUENCE_MAX:
            raise ManifestSignatureError()
    else:
        if record.sequence >= SEQUENCE_MAX:
            raise ManifestSignatureError()
        if record.signing_pub_key is None or record.signature is None:
            raise ManifestSignatureError()
        if not verify_message(record.signing_pub_key, message, record.signature):
            raise ManifestSignatureError()

    if not verify_message(record.public_key, message, record.master_signature):
        raise ManifestSignatureError()
    return kind


def verify_manifest_bytes(manifest: bytes) -> tuple[ManifestRecord, ManifestKind]:
    """Decode and verify serialized manifest bytes.

    Undecodable bytes are reported as a signature failure: a manifest that
    cannot be parsed cannot be trusted either.
    """
    try:
        record = decode(manifest)
    except ManifestDecodeError as exc:
        raise ManifestSignatureError() from exc
    return record, verify_record(record)


__all__ = [
    "MANIFEST_PREFIX",
    "ManifestKind",
    "SEQUENCE_MAX",
    "build_delegation",
    "build_revocation",
    "record_kind",
    "sign_delegated",
    "sign_master",
    "signing_data",
    "verify_manifest_bytes",
    "verify_record",
]
