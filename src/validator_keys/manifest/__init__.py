"""Manifest records: wire encoding, construction, signing and verification."""
from __future__ import annotations

from validator_keys.manifest.builder import (
    MANIFEST_PREFIX,
    SEQUENCE_MAX,
    ManifestKind,
    build_delegation,
    build_revocation,
    record_kind,
    sign_delegated,
    sign_master,
    signing_data,
    verify_manifest_bytes,
    verify_record,
)
from validator_keys.manifest.serializer import ManifestRecord, decode, encode

__all__ = [
    "MANIFEST_PREFIX",
    "ManifestKind",
    "ManifestRecord",
    "SEQUENCE_MAX",
    "build_delegation",
    "build_revocation",
    "decode",
    "encode",
    "record_kind",
    "sign_delegated",
    "sign_master",
    "signing_data",
    "verify_manifest_bytes",
    "verify_record",
]
