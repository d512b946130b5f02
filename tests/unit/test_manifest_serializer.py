"""Tests for validator_keys.manifest.serializer — canonical record encoding."""
from __future__ import annotations

import pytest

from validator_keys.errors import ManifestDecodeError
from validator_keys.manifest.serializer import ManifestRecord, decode, encode


@pytest.fixture()
def full_record() -> ManifestRecord:
    return ManifestRecord(
        sequence=7,
        public_key=b"\xED" + b"\x01" * 32,
        signing_pub_key=b"\x02" + b"\x03" * 32,
        signature=b"\x30" * 70,
        domain=b"example.com",
        master_signature=b"\x44" * 64,
    )


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------


class TestEncode:
    def test_sequence_field(self) -> None:
        assert encode(ManifestRecord(sequence=1)) == b"\x24\x00\x00\x00\x01"

    def test_public_key_field(self) -> None:
        key = b"\xED" + b"\x00" * 32
        assert encode(ManifestRecord(public_key=key)) == b"\x71\x21" + key

    def test_master_signature_uses_two_byte_header(self) -> None:
        encoded = encode(ManifestRecord(master_signature=b"\x01\x02"))
        assert encoded == b"\x70\x12\x02\x01\x02"

    def test_empty_record(self) -> None:
        assert encode(ManifestRecord()) == b""

    def test_fields_emitted_in_canonical_order(self, full_record: ManifestRecord) -> None:
        encoded = encode(full_record)
        headers = [
            encoded.index(b"\x24"),  # sequence
            encoded.index(b"\x71\x21"),  # public key
            encoded.index(b"\x73\x21"),  # signing public key
            encoded.index(b"\x76\x46"),  # signature
            encoded.index(b"\x77\x0b"),  # domain
            encoded.index(b"\x70\x12\x40"),  # master signature
        ]
        assert headers == sorted(headers)

    def test_signing_only_omits_signatures(self, full_record: ManifestRecord) -> None:
        unsigned = full_record.with_fields(signature=None, master_signature=None)
        assert encode(full_record, signing_only=True) == encode(unsigned)

    def test_long_blob_uses_two_byte_length(self) -> None:
        encoded = encode(ManifestRecord(domain=b"a" * 200))
        assert encoded[:3] == b"\x77\xc1\x07"

    def test_sequence_out_of_range(self) -> None:
        with pytest.raises(ValueError, match="UInt32"):
            encode(ManifestRecord(sequence=2**32))


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------


class TestDecode:
    def test_round_trip(self, full_record: ManifestRecord) -> None:
        assert decode(encode(full_record)) == full_record

    def test_round_trip_long_blob(self) -> None:
        record = ManifestRecord(sequence=3, domain=b"d" * 5000)
        assert decode(encode(record)) == record

    def test_missing_fields_stay_none(self) -> None:
        record = decode(encode(ManifestRecord(sequence=4)))
        assert record.public_key is None
        assert record.master_signature is None

    def test_truncated_value(self) -> None:
        with pytest.raises(ManifestDecodeError, match="truncated"):
            decode(b"\x24\x00\x00")

    def test_truncated_blob(self) -> None:
        with pytest.raises(ManifestDecodeError):
            decode(b"\x71\x21\xED\x00")

    def test_unknown_field(self) -> None:
        with pytest.raises(ManifestDecodeError, match="Unknown manifest field"):
            decode(b"\x25\x00\x00\x00\x01")

    def test_duplicate_field(self) -> None:
        with pytest.raises(ManifestDecodeError, match="Duplicate"):
            decode(b"\x24\x00\x00\x00\x01\x24\x00\x00\x00\x02")

    def test_invalid_length_prefix(self) -> None:
        with pytest.raises(ManifestDecodeError, match="variable-length"):
            decode(b"\x77\xff")
