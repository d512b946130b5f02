"""Canonical tagged-field encoding of manifest records.

Wire format
-----------
A record is a sequence of fields, each written as a field header followed
by the value. Fields are always emitted sorted by ``(type code, field
code)`` so the encoding of a record is unique.

Field header::

    type < 16, field < 16    1 byte   (type << 4) | field
    type < 16, field >= 16   2 bytes  type << 4, field
    type >= 16, field < 16   2 bytes  field, type
    type >= 16, field >= 16  3 bytes  0, type, field

Values: ``UInt32`` is 4 bytes big-endian; ``Blob`` is a variable-length
prefix (1, 2 or 3 bytes) followed by the raw bytes.

Signature fields (``Signature`` and ``MasterSignature``) are left out when
encoding the pre-image that gets signed.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from enum import IntEnum

from validator_keys.errors import ManifestDecodeError


class FieldType(IntEnum):
    UINT32 = 2
    BLOB = 7


@dataclass(frozen=True)
class FieldSpec:
    """Wire identity of one record field."""

    name: str
    type_code: FieldType
    field_code: int
    is_signature: bool = False

    @property
    def sort_key(self) -> tuple[int, int]:
        return (int(self.type_code), self.field_code)


SEQUENCE = FieldSpec("sequence", FieldType.UINT32, 4)
PUBLIC_KEY = FieldSpec("public_key", FieldType.BLOB, 1)
SIGNING_PUB_KEY = FieldSpec("signing_pub_key", FieldType.BLOB, 3)
SIGNATURE = FieldSpec("signature", FieldType.BLOB, 6, is_signature=True)
DOMAIN = FieldSpec("domain", FieldType.BLOB, 7)
MASTER_SIGNATURE = FieldSpec("master_signature", FieldType.BLOB, 18, is_signature=True)

_FIELD_SPECS: tuple[FieldSpec, ...] = tuple(
    sorted(
        (SEQUENCE, PUBLIC_KEY, SIGNING_PUB_KEY, SIGNATURE, DOMAIN, MASTER_SIGNATURE),
        key=lambda spec: spec.sort_key,
    )
)
_BY_CODE: dict[tuple[int, int], FieldSpec] = {spec.sort_key: spec for spec in _FIELD_SPECS}

_VL_MAX = 918744


@dataclass(frozen=True)
class ManifestRecord:
    """A manifest record; every field is optional on the wire.

    Parameters
    ----------
    sequence:
        Manifest sequence number.
    public_key:
        The master public key.
    signing_pub_key:
        The delegated (ephemeral) public key. Absent on revocations.
    signature:
        Signature by the delegated key. Absent on revocations.
    domain:
        Optional domain bytes attached to a delegation.
    master_signature:
        Signature by the master key.
    """

    sequence: int | None = None
    public_key: bytes | None = None
    signing_pub_key: bytes | None = None
    signature: bytes | None = None
    domain: bytes | None = None
    master_signature: bytes | None = None

    def with_fields(self, **changes: object) -> "ManifestRecord":
        """Return a copy with *changes* applied."""
        return replace(self, **changes)


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------


def _encode_header(spec: FieldSpec) -> bytes:
    type_code, field_code = int(spec.type_code), spec.field_code
    if type_code < 16:
        if field_code < 16:
            return bytes([(type_code << 4) | field_code])
        return bytes([type_code << 4, field_code])
    if field_code < 16:
        return bytes([field_code, type_code])
    return bytes([0, type_code, field_code])


def _encode_vl_length(length: int) -> bytes:
    if length <= 192:
        return bytes([length])
    if length <= 12480:
        length -= 193
        return bytes([193 + (length >> 8), length & 0xFF])
    if length <= _VL_MAX:
        length -= 12481
        return bytes([241 + (length >> 16), (length >> 8) & 0xFF, length & 0xFF])
    raise ValueError(f"Blob of {length} bytes is too long to encode")


def encode(record: ManifestRecord, signing_only: bool = False) -> bytes:
    """Serialize *record* to its canonical bytes.

    Parameters
    ----------
    record:
        The record to encode.
    signing_only:
        If True, signature fields are omitted, yielding the pre-image that
        signatures are computed over.
    """
    out = bytearray()
    for spec in _FIELD_SPECS:
        if signing_only and spec.is_signature:
            continue
        value = getattr(record, spec.name)
        if value is None:
            continue
        out += _encode_header(spec)
        if spec.type_code is FieldType.UINT32:
            if not 0 <= value <= 0xFFFFFFFF:
                raise ValueError(f"{spec.name} out of range for UInt32: {value}")
            out += int(value).to_bytes(4, "big")
        else:
            out += _encode_vl_length(len(value))
            out += bytes(value)
    return bytes(out)


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------


class _Reader:
    def __init__(self, data: bytes) -> None:
        self._data = data
        self._pos = 0

    @property
    def empty(self) -> bool:
        return self._pos >= len(self._data)

    def take(self, count: int) -> bytes:
        if self._pos + count > len(self._data):
            raise ManifestDecodeError("Manifest data is truncated")
        chunk = self._data[self._pos : self._pos + count]
        self._pos += count
        return chunk

    def byte(self) -> int:
        return self.take(1)[0]


def _decode_vl_length(reader: _Reader) -> int:
    b1 = reader.byte()
    if b1 <= 192:
        return b1
    if b1 <= 240:
        return 193 + (b1 - 193) * 256 + reader.byte()
    if b1 <= 254:
        b2 = reader.byte()
        return 12481 + (b1 - 241) * 65536 + b2 * 256 + reader.byte()
    raise ManifestDecodeError("Invalid variable-length prefix in manifest")


def decode(data: bytes) -> ManifestRecord:
    """Parse canonical bytes back into a :class:`ManifestRecord`.

    Raises
    ------
    ManifestDecodeError
        On truncated input, unknown or duplicate fields.
    """
    reader = _Reader(bytes(data))
    values: dict[str, object] = {}
    while not reader.empty:
        header = reader.byte()
        type_code = header >> 4
        if type_code == 0:
            type_code = reader.byte()
        field_code = header & 0x0F
        if field_code == 0:
            field_code = reader.byte()

        spec = _BY_CODE.get((type_code, field_code))
        if spec is None:
            raise ManifestDecodeError(
                f"Unknown manifest field (type {type_code}, field {field_code})"
            )
        if spec.name in values:
            raise ManifestDecodeError(f"Duplicate manifest field {spec.name!r}")

        if spec.type_code is FieldType.UINT32:
            values[spec.name] = int.from_bytes(reader.take(4), "big")
        else:
            values[spec.name] = reader.take(_decode_vl_length(reader))
    return ManifestRecord(**values)  # type: ignore[arg-type]


__all__ = [
    "DOMAIN",
    "FieldSpec",
    "FieldType",
    "MASTER_SIGNATURE",
    "ManifestRecord",
    "PUBLIC_KEY",
    "SEQUENCE",
    "SIGNATURE",
    "SIGNING_PUB_KEY",
    "decode",
    "encode",
]
