"""Key file persistence — JSON on disk, validated with pydantic on the way in.

File layout
-----------
::

    {
      "key_type": "ed25519",
      "public_key": "nH...",
      "secret_key": "pa..." | "external",
      "token_sequence": 3,
      "revoked": false,
      "domain": "example.com",            (optional)
      "manifest": "<HEX>",                (optional)
      "pending_token_secret": "pa...",    (optional, with pending_key_type)
      "pending_key_type": "secp256k1"     (optional, with pending_token_secret)
    }

``public_key`` is always written but only read back for external keys;
a locally held key derives its public key from the secret.

Loading reports the first problem in a fixed order: missing required
fields first, then invalid fields in the order listed above. Saving
writes a sibling temporary file and renames it into place, so a failed
save never leaves a half-written key file behind.
"""
from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError, ValidationInfo, field_validator
from pydantic_core import PydanticCustomError

from validator_keys.encoding.base58 import TokenType, decode_base58_token, encode_base58_token
from validator_keys.encoding.text import from_hex, to_hex
from validator_keys.errors import KeyFileFormatError, KeyFileIOError
from validator_keys.keys.key_manager import SECRET_KEY_SIZE, derive_public_key, public_key_type
from validator_keys.keys.key_type import KeyType
from validator_keys.manifest.builder import SEQUENCE_MAX
from validator_keys.validator.domain import validate_domain
from validator_keys.validator.keys import ValidatorKeys
from validator_keys.validator.token import PendingToken

logger = logging.getLogger(__name__)

EXTERNAL_SECRET: str = "external"

_REQUIRED_FIELDS = ("key_type", "secret_key", "token_sequence", "revoked")
_CHECK_ORDER = (
    "key_type",
    "secret_key",
    "public_key",
    "token_sequence",
    "revoked",
    "domain",
    "manifest",
    "pending_token_secret",
    "pending_key_type",
)
_MISSING_PUBLIC_KEY = "missing_public_key"


def _decode_secret(value: object) -> bytes:
    if not isinstance(value, str):
        raise ValueError("expected a base58 secret key")
    decoded = decode_base58_token(TokenType.NODE_PRIVATE, value)
    if decoded is None or len(decoded) != SECRET_KEY_SIZE:
        raise ValueError("expected a base58 secret key")
    return decoded


# ------------------------------------------------------------------
# Document model
# ------------------------------------------------------------------


class KeyFileDocument(BaseModel):
    """Validated contents of a key file.

    Field validators run in declaration order, so later validators can see
    the already-decoded ``key_type`` and ``secret_key``.
    ``secret_key`` is ``None`` for external keys.
    """

    key_type: KeyType
    secret_key: bytes | None
    public_key: bytes | None = Field(default=None, validate_default=True)
    token_sequence: int = Field(strict=True, ge=0, le=SEQUENCE_MAX)
    revoked: bool = Field(strict=True)
    domain: str | None = Field(default=None, strict=True)
    manifest: bytes | None = None
    pending_token_secret: bytes | None = None
    pending_key_type: KeyType | None = None

    @field_validator("secret_key", mode="before")
    @classmethod
    def _parse_secret_key(cls, value: Any, info: ValidationInfo) -> bytes | None:
        if value == EXTERNAL_SECRET:
            return None
        secret = _decode_secret(value)
        key_type = info.data.get("key_type")
        if key_type is not None:
            # Raises ValueError for secp256k1 secrets outside the group order.
            derive_public_key(key_type, secret)
        return secret

    @field_validator("public_key", mode="before")
    @classmethod
    def _parse_public_key(cls, value: Any, info: ValidationInfo) -> bytes | None:
        external = "secret_key" in info.data and info.data["secret_key"] is None
        if not external:
            return None
        if value is None:
            raise PydanticCustomError(_MISSING_PUBLIC_KEY, "external keys need a public key")
        decoded = decode_base58_token(TokenType.NODE_PUBLIC, value) if isinstance(value, str) else None
        if decoded is None:
            raise ValueError("expected a base58 public key")
        found = public_key_type(decoded)
        key_type = info.data.get("key_type")
        if found is None or (key_type is not None and found is not key_type):
            raise ValueError(f"not a valid {key_type} public key")
        return decoded

    @field_validator("domain", "pending_key_type", mode="before")
    @classmethod
    def _reject_null(cls, value: Any) -> Any:
        # Optional fields may be left out but never written as null.
        if value is None:
            raise ValueError("null is not allowed")
        return value

    @field_validator("domain")
    @classmethod
    def _check_domain(cls, value: str | None) -> str | None:
        if value is not None:
            validate_domain(value)
        return value

    @field_validator("manifest", mode="before")
    @classmethod
    def _parse_manifest(cls, value: Any) -> bytes:
        decoded = from_hex(value) if isinstance(value, str) else None
        if not decoded:
            raise ValueError("expected non-empty hex")
        return decoded

    @field_validator("pending_token_secret", mode="before")
    @classmethod
    def _parse_pending_secret(cls, value: Any) -> bytes:
        return _decode_secret(value)


def _format_error(path: Path, data: dict[str, Any], exc: ValidationError) -> KeyFileFormatError:
    """Turn pydantic's error list into the single error an operator sees."""
    failed: dict[str, str] = {}
    for error in exc.errors():
        if error["loc"]:
            failed.setdefault(str(error["loc"][0]), error["type"])

    for name in _REQUIRED_FIELDS:
        if failed.get(name) == "missing":
            return KeyFileFormatError.missing(str(path), name)
    for name in _CHECK_ORDER:
        kind = failed.get(name)
        if kind is None:
            continue
        if kind == _MISSING_PUBLIC_KEY:
            return KeyFileFormatError.missing(str(path), name)
        return KeyFileFormatError.invalid(str(path), name, data.get(name))
    return KeyFileFormatError(f"Unable to parse json key file: {path}")


# ------------------------------------------------------------------
# Key file
# ------------------------------------------------------------------


class KeyFile:
    """A validator key file at a fixed path.

    Parameters
    ----------
    path:
        Location of the JSON key file.
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def exists(self) -> bool:
        return self._path.exists()

    def load(self) -> ValidatorKeys:
        """Read and validate the key file.

        Returns
        -------
        ValidatorKeys
            Keys with their token sequence, revocation flag, domain, last
            manifest and pending token restored. The manifest is not
            verified until it is read back.

        Raises
        ------
        KeyFileIOError
            If the file cannot be read.
        KeyFileFormatError
            If the file is not a JSON object, or a field is missing or
            invalid.
        """
        path = self._path
        try:
            raw = path.read_bytes()
        except OSError as exc:
            raise KeyFileIOError(f"Failed to open key file: {path}") from exc

        try:
            data = json.loads(raw.decode("utf-8"))
        except ValueError as exc:
            raise KeyFileFormatError(f"Unable to parse json key file: {path}") from exc
        if not isinstance(data, dict):
            raise KeyFileFormatError(f"Unable to parse json key file: {path}")

        try:
            document = KeyFileDocument.model_validate(data)
        except ValidationError as exc:
            raise _format_error(path, data, exc) from exc

        pending = self._pending_token(document)

        if document.secret_key is None:
            keys = ValidatorKeys.from_public_key(
                document.key_type,
                document.public_key,
                document.token_sequence,
                document.revoked,
            )
        else:
            keys = ValidatorKeys.from_secret(
                document.key_type,
                document.secret_key,
                document.token_sequence,
                document.revoked,
            )
        if document.domain:
            keys.domain = document.domain
        keys.restore(manifest=document.manifest or b"", pending=pending)

        logger.debug("Loaded %s key file %s", keys.key_type.value, path)
        return keys

    def _pending_token(self, document: KeyFileDocument) -> PendingToken | None:
        secret, key_type = document.pending_token_secret, document.pending_key_type
        if secret is None and key_type is None:
            return None
        if secret is None:
            raise KeyFileFormatError.missing(str(self._path), "pending_token_secret")
        if key_type is None:
            raise KeyFileFormatError.missing(str(self._path), "pending_key_type")
        try:
            derive_public_key(key_type, secret)
        except ValueError as exc:
            raise KeyFileFormatError.invalid(
                str(self._path),
                "pending_token_secret",
                encode_base58_token(TokenType.NODE_PRIVATE, secret),
            ) from exc
        return PendingToken(secret_key=secret, key_type=key_type)

    def save(self, keys: ValidatorKeys) -> None:
        """Write *keys* to the key file, creating parent directories as needed.

        Raises
        ------
        KeyFileIOError
            If the parent directory cannot be created or the file cannot be
            written. An existing key file is left untouched.
        """
        path = self._path
        text = json.dumps(self._document(keys), indent=2) + "\n"

        parent = path.parent
        try:
            parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise KeyFileIOError(f"Cannot create directory: {parent}") from exc

        try:
            handle = tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=parent,
                prefix=f".{path.name}.",
                suffix=".tmp",
                delete=False,
            )
        except OSError as exc:
            raise KeyFileIOError(f"Cannot open key file: {path}") from exc

        temp_path = Path(handle.name)
        try:
            with handle:
                handle.write(text)
            os.replace(temp_path, path)
        except OSError as exc:
            temp_path.unlink(missing_ok=True)
            raise KeyFileIOError(f"Cannot open key file: {path}") from exc

        logger.info("Saved key file %s (sequence %d)", path, keys.sequence)

    @staticmethod
    def _document(keys: ValidatorKeys) -> dict[str, object]:
        secret = keys.secret_key
        document: dict[str, object] = {
            "key_type": keys.key_type.value,
            "public_key": encode_base58_token(TokenType.NODE_PUBLIC, keys.public_key),
            "secret_key": (
                EXTERNAL_SECRET
                if secret is None
                else encode_base58_token(TokenType.NODE_PRIVATE, secret)
            ),
            "token_sequence": keys.sequence,
            "revoked": keys.revoked,
        }
        if keys.domain:
            document["domain"] = keys.domain
        if keys.stored_manifest:
            document["manifest"] = to_hex(keys.stored_manifest)
        if keys.pending is not None:
            document["pending_token_secret"] = encode_base58_token(
                TokenType.NODE_PRIVATE, keys.pending.secret_key
            )
            document["pending_key_type"] = keys.pending.key_type.value
        return document


__all__ = ["EXTERNAL_SECRET", "KeyFile", "KeyFileDocument"]
