"""validator-keys — validator master keys, delegation tokens and revocations.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Example
-------
>>> import validator_keys
>>> validator_keys.__version__
'0.4.0'

Quick start
-----------
::

    from validator_keys import KeyFile, ValidatorKeys

    keys = ValidatorKeys.generate()
    token = keys.create_token()
    KeyFile("validator-keys.json").save(keys)
    print(token.to_string())
"""
from __future__ import annotations

__version__: str = "0.4.0"

from validator_keys.errors import (
    CannotSignError,
    CommandError,
    DomainValidationError,
    HexDecodeError,
    InvalidMasterSignatureError,
    KeyFileFormatError,
    KeyFileIOError,
    ManifestDecodeError,
    ManifestSignatureError,
    NoPendingTokenError,
    PublicKeyParseError,
    ValidatorKeysError,
)
from validator_keys.keys import KeyType
from validator_keys.manifest import ManifestKind, ManifestRecord
from validator_keys.storage import KeyFile
from validator_keys.validator import PendingToken, ValidatorKeys, ValidatorToken

__all__ = [
    "__version__",
    # Keys and state
    "KeyType",
    "ValidatorKeys",
    "ValidatorToken",
    "PendingToken",
    # Manifests
    "ManifestKind",
    "ManifestRecord",
    # Storage
    "KeyFile",
    # Errors
    "CannotSignError",
    "CommandError",
    "DomainValidationError",
    "HexDecodeError",
    "InvalidMasterSignatureError",
    "KeyFileFormatError",
    "KeyFileIOError",
    "ManifestDecodeError",
    "ManifestSignatureError",
    "NoPendingTokenError",
    "PublicKeyParseError",
    "ValidatorKeysError",
]
