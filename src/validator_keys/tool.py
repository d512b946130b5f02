"""Operator commands — one function per command, each against a key file path.

Every command loads the key file, performs one operation on
:class:`~validator_keys.validator.keys.ValidatorKeys`, writes the key file
back when state changed, and prints what the operator has to copy into the
node configuration. Failures are raised as
:class:`~validator_keys.errors.ValidatorKeysError` subclasses; turning them
into an exit status is the CLI's job.
"""
from __future__ import annotations

from pathlib import Path

from rich.console import Console

from validator_keys.config import DEFAULT_MASTER_KEY_TYPE, OUTPUT_LINE_WIDTH
from validator_keys.encoding.base58 import TokenType, decode_base58_token, encode_base58_token
from validator_keys.encoding.text import from_base64_strict, from_hex, to_base64, to_hex
from validator_keys.errors import CommandError, InvalidMasterSignatureError, PublicKeyParseError
from validator_keys.keys.key_manager import public_key_type
from validator_keys.keys.key_type import KeyType
from validator_keys.storage.key_file import KeyFile
from validator_keys.validator.keys import ValidatorKeys

console = Console(soft_wrap=True, highlight=False, emoji=False)
err_console = Console(stderr=True, soft_wrap=True, highlight=False, emoji=False)

REVOKED_MESSAGE = "Validator keys have been revoked."
EXHAUSTED_MESSAGE = (
    "Maximum number of tokens have already been generated.\n"
    "Revoke validator keys if previous token has been compromised."
)
REVOKED_OPERATION_MESSAGE = "Operation error: The specified master key has been revoked!"
EMPTY_DATA_MESSAGE = "Syntax error: Must specify data string to sign"


# ------------------------------------------------------------------
# Output helpers
# ------------------------------------------------------------------


def _say(text: str = "", out: Console | None = None) -> None:
    # Bracketed section names like [validator_token] are not rich markup.
    (out or console).print(text, markup=False)


def _public_key_b58(keys: ValidatorKeys) -> str:
    return encode_base58_token(TokenType.NODE_PUBLIC, keys.public_key)


def _print_block(keys: ValidatorKeys, section: str, payload: str) -> None:
    _say(f"# validator public key: {_public_key_b58(keys)}")
    _say()
    _say(f"[{section}]")
    for start in range(0, len(payload), OUTPUT_LINE_WIDTH):
        _say(payload[start : start + OUTPUT_LINE_WIDTH])
    _say()


def _print_config_update(keys: ValidatorKeys, section: str, payload: str) -> None:
    _say("Update rippled.cfg file with these values and restart rippled:")
    _say()
    _print_block(keys, section, payload)


def _revocation_warning(keys: ValidatorKeys, out: Console | None = None) -> None:
    if keys.revoked:
        _say("WARNING: Validator keys have already been revoked!", out)
    else:
        _say("WARNING: This will revoke your validator keys!", out)
    _say(out=out)


# ------------------------------------------------------------------
# Input decoding
# ------------------------------------------------------------------


def parse_public_key(data: str) -> tuple[KeyType, bytes]:
    """Parse a master public key given as base58, hex or base64.

    Raises
    ------
    PublicKeyParseError
        If *data* is none of those, or does not decode to a valid key.
    """
    candidates = (
        decode_base58_token(TokenType.NODE_PUBLIC, data),
        from_hex(data),
        from_base64_strict(data),
    )
    for candidate in candidates:
        if candidate is None:
            continue
        key_type = public_key_type(candidate)
        if key_type is not None:
            return key_type, candidate
    raise PublicKeyParseError(data)


def decode_master_signature(data: str) -> bytes:
    """Decode an externally produced master signature given as hex or base64.

    Nothing about a signature can be checked until it is used, so any input
    that decodes cleanly is accepted here.

    Raises
    ------
    InvalidMasterSignatureError
        If *data* is neither hex nor canonical base64.
    """
    decoded = from_hex(data)
    if decoded is None:
        decoded = from_base64_strict(data)
    if decoded is None:
        raise InvalidMasterSignatureError()
    return decoded


# ------------------------------------------------------------------
# Key creation
# ------------------------------------------------------------------


def _refuse_overwrite(key_file: KeyFile) -> None:
    if key_file.exists():
        raise CommandError(f"Refusing to overwrite existing key file: {key_file.path}")


def _print_stored(key_file: KeyFile) -> None:
    _say(f"Validator keys stored in {key_file.path}")
    _say()
    _say("This file should be stored securely and not shared.")
    _say()


def create_key_file(path: Path) -> None:
    """Generate a new ed25519 master key and store it at *path*."""
    key_file = KeyFile(path)
    _refuse_overwrite(key_file)
    key_file.save(ValidatorKeys.generate(DEFAULT_MASTER_KEY_TYPE))
    _print_stored(key_file)


def create_external(data: str, path: Path) -> None:
    """Store an external-mode key file for the public key in *data*."""
    key_file = KeyFile(path)
    _refuse_overwrite(key_file)
    key_type, public_key = parse_public_key(data)
    key_file.save(ValidatorKeys.from_public_key(key_type, public_key))
    _print_stored(key_file)


# ------------------------------------------------------------------
# Tokens
# ------------------------------------------------------------------


def _load_active(key_file: KeyFile) -> ValidatorKeys:
    keys = key_file.load()
    if keys.revoked:
        raise CommandError(REVOKED_MESSAGE)
    return keys


def create_token(path: Path) -> None:
    """Mint the next token with the locally held master key."""
    key_file = KeyFile(path)
    keys = _load_active(key_file)
    token = keys.create_token()
    if token is None:
        raise CommandError(EXHAUSTED_MESSAGE)
    key_file.save(keys)
    _print_config_update(keys, "validator_token", token.to_string())


def start_token(path: Path) -> None:
    """Stage the next token and print the hex bytes the master key must sign."""
    key_file = KeyFile(path)
    keys = _load_active(key_file)
    signing_hex = keys.start_token()
    if signing_hex is None:
        raise CommandError(EXHAUSTED_MESSAGE)
    key_file.save(keys)
    _say(signing_hex)
    _say()


def finish_token(data: str, path: Path) -> None:
    """Complete the staged token with the master signature in *data*."""
    key_file = KeyFile(path)
    keys = _load_active(key_file)
    token = keys.finish_token(decode_master_signature(data))
    if token is None:
        raise CommandError(EXHAUSTED_MESSAGE)
    key_file.save(keys)
    _print_config_update(keys, "validator_token", token.to_string())


# ------------------------------------------------------------------
# Revocation
# ------------------------------------------------------------------


def create_revocation(path: Path) -> None:
    """Revoke the master key, signing locally."""
    key_file = KeyFile(path)
    keys = key_file.load()
    _revocation_warning(keys)
    revocation = keys.revoke()
    key_file.save(keys)
    _print_config_update(keys, "validator_key_revocation", revocation)


def start_revocation(path: Path) -> None:
    """Print the hex bytes of the revocation for an external master signature.

    The warning goes to stderr so stdout carries only the bytes to sign.
    """
    key_file = KeyFile(path)
    keys = key_file.load()
    _revocation_warning(keys, err_console)
    signing_hex = keys.start_revoke()
    key_file.save(keys)
    _say(signing_hex)
    _say()


def finish_revocation(data: str, path: Path) -> None:
    """Revoke the master key with the externally produced signature in *data*."""
    key_file = KeyFile(path)
    keys = key_file.load()
    _revocation_warning(keys)
    revocation = keys.finish_revoke(decode_master_signature(data))
    key_file.save(keys)
    _print_config_update(keys, "validator_key_revocation", revocation)


# ------------------------------------------------------------------
# Domain
# ------------------------------------------------------------------


def domain_attestation_blob(keys: ValidatorKeys) -> str:
    """Return the text the master key signs to attest its domain."""
    return f"[domain-attestation-blob:{keys.domain}:{_public_key_b58(keys)}]"


def _print_attestation(keys: ValidatorKeys) -> None:
    if not keys.domain:
        _say("No attestation is necessary if no domain is specified!")
        _say("If you have an attestation in your xrpl-ledger.toml")
        _say("you should remove it at this time.")
        return

    attestation = keys.sign(domain_attestation_blob(keys))
    _say(f"The domain attestation for validator {_public_key_b58(keys)} is:")
    _say()
    _say(f'attestation="{attestation}"')
    _say()
    _say("You should include it in your xrp-ledger.toml file in the")
    _say("section for this validator.")


def attest_domain(path: Path) -> None:
    """Print the signed attestation for the key's current domain."""
    keys = KeyFile(path).load()
    if keys.revoked:
        raise CommandError(REVOKED_OPERATION_MESSAGE)
    _print_attestation(keys)


def set_domain(domain: str, path: Path) -> None:
    """Set (or with ``""`` clear) the domain and mint a token carrying it."""
    key_file = KeyFile(path)
    keys = key_file.load()
    if keys.revoked:
        raise CommandError(REVOKED_OPERATION_MESSAGE)

    if domain == keys.domain:
        if domain:
            _say("The domain name was already set.")
        else:
            _say("The domain name was already cleared!")
        return

    keys.domain = domain
    token = keys.create_token()
    if token is None:
        raise CommandError(EXHAUSTED_MESSAGE)
    key_file.save(keys)

    if domain:
        _say(f"The domain name has been set to: {domain}")
        _say()
    else:
        _say("The domain name has been cleared.")
    _print_attestation(keys)

    _say()
    _say("You also need to update the rippled.cfg file to add a new")
    _say("validator token and restart rippled:")
    _say()
    _print_block(keys, "validator_token", token.to_string())


# ------------------------------------------------------------------
# Signing and inspection
# ------------------------------------------------------------------


def _load_for_signing(data: str, path: Path) -> ValidatorKeys:
    if not data:
        raise CommandError(EMPTY_DATA_MESSAGE)
    keys = KeyFile(path).load()
    if keys.revoked:
        _say("WARNING: Validator keys have been revoked!")
        _say()
    return keys


def sign_data(data: str, path: Path) -> None:
    """Sign the text *data* with the master key."""
    keys = _load_for_signing(data, path)
    _say(keys.sign(data))
    _say()


def sign_hex_data(data: str, path: Path) -> None:
    """Sign the bytes given as hex in *data* with the master key."""
    keys = _load_for_signing(data, path)
    _say(keys.sign_hex(data))
    _say()


def show_manifest(encoding: str, path: Path) -> None:
    """Print the last manifest, verified, as ``base64`` or ``hex``."""
    keys = KeyFile(path).load()
    manifest = keys.manifest
    if not manifest:
        _say("The last manifest generated is unavailable. You can")
        _say("generate a new one.")
        _say()
        return

    if encoding == "base64":
        _say(f"Manifest #{keys.sequence} (Base64):")
        _say(to_base64(manifest))
    elif encoding == "hex":
        _say(f"Manifest #{keys.sequence} (Hex):")
        _say(to_hex(manifest))
    else:
        _say(f"Unknown encoding '{encoding}'")
        return
    _say()


__all__ = [
    "EMPTY_DATA_MESSAGE",
    "EXHAUSTED_MESSAGE",
    "REVOKED_MESSAGE",
    "REVOKED_OPERATION_MESSAGE",
    "attest_domain",
    "console",
    "create_external",
    "create_key_file",
    "create_revocation",
    "create_token",
    "decode_master_signature",
    "domain_attestation_blob",
    "err_console",
    "finish_revocation",
    "finish_token",
    "parse_public_key",
    "set_domain",
    "show_manifest",
    "sign_data",
    "sign_hex_data",
    "start_revocation",
    "start_token",
]
