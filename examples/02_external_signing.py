#!/usr/bin/env python3
"""Example: External master key

Keeps the master secret away from the key file. The key file holds only
the public key; the bytes to sign are handed to an offline signer and the
signature is fed back to finish the token, then to revoke the key.

Usage:
    python examples/02_external_signing.py

Requirements:
    pip install validator-keys
"""
from __future__ import annotations

from validator_keys import KeyType, ValidatorKeys
from validator_keys.keys import generate_key_pair, sign_message


def main() -> None:
    # The "device": in practice an HSM or an air-gapped machine
    device_public, device_secret = generate_key_pair(KeyType.ED25519)

    keys = ValidatorKeys.from_public_key(KeyType.ED25519, device_public)

    # Step 1: Stage a token and sign its bytes on the device
    signing_hex = keys.start_token()
    assert signing_hex is not None
    signature = sign_message(KeyType.ED25519, device_secret, bytes.fromhex(signing_hex))

    # Step 2: Finish the token with the device signature
    token = keys.finish_token(signature)
    assert token is not None
    print(f"Token #{keys.sequence} finished, manifest {token.manifest[:32]}...")

    # Step 3: Revoke the same way
    revocation_hex = keys.start_revoke()
    signature = sign_message(KeyType.ED25519, device_secret, bytes.fromhex(revocation_hex))
    keys.finish_revoke(signature)
    print(f"Revoked: {keys.revoked}")


if __name__ == "__main__":
    main()
