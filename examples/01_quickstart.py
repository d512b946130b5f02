#!/usr/bin/env python3
"""Example: Quickstart

Creates a validator master key, mints a token with a domain, and shows
the block an operator pastes into the node configuration.

Usage:
    python examples/01_quickstart.py

Requirements:
    pip install validator-keys
"""
from __future__ import annotations

import tempfile
from pathlib import Path

import validator_keys
from validator_keys import KeyFile, ValidatorKeys


def main() -> None:
    print(f"validator-keys version: {validator_keys.__version__}")

    with tempfile.TemporaryDirectory() as workdir:
        key_file = KeyFile(Path(workdir) / "validator-keys.json")

        # Step 1: Create master keys and store them
        keys = ValidatorKeys.generate()
        key_file.save(keys)
        print(f"Keys stored in {key_file.path}")

        # Step 2: Attach a domain and mint a token
        keys = key_file.load()
        keys.domain = "validator.example.com"
        token = keys.create_token()
        assert token is not None
        key_file.save(keys)
        print(f"Token #{keys.sequence} minted")

        # Step 3: Print the config block
        print("[validator_token]")
        blob = token.to_string()
        for start in range(0, len(blob), 72):
            print(blob[start : start + 72])

    print("\nQuickstart complete.")


if __name__ == "__main__":
    main()
