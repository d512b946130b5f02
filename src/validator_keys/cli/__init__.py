"""Command-line interface for validator-keys."""
