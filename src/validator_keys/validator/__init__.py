"""The validator key state machine and the records it produces."""
from __future__ import annotations

from validator_keys.validator.domain import validate_domain
from validator_keys.validator.keys import CANNOT_SIGN, CANNOT_SIGN_TOKENS, ValidatorKeys
from validator_keys.validator.token import PendingToken, ValidatorToken

__all__ = [
    "CANNOT_SIGN",
    "CANNOT_SIGN_TOKENS",
    "PendingToken",
    "ValidatorKeys",
    "ValidatorToken",
    "validate_domain",
]
