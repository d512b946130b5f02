"""Domain name validation for validator keys.

A domain must be between 4 and 128 characters long and look like
``[host.][subdomain.]domain.tld``. The pattern weeds out obviously wrong
names; it does not attempt to support internationalised domain names.
"""
from __future__ import annotations

import re

from validator_keys.config import DOMAIN_MAX_LENGTH, DOMAIN_MIN_LENGTH
from validator_keys.errors import DomainValidationError

LENGTH_MESSAGE = (
    f"The domain must be between {DOMAIN_MIN_LENGTH} and {DOMAIN_MAX_LENGTH} characters long."
)
FORMAT_MESSAGE = "The domain field must use the '[host.][subdomain.]domain.tld' format"

_DOMAIN_PATTERN = re.compile(
    r"^"
    r"((?!-)[a-zA-Z0-9-]{1,63}(?<!-)\.)+"  # labels: alphanumeric and '-', no leading/trailing '-'
    r"[A-Za-z]{2,63}"  # alphabetic TLD
    r"$"
)


def validate_domain(domain: str) -> str:
    """Return *domain* unchanged if it is acceptable.

    The empty string is always accepted; it means "no domain".

    Raises
    ------
    DomainValidationError
        With :data:`LENGTH_MESSAGE` or :data:`FORMAT_MESSAGE`.
    """
    if not domain:
        return domain
    if not DOMAIN_MIN_LENGTH <= len(domain) <= DOMAIN_MAX_LENGTH:
        raise DomainValidationError(LENGTH_MESSAGE)
    if _DOMAIN_PATTERN.fullmatch(domain) is None:
        raise DomainValidationError(FORMAT_MESSAGE)
    return domain


__all__ = ["FORMAT_MESSAGE", "LENGTH_MESSAGE", "validate_domain"]
