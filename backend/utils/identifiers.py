"""Helpers for instrument identifiers (ISINs and temporary stand-ins).

Temporary identifiers use the format ``TEMP-{ticker}-{mic}``. The reserved
prefix keeps them distinguishable from registry-assigned ISINs, which never
contain a hyphen.
"""

import re

TEMPORARY_ISIN_PREFIX = "TEMP"

_ISIN_RE = re.compile(r"^[A-Z]{2}[A-Z0-9]{9}[0-9]$")


def generate_temporary_isin(ticker: str, mic: str) -> str:
    """Build the deterministic temporary identifier for a (ticker, venue) pair."""
    return f"{TEMPORARY_ISIN_PREFIX}-{ticker}-{mic}"


def is_temporary_isin(identifier: str | None) -> bool:
    """Check if an identifier was synthesized rather than registry-assigned."""
    return bool(identifier) and identifier.startswith(f"{TEMPORARY_ISIN_PREFIX}-")


def is_valid_isin(value: str | None) -> bool:
    """Check if ``value`` has the shape of an ISIN (2 letters, 9 alnum, 1 digit).

    Feeds sometimes put placeholders such as ``request_access_via_add_ons``
    in the ISIN field; those fail this check.
    """
    if not value:
        return False
    return bool(_ISIN_RE.match(value))
