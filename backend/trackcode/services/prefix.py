"""
TrackCode Backend — Prefix Rules
==================================

What:  Pure functions for deriving, validating and formatting prefixes.
How:   No I/O. The allocator combines these with availability queries.

Derivation examples:
    "IT Piezas Industriales"  → "IPI"   (first letter of first 3 words)
    "IT Piezas SA"            → "IPS"
    "Acme"                    → "ACM"   (1-2 words: joined, first 3 letters)
    "Go Co"                   → "GOC"
    "1234 !!"                 → "CLI"   (nothing left after stripping)
"""

import re
import string
from dataclasses import dataclass
from typing import List, Optional

from trackcode.config import settings

PREFIX_MIN_LENGTH = 2
PREFIX_MAX_LENGTH = 10

PREFIX_PATTERN = re.compile(r"^[A-Z0-9]+$")

# Anything that is not an ASCII letter or whitespace is dropped before
# splitting, including digits and accented letters
_NON_LETTER = re.compile(r"[^A-Za-z\s]")

NUMERIC_SUFFIXES = tuple(str(n) for n in range(2, 10))
ALPHA_SUFFIXES = tuple(string.ascii_uppercase)


@dataclass(frozen=True)
class PrefixValidation:
    """Outcome of validate_prefix_format."""

    valid: bool
    error: Optional[str] = None
    normalized: Optional[str] = None


def normalize_prefix(prefix: str) -> str:
    """
    Canonical stored form: surrounding whitespace trimmed, then upper-cased.

    " itp" and "ITP" therefore name the same prefix for
    availability checks as well as for validation.
    """
    return prefix.strip().upper()


def derive_base_prefix(company_name: Optional[str]) -> str:
    """
    Derive a 1-3 letter, non-unique prefix from a company name.

    Args:
        company_name: Arbitrary user input, may be empty or None

    Returns:
        Uppercase prefix, or the configured fallback ("CLI") when the name
        has no ASCII letters at all.
    """
    fallback = settings.fallback_prefix
    if not company_name or not company_name.strip():
        return fallback

    words = _NON_LETTER.sub("", company_name).split()
    if not words:
        return fallback

    if len(words) >= 3:
        prefix = "".join(word[0] for word in words[:3])
    else:
        prefix = "".join(words)[:3]

    return prefix.upper() or fallback


def candidate_prefixes(base: str) -> List[str]:
    """
    Ordered fallback candidates for a taken base prefix.

    base2..base9 first, then baseA..baseZ: 34 candidates in total.
    """
    return [f"{base}{suffix}" for suffix in NUMERIC_SUFFIXES + ALPHA_SUFFIXES]


def validate_prefix_format(candidate: object) -> PrefixValidation:
    """
    Check a manually supplied prefix against the format rules.

    Rules run in order and the first failure wins:
        1. non-empty string
        2. at least 2 characters after trim + upper-case
        3. at most 10 characters
        4. only A-Z and 0-9

    Availability is a separate check, as is excluding the client's own
    current prefix on edit; both belong to the caller.
    """
    if not isinstance(candidate, str) or not candidate:
        return PrefixValidation(valid=False, error="prefix is required")

    normalized = normalize_prefix(candidate)

    if len(normalized) < PREFIX_MIN_LENGTH:
        return PrefixValidation(
            valid=False,
            error=f"prefix must be at least {PREFIX_MIN_LENGTH} characters",
        )
    if len(normalized) > PREFIX_MAX_LENGTH:
        return PrefixValidation(
            valid=False,
            error=f"prefix must be at most {PREFIX_MAX_LENGTH} characters",
        )
    if not PREFIX_PATTERN.match(normalized):
        return PrefixValidation(
            valid=False,
            error="prefix must contain only uppercase letters and numbers",
        )

    return PrefixValidation(valid=True, normalized=normalized)


def format_tracking_code(prefix: str, sequence: int) -> str:
    """
    Render a tracking code: ITP-00001.

    The sequence is zero-padded to settings.sequence_padding digits and
    simply grows past it (ITP-100000).
    """
    if sequence < 1:
        raise ValueError(f"sequence must be positive, got {sequence}")
    return f"{prefix}-{sequence:0{settings.sequence_padding}d}"
