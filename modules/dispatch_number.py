"""
Dispatch number derivation.

A dispatch number is the operator prefix, the dispatch date as ddmmyy and a
suffix taken from the selected serials:

    no serials      -> 0001
    one serial      -> last 4 alphanumerics of it
    two or more     -> first 3 alphanumerics of the first serial
                       + last 3 alphanumerics of the last serial

    derive(["ABC123", "XYZ999"], "2024-05-03", "DL") == "DL030524ABC999"

The value is only a default: the operator may override it before submitting.
"""

from __future__ import annotations

from typing import Optional, Sequence


EMPTY_SUFFIX = "0001"
FIRST_FALLBACK = "001"
LAST_FALLBACK = "999"
DEFAULT_PREFIX = "Sl"


def alnum(text: Optional[str]) -> str:
    """Keep only letters and digits."""
    return "".join(ch for ch in (text or "") if ch.isalnum())


def first_n(text: str, n: int) -> str:
    """Up to the first n characters; all of text when it is shorter."""
    return text[:min(n, len(text))]


def last_n(text: str, n: int) -> str:
    """Up to the last n characters; all of text when it is shorter."""
    if n <= 0:
        return ""
    return text[max(len(text) - n, 0):]


def date_code(dispatch_date: Optional[str]) -> str:
    """
    YYYY-MM-DD -> ddmmyy.

    Anything that does not split into three non-empty hyphen-separated parts
    gives an empty string rather than an error.
    """
    parts = (dispatch_date or "").strip().split("-")
    if len(parts) != 3 or not all(parts):
        return ""
    year, month, day = parts
    return f"{day}{month}{last_n(year, 2)}"


def serial_suffix(serials: Sequence[str]) -> str:
    """Suffix part of the dispatch number for the selected serials."""
    if not serials:
        return EMPTY_SUFFIX

    if len(serials) == 1:
        return last_n(alnum(serials[0]), 4) or EMPTY_SUFFIX

    first = first_n(alnum(serials[0]), 3) or FIRST_FALLBACK
    last = last_n(alnum(serials[-1]), 3) or LAST_FALLBACK
    return f"{first}{last}"


def derive(serials: Sequence[str], dispatch_date: str, prefix: str) -> str:
    """
    Derive the default dispatch number.

    Pure: the same serials, date and prefix always give the same number.

    Args:
        serials: Selected serials in selection order
        dispatch_date: Dispatch date as YYYY-MM-DD
        prefix: Operator prefix (see operator_prefix)

    Returns:
        prefix + ddmmyy + suffix
    """
    return f"{prefix}{date_code(dispatch_date)}{serial_suffix(serials)}"


def operator_prefix(name: Optional[str]) -> str:
    """
    Two-letter prefix from the operator's display name.

    "Qaiser Javed" -> "QJ", "Qaiser" -> "QR", "" -> "Sl".
    """
    parts = (name or "").split()
    if not parts:
        return DEFAULT_PREFIX
    if len(parts) >= 2:
        initials = first_n(parts[0], 1) + first_n(parts[-1], 1)
    else:
        initials = first_n(parts[0], 1) + last_n(parts[0], 1)
    return initials.upper() or DEFAULT_PREFIX
