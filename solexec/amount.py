"""Decimal SOL amounts <-> integer lamports."""

from __future__ import annotations

import re

from .errors import ErrorKind, WalletError

LAMPORTS_PER_SOL = 1_000_000_000
FRACTION_DIGITS = 9
U64_MAX = 2**64 - 1

_NUMERAL_RE = re.compile(r"\+?[0-9]+")


def _invalid(detail: str) -> WalletError:
    return WalletError(ErrorKind.INVALID_AMOUNT, detail)


def _parse_u64(text: str, strict: bool) -> int:
    """Unsigned numeral; anything that isn't digits reads as 0 unless strict."""
    if not _NUMERAL_RE.fullmatch(text):
        if strict:
            raise _invalid(f"not a number: {text!r}")
        return 0
    value = int(text)
    if value > U64_MAX:
        raise _invalid("amount out of range")
    return value


def parse_amount(text: str, scale: int = LAMPORTS_PER_SOL, strict: bool = False) -> int:
    """Parse a decimal amount such as "1.5" into base units.

    The fractional part is always read as exactly nine digits: shorter
    fractions are right-padded with zeros and longer ones truncated. With
    ``strict`` set, unparsable numerals and extra fractional digits are
    rejected instead.
    """
    parts = text.split(".")
    if len(parts) == 1:
        whole = _parse_u64(parts[0], strict)
        fraction = 0
    elif len(parts) == 2:
        whole = _parse_u64(parts[0], strict)
        if strict and not 0 < len(parts[1]) <= FRACTION_DIGITS:
            raise _invalid(f"fraction must have 1 to {FRACTION_DIGITS} digits")
        digits = parts[1].ljust(FRACTION_DIGITS, "0")[:FRACTION_DIGITS]
        fraction = _parse_u64(digits, strict)
    else:
        raise _invalid("more than one decimal point")

    lamports = whole * scale
    if lamports > U64_MAX:
        raise _invalid("amount out of range")
    lamports += fraction
    if lamports > U64_MAX:
        raise _invalid("amount out of range")
    return lamports


def format_amount(lamports: int, places: int = 3) -> str:
    return f"{lamports / LAMPORTS_PER_SOL:.{places}f}"
