"""SKU normalisation for inventory items and tools.

Item numbers arrive typed by hand ("sw 7006 ", "SW-7006") or scanned off a
can label (a 12-digit UPC that some scanners report with a leading zero as
EAN-13). Everything is stored in one canonical form so lookups and the
unique constraint agree.
"""

from __future__ import annotations

import re

__all__ = ["normalize_sku", "sku_aliases"]


_HAS_ALPHA_RE = re.compile(r"[A-Za-z]")
_NON_DIGIT_RE = re.compile(r"\D")
_WHITESPACE_RE = re.compile(r"\s+")


def _clean(value: str) -> str:
    return _WHITESPACE_RE.sub(" ", value.strip())


def normalize_sku(raw: str | None) -> str | None:
    """Return the canonical form of a SKU, or ``None`` when blank.

    Purely numeric codes lose their punctuation and 12-digit UPCs gain a
    leading zero. Anything containing letters is upper-cased with internal
    whitespace collapsed.
    """

    if raw is None:
        return None
    cleaned = _clean(str(raw))
    if not cleaned:
        return None

    if not _HAS_ALPHA_RE.search(cleaned):
        digits = _NON_DIGIT_RE.sub("", cleaned)
        if digits:
            if len(digits) == 12:
                digits = "0" + digits
            return digits

    return cleaned.upper()


def sku_aliases(raw: str | None) -> list[str]:
    """Candidate spellings that should resolve to the same stored SKU."""

    if raw is None:
        return []
    cleaned = _clean(str(raw))
    if not cleaned:
        return []

    aliases: list[str] = []

    def add(candidate: str | None) -> None:
        if candidate and candidate not in aliases:
            aliases.append(candidate)

    add(normalize_sku(cleaned))
    if not _HAS_ALPHA_RE.search(cleaned):
        digits = _NON_DIGIT_RE.sub("", cleaned)
        add(digits)
        if len(digits) == 13 and digits.startswith("0"):
            add(digits[1:])
    add(cleaned.upper())
    return aliases
