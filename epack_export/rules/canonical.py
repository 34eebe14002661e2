"""
ePack Export — Rules Key Canonicalization

Rules-table keys are typed by hand by the community, page headers are not
contractually stable, so both sides of a lookup are reduced to the same
canonical form before comparison:

    "2024-25 SP Game Used Hockey Base Set" -> "2024 25 sp game used hockey"
    "Gold"                                 -> "gold"
"""

from __future__ import annotations

import re

_PUNCTUATION_RE = re.compile(r"[^a-z0-9\s]+")
_BASE_SET_RE = re.compile(r"\bbase\s+set\b")
_WHITESPACE_RE = re.compile(r"\s+")
_PARALLEL_RE = re.compile(r"(?<![A-Za-z])parallel(?![A-Za-z])", re.IGNORECASE)
_DANGLING_SEPARATOR_RE = re.compile(r"^[\s\-–|•:]+|[\s\-–|•:]+$")


def canonicalize(text: str | None) -> str:
    """
    Lowercase, strip punctuation, drop the "base set" token and collapse whitespace.

    Idempotent: canonicalize(canonicalize(x)) == canonicalize(x).
    """
    value = _PUNCTUATION_RE.sub(" ", (text or "").lower())
    # Removing one token can expose another ("base base set set")
    while True:
        stripped = _BASE_SET_RE.sub(" ", value)
        if stripped == value:
            break
        value = stripped
    return _WHITESPACE_RE.sub(" ", value).strip()


def canonical_key(set_name: str | None, rarity: str | None) -> str:
    """Build the "<set>|<rarity>" lookup key with both segments canonicalized."""
    return f"{canonicalize(set_name)}|{canonicalize(rarity)}"


def phrase_pattern(phrase: str) -> re.Pattern[str]:
    """
    Case-insensitive, letter-bounded pattern for a keyword phrase.

    Internal spaces accept any run of whitespace, including none, because the
    page sometimes renders "Young Guns" as "YoungGuns" or "Young  Guns".
    """
    parts = [re.escape(part) for part in phrase.split()]
    body = r"\s*".join(parts)
    return re.compile(rf"(?<![A-Za-z]){body}(?![A-Za-z])", re.IGNORECASE)


def strip_rarity_from_set(set_name: str | None, rarity: str | None) -> str:
    """
    Remove the rarity phrase and the literal word "parallel" from a set name.

    Rules are keyed on bare set names, while page headers read like
    "2024-25 SP Game Used Hockey Gold Parallel". Only a verbatim occurrence of
    the rarity is removed; a rarity that never appears in the set text leaves
    the set untouched apart from the "parallel" word.
    """
    value = set_name or ""
    if rarity and rarity.strip():
        value = phrase_pattern(rarity.strip()).sub(" ", value)
    value = _PARALLEL_RE.sub(" ", value)
    value = _WHITESPACE_RE.sub(" ", value)
    return _DANGLING_SEPARATOR_RE.sub("", value).strip()
