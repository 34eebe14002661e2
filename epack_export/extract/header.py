"""
ePack Export — Group Header & Rarity Inference

A group's leading text reads like:

    "2024-25 SP Game Used Hockey Gold Parallel - Legends"

and is split into (set, subset, year). Rarity is inferred from free text by
scanning an ordered keyword list: colours first, then named parallels and
insert families, then the generic "Insert"/"Parallel" terms. The first term
in list order that appears anywhere in the text wins, so a specific colour
always beats the generic "Parallel" when both are present. The header is
scanned on its own first; card titles are consulted only when the header
names no rarity, so a player called "Black" stays "Young Guns".
"""

from __future__ import annotations

import re
from typing import Sequence

import structlog

from epack_export.extract import GroupHeader
from epack_export.rules.canonical import phrase_pattern

logger = structlog.get_logger(__name__)

HEADER_SEPARATOR = " - "

_PURE_INT_RE = re.compile(r"^\d+$")
_YEAR_RE = re.compile(r"\b(?:20\d{2}|19\d{2})(?:-\d{2})?\b")
_WHITESPACE_RE = re.compile(r"\s+")
_TRAILING_PARALLEL_RE = re.compile(r"^(.*?)\s*parallel$", re.IGNORECASE)

COLOR_WORDS: tuple[str, ...] = (
    "Gold", "Blue", "Green", "Red", "Black", "Purple", "Orange", "Teal",
    "Silver", "Bronze", "Rainbow", "Spectrum",
)

# Longer phrases precede their prefixes ("Rookie Sweaters" before "Rookie")
NAMED_TERMS: tuple[str, ...] = (
    "Canvas", "Exclusive", "FX", "Ice", "Young Guns", "Fabrics", "Retro",
    "Legends", "Authentic Rookies", "Rookie Sweaters", "Checklist", "Debut",
    "Rookie", "Jersey", "Materials", "Patch", "Die-Cut", "HOF Marks",
    "Banner Year", "Net Cord", "New Grooves", "All-Star", "Mascot",
)

GENERIC_TERMS: tuple[str, ...] = ("Insert", "Parallel")

RARITY_TERMS: tuple[str, ...] = COLOR_WORDS + NAMED_TERMS + GENERIC_TERMS

_RARITY_PATTERNS: tuple[tuple[str, re.Pattern[str]], ...] = tuple(
    (term, phrase_pattern(term)) for term in RARITY_TERMS
)
_CANONICAL_TERMS: dict[str, str] = {
    _WHITESPACE_RE.sub("", term.lower()): term for term in RARITY_TERMS
}
_COLOR_LOOKUP: dict[str, str] = {color.lower(): color for color in COLOR_WORDS}


def is_pure_int(token: str) -> bool:
    """True for a token made only of ASCII digits ("12", not "12a" or "#12")."""
    return bool(_PURE_INT_RE.match(token or ""))


def extract_year(set_name: str) -> str:
    """First 4-digit year (with optional "-25" season suffix) in the set name."""
    match = _YEAR_RE.search(set_name or "")
    return match.group(0) if match else ""


def extract_header(group_tokens: Sequence[str]) -> GroupHeader:
    """
    Split a group's leading tokens into set, subset and year.

    Tokens up to (not including) the first pure integer form the header.
    The first " - " separates set from subset; further separators stay in
    the subset.

    Args:
        group_tokens: Tokenized group text in document order.

    Returns:
        GroupHeader with set_name, subset, year, header-level rarity and
        the raw header text.
    """
    boundary = 0
    while boundary < len(group_tokens) and not is_pure_int(group_tokens[boundary]):
        boundary += 1

    header = _WHITESPACE_RE.sub(" ", " ".join(group_tokens[:boundary])).strip()

    set_name, subset = header, ""
    if HEADER_SEPARATOR in header:
        parts = header.split(HEADER_SEPARATOR)
        set_name = parts[0].strip()
        subset = HEADER_SEPARATOR.join(parts[1:]).strip()

    result = GroupHeader(
        header=header,
        set_name=set_name,
        subset=subset,
        year=extract_year(set_name),
        rarity=infer_rarity(set_name, subset, ""),
    )
    logger.debug(
        "group_header_extracted",
        set_name=result.set_name,
        subset=result.subset,
        year=result.year,
        rarity=result.rarity,
    )
    return result


def normalize_rarity(label: str | None) -> str:
    """
    Fold a rarity label to its canonical spelling.

    "GOLD" -> "Gold", "gold parallel" -> "Gold", "base parallel" -> "Parallel",
    "young  guns" -> "Young Guns". Unknown labels are whitespace-collapsed only.
    """
    value = _WHITESPACE_RE.sub(" ", label or "").strip()
    if not value:
        return ""

    lowered = value.lower()
    if lowered in _COLOR_LOOKUP:
        return _COLOR_LOOKUP[lowered]

    parallel_match = _TRAILING_PARALLEL_RE.match(value)
    if parallel_match:
        prefix = parallel_match.group(1).strip().lower()
        return _COLOR_LOOKUP.get(prefix, "Parallel")

    return _CANONICAL_TERMS.get(_WHITESPACE_RE.sub("", lowered), value)


def _first_term(text: str) -> str:
    for _term, pattern in _RARITY_PATTERNS:
        match = pattern.search(text)
        if match:
            return normalize_rarity(match.group(0))
    return ""


def infer_rarity(set_name: str | None, subset: str | None, title: str | None) -> str:
    """
    Infer the rarity/parallel label from a group's set, subset and a card title.

    Header text (subset • set) is scanned first; the title is scanned only
    when the header holds no known term. Within each text, terms are tried
    in precedence order and the first one present anywhere wins.

    Returns:
        Canonical rarity label, or "" when no known term appears.
    """
    header_text = " • ".join(part or "" for part in (subset, set_name))
    return _first_term(header_text) or _first_term(title or "")
