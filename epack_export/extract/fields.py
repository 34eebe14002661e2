"""
ePack Export — Row Field Recovery Primitives

Tooltip keyword patterns, numeric coercion, the per-flag decision tables and
serial-number recognition. Row-level composition lives in extract/row.py.
"""

from __future__ import annotations

import re
from typing import Iterable, Sequence

from bs4.element import Tag

from epack_export.extract import NO, PENDING, YES

TOOLTIP_ATTRS: tuple[str, ...] = ("data-tooltip", "aria-label", "title")
NUMERIC_ATTRS: tuple[str, ...] = ("data-value", "data-count")
SERIAL_ATTRS: tuple[str, ...] = ("value", "data-value")

# Tooltip / aria-label / title matching (case-insensitive)
FIELD_KEYS: dict[str, re.Pattern[str]] = {
    "qty": re.compile(r"qty\s*owned", re.IGNORECASE),
    "subj": re.compile(r"subject\s*points?", re.IGNORECASE),
    "combine": re.compile(
        r"combine|qty\s*needed\s*to\s*combine|needed\s*to\s*combine|to\s*combine"
        r"|combine\s*needed|pieces\s*needed",
        re.IGNORECASE,
    ),
    "physical": re.compile(r"physical", re.IGNORECASE),
    "locked": re.compile(r"locked", re.IGNORECASE),
    "wishlist": re.compile(r"wishlist|heart", re.IGNORECASE),
    "serial": re.compile(r"serial|numbered", re.IGNORECASE),
}

SERIAL_RE = re.compile(r"#\s*(\d+)\s*/\s*(\d+)")
_FIRST_INT_RE = re.compile(r"\d+")
_HAS_LETTER_RE = re.compile(r"[A-Za-z]")

CHECKMARK_GLYPHS = frozenset({"✓", "✔", "✔️", "☑", "☑️", "✅"})
_LOCK_GLYPHS = frozenset({"🔒", "🔐"})
_HEART_GLYPHS = frozenset({"♥", "❤", "❤️", "💙", "💜"})
_ACTIVE_CLASSES = frozenset({"active", "on", "checked", "selected", "filled", "is-active"})


def get_attr(element: Tag, names: Sequence[str]) -> str:
    """First non-empty attribute value among `names`, or ""."""
    for name in names:
        value = element.get(name)
        if isinstance(value, list):
            value = " ".join(value)
        if value:
            return str(value)
    return ""


def tooltip_text(element: Tag) -> str:
    return get_attr(element, TOOLTIP_ATTRS)


def has_letters(text: str | None) -> bool:
    return bool(_HAS_LETTER_RE.search(text or ""))


def to_int(value: object) -> int:
    """
    Reduce a value to its first embedded integer.

    "Qty: 12 cards" -> 12, "x3" -> 3, "" / None / "none" -> 0. Never raises.
    """
    if value is None:
        return 0
    match = _FIRST_INT_RE.search(str(value))
    return int(match.group(0)) if match else 0


def find_by_key(elements: Iterable[Tag], key: re.Pattern[str]) -> Tag | None:
    """First element whose tooltip/label/title text matches the keyword pattern."""
    for element in elements:
        label = tooltip_text(element)
        if label and key.search(label):
            return element
    return None


def value_from_element(element: Tag | None) -> str | None:
    """Element's own text, else its numeric data attribute, else None."""
    if element is None:
        return None
    text = element.get_text(" ", strip=True)
    if text:
        return text
    return get_attr(element, NUMERIC_ATTRS) or None


def find_serial(text: str | None) -> str:
    """Explicit "#12/99" serial in text, normalised without inner spaces; else ""."""
    match = SERIAL_RE.search(text or "")
    if not match:
        return ""
    return f"#{match.group(1)}/{match.group(2)}"


# ---------------------------------------------------------------------------
# Flag decision tables
# ---------------------------------------------------------------------------


def _classes(element: Tag) -> set[str]:
    classes = element.get("class") or []
    if isinstance(classes, str):
        classes = classes.split()
    return {c.lower() for c in classes}


def _flag_context(element: Tag) -> tuple[str, str]:
    """(lowercased label + data-state text, visible glyph/text) for an icon element."""
    label = " ".join(
        part for part in (tooltip_text(element), get_attr(element, ("data-state", "data-value")))
        if part
    ).lower()
    return label, element.get_text("", strip=True)


def physical_flag(element: Tag | None, checkmark_means_yes: bool = False) -> str:
    """
    Physical status: "Pending", "Yes" or "No".

    | signal                                   | result  |
    |------------------------------------------|---------|
    | label mentions "pending"                 | Pending |
    | label says "not"/"no"                    | No      |
    | label says "yes" or "green"              | Yes     |
    | bare checkmark glyph                     | Yes if checkmark_means_yes else No |
    | anything else / no element               | No      |
    """
    if element is None:
        return NO
    label, glyph = _flag_context(element)
    if "pending" in label:
        return PENDING
    if re.search(r"\bnot\b|\bno\b", label):
        return NO
    if re.search(r"\byes\b|green", label) or "green" in _classes(element):
        return YES
    if glyph in CHECKMARK_GLYPHS:
        return YES if checkmark_means_yes else NO
    return NO


def locked_flag(element: Tag | None) -> str:
    """
    Locked status: "Yes" or "No".

    "unlocked"/"not locked"/"no" -> No; "yes"/"true"/"is locked", a lock
    glyph, a checkmark or an active-state class -> Yes; otherwise No.
    """
    if element is None:
        return NO
    label, glyph = _flag_context(element)
    if re.search(r"unlock|\bnot\b|\bno\b|false", label):
        return NO
    if re.search(r"\byes\b|\btrue\b|is\s+locked", label):
        return YES
    if glyph in _LOCK_GLYPHS or glyph in CHECKMARK_GLYPHS:
        return YES
    if _classes(element) & _ACTIVE_CLASSES:
        return YES
    return NO


def wishlist_flag(element: Tag | None) -> str:
    """
    Wishlist status: "Yes" or "No".

    "add to wishlist"/"not"/"no" -> No; "on/in wishlist", "remove from
    wishlist", "yes", a filled heart glyph or an active-state class -> Yes;
    otherwise No.
    """
    if element is None:
        return NO
    label, glyph = _flag_context(element)
    if re.search(r"add\s+to|\bnot\b|\bno\b|false", label):
        return NO
    if re.search(r"\b(?:on|in)\s+(?:your\s+)?wishlist|remove\s+from|\byes\b|\btrue\b", label):
        return YES
    if glyph in _HEART_GLYPHS:
        return YES
    if _classes(element) & _ACTIVE_CLASSES:
        return YES
    return NO
