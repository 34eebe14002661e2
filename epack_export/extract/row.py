"""
ePack Export — Row Extractor

Recovers one card row from an anchor element (the element carrying the
"Qty Owned" tooltip). Each numeric field is resolved by an ordered list of
independent strategies, first non-empty value wins:

    tooltip/label match  ->  position after the title token

Card number and title always come from position: the first pure-integer
token is the card number, the next token containing a letter is the title.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Sequence

import structlog
from bs4.element import Tag

from epack_export.extract import RowFields
from epack_export.extract.fields import (
    FIELD_KEYS,
    SERIAL_ATTRS,
    find_by_key,
    find_serial,
    get_attr,
    has_letters,
    locked_flag,
    physical_flag,
    to_int,
    value_from_element,
    wishlist_flag,
)
from epack_export.extract.header import is_pure_int
from epack_export.extract.tokenizer import collapse_text, tokenize

logger = structlog.get_logger(__name__)

ROW_CLASSES = frozenset({"row", "group-item", "item", "card", "list-row", "collection-row"})
ROW_TAGS = frozenset({"li", "tr"})
_DOCUMENT_TAGS = frozenset({"body", "html", "[document]"})


# ---------------------------------------------------------------------------
# Row boundary
# ---------------------------------------------------------------------------


def looks_like_row(element: Tag) -> bool:
    """ARIA row, a row-ish class token, or a list/table row tag."""
    if element.get("role") == "row":
        return True
    if element.name in ROW_TAGS:
        return True
    classes = element.get("class") or []
    if isinstance(classes, str):
        classes = classes.split()
    return any(c.lower() in ROW_CLASSES for c in classes)


def find_row_container(element: Tag | None, stop: Tag | None) -> Tag | None:
    """
    Climb from `element` (inclusive) to the first row-like ancestor.

    Stops without a result at `stop` (the group root) or the document body.
    """
    current = element
    while isinstance(current, Tag) and current is not stop and current.name not in _DOCUMENT_TAGS:
        if looks_like_row(current):
            return current
        current = current.parent
    return None


# ---------------------------------------------------------------------------
# Positional parsing
# ---------------------------------------------------------------------------


def locate_card_and_title(tokens: Sequence[str]) -> tuple[int, int]:
    """
    Indexes of the card-number token and the title token after it.

    Returns -1 for whichever could not be found.
    """
    for i, token in enumerate(tokens):
        if is_pure_int(token):
            for j in range(i + 1, len(tokens)):
                if has_letters(tokens[j]):
                    return i, j
            return i, -1
    return -1, -1


@dataclass
class RowContext:
    """Everything the field strategies may look at for one row."""
    row: Tag
    tokens: list[str]
    elements: list[Tag] = field(default_factory=list)
    card_index: int = -1
    title_index: int = -1

    @property
    def card_number(self) -> str:
        return self.tokens[self.card_index] if self.card_index >= 0 else ""

    @property
    def title(self) -> str:
        return self.tokens[self.title_index] if self.title_index >= 0 else ""

    def trailing_ints(self, limit: int = 3) -> list[str]:
        """Up to `limit` pure-integer tokens after the title, in order."""
        if self.title_index < 0:
            return []
        found = [t for t in self.tokens[self.title_index + 1:] if is_pure_int(t)]
        return found[:limit]


Strategy = Callable[[RowContext], "str | None"]


def tooltip_strategy(key: str) -> Strategy:
    pattern = FIELD_KEYS[key]

    def _strategy(ctx: RowContext) -> str | None:
        return value_from_element(find_by_key(ctx.elements, pattern))

    return _strategy


def positional_strategy(slot: int) -> Strategy:
    def _strategy(ctx: RowContext) -> str | None:
        values = ctx.trailing_ints()
        return values[slot] if slot < len(values) else None

    return _strategy


def first_value(strategies: Sequence[Strategy], ctx: RowContext) -> str | None:
    for strategy in strategies:
        value = strategy(ctx)
        if value:
            return value
    return None


QUANTITY_STRATEGIES: tuple[Strategy, ...] = (tooltip_strategy("qty"), positional_strategy(0))
POINTS_STRATEGIES: tuple[Strategy, ...] = (tooltip_strategy("subj"), positional_strategy(1))
COMBINE_STRATEGIES: tuple[Strategy, ...] = (tooltip_strategy("combine"), positional_strategy(2))


def _serial_from_tooltip(ctx: RowContext) -> str | None:
    element = find_by_key(ctx.elements, FIELD_KEYS["serial"])
    if element is None:
        return None
    for text in (element.get_text(" ", strip=True), get_attr(element, SERIAL_ATTRS)):
        serial = find_serial(text)
        if serial:
            return serial
    return None


def _serial_from_row_text(ctx: RowContext) -> str | None:
    return find_serial(" ".join(ctx.tokens)) or None


SERIAL_STRATEGIES: tuple[Strategy, ...] = (_serial_from_tooltip, _serial_from_row_text)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def build_context(row: Tag) -> RowContext:
    tokens = tokenize(row)
    card_index, title_index = locate_card_and_title(tokens)
    return RowContext(
        row=row,
        tokens=tokens,
        elements=row.find_all(True),
        card_index=card_index,
        title_index=title_index,
    )


def extract_row(
    anchor: Tag | None,
    group_root: Tag | None,
    checkmark_means_yes: bool = False,
) -> RowFields | None:
    """
    Extract one card row reached from a "Qty Owned" anchor element.

    Args:
        anchor: Element bearing the quantity-owned tooltip.
        group_root: Group container; the row search never climbs past it.
        checkmark_means_yes: How a bare checkmark on the physical icon reads.

    Returns:
        RowFields (possibly incomplete; callers skip rows without card
        number or title), or None if no row container could be established.
    """
    if anchor is None:
        return None

    row = find_row_container(anchor, group_root)
    if row is None:
        row = anchor.parent if isinstance(anchor.parent, Tag) else anchor

    ctx = build_context(row)

    return RowFields(
        row=row,
        card_number=ctx.card_number,
        title=ctx.title,
        quantity_owned=to_int(first_value(QUANTITY_STRATEGIES, ctx)),
        subject_points=to_int(first_value(POINTS_STRATEGIES, ctx)),
        combine_needed=to_int(first_value(COMBINE_STRATEGIES, ctx)),
        physical=physical_flag(
            find_by_key(ctx.elements, FIELD_KEYS["physical"]),
            checkmark_means_yes=checkmark_means_yes,
        ),
        locked=locked_flag(find_by_key(ctx.elements, FIELD_KEYS["locked"])),
        wishlist=wishlist_flag(find_by_key(ctx.elements, FIELD_KEYS["wishlist"])),
        serial=first_value(SERIAL_STRATEGIES, ctx) or "",
        raw_text=" ".join(ctx.tokens),
    )


def parse_checklist_row(row: Tag) -> RowFields:
    """Card number and title for a checklist row (no quantities or flags shown)."""
    ctx = build_context(row)
    return RowFields(
        row=row,
        card_number=ctx.card_number,
        title=ctx.title,
        raw_text=collapse_text(row),
    )
