"""
ePack Export — Text Tokenizer

Turns any element subtree into the ordered list of trimmed, non-empty text
lines that header splitting and row field recovery work from. Traversal is
depth-first pre-order over text nodes; multi-line text nodes are split on
line breaks.
"""

from __future__ import annotations

from bs4.element import NavigableString, PageElement, PreformattedString, Tag

# Text under these tags is never visible inventory text
_SKIPPED_PARENTS = frozenset({"script", "style", "template", "noscript"})


def _is_visible_text(node: PageElement) -> bool:
    if not isinstance(node, NavigableString) or isinstance(node, PreformattedString):
        return False
    parent = node.parent
    return parent is None or parent.name not in _SKIPPED_PARENTS


def split_lines(text: str) -> list[str]:
    """Split on line breaks, trim each segment and drop empty ones."""
    return [line.strip() for line in text.splitlines() if line.strip()]


def tokenize(root: PageElement | None) -> list[str]:
    """
    Tokenize the text of an element subtree.

    Args:
        root: bs4 Tag (or a bare text node) to walk.

    Returns:
        Non-empty trimmed text lines in document order. A fresh list per call.
    """
    if root is None:
        return []
    if isinstance(root, NavigableString):
        return split_lines(str(root)) if _is_visible_text(root) else []

    tokens: list[str] = []
    if isinstance(root, Tag):
        for node in root.descendants:
            if _is_visible_text(node):
                tokens.extend(split_lines(str(node)))
    return tokens


def collapse_text(root: PageElement | None) -> str:
    """Single-line diagnostic text of a subtree (tokens joined by spaces)."""
    return " ".join(tokenize(root))
