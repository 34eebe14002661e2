"""
ePack Export — Serial Rules Lookup

Resolves a (set, rarity) pair to a serial denominator using a RulesIndex
built once per export run from the loaded RulesTable. Candidate keys are
tried from most to least specific:

    (cleaned set, normalized rarity)
    (cleaned set, raw rarity)
    (raw set,     normalized rarity)
    (raw set,     raw rarity)

where "cleaned set" has the rarity phrase and the word "parallel" removed.
"""

from __future__ import annotations

import structlog

from epack_export.config import RulesDisplay
from epack_export.extract.header import normalize_rarity
from epack_export.rules import RulesTable
from epack_export.rules.canonical import canonical_key, strip_rarity_from_set

logger = structlog.get_logger(__name__)


class RulesIndex:
    """
    Canonicalized view of a RulesTable.

    Usage:
        index = RulesIndex(table)
        serial = serial_from_rules("2024-25 SP Game Used Hockey", "Gold", index)
    """

    def __init__(self, table: RulesTable) -> None:
        self.table = table
        self._denominators: dict[str, str] = {}

        for raw_key, denominator in table.rules.items():
            set_part, separator, rarity_part = raw_key.rpartition("|")
            if not separator or not denominator:
                logger.debug("rules_key_skipped", key=raw_key, source="rules_lookup")
                continue
            # First spelling of a key wins when two collapse to the same canonical form
            self._denominators.setdefault(canonical_key(set_part, rarity_part), denominator)

        logger.debug(
            "rules_index_built",
            version=table.version,
            rule_count=len(self._denominators),
            source="rules_lookup",
        )

    def __len__(self) -> int:
        return len(self._denominators)

    @property
    def display(self) -> RulesDisplay:
        return self.table.display

    def denominator(self, set_name: str, rarity: str) -> str | None:
        """Exact canonical-key lookup, no fallback chain."""
        return self._denominators.get(canonical_key(set_name, rarity))


def format_serial(denominator: str, display: RulesDisplay) -> str:
    """Render a denominator as "/149" (denomOnly) or "?/149" (unknownNumerator)."""
    if display == RulesDisplay.DENOM_ONLY:
        return f"/{denominator}"
    return f"?/{denominator}"


def serial_from_rules(set_name: str | None, rarity: str | None, index: RulesIndex) -> str:
    """
    Look up the serial denominator for a set and rarity.

    Args:
        set_name: Set text as shown in the group header.
        rarity: Rarity label (raw or normalized).
        index: RulesIndex for the current run.

    Returns:
        Formatted serial ("?/149" or "/149"), or "" when either input is
        empty or no rule matches.
    """
    raw_set = (set_name or "").strip()
    raw_rarity = (rarity or "").strip()
    if not raw_set or not raw_rarity:
        return ""

    cleaned_set = strip_rarity_from_set(raw_set, raw_rarity)
    normalized = normalize_rarity(raw_rarity)

    candidates = (
        (cleaned_set, normalized),
        (cleaned_set, raw_rarity),
        (raw_set, normalized),
        (raw_set, raw_rarity),
    )
    for candidate_set, candidate_rarity in candidates:
        if not candidate_set or not candidate_rarity:
            continue
        denominator = index.denominator(candidate_set, candidate_rarity)
        if denominator:
            return format_serial(denominator, index.display)

    logger.debug(
        "rules_no_match",
        set_name=raw_set,
        rarity=raw_rarity,
        source="rules_lookup",
    )
    return ""
