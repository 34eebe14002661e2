"""
ePack Export — Record Assembler

Composes tokenizer, header extractor, row extractor and rules lookup into
flat CardRecords. Output order is document order of groups, then of rows
within each group; nothing is re-sorted.
"""

from __future__ import annotations

from typing import Iterable

import structlog
from bs4.element import Tag

from epack_export.config import settings
from epack_export.extract import CardRecord, GroupHeader, RowFields
from epack_export.extract.fields import FIELD_KEYS, tooltip_text
from epack_export.extract.header import extract_header, infer_rarity
from epack_export.extract.row import extract_row, parse_checklist_row
from epack_export.extract.tokenizer import collapse_text, tokenize
from epack_export.rules.lookup import RulesIndex, serial_from_rules

logger = structlog.get_logger(__name__)

CHECKLIST_GROUP_SELECTOR = ".group, .checklist-group, section, .accordion, .list, .cards, .content"
CHECKLIST_ROW_SELECTOR = '[role="row"], li, tr, .row, .checklist-item, .item'
MIN_CHECKLIST_GROUP_TOKENS = 10
MIN_CHECKLIST_ROW_CHARS = 10


def find_quantity_anchors(group: Tag) -> list[Tag]:
    """Elements in the group whose tooltip/label/title reads "Qty Owned"."""
    return [
        element for element in group.find_all(True)
        if FIELD_KEYS["qty"].search(tooltip_text(element))
    ]


def _raw_text(header: GroupHeader, row_text: str) -> str:
    prefix = header.set_name + (f" - {header.subset}" if header.subset else "")
    return f"{prefix} | {row_text}"


def assemble_record(header: GroupHeader, fields: RowFields, rules: RulesIndex) -> CardRecord:
    """
    Merge one group header and one row into a CardRecord.

    The header's rarity applies to every row; a row's title is consulted
    only when the header names none. An explicit serial found on the row
    wins; otherwise the rules table is consulted with the set name and rarity.
    """
    rarity = header.rarity or infer_rarity(header.set_name, header.subset, fields.title)
    serial = fields.serial or serial_from_rules(header.set_name, rarity, rules)

    return CardRecord(
        title=fields.title,
        set_name=header.set_name,
        subset=header.subset,
        card_number=fields.card_number,
        year=header.year,
        rarity=rarity,
        quantity_owned=fields.quantity_owned,
        subject_points=fields.subject_points,
        combine_needed=fields.combine_needed,
        physical=fields.physical,
        locked=fields.locked,
        wishlist=fields.wishlist,
        serial=serial,
        raw_text=_raw_text(header, fields.raw_text),
    )


def build_group_records(
    group: Tag,
    rules: RulesIndex,
    checkmark_means_yes: bool = False,
) -> list[CardRecord]:
    """Records for one collection group, one per distinct row."""
    header = extract_header(tokenize(group))
    records: list[CardRecord] = []
    seen_rows: set[int] = set()
    skipped = 0

    for anchor in find_quantity_anchors(group):
        fields = extract_row(anchor, group, checkmark_means_yes=checkmark_means_yes)
        if fields is None or not fields.is_complete:
            skipped += 1
            continue
        if id(fields.row) in seen_rows:
            continue
        seen_rows.add(id(fields.row))
        records.append(assemble_record(header, fields, rules))

    logger.debug(
        "group_extracted",
        set_name=header.set_name,
        subset=header.subset,
        records=len(records),
        skipped=skipped,
    )
    return records


def build_records(
    document: Tag,
    rules: RulesIndex,
    group_selector: str | None = None,
    checkmark_means_yes: bool = False,
) -> list[CardRecord]:
    """
    Build collection-view records from a fully loaded document.

    Args:
        document: Parsed page (BeautifulSoup or any Tag).
        rules: Rules index resolved for this run.
        group_selector: CSS selector for group containers (default settings.GROUP_SELECTOR).
        checkmark_means_yes: Reading of a bare checkmark on the physical icon.

    Returns:
        CardRecords in document order. Empty if no groups or rows were found.
    """
    groups = document.select(group_selector or settings.GROUP_SELECTOR)
    records: list[CardRecord] = []
    for group in groups:
        records.extend(build_group_records(group, rules, checkmark_means_yes=checkmark_means_yes))

    logger.info("collection_records_built", groups=len(groups), records=len(records))
    return records


# ---------------------------------------------------------------------------
# Checklist view
# ---------------------------------------------------------------------------


def find_checklist_groups(document: Tag) -> list[Tag]:
    """
    Candidate checklist groups with enough text to hold card rows.

    A candidate that contains another candidate is dropped so every row is
    read once, from its innermost group (see checklist_header for headers
    that sit outside it).
    """
    candidates = [
        el for el in document.select(CHECKLIST_GROUP_SELECTOR)
        if len(tokenize(el)) > MIN_CHECKLIST_GROUP_TOKENS
    ]
    candidate_ids = {id(el) for el in candidates}
    return [
        el for el in candidates
        if not any(id(inner) in candidate_ids for inner in el.select(CHECKLIST_GROUP_SELECTOR))
    ]


def checklist_header(group: Tag, candidate_ids: set[int]) -> GroupHeader:
    """
    Header for a checklist group.

    A group whose own text starts straight with card rows takes the header
    of its nearest enclosing candidate, e.g. the <section> around a bare
    `.list` of rows.
    """
    header = extract_header(tokenize(group))
    if header.header:
        return header
    for ancestor in group.parents:
        if id(ancestor) not in candidate_ids:
            continue
        enclosing = extract_header(tokenize(ancestor))
        if enclosing.header:
            return enclosing
    return header


def find_checklist_rows(group: Tag) -> Iterable[Tag]:
    rows = group.select(CHECKLIST_ROW_SELECTOR)
    if not rows:
        rows = [child for child in group.children if isinstance(child, Tag)]
    return [row for row in rows if len(collapse_text(row)) > MIN_CHECKLIST_ROW_CHARS]


def build_checklist_records(document: Tag, rules: RulesIndex) -> list[CardRecord]:
    """
    Build checklist-view records: card number, title, set data and
    rules-based serial only. Quantities are 0 and flags "No".
    """
    records: list[CardRecord] = []
    groups = find_checklist_groups(document)
    candidate_ids = {id(el) for el in document.select(CHECKLIST_GROUP_SELECTOR)}

    for group in groups:
        header = checklist_header(group, candidate_ids)
        seen_rows: set[int] = set()
        for row in find_checklist_rows(group):
            fields = parse_checklist_row(row)
            if not fields.is_complete or id(row) in seen_rows:
                continue
            seen_rows.add(id(row))
            records.append(assemble_record(header, fields, rules))

    logger.info("checklist_records_built", groups=len(groups), records=len(records))
    return records
