"""
ePack Export — Page Mode Detection

Decides whether the loaded page is a set checklist or the owner's collection.
"""

from __future__ import annotations

import re
from urllib.parse import urlparse

import structlog
from bs4.element import Tag

from epack_export.config import ExportMode
from epack_export.extract.tokenizer import collapse_text

logger = structlog.get_logger(__name__)

CHECKLIST_MARKERS = '[data-page="checklist"], .checklist, .check-list, [data-checklist]'
_COLLECTION_TEXT_RE = re.compile(r"my collection|qty owned", re.IGNORECASE)


def is_checklist_page(url: str, document: Tag) -> bool:
    """URL path, explicit checklist markup, or checklist wording without collection wording."""
    if "/checklist" in urlparse(url or "").path.lower():
        return True
    if document.select_one(CHECKLIST_MARKERS) is not None:
        return True
    body = document.find("body") or document
    text = collapse_text(body).lower()
    return "checklist" in text and not _COLLECTION_TEXT_RE.search(text)


def detect_mode(url: str, document: Tag) -> ExportMode:
    mode = ExportMode.CHECKLIST if is_checklist_page(url, document) else ExportMode.COLLECTION
    logger.info("page_mode_detected", url=url, mode=mode.value)
    return mode
