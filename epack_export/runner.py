"""
ePack Export — Export Runner

One export run, start to finish:

1. Resolve the rules table (remote -> cache -> built-in; never fails)
2. Detect checklist vs collection view
3. Collection view: scroll until every group has loaded
4. Snapshot the DOM and build records
5. Write the CSV (all-or-nothing)

Only one run may be in flight per runner; a second request while one is
running is refused. Any failure is caught here, logged and reported as a
FAILED outcome, and no file is written.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Awaitable, Callable

import structlog
from bs4 import BeautifulSoup
from pydantic import BaseModel

from epack_export.browser.loader import load_all_by_infinite_scroll
from epack_export.browser.page_mode import detect_mode
from epack_export.config import ExportMode, ExportStatus, settings
from epack_export.export.csv_writer import export_filename, write_csv
from epack_export.extract import CardRecord
from epack_export.extract.assembler import build_checklist_records, build_records
from epack_export.rules.lookup import RulesIndex
from epack_export.rules.repository import RulesRepository

logger = structlog.get_logger(__name__)

FAILURE_NOTICE = "Export failed, see the log for details."
BUSY_NOTICE = "An export is already running."


class ExportOutcome(BaseModel):
    """What the user is told at the end of a run."""
    status: ExportStatus
    mode: ExportMode | None = None
    row_count: int = 0
    path: str | None = None
    message: str = ""


def parse_document(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


class ExportRunner:
    """
    Orchestrates a single export run.

    Usage:
        runner = ExportRunner(RulesRepository(session_factory=factory))
        outcome = await runner.export_page(page)
    """

    def __init__(
        self,
        repository: RulesRepository,
        output_dir: str | Path | None = None,
        group_selector: str | None = None,
        checkmark_means_yes: bool | None = None,
    ) -> None:
        self.repository = repository
        self.output_dir = Path(output_dir or settings.EXPORT_OUTPUT_DIR)
        self.group_selector = group_selector or settings.GROUP_SELECTOR
        self.checkmark_means_yes = (
            settings.PHYSICAL_CHECKMARK_MEANS_YES
            if checkmark_means_yes is None
            else checkmark_means_yes
        )
        self._lock = asyncio.Lock()

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    # -----------------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------------

    async def export_page(self, page: Any, mode: ExportMode | None = None) -> ExportOutcome:
        """Export from a live Playwright page."""
        return await self._guarded(lambda: self._export_page(page, mode))

    async def export_html(
        self,
        html: str,
        url: str = "",
        mode: ExportMode | None = None,
    ) -> ExportOutcome:
        """Export from an already fully loaded HTML snapshot."""
        return await self._guarded(lambda: self._export_html(html, url, mode))

    def extract(self, document: BeautifulSoup, mode: ExportMode, rules: RulesIndex) -> list[CardRecord]:
        if mode == ExportMode.CHECKLIST:
            return build_checklist_records(document, rules)
        return build_records(
            document,
            rules,
            group_selector=self.group_selector,
            checkmark_means_yes=self.checkmark_means_yes,
        )

    # -----------------------------------------------------------------------
    # Internals
    # -----------------------------------------------------------------------

    async def _guarded(self, run: Callable[[], Awaitable[ExportOutcome]]) -> ExportOutcome:
        if self._lock.locked():
            logger.warning("export_already_running", source="export_runner")
            return ExportOutcome(status=ExportStatus.BUSY, message=BUSY_NOTICE)

        async with self._lock:
            try:
                return await run()
            except Exception as e:
                logger.error(
                    "export_failed",
                    error=str(e),
                    error_type=type(e).__name__,
                    source="export_runner",
                )
                return ExportOutcome(status=ExportStatus.FAILED, message=FAILURE_NOTICE)

    async def _load_rules(self) -> RulesIndex:
        table = await self.repository.ensure_rules_loaded()
        return RulesIndex(table)

    async def _export_page(self, page: Any, mode: ExportMode | None) -> ExportOutcome:
        rules = await self._load_rules()
        url = page.url or ""
        if mode is None:
            mode = detect_mode(url, parse_document(await page.content()))
        if mode == ExportMode.COLLECTION:
            await load_all_by_infinite_scroll(page, group_selector=self.group_selector)

        document = parse_document(await page.content())
        return self._finish(self.extract(document, mode, rules), mode)

    async def _export_html(self, html: str, url: str, mode: ExportMode | None) -> ExportOutcome:
        rules = await self._load_rules()
        document = parse_document(html)
        if mode is None:
            mode = detect_mode(url, document)
        return self._finish(self.extract(document, mode, rules), mode)

    def _finish(self, records: list[CardRecord], mode: ExportMode) -> ExportOutcome:
        if not records:
            message = (
                f"No cards parsed in {mode.value} view. "
                "Try switching views and re-run."
            )
            logger.warning("export_empty", mode=mode.value, source="export_runner")
            return ExportOutcome(status=ExportStatus.EMPTY, mode=mode, message=message)

        path = write_csv(records, self.output_dir / export_filename(mode))
        logger.info(
            "export_complete",
            mode=mode.value,
            rows=len(records),
            path=str(path),
            source="export_runner",
        )
        return ExportOutcome(
            status=ExportStatus.EXPORTED,
            mode=mode,
            row_count=len(records),
            path=str(path),
            message=f"Exported {len(records)} rows",
        )
