"""
ePack Export — Application Entrypoint

Configures structlog, opens the local rules cache and runs one export,
either against a live page (Playwright, persistent browser profile so an
existing login is reused) or against a saved HTML snapshot.

Run via:
    python -m epack_export.main --url https://www.upperdeckepack.com/collection
    python -m epack_export.main --html-file snapshot.html --mode checklist
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

import structlog

from epack_export.config import ExportMode, ExportStatus, settings
from epack_export.db import create_db_engine
from epack_export.rules.repository import RulesRepository
from epack_export.runner import FAILURE_NOTICE, ExportOutcome, ExportRunner


# ---------------------------------------------------------------------------
# Structlog Configuration
# ---------------------------------------------------------------------------


def _configure_logging(log_level: str = "INFO") -> None:
    """
    Set up structured logging with JSON output.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR).
    """
    level = getattr(logging, log_level.upper())

    # Configure stdlib logging first (for third-party libraries)
    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=level)

    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Export an Upper Deck e-Pack collection or checklist to CSV.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  epack-export --url https://www.upperdeckepack.com/collection
  epack-export --html-file saved_collection.html --output-dir exports
  epack-export --html-file checklist.html --mode checklist
""",
    )
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--url", type=str, help="Live page to open in the browser.")
    source.add_argument("--html-file", type=Path, help="Saved, fully loaded page snapshot.")
    parser.add_argument(
        "--mode",
        choices=["auto", *(m.value for m in ExportMode)],
        default="auto",
        help="Page layout (default: detect from the page).",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=Path(settings.EXPORT_OUTPUT_DIR),
        help="Directory for the CSV file (default: settings.EXPORT_OUTPUT_DIR).",
    )
    parser.add_argument("--log-level", type=str, default=settings.LOG_LEVEL)
    return parser.parse_args(argv)


async def _export_live(runner: ExportRunner, url: str, mode: ExportMode | None) -> ExportOutcome:
    from playwright.async_api import async_playwright

    async with async_playwright() as playwright:
        context = await playwright.chromium.launch_persistent_context(
            settings.BROWSER_PROFILE_DIR,
            headless=settings.HEADLESS,
        )
        try:
            page = context.pages[0] if context.pages else await context.new_page()
            await page.goto(url, wait_until="domcontentloaded", timeout=settings.PAGE_LOAD_TIMEOUT_MS)
            await page.wait_for_load_state("networkidle", timeout=settings.PAGE_LOAD_TIMEOUT_MS)
            return await runner.export_page(page, mode=mode)
        finally:
            await context.close()


async def run(args: argparse.Namespace) -> ExportOutcome:
    """Open the rules cache, run one export and dispose of the engine."""
    logger = structlog.get_logger(__name__)
    mode = None if args.mode == "auto" else ExportMode(args.mode)

    engine, session_factory = await create_db_engine()
    try:
        runner = ExportRunner(
            RulesRepository(session_factory=session_factory),
            output_dir=args.output_dir,
        )
        if args.html_file is not None:
            html = args.html_file.read_text(encoding="utf-8")
            outcome = await runner.export_html(html, url=args.html_file.resolve().as_uri(), mode=mode)
        else:
            outcome = await _export_live(runner, args.url, mode)
    except Exception as e:
        # Snapshot read and page navigation happen outside the runner's guard
        logger.error(
            "export_source_failed",
            error=str(e),
            error_type=type(e).__name__,
        )
        outcome = ExportOutcome(status=ExportStatus.FAILED, message=FAILURE_NOTICE)
    finally:
        await engine.dispose()

    logger.info(
        "epack_export_finished",
        status=outcome.status.value,
        rows=outcome.row_count,
        path=outcome.path,
    )
    return outcome


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    _configure_logging(args.log_level)

    outcome = asyncio.run(run(args))
    print(outcome.message)
    return 0 if outcome.status == ExportStatus.EXPORTED else 1


# ---------------------------------------------------------------------------
# CLI Entry
# ---------------------------------------------------------------------------


if __name__ == "__main__":
    sys.exit(main())
