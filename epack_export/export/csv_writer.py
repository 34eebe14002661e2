"""
ePack Export — CSV Writer

Fixed header row, every value trimmed with embedded line breaks collapsed
to single spaces; values containing a comma or quote are quoted with inner
quotes doubled. Files are written to a temporary sibling and renamed, so a
failed write never leaves a partial CSV behind.
"""

from __future__ import annotations

import csv
import os
import re
import tempfile
from datetime import date
from io import StringIO
from pathlib import Path
from typing import Any, Iterable

import structlog

from epack_export.config import ExportMode
from epack_export.extract import CSV_HEADERS, CardRecord

logger = structlog.get_logger(__name__)

_LINE_BREAK_RE = re.compile(r"\r\n|\r|\n")


def clean_value(value: object) -> str:
    """None -> "", line breaks -> single spaces, surrounding whitespace trimmed."""
    if value is None:
        return ""
    return _LINE_BREAK_RE.sub(" ", str(value)).strip()


def _writer(buffer: StringIO) -> Any:
    return csv.writer(buffer, lineterminator="\n", quoting=csv.QUOTE_MINIMAL)


def csv_escape(value: object) -> str:
    """
    Encode a single CSV field.

        'He said "Gold", rare' -> '"He said ""Gold"", rare"'
    """
    buffer = StringIO()
    _writer(buffer).writerow([clean_value(value)])
    encoded = buffer.getvalue()[:-1]
    # csv writes a lone empty field as '""'
    return "" if encoded == '""' else encoded


def render_csv(records: Iterable[CardRecord]) -> str:
    """Full CSV document: header line plus one line per record, "\\n"-separated."""
    buffer = StringIO()
    writer = _writer(buffer)
    writer.writerow(CSV_HEADERS)
    for record in records:
        row = record.as_csv_row()
        writer.writerow([clean_value(row[h]) for h in CSV_HEADERS])
    return buffer.getvalue().rstrip("\n")


def export_filename(mode: ExportMode, on: date | None = None) -> str:
    """epack_<mode>_<YYYY-MM-DD>.csv"""
    day = on or date.today()
    return f"epack_{mode.value}_{day.isoformat()}.csv"


def write_csv(records: list[CardRecord], path: Path) -> Path:
    """
    Atomically write records to `path`.

    Returns:
        The written path.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    content = render_csv(records)

    fd, tmp_name = tempfile.mkstemp(prefix=".epack-", suffix=".csv.tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            f.write(content)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise

    logger.info("csv_written", path=str(path), rows=len(records), source="csv_writer")
    return path
