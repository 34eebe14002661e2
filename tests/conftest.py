"""
ePack Export — Shared pytest Fixtures & Configuration

Provides common fixtures for all test modules:
- HTML fixtures parsed with BeautifulSoup (no live browser)
- A file-backed SQLite rules cache per test
- Rules indexes over the built-in table
- Async test support via pytest-asyncio
"""

from __future__ import annotations

from pathlib import Path
from typing import AsyncGenerator

import pytest
from bs4 import BeautifulSoup
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from epack_export.db import create_db_engine
from epack_export.rules import DEFAULT_RULES
from epack_export.rules.lookup import RulesIndex


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

pytest_plugins = ("pytest_asyncio",)


# ---------------------------------------------------------------------------
# HTML fixtures
# ---------------------------------------------------------------------------

COLLECTION_HTML = """
<html><body>
<div id="root">
  <div class="group">
    <div class="group-header">2024-25 SP Game Used Hockey Gold Parallel - Legends</div>
    <div class="row">
      <span class="num">12</span>
      <span class="name">Connor Bedard</span>
      <span data-tooltip="Qty Owned: 3">3</span>
      <span data-tooltip="Subject Points">5</span>
      <span data-tooltip="Qty needed to combine">2</span>
    </div>
    <div class="row">
      <span class="num">13</span>
      <span class="name">Macklin Celebrini</span>
      <span data-tooltip="Qty Owned">1</span>
      <span aria-label="Physical: Pending"></span>
      <span title="Locked">🔒</span>
      <span data-tooltip="Wishlist" class="active">♥</span>
      <span data-tooltip="Serial Number">#7 / 149</span>
    </div>
    <div class="row">
      <span>Promo</span>
      <span data-tooltip="Qty Owned">1</span>
    </div>
  </div>
  <div class="group">
    <div class="group-header">2024-25 SP Game Used Hockey - Base Set</div>
    <div class="row">
      <span>1</span>
      <span>Auston Matthews</span>
      <span data-tooltip="Qty Owned">4</span>
    </div>
  </div>
</div>
</body></html>
"""

CHECKLIST_HTML = """
<html><body>
<section class="checklist">
  <h2>2023-24 Upper Deck Series 1 - Young Guns</h2>
  <ul>
    <li><span>201</span> <span>Connor Bedard</span></li>
    <li><span>202</span> <span>Adam Fantilli</span></li>
    <li><span>203</span> <span>Leo Carlsson</span></li>
    <li><span>204</span> <span>Logan Cooley</span></li>
    <li><span>205</span> <span>Luke Hughes</span></li>
  </ul>
</section>
</body></html>
"""


def parse_html(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


@pytest.fixture
def collection_html() -> str:
    return COLLECTION_HTML


@pytest.fixture
def checklist_html() -> str:
    return CHECKLIST_HTML


@pytest.fixture
def collection_document() -> BeautifulSoup:
    return parse_html(COLLECTION_HTML)


@pytest.fixture
def checklist_document() -> BeautifulSoup:
    return parse_html(CHECKLIST_HTML)


# ---------------------------------------------------------------------------
# Rules fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def default_index() -> RulesIndex:
    """Rules index over the built-in seed table."""
    return RulesIndex(DEFAULT_RULES)


@pytest.fixture
async def session_factory(tmp_path: Path) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """
    Rules cache backed by a SQLite file in the test's tmp_path.

    Creates a fresh database for each test, ensuring isolation.
    """
    engine, factory = await create_db_engine(f"sqlite+aiosqlite:///{tmp_path / 'cache.db'}")
    yield factory
    await engine.dispose()
