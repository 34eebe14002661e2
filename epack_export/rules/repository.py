"""
ePack Export — Serial Rules Repository

Resolves the rules table for one export run through an ordered chain:

1. Local cache (last successful fetch, persisted via SQLAlchemy)
2. Remote rules.json (authoritative; replaces and re-persists the cache)
3. Built-in DEFAULT_RULES

Each tier reports a TierResult instead of raising. ensure_rules_loaded()
never raises: a missing or broken rules source must not abort an export.
"""

from __future__ import annotations

import json
import time
from datetime import datetime, timezone
from typing import Any, NamedTuple

import httpx
import structlog
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from epack_export.config import settings
from epack_export.models.rules_cache import RulesCacheEntry
from epack_export.rules import DEFAULT_RULES, RulesTable

logger = structlog.get_logger(__name__)


class RulesFetchError(Exception):
    """The remote rules source was unreachable or returned an unusable document."""


class TierResult(NamedTuple):
    """Outcome of one tier of the rules fallback chain."""
    source: str                  # "cache" | "remote" | "builtin"
    table: RulesTable | None
    error: str | None = None


def parse_rules_document(data: Any) -> RulesTable:
    """
    Validate a decoded rules.json document.

    Raises:
        RulesFetchError: If the document is not an object with a `rules` mapping.
    """
    if not isinstance(data, dict) or not isinstance(data.get("rules"), dict):
        raise RulesFetchError("Bad rules format: expected an object with a 'rules' mapping")
    try:
        return RulesTable.model_validate(data)
    except ValidationError as e:
        raise RulesFetchError(f"Bad rules format: {e}") from e


class RulesRepository:
    """
    Layered loader for the serial rules table.

    Usage:
        repo = RulesRepository(session_factory=session_factory)
        table = await repo.ensure_rules_loaded()
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        rules_url: str | None = None,
        cache_key: str | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._rules_url = rules_url or settings.RULES_URL
        self._cache_key = cache_key or settings.RULES_CACHE_KEY
        self._client = client
        self._timeout = timeout if timeout is not None else settings.RULES_FETCH_TIMEOUT_SECONDS

    # -----------------------------------------------------------------------
    # Cache tier
    # -----------------------------------------------------------------------

    async def load_cached(self) -> TierResult:
        """Read the persisted table; a missing row or corrupt payload yields no table."""
        if self._session_factory is None:
            return TierResult("cache", None, "no cache configured")

        try:
            async with self._session_factory() as session:
                entry = await session.get(RulesCacheEntry, self._cache_key)
        except SQLAlchemyError as e:
            logger.warning("rules_cache_read_failed", error=str(e), source="rules_repository")
            return TierResult("cache", None, str(e))

        if entry is None:
            return TierResult("cache", None, "cache empty")

        try:
            table = parse_rules_document(json.loads(entry.payload))
        except (ValueError, RulesFetchError) as e:
            logger.warning(
                "rules_cache_corrupt",
                cache_key=self._cache_key,
                error=str(e),
                source="rules_repository",
            )
            return TierResult("cache", None, str(e))

        logger.debug(
            "rules_cache_hit",
            cache_key=self._cache_key,
            version=table.version,
            source="rules_repository",
        )
        return TierResult("cache", table)

    async def save_cached(self, table: RulesTable) -> bool:
        """Upsert the table under the fixed cache key. Returns False if persisting failed."""
        if self._session_factory is None:
            return False

        payload = json.dumps(table.model_dump(mode="json"))
        try:
            async with self._session_factory() as session:
                entry = await session.get(RulesCacheEntry, self._cache_key)
                if entry is None:
                    entry = RulesCacheEntry(cache_key=self._cache_key)
                    session.add(entry)
                entry.version = table.version
                entry.payload = payload
                entry.fetched_at = datetime.now(timezone.utc)
                await session.commit()
        except SQLAlchemyError as e:
            logger.warning("rules_cache_write_failed", error=str(e), source="rules_repository")
            return False

        logger.info(
            "rules_cache_stored",
            cache_key=self._cache_key,
            version=table.version,
            source="rules_repository",
        )
        return True

    # -----------------------------------------------------------------------
    # Remote tier
    # -----------------------------------------------------------------------

    async def fetch_remote(self) -> RulesTable:
        """
        Fetch rules.json bypassing every cache layer.

        Raises:
            RulesFetchError: On transport errors, non-2xx status or a malformed body.
        """
        params = {"_ts": str(int(time.time() * 1000))}
        headers = {"Cache-Control": "no-store", "Pragma": "no-cache", "Accept": "application/json"}

        try:
            if self._client is not None:
                response = await self._client.get(self._rules_url, params=params, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=self._timeout, follow_redirects=True) as client:
                    response = await client.get(self._rules_url, params=params, headers=headers)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise RulesFetchError(f"Rules fetch failed: {e}") from e

        if not response.is_success:
            raise RulesFetchError(f"Rules fetch failed: {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise RulesFetchError(f"Rules response is not JSON: {e}") from e

        return parse_rules_document(data)

    async def _try_remote(self) -> TierResult:
        try:
            table = await self.fetch_remote()
        except RulesFetchError as e:
            return TierResult("remote", None, str(e))
        return TierResult("remote", table)

    # -----------------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------------

    async def ensure_rules_loaded(self) -> RulesTable:
        """
        Resolve the rules table for this run: remote, else cache, else built-in.

        A successful remote fetch is persisted. Failures are logged, never raised.
        """
        cached = await self.load_cached()
        remote = await self._try_remote()

        if remote.table is not None:
            await self.save_cached(remote.table)
            logger.info(
                "rules_loaded",
                tier=remote.source,
                version=remote.table.version,
                rule_count=len(remote.table.rules),
                source="rules_repository",
            )
            return remote.table

        fallback = cached if cached.table is not None else TierResult("builtin", DEFAULT_RULES)
        logger.warning(
            "rules_fetch_failed_using_fallback",
            error=remote.error,
            tier=fallback.source,
            version=fallback.table.version if fallback.table else None,
            source="rules_repository",
        )
        return fallback.table or DEFAULT_RULES
