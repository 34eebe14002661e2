"""
Tests for the serial rules repository (epack_export/rules/repository.py).

Covers:
- fetch_remote: success, cache-busting query + no-store header, non-2xx,
  non-JSON body, missing `rules`, transport errors
- load_cached / save_cached: round trip, corrupt payload
- ensure_rules_loaded: remote wins and is persisted, cache fallback,
  built-in fallback, never raises
"""

from __future__ import annotations

import httpx
import pytest
import respx
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from epack_export.config import RulesDisplay, settings
from epack_export.models.rules_cache import RulesCacheEntry
from epack_export.rules import DEFAULT_RULES, RulesTable
from epack_export.rules.lookup import RulesIndex, serial_from_rules
from epack_export.rules.repository import (
    RulesFetchError,
    RulesRepository,
    parse_rules_document,
)

RULES_URL = "https://rules.example.test/epack/rules.json"

REMOTE_DOCUMENT = {
    "version": "2026.10.1",
    "display": "denomOnly",
    "rules": {
        "2024-25 SP Game Used Hockey|Gold": "149",
        "2024-25 SP Game Used Hockey|Canvas": "65",
    },
}


# ---------------------------------------------------------------------------
# parse_rules_document
# ---------------------------------------------------------------------------


class TestParseRulesDocument:
    def test_valid_document(self) -> None:
        table = parse_rules_document(REMOTE_DOCUMENT)
        assert table.version == "2026.10.1"
        assert table.display == RulesDisplay.DENOM_ONLY
        assert table.rules["2024-25 SP Game Used Hockey|Canvas"] == "65"

    @pytest.mark.parametrize("data", [None, [], "rules", {"version": "1"}, {"rules": "x"}])
    def test_invalid_documents(self, data: object) -> None:
        with pytest.raises(RulesFetchError):
            parse_rules_document(data)


# ---------------------------------------------------------------------------
# fetch_remote
# ---------------------------------------------------------------------------


class TestFetchRemote:
    def test_defaults_from_settings(self) -> None:
        repo = RulesRepository()
        assert repo._rules_url == settings.RULES_URL
        assert repo._cache_key == settings.RULES_CACHE_KEY
        assert repo._session_factory is None

    async def test_success_with_cache_busting(self) -> None:
        with respx.mock:
            route = respx.get(url__startswith=RULES_URL).mock(
                return_value=httpx.Response(200, json=REMOTE_DOCUMENT)
            )
            table = await RulesRepository(rules_url=RULES_URL).fetch_remote()

        assert table.version == "2026.10.1"
        request = route.calls.last.request
        assert "_ts" in request.url.params
        assert request.headers["cache-control"] == "no-store"

    async def test_non_2xx_raises(self) -> None:
        with respx.mock:
            respx.get(url__startswith=RULES_URL).mock(return_value=httpx.Response(404))
            with pytest.raises(RulesFetchError, match="404"):
                await RulesRepository(rules_url=RULES_URL).fetch_remote()

    async def test_non_json_body_raises(self) -> None:
        with respx.mock:
            respx.get(url__startswith=RULES_URL).mock(
                return_value=httpx.Response(200, text="<html>rate limited</html>")
            )
            with pytest.raises(RulesFetchError):
                await RulesRepository(rules_url=RULES_URL).fetch_remote()

    async def test_missing_rules_field_raises(self) -> None:
        with respx.mock:
            respx.get(url__startswith=RULES_URL).mock(
                return_value=httpx.Response(200, json={"version": "1"})
            )
            with pytest.raises(RulesFetchError, match="Bad rules format"):
                await RulesRepository(rules_url=RULES_URL).fetch_remote()

    async def test_transport_error_raises(self) -> None:
        with respx.mock:
            respx.get(url__startswith=RULES_URL).mock(side_effect=httpx.ConnectError)
            with pytest.raises(RulesFetchError):
                await RulesRepository(rules_url=RULES_URL).fetch_remote()

    async def test_malformed_url_raises_fetch_error(self) -> None:
        with pytest.raises(RulesFetchError):
            await RulesRepository(rules_url="http://[::1/rules.json").fetch_remote()

    async def test_injected_client_is_used(self) -> None:
        with respx.mock:
            route = respx.get(url__startswith=RULES_URL).mock(
                return_value=httpx.Response(200, json=REMOTE_DOCUMENT)
            )
            async with httpx.AsyncClient() as client:
                table = await RulesRepository(rules_url=RULES_URL, client=client).fetch_remote()

        assert route.called
        assert len(table.rules) == 2


# ---------------------------------------------------------------------------
# Cache tier
# ---------------------------------------------------------------------------


class TestRulesCache:
    async def test_round_trip(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        repo = RulesRepository(session_factory=session_factory, rules_url=RULES_URL)
        table = RulesTable.model_validate(REMOTE_DOCUMENT)

        assert await repo.save_cached(table) is True
        result = await repo.load_cached()

        assert result.source == "cache"
        assert result.table == table

    async def test_overwrites_existing_entry(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        repo = RulesRepository(session_factory=session_factory, rules_url=RULES_URL)
        await repo.save_cached(DEFAULT_RULES)
        await repo.save_cached(RulesTable.model_validate(REMOTE_DOCUMENT))

        result = await repo.load_cached()
        assert result.table is not None
        assert result.table.version == "2026.10.1"

    async def test_empty_cache(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        result = await RulesRepository(session_factory=session_factory).load_cached()
        assert result.table is None

    async def test_corrupt_payload_is_ignored(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        async with session_factory() as session:
            session.add(RulesCacheEntry(cache_key=settings.RULES_CACHE_KEY, version="x", payload="{not json"))
            await session.commit()

        result = await RulesRepository(session_factory=session_factory).load_cached()
        assert result.table is None
        assert result.error

    async def test_no_session_factory(self) -> None:
        repo = RulesRepository()
        assert (await repo.load_cached()).table is None
        assert await repo.save_cached(DEFAULT_RULES) is False


# ---------------------------------------------------------------------------
# ensure_rules_loaded
# ---------------------------------------------------------------------------


class TestEnsureRulesLoaded:
    async def test_remote_success_is_persisted(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        repo = RulesRepository(session_factory=session_factory, rules_url=RULES_URL)
        with respx.mock:
            respx.get(url__startswith=RULES_URL).mock(
                return_value=httpx.Response(200, json=REMOTE_DOCUMENT)
            )
            table = await repo.ensure_rules_loaded()

        assert table.version == "2026.10.1"
        cached = await repo.load_cached()
        assert cached.table is not None
        assert cached.table.version == "2026.10.1"

    async def test_remote_failure_uses_cache(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        repo = RulesRepository(session_factory=session_factory, rules_url=RULES_URL)
        await repo.save_cached(RulesTable.model_validate(REMOTE_DOCUMENT))

        with respx.mock:
            respx.get(url__startswith=RULES_URL).mock(return_value=httpx.Response(503))
            table = await repo.ensure_rules_loaded()

        assert table.version == "2026.10.1"

    async def test_remote_failure_without_cache_uses_builtin(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        repo = RulesRepository(session_factory=session_factory, rules_url=RULES_URL)
        with respx.mock:
            respx.get(url__startswith=RULES_URL).mock(side_effect=httpx.ConnectError)
            table = await repo.ensure_rules_loaded()

        assert table == DEFAULT_RULES
        # Seeded keys still resolve
        index = RulesIndex(table)
        assert serial_from_rules("2024-25 SP Game Used Hockey", "Gold", index) == "?/149"

    async def test_failed_fetch_does_not_overwrite_cache(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        repo = RulesRepository(session_factory=session_factory, rules_url=RULES_URL)
        await repo.save_cached(RulesTable.model_validate(REMOTE_DOCUMENT))

        with respx.mock:
            respx.get(url__startswith=RULES_URL).mock(
                return_value=httpx.Response(200, json={"no": "rules"})
            )
            await repo.ensure_rules_loaded()

        cached = await repo.load_cached()
        assert cached.table is not None
        assert cached.table.version == "2026.10.1"

    async def test_without_persistence_falls_back_to_builtin(self) -> None:
        with respx.mock:
            respx.get(url__startswith=RULES_URL).mock(return_value=httpx.Response(500))
            table = await RulesRepository(rules_url=RULES_URL).ensure_rules_loaded()

        assert table.version == "fallback"

    async def test_malformed_url_falls_back_to_builtin(self) -> None:
        """A broken RULES_URL (e.g. a typo in .env) must not abort the run."""
        table = await RulesRepository(rules_url="http://[::1/rules.json").ensure_rules_loaded()
        assert table == DEFAULT_RULES
