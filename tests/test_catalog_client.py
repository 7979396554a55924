"""
Tests for the achievement catalog client and its cache fallback
"""
import json

import httpx
import pytest

from progress_service.catalog_client import AchievementCatalogClient
from progress_service.config import Settings
from progress_service.exceptions import CatalogError
from progress_service.schemas_events import COUNTING_GAME, LUGANDA_LEARNING_GAME
from progress_service.services.catalog_repository import AchievementCatalogRepository, catalog_cache_key

CATALOG_ROWS = [
    {
        'id': 'counting-star',
        'name': 'Counting Star',
        'description': 'Finish the first counting stage',
        'icon_name': 'star',
        'activity_type': 'counting_game_stage_complete',
        'points': 50,
        'trigger_value': 1,
        'game_key': COUNTING_GAME,
    },
    {
        'id': 'first-steps',
        'name': 'First Steps',
        'description': 'Complete your first level',
        'icon_name': 'footprints',
        'activity_type': 'level_complete',
        'points': 10,
        'trigger_value': 1,
        'game_key': None,
    },
    {
        'id': 'word-master',
        'name': 'Word Master',
        'description': 'Learn 40 words',
        'icon_name': 'book',
        'activity_type': 'language_total_words_learned',
        'points': 100,
        'trigger_value': 40,
        'game_key': LUGANDA_LEARNING_GAME,
    },
]


def _client(handler) -> AchievementCatalogClient:
    return AchievementCatalogClient("http://catalog.test/", transport=httpx.MockTransport(handler))


class TestFetchAchievementDefinitions:
    """HTTP access to the catalog service"""

    @pytest.mark.asyncio
    async def test_filters_by_game_and_sorts_by_points(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen['url'] = str(request.url)
            return httpx.Response(200, json=CATALOG_ROWS)

        definitions = await _client(handler).fetch_achievement_definitions(LUGANDA_LEARNING_GAME)

        assert [d.id for d in definitions] == ['first-steps', 'word-master']
        assert seen['url'] == f"http://catalog.test/api/v1/achievements?game_key={LUGANDA_LEARNING_GAME}"

    @pytest.mark.asyncio
    async def test_all_games(self):
        definitions = await _client(lambda request: httpx.Response(200, json=CATALOG_ROWS)).fetch_achievement_definitions()
        assert [d.id for d in definitions] == ['first-steps', 'counting-star', 'word-master']

    @pytest.mark.asyncio
    async def test_server_error(self):
        with pytest.raises(CatalogError):
            await _client(lambda request: httpx.Response(503)).fetch_achievement_definitions()

    @pytest.mark.asyncio
    async def test_network_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(CatalogError):
            await _client(handler).fetch_achievement_definitions()

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        with pytest.raises(CatalogError):
            await _client(lambda request: httpx.Response(200, text="<html>")).fetch_achievement_definitions()

    @pytest.mark.asyncio
    async def test_not_a_list(self):
        with pytest.raises(CatalogError):
            await _client(lambda request: httpx.Response(200, json={'items': []})).fetch_achievement_definitions()

    @pytest.mark.asyncio
    async def test_malformed_row(self):
        rows = [{'id': 'broken', 'points': 5}]
        with pytest.raises(CatalogError):
            await _client(lambda request: httpx.Response(200, json=rows)).fetch_achievement_definitions()

    def test_from_settings(self):
        settings = Settings(CATALOG_SERVICE_URL="http://content:8002/", CATALOG_TIMEOUT_SECONDS=2.5)
        client = AchievementCatalogClient.from_settings(settings)
        assert client.base_url == "http://content:8002"
        assert client.timeout == 2.5


class TestCatalogRepository:
    """Last good catalog is cached in the key-value store"""

    @pytest.mark.asyncio
    async def test_fetch_populates_cache(self, kv_store):
        client = _client(lambda request: httpx.Response(200, json=CATALOG_ROWS))
        repository = AchievementCatalogRepository(kv_store, client)

        definitions = await repository.get_definitions(COUNTING_GAME)

        cached = json.loads(kv_store.data[catalog_cache_key(COUNTING_GAME)])
        assert [row['id'] for row in cached] == [d.id for d in definitions]
        assert cached[0]['icon_name'] == 'footprints'

    @pytest.mark.asyncio
    async def test_falls_back_to_cache(self, kv_store):
        online = AchievementCatalogRepository(kv_store, _client(lambda request: httpx.Response(200, json=CATALOG_ROWS)))
        expected = await online.get_definitions(LUGANDA_LEARNING_GAME)

        offline = AchievementCatalogRepository(kv_store, _client(lambda request: httpx.Response(500)))
        assert await offline.get_definitions(LUGANDA_LEARNING_GAME) == expected

    @pytest.mark.asyncio
    async def test_no_cache_is_empty(self, kv_store):
        offline = AchievementCatalogRepository(kv_store, _client(lambda request: httpx.Response(500)))
        assert await offline.get_definitions() == []

    @pytest.mark.asyncio
    async def test_corrupt_cache_is_empty(self, kv_store):
        kv_store.data[catalog_cache_key(None)] = "not json"
        offline = AchievementCatalogRepository(kv_store, _client(lambda request: httpx.Response(500)))
        assert await offline.get_definitions() == []

    @pytest.mark.asyncio
    async def test_cache_write_failure_still_returns_definitions(self, kv_store):
        kv_store.failing = True
        repository = AchievementCatalogRepository(kv_store, _client(lambda request: httpx.Response(200, json=CATALOG_ROWS)))
        assert len(await repository.get_definitions()) == 3

    def test_cache_keys(self):
        assert catalog_cache_key(None) == "achievements_catalog_all"
        assert catalog_cache_key(COUNTING_GAME) == "achievements_catalog_counting_game"
