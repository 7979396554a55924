"""Achievement catalog access with a key-value cache fallback"""
import json
from typing import List, Optional
import logging

from pydantic import ValidationError

from progress_service.exceptions import CatalogError, StorageError
from progress_service.schemas_achievements import AchievementDefinition

logger = logging.getLogger(__name__)


def catalog_cache_key(game_key: Optional[str]) -> str:
    return f"achievements_catalog_{game_key or 'all'}"


class AchievementCatalogRepository:
    """
    Fetches definitions from the catalog service and caches the last good
    copy in the key-value store. With no service and no cache, the catalog
    is empty and no achievement can be earned.
    """

    def __init__(self, store, client):
        """
        Args:
            store: key-value store (async get/set/remove)
            client: AchievementCatalogClient
        """
        self.store = store
        self.client = client

    async def get_definitions(self, game_key: Optional[str] = None) -> List[AchievementDefinition]:
        key = catalog_cache_key(game_key)

        try:
            definitions = await self.client.fetch_achievement_definitions(game_key)
        except CatalogError as e:
            logger.warning(f"Catalog service unavailable ({str(e)}), using cached catalog {key}")
            return await self._load_cached(key)

        await self._store_cached(key, definitions)
        return definitions

    async def _load_cached(self, key: str) -> List[AchievementDefinition]:
        try:
            raw = await self.store.get(key)
        except StorageError as e:
            logger.error(f"Error reading cached catalog {key}: {str(e)}")
            return []

        if raw is None:
            logger.warning(f"No cached catalog under {key}")
            return []

        try:
            return [AchievementDefinition.model_validate(row) for row in json.loads(raw)]
        except (ValidationError, ValueError, TypeError) as e:
            logger.error(f"Cached catalog {key} is corrupt: {str(e)}")
            return []

    async def _store_cached(self, key: str, definitions: List[AchievementDefinition]) -> None:
        payload = json.dumps([d.model_dump(mode="json", by_alias=True) for d in definitions])
        try:
            await self.store.set(key, payload)
        except StorageError as e:
            logger.error(f"Error caching catalog {key}: {str(e)}")
