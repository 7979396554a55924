"""
Client for the achievement catalog service

Fetches achievement definitions over HTTP. Failures surface as CatalogError;
deciding what to do without a catalog is left to the caller.
"""
import httpx
import logging
from typing import Optional, List
from pydantic import ValidationError

from progress_service.config import Settings
from progress_service.exceptions import CatalogError
from progress_service.schemas_achievements import AchievementDefinition

logger = logging.getLogger(__name__)

ACHIEVEMENTS_PATH = "/api/v1/achievements"


class AchievementCatalogClient:
    """Read-only access to the remote achievement catalog"""

    def __init__(
        self,
        base_url: str,
        timeout: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> "AchievementCatalogClient":
        return cls(settings.CATALOG_SERVICE_URL, timeout=settings.CATALOG_TIMEOUT_SECONDS)

    async def fetch_achievement_definitions(
        self,
        game_key: Optional[str] = None
    ) -> List[AchievementDefinition]:
        """
        Get achievement definitions, cheapest points first.

        When game_key is given, keeps that game's definitions plus the generic
        ones. Filtering happens here, in memory, whatever the server honours.

        Raises:
            CatalogError: network failure, non-2xx status or malformed rows
        """
        params = {"game_key": game_key} if game_key else None

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.get(f"{self.base_url}{ACHIEVEMENTS_PATH}", params=params)
                response.raise_for_status()
                rows = response.json()
        except httpx.HTTPError as e:
            logger.error(f"Error fetching achievements from catalog service: {str(e)}")
            raise CatalogError(str(e)) from e
        except ValueError as e:
            logger.error(f"Catalog service returned invalid JSON: {str(e)}")
            raise CatalogError(str(e)) from e

        if not isinstance(rows, list):
            raise CatalogError(f"Expected a list of achievements, got {type(rows).__name__}")

        try:
            definitions = [AchievementDefinition.model_validate(row) for row in rows]
        except ValidationError as e:
            logger.error(f"Malformed achievement definition in catalog: {str(e)}")
            raise CatalogError(str(e)) from e

        if game_key:
            definitions = [d for d in definitions if d.applies_to_game(game_key)]

        definitions.sort(key=lambda d: d.points)
        logger.info(f"Retrieved {len(definitions)} achievements for {game_key or 'all games'}")
        return definitions
