"""
FastAPI dependencies

Collaborators are built from settings and handed to the core explicitly;
tests swap them through app.dependency_overrides.
"""
from functools import lru_cache

from fastapi import Depends, Header, HTTPException, status

from progress_service.catalog_client import AchievementCatalogClient
from progress_service.config import get_settings
from progress_service.dynamo import DynamoDBClient, DynamoKeyValueStore
from progress_service.dynamo_achievements import DynamoAchievementStore
from progress_service.logic.achievement_service import AchievementService
from progress_service.logic.catalogs import GameCatalog, get_game_catalog
from progress_service.services.catalog_repository import AchievementCatalogRepository
from progress_service.services.progress_repository import ProgressRepository


@lru_cache()
def get_db_client() -> DynamoDBClient:
    return DynamoDBClient(get_settings())


def get_key_value_store() -> DynamoKeyValueStore:
    return DynamoKeyValueStore(get_db_client())


def get_award_store() -> DynamoAchievementStore:
    return DynamoAchievementStore(get_db_client())


def get_catalog_client() -> AchievementCatalogClient:
    return AchievementCatalogClient.from_settings(get_settings())


def get_child_id(x_child_id: str = Header(..., alias="X-Child-ID")) -> str:
    child_id = x_child_id.strip()
    if not child_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-Child-ID header must not be empty"
        )
    return child_id


def get_game(game_key: str) -> GameCatalog:
    try:
        return get_game_catalog(game_key)
    except KeyError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown game '{game_key}'"
        )


def get_progress_repository(
    game: GameCatalog = Depends(get_game),
    store=Depends(get_key_value_store)
) -> ProgressRepository:
    return ProgressRepository(store, game)


def get_achievement_service(
    store=Depends(get_key_value_store),
    award_store=Depends(get_award_store),
    catalog_client=Depends(get_catalog_client)
) -> AchievementService:
    return AchievementService(AchievementCatalogRepository(store, catalog_client), award_store)
