"""Progress Repository - per-child progress persistence"""
from typing import NamedTuple
import logging

from pydantic import ValidationError

from progress_service.exceptions import StorageError
from progress_service.logic.catalogs import GameCatalog
from progress_service.logic.unlock_engine import create_default_progress, repair_level_unlocks
from progress_service.schemas import ChildProgress

logger = logging.getLogger(__name__)

# Load outcomes; every status except LOADED comes with default progress
LOADED = "loaded"
MISSING = "missing"
OWNER_MISMATCH = "owner_mismatch"
CORRUPT = "corrupt"
STORAGE_ERROR = "storage_error"


class LoadResult(NamedTuple):
    progress: ChildProgress
    status: str


class ProgressRepository:
    """
    Stores one ChildProgress JSON blob per (game, child).

    Fail-open: a storage hiccup or a bad record yields default progress and
    a log line, never an exception the game screen has to handle.
    """

    def __init__(self, store, catalog: GameCatalog):
        """
        Args:
            store: key-value store (async get/set/remove raising StorageError)
            catalog: game whose progress this repository holds
        """
        self.store = store
        self.catalog = catalog

    def default_progress(self, child_id: str) -> ChildProgress:
        return create_default_progress(child_id, self.catalog.game_key, self.catalog.stages)

    async def load_with_status(self, child_id: str) -> LoadResult:
        """Load progress and report how it was obtained"""
        if not child_id:
            logger.warning("No child ID provided for loading progress, using default")
            return LoadResult(self.default_progress("default"), MISSING)

        key = self.catalog.storage_key(child_id)

        try:
            raw = await self.store.get(key)
        except StorageError as e:
            logger.error(f"Error loading progress {key}: {str(e)}")
            return LoadResult(self.default_progress(child_id), STORAGE_ERROR)

        if raw is None:
            logger.info(f"No saved progress under {key}, returning defaults")
            return LoadResult(self.default_progress(child_id), MISSING)

        try:
            progress = ChildProgress.model_validate_json(raw)
        except ValidationError as e:
            logger.error(f"Corrupt progress record {key}: {e.error_count()} validation errors")
            return LoadResult(self.default_progress(child_id), CORRUPT)

        if progress.child_id != child_id:
            logger.warning(f"Progress childId mismatch under {key}: expected {child_id}, got {progress.child_id}")
            return LoadResult(self.default_progress(child_id), OWNER_MISMATCH)

        if progress.game_key != self.catalog.game_key:
            logger.warning(f"Progress under {key} belongs to game {progress.game_key}, expected {self.catalog.game_key}")
            return LoadResult(self.default_progress(child_id), CORRUPT)

        return LoadResult(repair_level_unlocks(progress), LOADED)

    async def load(self, child_id: str) -> ChildProgress:
        return (await self.load_with_status(child_id)).progress

    async def save(self, child_id: str, progress: ChildProgress) -> bool:
        """
        Persist progress under child_id.

        The stored record always carries child_id, whatever progress.child_id
        said, so one child's data can never be written as another's.
        """
        if not child_id:
            logger.warning("No child ID provided for saving progress, aborting")
            return False

        record = progress.model_copy(update={'child_id': child_id})
        key = self.catalog.storage_key(child_id)

        try:
            await self.store.set(key, record.model_dump_json())
        except StorageError as e:
            logger.error(f"Error saving progress {key}: {str(e)}")
            return False

        logger.info(f"Saved {self.catalog.game_key} progress for child {child_id} (score={record.total_score})")
        return True

    async def reset(self, child_id: str) -> bool:
        """Delete the stored record; the next load returns defaults"""
        if not child_id:
            return False

        key = self.catalog.storage_key(child_id)
        try:
            await self.store.remove(key)
        except StorageError as e:
            logger.error(f"Error resetting progress {key}: {str(e)}")
            return False

        logger.info(f"Reset {self.catalog.game_key} progress for child {child_id}")
        return True
