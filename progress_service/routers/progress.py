"""
Game Progress Router

Endpoints for per-child game progress and achievements.

- The child is identified by the X-Child-ID header
- Unknown game keys are 404
- Storage and catalog failures degrade to defaults inside the core, so
  these handlers only map unexpected errors to 500
"""
from fastapi import APIRouter, Depends, HTTPException, Query, status
from typing import Optional
import logging

from progress_service.config import get_settings
from progress_service.dependencies import (
    get_achievement_service,
    get_award_store,
    get_child_id,
    get_progress_repository,
)
from progress_service.exceptions import StorageError
from progress_service.logic.achievement_service import AchievementService
from progress_service.logic.completion import complete_level
from progress_service.schemas import ChildProgress
from progress_service.schemas_achievements import ChildAchievementsSummary
from progress_service.schemas_completion import (
    LevelCompletionRequest,
    LevelCompletionResponse,
    ResetResponse,
)
from progress_service.services.progress_repository import ProgressRepository

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1",
    tags=["Game Progress"]
)


@router.get("/games/{game_key}/progress", response_model=ChildProgress)
async def get_game_progress(
    game_key: str,
    child_id: str = Depends(get_child_id),
    repository: ProgressRepository = Depends(get_progress_repository)
):
    """
    Get a child's progress in one game.

    A child without saved progress (or whose record is unreadable) gets the
    default layout: stage 1 and its first level open, score 0.
    """
    try:
        result = await repository.load_with_status(child_id)
        logger.info(f"Progress for child {child_id} in {game_key}: {result.status}")
        return result.progress
    except Exception as e:
        logger.error(f"Error getting progress for child {child_id} in {game_key}: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to get progress: {str(e)}"
        )


@router.post("/games/{game_key}/levels/complete", response_model=LevelCompletionResponse)
async def complete_game_level(
    game_key: str,
    request: LevelCompletionRequest,
    child_id: str = Depends(get_child_id),
    repository: ProgressRepository = Depends(get_progress_repository),
    achievements: AchievementService = Depends(get_achievement_service)
):
    """
    Record a finished level.

    Returns the updated progress and the achievements granted by this
    completion. accepted is false when the level is unknown or still locked;
    nothing is stored in that case.
    """
    logger.info(
        f"Level complete: child={child_id}, game={game_key}, "
        f"stage={request.stage_id}, level={request.level_id}, score={request.level_score}"
    )

    try:
        outcome = await complete_level(
            repository,
            achievements,
            child_id,
            stage_id=request.stage_id,
            level_id=request.level_id,
            level_score=request.level_score,
            level_max_score=request.level_max_score,
            correct_answers=request.correct_answers,
            wrong_answers=request.wrong_answers,
            words_learned=request.words_learned,
            streak_timezone=get_settings().STREAK_TIMEZONE,
        )
    except Exception as e:
        logger.error(f"Error completing level for child {child_id} in {game_key}: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to complete level: {str(e)}"
        )

    return LevelCompletionResponse(
        accepted=outcome.accepted,
        progress=outcome.progress,
        newly_earned=outcome.newly_earned,
        awarded_points=outcome.awarded_points,
        level_unlocked=outcome.level_unlocked,
        stage_completed=outcome.stage_completed,
        stages_unlocked=list(outcome.stages_unlocked),
    )


@router.delete("/games/{game_key}/progress", response_model=ResetResponse)
async def reset_game_progress(
    game_key: str,
    include_achievements: bool = Query(False, description="Also remove every earned achievement of the child"),
    child_id: str = Depends(get_child_id),
    repository: ProgressRepository = Depends(get_progress_repository),
    award_store=Depends(get_award_store)
):
    """Delete a child's progress in one game (and optionally their achievements)"""
    if not await repository.reset(child_id):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Progress storage unavailable, nothing was reset"
        )

    removed = 0
    if include_achievements:
        try:
            removed = await award_store.remove_child_achievements(child_id)
        except StorageError as e:
            logger.error(f"Error removing achievements for child {child_id}: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Progress was reset but achievements could not be removed"
            )

    return ResetResponse(
        success=True,
        message=f"Progress for {game_key} reset",
        achievements_removed=removed,
    )


@router.get("/achievements", response_model=ChildAchievementsSummary)
async def get_child_achievements(
    game_key: Optional[str] = Query(None, description="Restrict to one game (generic achievements included)"),
    child_id: str = Depends(get_child_id),
    achievements: AchievementService = Depends(get_achievement_service)
):
    """
    Earned achievements with full details, most recent first, plus totals
    over the catalog.
    """
    try:
        return await achievements.get_child_achievements_with_details(child_id, game_key)
    except Exception as e:
        logger.error(f"Error getting achievements for child {child_id}: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to get achievements: {str(e)}"
        )
