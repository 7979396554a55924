"""
Level completion flow

Sequence for one finished level (single writer per child and game):
1. load progress
2. apply the level (score, unlocks) and fold the session into user stats
3. build the events of this completion against the base score
4. evaluate achievements; awards are persisted by the award store
5. add awarded points, re-check stage unlocks
6. persist the final progress once

Achievement points are added after all checks ran against the base score,
so re-running checks can never count them twice.
"""
import logging
from datetime import datetime, timezone
from typing import List, NamedTuple, Optional, Tuple

from progress_service.logic.achievement_service import AchievementService
from progress_service.logic.unlock_engine import (
    add_points,
    apply_level_completion,
    reevaluate_stage_unlocks,
)
from progress_service.logic.user_stats import update_user_stats
from progress_service.schemas import ChildProgress
from progress_service.schemas_achievements import AchievementDefinition
from progress_service.schemas_events import (
    GameEvent,
    LevelCompletedEvent,
    LevelPerfectClearEvent,
    ScoreUpdatedEvent,
    StageCompletedEvent,
    StatsUpdatedEvent,
)
from progress_service.services.progress_repository import ProgressRepository

logger = logging.getLogger(__name__)


class CompletionOutcome(NamedTuple):
    progress: ChildProgress
    newly_earned: List[AchievementDefinition]
    awarded_points: int
    level_unlocked: Optional[int]
    stage_completed: bool
    stages_unlocked: Tuple[int, ...]
    accepted: bool = True


def build_completion_events(
    progress: ChildProgress,
    stage_id: int,
    level_id: int,
    stage_completed: bool,
    level_score: int,
    level_max_score: Optional[int] = None
) -> List[GameEvent]:
    """Events describing one level completion, in evaluation order"""
    game_key = progress.game_key
    events: List[GameEvent] = [
        LevelCompletedEvent(game_key=game_key, level_id=level_id, stage_id=stage_id),
    ]

    if stage_completed:
        events.append(StageCompletedEvent(game_key=game_key, stage_id=stage_id))

    if level_max_score is not None:
        events.append(LevelPerfectClearEvent(
            game_key=game_key,
            level_id=level_id,
            current_level_score=max(level_score, 0),
            current_level_max_score=level_max_score,
        ))

    events.append(ScoreUpdatedEvent(
        game_key=game_key,
        new_total_score=progress.total_score,
        user_stats=progress.user_stats,
    ))
    events.append(StatsUpdatedEvent(game_key=game_key, user_stats=progress.user_stats))
    return events


async def complete_level(
    repository: ProgressRepository,
    achievements: AchievementService,
    child_id: str,
    stage_id: int,
    level_id: int,
    level_score: int,
    level_max_score: Optional[int] = None,
    correct_answers: int = 0,
    wrong_answers: int = 0,
    words_learned: Optional[int] = None,
    now: Optional[datetime] = None,
    streak_timezone: str = "UTC"
) -> CompletionOutcome:
    """
    Record a finished level for a child and grant what it earned.

    words_learned defaults to the level's word count the first time a level
    is completed and to 0 on replays. Games with a fixed award per level
    score that award instead of level_score.
    """
    now = now or datetime.now(timezone.utc)
    progress = await repository.load(child_id)

    points = repository.catalog.points_per_level
    if points is None:
        points = level_score

    result = apply_level_completion(progress, stage_id, level_id, points, now)
    if result.progress is progress:
        return CompletionOutcome(progress, [], 0, None, False, (), accepted=False)

    if words_learned is None:
        stage = progress.get_stage(stage_id)
        level = stage.get_level(level_id) if stage else None
        first_time = level_id not in progress.completed_levels
        words_learned = level.word_count if (level and first_time) else 0

    stats = update_user_stats(
        result.progress.user_stats,
        correct_answers=correct_answers,
        wrong_answers=wrong_answers,
        words_learned=words_learned,
        now=now,
        timezone=streak_timezone,
    )
    progress = result.progress.model_copy(update={'user_stats': stats})

    events = build_completion_events(
        progress, stage_id, level_id, result.stage_completed, level_score, level_max_score
    )
    newly_earned = await achievements.check_events(child_id, events)
    awarded_points = sum(definition.points for definition in newly_earned)

    stages_unlocked = (result.stage_unlocked,) if result.stage_unlocked else ()
    if awarded_points:
        progress = add_points(progress, awarded_points)
        progress, extra_unlocked = reevaluate_stage_unlocks(progress)
        stages_unlocked += extra_unlocked

    await repository.save(child_id, progress)

    logger.info(
        f"Child {child_id} completed level {level_id} (stage {stage_id}) in {progress.game_key}: "
        f"score={progress.total_score}, achievements={len(newly_earned)}, +{awarded_points} points"
    )

    return CompletionOutcome(
        progress=progress,
        newly_earned=newly_earned,
        awarded_points=awarded_points,
        level_unlocked=result.level_unlocked,
        stage_completed=result.stage_completed,
        stages_unlocked=stages_unlocked,
    )


async def refresh_stage_unlocks(repository: ProgressRepository, child_id: str) -> Tuple[ChildProgress, Tuple[int, ...]]:
    """
    Re-check stage thresholds for stored progress (after a score-only change)
    and persist when something opened.
    """
    progress = await repository.load(child_id)
    updated, unlocked = reevaluate_stage_unlocks(progress)
    if updated is not progress:
        await repository.save(child_id, updated)
    return updated, unlocked
