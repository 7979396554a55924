"""
Unlock logic for stages and levels

Pure transforms over ChildProgress / stage tuples. Nothing here touches
storage; callers load, transform, then persist.

Unlock rules:
- Levels open one at a time, each by completing the level right before it
- A stage opens only when every level of the previous stage is completed
  AND total_score >= the stage's required_score, both at the same moment
- The first stage and its first level start unlocked, everything else locked
"""
import logging
from datetime import datetime, timezone
from typing import Iterable, NamedTuple, Optional, Sequence, Tuple

from progress_service.schemas import ChildProgress, Level, PlayRecord, Stage, UserStats

logger = logging.getLogger(__name__)


# Most recent play records kept per progress record; stored progress is one
# DynamoDB item and must stay under the 400 KB item size limit
PLAY_HISTORY_LIMIT = 200


class LevelCompletionResult(NamedTuple):
    progress: ChildProgress
    level_unlocked: Optional[int]
    stage_completed: bool
    stage_unlocked: Optional[int]


# ============= DEFAULT STATE =============

def initial_stages(stages: Sequence[Stage]) -> Tuple[Stage, ...]:
    """Reset lock flags to the starting layout: only stage 1 / level 1 open"""
    result = []
    for stage_index, stage in enumerate(stages):
        levels = tuple(
            level.model_copy(update={'is_locked': not (stage_index == 0 and level_index == 0)})
            for level_index, level in enumerate(stage.levels)
        )
        result.append(stage.model_copy(update={'is_locked': stage_index != 0, 'levels': levels}))
    return tuple(result)


def create_default_progress(child_id: str, game_key: str, stages: Sequence[Stage]) -> ChildProgress:
    """Fresh progress for a child that never played this game"""
    first_stage_id = stages[0].id if stages else None
    return ChildProgress(
        child_id=child_id,
        game_key=game_key,
        stages=initial_stages(stages),
        user_stats=UserStats(),
        last_played_level={first_stage_id: 1} if first_stage_id is not None else {},
    )


# ============= PRIMITIVE TRANSFORMS =============

def _find_stage(stages: Sequence[Stage], stage_id: int) -> Tuple[int, Optional[Stage]]:
    for index, stage in enumerate(stages):
        if stage.id == stage_id:
            return index, stage
    return -1, None


def _replace(items: Tuple, index: int, item) -> Tuple:
    return items[:index] + (item,) + items[index + 1:]


def unlock_next_level(stage_id: int, completed_level_id: int, stages: Sequence[Stage]) -> Tuple[Stage, ...]:
    """
    Unlock the level that follows completed_level_id inside stage_id.

    Returns the stages unchanged (as a tuple) when the stage or level is
    unknown or the completed level is the last of its stage. Input is never
    mutated; untouched stages are shared with the result.
    """
    stages = tuple(stages)
    stage_index, stage = _find_stage(stages, stage_id)
    if stage is None:
        return stages

    level_index = next((i for i, level in enumerate(stage.levels) if level.id == completed_level_id), -1)
    if level_index == -1 or level_index >= len(stage.levels) - 1:
        return stages

    next_level = stage.levels[level_index + 1]
    if not next_level.is_locked:
        return stages

    levels = _replace(stage.levels, level_index + 1, next_level.model_copy(update={'is_locked': False}))
    return _replace(stages, stage_index, stage.model_copy(update={'levels': levels}))


def is_stage_completed(stage_id: int, completed_levels: Iterable[int], stages: Sequence[Stage]) -> bool:
    """True iff every level of the stage is in completed_levels; False for an unknown stage"""
    _, stage = _find_stage(stages, stage_id)
    if stage is None or not stage.levels:
        return False

    completed = set(completed_levels)
    return all(level.id in completed for level in stage.levels)


def unlock_next_stage(completed_stage_id: int, stages: Sequence[Stage]) -> Tuple[Stage, ...]:
    """
    Unlock stage completed_stage_id + 1 and its first level.

    No score check happens here; see check_and_unlock_next_stage. Completing
    the final stage is terminal and returns the stages unchanged.
    """
    stages = tuple(stages)
    stage_index, next_stage = _find_stage(stages, completed_stage_id + 1)
    if next_stage is None:
        return stages

    levels = next_stage.levels
    if levels and levels[0].is_locked:
        levels = _replace(levels, 0, levels[0].model_copy(update={'is_locked': False}))

    if not next_stage.is_locked and levels is next_stage.levels:
        return stages

    return _replace(stages, stage_index, next_stage.model_copy(update={'is_locked': False, 'levels': levels}))


def can_unlock_next_stage(
    stage_id: int,
    completed_levels: Iterable[int],
    total_score: int,
    stages: Sequence[Stage]
) -> bool:
    """Both conditions at once: stage fully completed and score reaches the next stage's threshold"""
    _, next_stage = _find_stage(stages, stage_id + 1)
    if next_stage is None:
        return False

    return is_stage_completed(stage_id, completed_levels, stages) and total_score >= next_stage.required_score


def check_and_unlock_next_stage(
    stage_id: int,
    completed_levels: Iterable[int],
    total_score: int,
    stages: Sequence[Stage]
) -> Tuple[Stage, ...]:
    completed_levels = set(completed_levels)
    if not can_unlock_next_stage(stage_id, completed_levels, total_score, stages):
        return tuple(stages)
    return unlock_next_stage(stage_id, stages)


# ============= PROGRESS-LEVEL TRANSFORMS =============

def _level_position(stage: Stage, level_id: int) -> int:
    """1-based position of a level inside its stage, 0 when absent"""
    for index, level in enumerate(stage.levels):
        if level.id == level_id:
            return index + 1
    return 0


def _is_stage_locked(stages: Sequence[Stage], stage_id: int) -> bool:
    _, stage = _find_stage(stages, stage_id)
    return stage is not None and stage.is_locked


def _is_unlocked(stages: Sequence[Stage], stage_id: int, level_id: int) -> bool:
    _, stage = _find_stage(stages, stage_id)
    level: Optional[Level] = stage.get_level(level_id) if stage else None
    return level is not None and not level.is_locked


def apply_level_completion(
    progress: ChildProgress,
    stage_id: int,
    level_id: int,
    points: int,
    now: Optional[datetime] = None
) -> LevelCompletionResult:
    """
    Record a completed level and propagate unlocks.

    Order: add level + points -> unlock next level -> recompute stage
    completion -> unlock next stage only if the score threshold also holds.
    Completing an unknown or still-locked level changes nothing.
    """
    now = now or datetime.now(timezone.utc)
    _, stage = _find_stage(progress.stages, stage_id)
    position = _level_position(stage, level_id) if stage else 0

    if not position:
        logger.warning(f"Level {level_id} not found in stage {stage_id} for {progress.game_key}")
        return LevelCompletionResult(progress, None, False, None)

    if stage.is_locked or not _is_unlocked(progress.stages, stage_id, level_id):
        logger.warning(
            f"Child {progress.child_id} completed locked level {level_id} "
            f"(stage {stage_id}) in {progress.game_key}, ignoring"
        )
        return LevelCompletionResult(progress, None, False, None)

    completed_levels = progress.completed_levels | {level_id}
    total_score = progress.total_score + max(points, 0)

    stages = unlock_next_level(stage_id, level_id, progress.stages)
    level_unlocked = None
    if position < len(stage.levels):
        next_level_id = stage.levels[position].id
        if not _is_unlocked(progress.stages, stage_id, next_level_id) and _is_unlocked(stages, stage_id, next_level_id):
            level_unlocked = next_level_id

    completed_stages = progress.completed_stages
    stage_completed = False
    stage_unlocked = None
    if is_stage_completed(stage_id, completed_levels, stages):
        stage_completed = stage_id not in completed_stages
        completed_stages = completed_stages | {stage_id}

        was_locked = _is_stage_locked(stages, stage_id + 1)
        stages = check_and_unlock_next_stage(stage_id, completed_levels, total_score, stages)
        if was_locked and not _is_stage_locked(stages, stage_id + 1):
            stage_unlocked = stage_id + 1
            logger.info(f"Stage {stage_unlocked} unlocked for child {progress.child_id} ({progress.game_key})")

    updated = progress.model_copy(update={
        'total_score': total_score,
        'completed_levels': completed_levels,
        'completed_stages': completed_stages,
        'stages': stages,
        'last_played_level': {**progress.last_played_level, stage_id: position},
        'play_history': (progress.play_history + (
            PlayRecord(date=now, level_id=level_id, stage_id=stage_id, score=points),
        ))[-PLAY_HISTORY_LIMIT:],
    })

    return LevelCompletionResult(updated, level_unlocked, stage_completed, stage_unlocked)


def reevaluate_stage_unlocks(progress: ChildProgress) -> Tuple[ChildProgress, Tuple[int, ...]]:
    """
    Re-run the stage rule for every completed stage against the current score.

    Used after a score-only increase (e.g. achievement points): a stage whose
    levels were all done earlier opens as soon as the threshold is reached.
    Returns the new progress and the ids of stages unlocked by this call.
    """
    stages = progress.stages
    completed_stages = set(progress.completed_stages)
    unlocked = []

    for stage in progress.stages:
        if not is_stage_completed(stage.id, progress.completed_levels, stages):
            continue
        completed_stages.add(stage.id)

        was_locked = _is_stage_locked(stages, stage.id + 1)
        stages = check_and_unlock_next_stage(stage.id, progress.completed_levels, progress.total_score, stages)
        if was_locked and not _is_stage_locked(stages, stage.id + 1):
            unlocked.append(stage.id + 1)

    if not unlocked and completed_stages == progress.completed_stages:
        return progress, ()

    updated = progress.model_copy(update={
        'stages': stages,
        'completed_stages': frozenset(completed_stages),
    })
    return updated, tuple(unlocked)


def repair_level_unlocks(progress: ChildProgress) -> ChildProgress:
    """
    Re-open every completed level and the level right after it.

    Stored records written by older clients may list a level as completed
    while its successor is still locked; this brings the lock flags back in
    line with completed_levels. Returns progress itself when nothing changes.
    """
    stages = progress.stages
    for stage_index, stage in enumerate(progress.stages):
        levels = stage.levels
        for level_index, level in enumerate(stage.levels):
            if level.id not in progress.completed_levels:
                continue
            for index in (level_index, level_index + 1):
                if index < len(levels) and levels[index].is_locked:
                    levels = _replace(levels, index, levels[index].model_copy(update={'is_locked': False}))
        if levels is not stage.levels:
            stages = _replace(stages, stage_index, stage.model_copy(update={'levels': levels}))

    if stages is progress.stages:
        return progress

    logger.info(f"Repaired level unlocks for child {progress.child_id} ({progress.game_key})")
    return progress.model_copy(update={'stages': stages})


def add_points(progress: ChildProgress, points: int) -> ChildProgress:
    if points <= 0:
        return progress
    return progress.model_copy(update={'total_score': progress.total_score + points})


def record_last_played_level(progress: ChildProgress, stage_id: int, level_number: int) -> ChildProgress:
    return progress.model_copy(update={
        'last_played_level': {**progress.last_played_level, stage_id: level_number},
    })


def resolve_current_level(progress: ChildProgress, stage_id: int) -> int:
    """
    Level number (1-based) to resume a stage at.

    Saved values outside 1..len(levels) fall back to 1 so malformed or
    partial save data never crashes a game screen.
    """
    stage = progress.get_stage(stage_id)
    saved = progress.last_played_level.get(stage_id)
    if stage is None or saved is None:
        return 1

    if 1 <= saved <= len(stage.levels):
        return saved

    logger.warning(f"Saved level {saved} out of range for stage {stage_id}, resuming at level 1")
    return 1
