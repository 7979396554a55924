"""
Achievement Service - Business Logic

PRINCIPLES:
1. Filter the catalog in memory (game_key match or generic)
2. Skip anything already earned before evaluating
3. One dispatch on (trigger kind, event type), no ORM or query magic
4. Awards go through a uniqueness-enforcing store; duplicates are not errors
5. Catalog or storage failures mean "no achievement this time", never a crash

Each (child, achievement) pair is either not earned or earned; earned is
terminal. Threshold kinds are re-evaluated on every event, so an achievement
whose threshold was crossed earlier is simply found already earned.
"""

from typing import Dict, Iterable, List, Optional, Set, Union
import logging

from progress_service.exceptions import StorageError
from progress_service.schemas_achievements import (
    AchievementDefinition,
    AchievementWithStatus,
    ChildAchievement,
    ChildAchievementsSummary,
)
from progress_service.schemas import UserStats
from progress_service.schemas_events import (
    GameEvent,
    LevelCompletedEvent,
    LevelPerfectClearEvent,
    ScoreUpdatedEvent,
    StageCompletedEvent,
    StatsUpdatedEvent,
)

logger = logging.getLogger(__name__)


# ============================================================================
# Trigger Kinds
# ============================================================================

LEVEL_COMPLETE = "level_complete"
STAGE_COMPLETE = "stage_complete"
TOTAL_WORDS_LEARNED = "total_words_learned"
TOTAL_SCORE_REACH = "total_score_reach"
STREAK_DAYS = "streak_days"
LEVEL_PERFECT_QUIZ = "level_perfect_quiz"
FIRST_PLAY = "first_play"

TRIGGER_KINDS = {
    LEVEL_COMPLETE,
    STAGE_COMPLETE,
    TOTAL_WORDS_LEARNED,
    TOTAL_SCORE_REACH,
    STREAK_DAYS,
    LEVEL_PERFECT_QUIZ,
    FIRST_PLAY,
}

TRIGGER_ALIASES = {
    "score": TOTAL_SCORE_REACH,
}

# Longest first so "counting_game_stage_complete" never resolves to a shorter suffix
_SUFFIXES = sorted(
    [(kind, kind) for kind in TRIGGER_KINDS] + list(TRIGGER_ALIASES.items()),
    key=lambda pair: len(pair[0]),
    reverse=True,
)


def resolve_trigger_kind(activity_type: str) -> Optional[str]:
    """
    Map a catalog activity_type to a trigger kind.

    Examples:
        "level_complete"               -> "level_complete"
        "language_level_complete"      -> "level_complete"
        "counting_game_stage_complete" -> "stage_complete"
        "counting_game_score"          -> "total_score_reach"
        "stories"                      -> None
    """
    normalized = (activity_type or "").strip().lower()
    if normalized in TRIGGER_KINDS:
        return normalized
    if normalized in TRIGGER_ALIASES:
        return TRIGGER_ALIASES[normalized]

    for suffix, kind in _SUFFIXES:
        if normalized.endswith(f"_{suffix}"):
            return kind
    return None


def _trigger_number(value: Optional[Union[int, float, str]]) -> Optional[float]:
    """Numeric trigger value, or None when unset or not a number"""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(value.strip())
    except ValueError:
        return None


def _event_stats(event: GameEvent) -> Optional[UserStats]:
    if isinstance(event, (ScoreUpdatedEvent, StatsUpdatedEvent)):
        return event.user_stats
    return None


# ============================================================================
# Evaluation
# ============================================================================

def evaluate_achievement(definition: AchievementDefinition, event: GameEvent) -> bool:
    """
    Decide whether an event satisfies one achievement definition.

    Unknown trigger kinds, events of the wrong type and unusable trigger
    values all evaluate to False.
    """
    kind = resolve_trigger_kind(definition.activity_type)
    target = _trigger_number(definition.trigger_value)

    if kind == LEVEL_COMPLETE:
        return isinstance(event, LevelCompletedEvent) and target is not None and event.level_id == target

    if kind == STAGE_COMPLETE:
        return isinstance(event, StageCompletedEvent) and target is not None and event.stage_id == target

    if kind == FIRST_PLAY:
        return isinstance(event, StageCompletedEvent) and event.stage_id == 1

    if kind == TOTAL_SCORE_REACH:
        return isinstance(event, ScoreUpdatedEvent) and target is not None and event.new_total_score >= target

    if kind == TOTAL_WORDS_LEARNED:
        stats = _event_stats(event)
        return stats is not None and target is not None and stats.total_words >= target

    if kind == STREAK_DAYS:
        stats = _event_stats(event)
        return stats is not None and target is not None and stats.streak_days >= target

    if kind == LEVEL_PERFECT_QUIZ:
        if not isinstance(event, LevelPerfectClearEvent):
            return False
        if event.current_level_score != event.current_level_max_score:
            return False
        unset = definition.trigger_value is None or definition.trigger_value == ""
        return unset or target == event.level_id

    logger.debug(f"No trigger rule for activity_type {definition.activity_type!r}, skipping")
    return False


def select_candidates(
    definitions: Iterable[AchievementDefinition],
    earned_achievement_ids: Iterable[str],
    game_key: str
) -> List[AchievementDefinition]:
    """Definitions for this game (or generic) that the child has not earned yet"""
    earned = set(earned_achievement_ids)
    return [
        definition for definition in definitions
        if definition.applies_to_game(game_key) and definition.id not in earned
    ]


async def check_and_grant_new_achievements(
    child_id: str,
    event: GameEvent,
    definitions: Iterable[AchievementDefinition],
    earned_achievement_ids: Iterable[str],
    award_store
) -> List[AchievementDefinition]:
    """
    Evaluate one event and persist every newly satisfied achievement.

    Args:
        award_store: object with async award_achievement(child_id, achievement_id)
            returning an AwardResult (DynamoAchievementStore in production)

    Returns:
        Definitions granted by THIS call. An award the store reports as a
        duplicate is not included, so its points are never counted twice.
    """
    log_context = {
        'child_id': child_id,
        'game_key': event.game_key,
        'event_type': event.type,
    }

    granted: List[AchievementDefinition] = []
    seen: Set[str] = set(earned_achievement_ids)

    for definition in select_candidates(definitions, seen, event.game_key):
        if definition.id in seen or not evaluate_achievement(definition, event):
            continue

        try:
            result = await award_store.award_achievement(child_id, definition.id)
        except StorageError as e:
            logger.error(f"Could not persist achievement {definition.id}: {str(e)}", extra=log_context)
            continue

        seen.add(definition.id)
        if result.newly_earned:
            granted.append(definition)
            logger.info(f"🏆 Achievement earned: {definition.id} - {definition.name}", extra=log_context)
        else:
            logger.info(f"Achievement {definition.id} was already earned", extra=log_context)

    if not granted:
        logger.debug("No new achievements for this event", extra=log_context)

    return granted


# ============================================================================
# Service
# ============================================================================

class AchievementService:
    """
    Achievement checks backed by the catalog and the earned-achievement store.

    Holds collaborators only; no per-child state survives between calls.
    """

    def __init__(self, catalog_repository, award_store):
        """
        Args:
            catalog_repository: AchievementCatalogRepository (get_definitions)
            award_store: DynamoAchievementStore (get_child_achievements, award_achievement)
        """
        self.catalog_repository = catalog_repository
        self.award_store = award_store

    async def get_earned(self, child_id: str) -> List[ChildAchievement]:
        try:
            return await self.award_store.get_child_achievements(child_id)
        except StorageError as e:
            logger.error(f"Error getting earned achievements for child {child_id}: {str(e)}")
            return []

    async def check_events(
        self,
        child_id: str,
        events: Iterable[GameEvent],
        earned_achievement_ids: Optional[Iterable[str]] = None
    ) -> List[AchievementDefinition]:
        """
        Run every event of one completion flow against the catalog.

        The earned set grows as the events are processed, so two events that
        satisfy the same achievement grant it once.
        """
        events = list(events)
        if not events:
            return []

        if earned_achievement_ids is None:
            earned = {a.achievement_id for a in await self.get_earned(child_id)}
        else:
            earned = set(earned_achievement_ids)

        definitions_by_game: Dict[str, List[AchievementDefinition]] = {}
        granted: List[AchievementDefinition] = []

        for event in events:
            if event.game_key not in definitions_by_game:
                definitions_by_game[event.game_key] = await self.catalog_repository.get_definitions(event.game_key)

            definitions = definitions_by_game[event.game_key]
            if not definitions:
                continue

            newly_earned = await check_and_grant_new_achievements(
                child_id, event, definitions, earned, self.award_store
            )
            earned.update(definition.id for definition in newly_earned)
            granted.extend(newly_earned)

        if granted:
            logger.info(f"✅ {len(granted)} new achievements for child {child_id}")
        return granted

    async def get_all_achievements_with_status(
        self,
        child_id: str,
        game_key: Optional[str] = None
    ) -> List[AchievementWithStatus]:
        """Every catalog achievement with the child's earned flag and date"""
        earned_map = {a.achievement_id: a for a in await self.get_earned(child_id)}
        definitions = await self.catalog_repository.get_definitions(game_key)

        return [
            AchievementWithStatus(
                **definition.model_dump(),
                earned=definition.id in earned_map,
                earned_at=earned_map[definition.id].earned_at if definition.id in earned_map else None,
            )
            for definition in definitions
        ]

    async def get_child_achievements_with_details(
        self,
        child_id: str,
        game_key: Optional[str] = None
    ) -> ChildAchievementsSummary:
        """
        Earned achievements with full details, most recent first.

        Returns:
            earned_achievements, total_earned, total_available, total_points,
            progress_percentage
        """
        all_achievements = await self.get_all_achievements_with_status(child_id, game_key)
        earned = [a for a in all_achievements if a.earned]
        earned.sort(key=lambda a: a.earned_at, reverse=True)

        total_available = len(all_achievements)
        progress_percentage = (len(earned) / total_available * 100) if total_available > 0 else 0.0

        return ChildAchievementsSummary(
            earned_achievements=earned,
            total_earned=len(earned),
            total_available=total_available,
            total_points=sum(a.points for a in earned),
            progress_percentage=round(progress_percentage, 1),
        )
