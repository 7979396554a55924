"""
Integration tests for the level completion flow

Uses in-memory collaborators; covers scoring, unlocks, statistics,
achievement grants and the final persisted state.
"""
from datetime import datetime, timedelta, timezone

import pytest

from progress_service.logic.achievement_service import AchievementService
from progress_service.logic.catalogs import get_game_catalog, get_words_for_level
from progress_service.logic.completion import build_completion_events, complete_level, refresh_stage_unlocks
from progress_service.logic.unlock_engine import apply_level_completion
from progress_service.schemas_achievements import AchievementDefinition
from progress_service.schemas_events import (
    LUGANDA_LEARNING_GAME,
    WORD_GAME,
    LevelCompletedEvent,
    LevelPerfectClearEvent,
    ScoreUpdatedEvent,
    StageCompletedEvent,
    StatsUpdatedEvent,
)
from progress_service.services.catalog_repository import AchievementCatalogRepository
from progress_service.services.progress_repository import ProgressRepository

NOW = datetime(2026, 4, 10, 15, 0, tzinfo=timezone.utc)


def _definition(id, activity_type, trigger_value, points):
    return AchievementDefinition(
        id=id,
        name=id.replace('-', ' ').title(),
        activity_type=activity_type,
        trigger_value=trigger_value,
        points=points,
    )


@pytest.fixture
def repository(kv_store):
    return ProgressRepository(kv_store, get_game_catalog(LUGANDA_LEARNING_GAME))


@pytest.fixture
def achievements(kv_store, award_store, catalog_client):
    return AchievementService(AchievementCatalogRepository(kv_store, catalog_client), award_store)


class TestCompleteLevel:
    """complete_level end to end"""

    @pytest.mark.asyncio
    async def test_first_level(self, repository, achievements):
        outcome = await complete_level(
            repository, achievements, "child-1",
            stage_id=1, level_id=1, level_score=10,
            correct_answers=4, wrong_answers=1, now=NOW,
        )

        assert outcome.accepted is True
        assert outcome.level_unlocked == 2
        assert outcome.stage_completed is False
        assert outcome.progress.total_score == 10
        assert outcome.progress.user_stats.total_words == len(get_words_for_level(1))
        assert outcome.progress.user_stats.correct_answers == 4
        assert outcome.progress.user_stats.streak_days == 1

        stored = await repository.load("child-1")
        assert stored == outcome.progress

    @pytest.mark.asyncio
    async def test_achievement_points_added_once(self, repository, achievements, catalog_client):
        catalog_client.definitions = [_definition('first-steps', 'language_level_complete', 1, 10)]

        first = await complete_level(repository, achievements, "child-1", 1, 1, 10, now=NOW)
        assert [d.id for d in first.newly_earned] == ['first-steps']
        assert first.awarded_points == 10
        assert first.progress.total_score == 20

        replay = await complete_level(repository, achievements, "child-1", 1, 1, 10, now=NOW)
        assert replay.newly_earned == []
        assert replay.awarded_points == 0
        assert replay.progress.total_score == 30
        assert (await repository.load("child-1")).total_score == 30

    @pytest.mark.asyncio
    async def test_replay_learns_no_new_words(self, repository, achievements):
        await complete_level(repository, achievements, "child-1", 1, 1, 10, now=NOW)
        replay = await complete_level(repository, achievements, "child-1", 1, 1, 10, now=NOW)
        assert replay.progress.user_stats.total_words == len(get_words_for_level(1))

    @pytest.mark.asyncio
    async def test_stage_stays_locked_below_threshold(self, repository, achievements):
        await complete_level(repository, achievements, "child-1", 1, 1, 10, now=NOW)
        outcome = await complete_level(repository, achievements, "child-1", 1, 2, 10, now=NOW)

        assert outcome.stage_completed is True
        assert outcome.stages_unlocked == ()
        assert outcome.progress.is_stage_unlocked(2) is False

    @pytest.mark.asyncio
    async def test_achievement_points_unlock_stage(self, repository, achievements, catalog_client):
        """Score 80 from levels plus 20 from an achievement reaches stage 2's 100"""
        catalog_client.definitions = [_definition('score-80', 'total_score_reach', 80, 20)]

        await complete_level(repository, achievements, "child-1", 1, 1, 40, now=NOW)
        outcome = await complete_level(repository, achievements, "child-1", 1, 2, 40, now=NOW)

        assert outcome.awarded_points == 20
        assert outcome.progress.total_score == 100
        assert outcome.stages_unlocked == (2,)
        assert (await repository.load("child-1")).is_stage_unlocked(2) is True

    @pytest.mark.asyncio
    async def test_stage_and_perfect_achievements(self, repository, achievements, catalog_client):
        catalog_client.definitions = [
            _definition('stage-1', 'language_stage_complete', 1, 15),
            _definition('perfect', 'level_perfect_quiz', None, 5),
        ]

        await complete_level(repository, achievements, "child-1", 1, 1, 10, level_max_score=20, now=NOW)
        outcome = await complete_level(repository, achievements, "child-1", 1, 2, 20, level_max_score=20, now=NOW)

        assert {d.id for d in outcome.newly_earned} == {'stage-1', 'perfect'}
        assert outcome.awarded_points == 20

    @pytest.mark.asyncio
    async def test_streak_continues_next_day(self, repository, achievements, catalog_client):
        catalog_client.definitions = [_definition('two-days', 'streak_days', 2, 5)]

        await complete_level(repository, achievements, "child-1", 1, 1, 10, now=NOW)
        outcome = await complete_level(repository, achievements, "child-1", 1, 2, 10, now=NOW + timedelta(days=1))

        assert outcome.progress.user_stats.streak_days == 2
        assert [d.id for d in outcome.newly_earned] == ['two-days']

    @pytest.mark.asyncio
    async def test_locked_level_rejected(self, repository, achievements, kv_store):
        outcome = await complete_level(repository, achievements, "child-1", 2, 3, 10, now=NOW)

        assert outcome.accepted is False
        assert outcome.progress.total_score == 0
        assert kv_store.writes == 0

    @pytest.mark.asyncio
    async def test_catalog_offline_still_records_progress(self, repository, achievements, catalog_client):
        catalog_client.available = False

        outcome = await complete_level(repository, achievements, "child-1", 1, 1, 10, now=NOW)

        assert outcome.newly_earned == []
        assert (await repository.load("child-1")).total_score == 10

    @pytest.mark.asyncio
    async def test_award_store_offline_grants_nothing(self, repository, achievements, catalog_client, award_store):
        catalog_client.definitions = [_definition('first-steps', 'level_complete', 1, 10)]
        award_store.failing = True

        outcome = await complete_level(repository, achievements, "child-1", 1, 1, 10, now=NOW)

        assert outcome.newly_earned == []
        assert outcome.progress.total_score == 10


class TestWordGameCompletion:
    """Word game awards a fixed 10 points per completed level"""

    @pytest.fixture
    def word_repository(self, kv_store):
        return ProgressRepository(kv_store, get_game_catalog(WORD_GAME))

    @pytest.mark.asyncio
    async def test_fixed_points_and_sequential_unlock(self, word_repository, achievements, kv_store):
        first = await complete_level(word_repository, achievements, "child-1", 1, 1, 999, now=NOW)
        second = await complete_level(word_repository, achievements, "child-1", 1, 2, 0, now=NOW)

        assert first.level_unlocked == 2
        assert second.level_unlocked == 3
        assert second.progress.total_score == 20
        assert "WordGame:child-1" in kv_store.data

    @pytest.mark.asyncio
    async def test_replay_scores_again(self, word_repository, achievements):
        await complete_level(word_repository, achievements, "child-1", 1, 1, 0, now=NOW)
        replay = await complete_level(word_repository, achievements, "child-1", 1, 1, 0, now=NOW)

        assert replay.progress.total_score == 20
        assert replay.progress.completed_levels == frozenset({1})
        assert len(replay.progress.play_history) == 2

    @pytest.mark.asyncio
    async def test_skipping_ahead_rejected(self, word_repository, achievements):
        outcome = await complete_level(word_repository, achievements, "child-1", 1, 3, 10, now=NOW)
        assert outcome.accepted is False


class TestBuildCompletionEvents:
    """Events emitted for one completion"""

    def test_event_order(self, repository):
        progress = repository.default_progress("child-1")
        events = build_completion_events(progress, 1, 2, True, 20, level_max_score=20)

        assert [type(e) for e in events] == [
            LevelCompletedEvent,
            StageCompletedEvent,
            LevelPerfectClearEvent,
            ScoreUpdatedEvent,
            StatsUpdatedEvent,
        ]

    def test_no_optional_events(self, repository):
        progress = repository.default_progress("child-1")
        events = build_completion_events(progress, 1, 1, False, 10)
        assert [e.type for e in events] == ['level_completed', 'score_updated', 'stats_updated']


class TestRefreshStageUnlocks:
    @pytest.mark.asyncio
    async def test_opens_stage_after_score_change(self, repository):
        progress = repository.default_progress("child-1")
        progress = apply_level_completion(progress, 1, 1, 10, NOW).progress
        progress = apply_level_completion(progress, 1, 2, 10, NOW).progress
        await repository.save("child-1", progress.model_copy(update={'total_score': 150}))

        updated, unlocked = await refresh_stage_unlocks(repository, "child-1")

        assert unlocked == (2,)
        assert (await repository.load("child-1")).is_stage_unlocked(2) is True
        assert updated.is_stage_unlocked(2) is True

    @pytest.mark.asyncio
    async def test_nothing_to_open(self, repository, kv_store):
        updated, unlocked = await refresh_stage_unlocks(repository, "child-1")
        assert unlocked == ()
        assert kv_store.writes == 0
