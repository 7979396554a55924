"""
Game Event Schemas (Pydantic)

Events are transient notifications built by a game screen and handed to the
achievement engine. Each variant declares its own required fields and is
validated when constructed, so dispatch never sees a half-filled event.
"""

from typing import Annotated, Any, Dict, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from progress_service.schemas import UserStats


# Known game keys (events from other games are accepted; only these ship catalogs)
COUNTING_GAME = "counting_game"
LUGANDA_LEARNING_GAME = "luganda_learning_game"
WORD_GAME = "word_game"


class GameEventBase(BaseModel):
    """Fields shared by every event variant"""
    model_config = ConfigDict(frozen=True, extra="forbid")

    game_key: str = Field(..., min_length=1, description="Game that produced the event")


class LevelCompletedEvent(GameEventBase):
    type: Literal["level_completed"] = "level_completed"
    level_id: int
    stage_id: int


class StageCompletedEvent(GameEventBase):
    type: Literal["stage_completed"] = "stage_completed"
    stage_id: int


class LevelPerfectClearEvent(GameEventBase):
    type: Literal["level_perfect_clear"] = "level_perfect_clear"
    level_id: int
    current_level_score: int = Field(..., ge=0)
    current_level_max_score: int = Field(..., ge=0)


class ScoreUpdatedEvent(GameEventBase):
    type: Literal["score_updated"] = "score_updated"
    new_total_score: int = Field(..., ge=0)
    user_stats: UserStats


class StatsUpdatedEvent(GameEventBase):
    type: Literal["stats_updated"] = "stats_updated"
    user_stats: UserStats


GameEvent = Annotated[
    Union[
        LevelCompletedEvent,
        StageCompletedEvent,
        LevelPerfectClearEvent,
        ScoreUpdatedEvent,
        StatsUpdatedEvent,
    ],
    Field(discriminator="type"),
]

_game_event_adapter: TypeAdapter = TypeAdapter(GameEvent)


def parse_game_event(payload: Dict[str, Any]) -> GameEvent:
    """
    Build a typed event from a loose payload.

    Raises pydantic.ValidationError for an unknown type tag or missing fields.
    """
    return _game_event_adapter.validate_python(payload)
