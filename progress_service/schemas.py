"""
Progress Schemas (Pydantic)

DESIGN:
- Every model is frozen; transforms return new instances via model_copy
- Sets are frozensets and serialize sorted so stored JSON is stable
- Stored records embed child_id so a load can reject another child's data
"""

from pydantic import BaseModel, ConfigDict, Field, field_serializer
from typing import Optional, Dict, List, Tuple, FrozenSet
from datetime import datetime


# ============================================================================
# Stage / Level Schemas
# ============================================================================

class Level(BaseModel):
    """Smallest unlockable unit of content inside a stage"""
    model_config = ConfigDict(frozen=True)

    id: int
    title: str = ""
    is_locked: bool = True
    word_count: int = Field(default=0, ge=0, description="Learning items (words/numbers) in the level")


class Stage(BaseModel):
    """Themed group of sequential levels"""
    model_config = ConfigDict(frozen=True)

    id: int
    title: str = ""
    description: str = ""
    required_score: int = Field(default=0, ge=0, description="Total score needed to unlock this stage")
    is_locked: bool = True
    levels: Tuple[Level, ...] = ()

    def get_level(self, level_id: int) -> Optional[Level]:
        return next((level for level in self.levels if level.id == level_id), None)

    @property
    def level_ids(self) -> List[int]:
        return [level.id for level in self.levels]


# ============================================================================
# Statistics
# ============================================================================

class UserStats(BaseModel):
    """Cumulative learning statistics for one child in one game"""
    model_config = ConfigDict(frozen=True)

    total_words: int = Field(default=0, ge=0)
    correct_answers: int = Field(default=0, ge=0)
    wrong_answers: int = Field(default=0, ge=0)
    last_played: Optional[datetime] = None
    streak_days: int = Field(default=0, ge=0)


class PlayRecord(BaseModel):
    """One entry of the play history"""
    model_config = ConfigDict(frozen=True)

    date: datetime
    level_id: Optional[int] = None
    stage_id: Optional[int] = None
    score: int = 0


# ============================================================================
# Child Progress
# ============================================================================

class ChildProgress(BaseModel):
    """
    Persisted progress of one child through one game.

    completed_levels / completed_stages only grow; the only way to shrink
    them is a full reset through the repository.
    """
    model_config = ConfigDict(frozen=True)

    child_id: str
    game_key: str
    total_score: int = Field(default=0, ge=0)
    completed_levels: FrozenSet[int] = frozenset()
    completed_stages: FrozenSet[int] = frozenset()
    stages: Tuple[Stage, ...] = ()
    user_stats: UserStats = Field(default_factory=UserStats)
    last_played_level: Dict[int, int] = Field(default_factory=dict, description="stage id -> level number")
    play_history: Tuple[PlayRecord, ...] = ()

    @field_serializer('completed_levels', 'completed_stages')
    def _serialize_id_set(self, value: FrozenSet[int]) -> List[int]:
        return sorted(value)

    def get_stage(self, stage_id: int) -> Optional[Stage]:
        return next((stage for stage in self.stages if stage.id == stage_id), None)

    def is_stage_unlocked(self, stage_id: int) -> bool:
        stage = self.get_stage(stage_id)
        return stage is not None and not stage.is_locked
