"""
Level Completion Schemas (Pydantic) - HTTP request/response bodies
"""

from pydantic import BaseModel, Field
from typing import List, Optional

from progress_service.schemas import ChildProgress
from progress_service.schemas_achievements import AchievementDefinition


class LevelCompletionRequest(BaseModel):
    """Sent by a game screen when a level is finished"""
    stage_id: int
    level_id: int
    level_score: int = Field(..., ge=0, description="Points scored in this level")
    level_max_score: Optional[int] = Field(default=None, ge=0, description="Maximum points of the level quiz")
    correct_answers: int = Field(default=0, ge=0)
    wrong_answers: int = Field(default=0, ge=0)
    words_learned: Optional[int] = Field(default=None, ge=0, description="Defaults to the level word count on first completion")


class LevelCompletionResponse(BaseModel):
    accepted: bool
    progress: ChildProgress
    newly_earned: List[AchievementDefinition]
    awarded_points: int
    level_unlocked: Optional[int] = None
    stage_completed: bool = False
    stages_unlocked: List[int] = Field(default_factory=list)


class ResetResponse(BaseModel):
    success: bool
    message: str
    achievements_removed: int = 0
