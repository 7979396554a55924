"""
Achievement Schemas (Pydantic)

DESIGN:
- activity_type stays a plain string (catalog rows may carry a game prefix)
- trigger_value is a threshold or a target id depending on activity_type
- Definitions without game_key apply to every game
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List, Union
from datetime import datetime


# ============================================================================
# Achievement Definition (remote catalog)
# ============================================================================

class AchievementDefinition(BaseModel):
    """One row of the achievement catalog"""
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: str
    name: str
    description: str = ""
    icon: str = Field(default="", alias="icon_name")
    activity_type: str = Field(..., description="Trigger kind, optionally prefixed by a game name")
    points: int = Field(default=0, ge=0)
    trigger_value: Optional[Union[int, float, str]] = None
    game_key: Optional[str] = None

    def applies_to_game(self, game_key: str) -> bool:
        """Generic definitions (no game_key) apply everywhere"""
        return not self.game_key or self.game_key == game_key


# ============================================================================
# Child Achievement (earned records)
# ============================================================================

class ChildAchievement(BaseModel):
    """Association of a child with an earned achievement"""
    model_config = ConfigDict(frozen=True)

    child_id: str
    achievement_id: str
    earned_at: datetime


class AwardResult(BaseModel):
    """Outcome of an award attempt; duplicates come back with newly_earned=False"""
    model_config = ConfigDict(frozen=True)

    achievement: ChildAchievement
    newly_earned: bool


# ============================================================================
# Summary Responses (parent views)
# ============================================================================

class AchievementWithStatus(AchievementDefinition):
    """Definition plus the child's earning status"""
    earned: bool = False
    earned_at: Optional[datetime] = None


class ChildAchievementsSummary(BaseModel):
    """Earned achievements with totals"""
    earned_achievements: List[AchievementWithStatus]
    total_earned: int
    total_available: int
    total_points: int
    progress_percentage: float
