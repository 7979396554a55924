"""
Child Achievements - DynamoDB Operations

DESIGN PRINCIPLES:
1. Each earned achievement = separate item (PK/SK design), no arrays
2. Uniqueness enforced by a conditional PUT, not by read-then-write
3. A duplicate award returns the stored record instead of failing
"""

import asyncio
from datetime import datetime, timezone
from typing import List, Optional
from boto3.dynamodb.conditions import Key
from botocore.exceptions import BotoCoreError, ClientError
import logging

from progress_service.dynamo import DynamoDBClient
from progress_service.exceptions import StorageError
from progress_service.schemas_achievements import AwardResult, ChildAchievement

logger = logging.getLogger(__name__)


# ============================================================================
# DynamoDB Schema for child achievements
# ============================================================================
# Table: DYNAMODB_ACHIEVEMENTS_TABLE
#
# PK: CHILD#{childId}
# SK: ACHIEVEMENT#{achievementId}
#
# Attributes:
# - achievementId: str
# - earnedAt: str (ISO timestamp, UTC)
# ============================================================================

SK_PREFIX = "ACHIEVEMENT#"


def _pk(child_id: str) -> str:
    return f"CHILD#{child_id}"


def _sk(achievement_id: str) -> str:
    return f"{SK_PREFIX}{achievement_id}"


def _to_child_achievement(child_id: str, item: dict) -> ChildAchievement:
    return ChildAchievement(
        child_id=child_id,
        achievement_id=item['SK'][len(SK_PREFIX):],
        earned_at=item['earnedAt'],
    )


class DynamoAchievementStore:
    """Earned-achievement records for children"""

    def __init__(self, db_client: DynamoDBClient):
        self.db_client = db_client

    async def get_child_achievements(self, child_id: str) -> List[ChildAchievement]:
        """All achievements earned by a child"""
        try:
            response = await asyncio.to_thread(
                self.db_client.achievements_table.query,
                KeyConditionExpression=Key('PK').eq(_pk(child_id)) & Key('SK').begins_with(SK_PREFIX)
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Error getting achievements for child {child_id}: {e}") from e

        achievements = [_to_child_achievement(child_id, item) for item in response.get('Items', [])]
        logger.info(f"Retrieved {len(achievements)} achievements for child {child_id}")
        return achievements

    async def get_child_achievement(self, child_id: str, achievement_id: str) -> Optional[ChildAchievement]:
        try:
            response = await asyncio.to_thread(
                self.db_client.achievements_table.get_item,
                Key={'PK': _pk(child_id), 'SK': _sk(achievement_id)}
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Error checking achievement {achievement_id}: {e}") from e

        item = response.get('Item')
        return _to_child_achievement(child_id, item) if item else None

    async def award_achievement(self, child_id: str, achievement_id: str) -> AwardResult:
        """
        Record that a child earned an achievement.

        The conditional put makes the award idempotent: a second attempt hits
        ConditionalCheckFailedException and returns the existing record.
        """
        now = datetime.now(timezone.utc)
        try:
            await asyncio.to_thread(
                self.db_client.achievements_table.put_item,
                Item={
                    'PK': _pk(child_id),
                    'SK': _sk(achievement_id),
                    'achievementId': achievement_id,
                    'earnedAt': now.isoformat(),
                },
                ConditionExpression='attribute_not_exists(SK)',
            )
        except ClientError as e:
            if e.response.get('Error', {}).get('Code') != 'ConditionalCheckFailedException':
                raise StorageError(f"Error awarding achievement {achievement_id}: {e}") from e

            logger.info(f"Achievement {achievement_id} already earned by child {child_id}")
            existing = await self.get_child_achievement(child_id, achievement_id)
            if existing is None:
                raise StorageError(f"Achievement {achievement_id} reported duplicate but is missing") from e
            return AwardResult(achievement=existing, newly_earned=False)
        except BotoCoreError as e:
            raise StorageError(f"Error awarding achievement {achievement_id}: {e}") from e

        logger.info(f"Achievement {achievement_id} awarded to child {child_id}")
        return AwardResult(
            achievement=ChildAchievement(child_id=child_id, achievement_id=achievement_id, earned_at=now),
            newly_earned=True,
        )

    async def remove_child_achievements(self, child_id: str) -> int:
        """Delete every award of a child (profile removal). Returns the number deleted."""
        achievements = await self.get_child_achievements(child_id)
        keys = [{'PK': _pk(child_id), 'SK': _sk(a.achievement_id)} for a in achievements]
        try:
            await asyncio.to_thread(self._delete_keys, keys)
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Error removing achievements for child {child_id}: {e}") from e

        logger.info(f"Removed {len(achievements)} achievements for child {child_id}")
        return len(achievements)

    def _delete_keys(self, keys: List[dict]) -> None:
        with self.db_client.achievements_table.batch_writer() as batch:
            for key in keys:
                batch.delete_item(Key=key)
