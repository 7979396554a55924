"""
Pytest configuration for progress-service tests
"""
from datetime import datetime, timezone
from typing import Dict, List, Optional

import boto3
import pytest
from moto import mock_aws

from progress_service.config import Settings
from progress_service.dynamo import DynamoDBClient
from progress_service.exceptions import CatalogError, StorageError
from progress_service.schemas_achievements import AchievementDefinition, AwardResult, ChildAchievement

PROGRESS_TABLE = "test-progress"
ACHIEVEMENTS_TABLE = "test-child-achievements"


# ============================================================================
# In-memory collaborators
# ============================================================================

class InMemoryKeyValueStore:
    """Dict-backed key-value store; failing=True makes every call raise StorageError"""

    def __init__(self, data: Optional[Dict[str, str]] = None):
        self.data = dict(data or {})
        self.failing = False
        self.writes = 0

    async def get(self, key: str) -> Optional[str]:
        if self.failing:
            raise StorageError("store offline")
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        if self.failing:
            raise StorageError("store offline")
        self.writes += 1
        self.data[key] = value

    async def remove(self, key: str) -> None:
        if self.failing:
            raise StorageError("store offline")
        self.data.pop(key, None)


class InMemoryAwardStore:
    """Award store enforcing uniqueness on (child_id, achievement_id)"""

    def __init__(self):
        self.awards: Dict[tuple, ChildAchievement] = {}
        self.failing = False
        self.attempts = 0

    async def get_child_achievements(self, child_id: str) -> List[ChildAchievement]:
        if self.failing:
            raise StorageError("awards offline")
        return [a for (owner, _), a in self.awards.items() if owner == child_id]

    async def award_achievement(self, child_id: str, achievement_id: str) -> AwardResult:
        self.attempts += 1
        if self.failing:
            raise StorageError("awards offline")

        existing = self.awards.get((child_id, achievement_id))
        if existing is not None:
            return AwardResult(achievement=existing, newly_earned=False)

        record = ChildAchievement(
            child_id=child_id,
            achievement_id=achievement_id,
            earned_at=datetime.now(timezone.utc),
        )
        self.awards[(child_id, achievement_id)] = record
        return AwardResult(achievement=record, newly_earned=True)

    async def remove_child_achievements(self, child_id: str) -> int:
        keys = [key for key in self.awards if key[0] == child_id]
        for key in keys:
            del self.awards[key]
        return len(keys)


class FakeCatalogClient:
    """Catalog client returning fixed definitions; available=False raises CatalogError"""

    def __init__(self, definitions: Optional[List[AchievementDefinition]] = None):
        self.definitions = list(definitions or [])
        self.available = True
        self.calls = 0

    async def fetch_achievement_definitions(self, game_key: Optional[str] = None) -> List[AchievementDefinition]:
        self.calls += 1
        if not self.available:
            raise CatalogError("catalog offline")
        if game_key:
            return [d for d in self.definitions if d.applies_to_game(game_key)]
        return list(self.definitions)


@pytest.fixture
def kv_store():
    return InMemoryKeyValueStore()


@pytest.fixture
def award_store():
    return InMemoryAwardStore()


@pytest.fixture
def catalog_client():
    return FakeCatalogClient()


# ============================================================================
# DynamoDB (moto)
# ============================================================================

@pytest.fixture
def aws_credentials(monkeypatch):
    """Mock AWS credentials for moto"""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        AWS_REGION="us-east-1",
        DYNAMODB_PROGRESS_TABLE=PROGRESS_TABLE,
        DYNAMODB_ACHIEVEMENTS_TABLE=ACHIEVEMENTS_TABLE,
    )


@pytest.fixture
def dynamodb_tables(aws_credentials):
    """Create mock DynamoDB tables"""
    with mock_aws():
        dynamodb = boto3.resource("dynamodb", region_name="us-east-1")

        dynamodb.create_table(
            TableName=PROGRESS_TABLE,
            KeySchema=[{"AttributeName": "PK", "KeyType": "HASH"}],
            AttributeDefinitions=[{"AttributeName": "PK", "AttributeType": "S"}],
            BillingMode="PAY_PER_REQUEST"
        )

        dynamodb.create_table(
            TableName=ACHIEVEMENTS_TABLE,
            KeySchema=[
                {"AttributeName": "PK", "KeyType": "HASH"},
                {"AttributeName": "SK", "KeyType": "RANGE"}
            ],
            AttributeDefinitions=[
                {"AttributeName": "PK", "AttributeType": "S"},
                {"AttributeName": "SK", "AttributeType": "S"}
            ],
            BillingMode="PAY_PER_REQUEST"
        )

        yield dynamodb


@pytest.fixture
def db_client(dynamodb_tables, test_settings) -> DynamoDBClient:
    return DynamoDBClient(test_settings)
