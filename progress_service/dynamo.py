"""
DynamoDB operations for progress-service

Provides:
- DynamoDBClient: lazy boto3 resource + table handles
- DynamoKeyValueStore: get/set/remove of string values by key

Key-value table schema:
  PK: <gamePrefix>:<childId> or <field>_<childId>
  value: JSON string
  updatedAt: ISO timestamp
"""
import asyncio
import boto3
from botocore.exceptions import BotoCoreError, ClientError
from typing import Optional
from datetime import datetime, timezone
import logging

from progress_service.config import Settings, get_settings
from progress_service.exceptions import StorageError

logger = logging.getLogger(__name__)


class DynamoDBClient:
    """DynamoDB client with lazy initialization"""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self._dynamodb = None
        self._progress_table = None
        self._achievements_table = None

    @property
    def dynamodb(self):
        """Lazy initialization of DynamoDB resource"""
        if self._dynamodb is None:
            kwargs = {
                'region_name': self.settings.AWS_REGION,
            }

            # Only use endpoint_url for LocalStack
            if self.settings.DYNAMODB_ENDPOINT:
                kwargs['endpoint_url'] = self.settings.DYNAMODB_ENDPOINT

            # Explicit credentials only in LocalStack mode; on AWS boto3 uses the IAM role
            if self.settings.DYNAMODB_ENDPOINT and self.settings.AWS_ACCESS_KEY_ID:
                kwargs['aws_access_key_id'] = self.settings.AWS_ACCESS_KEY_ID
                kwargs['aws_secret_access_key'] = self.settings.AWS_SECRET_ACCESS_KEY
                logger.info("Using explicit AWS credentials (LocalStack mode)")
            else:
                logger.info("Using IAM role credentials (AWS mode)")

            self._dynamodb = boto3.resource('dynamodb', **kwargs)
        return self._dynamodb

    @property
    def progress_table(self):
        if self._progress_table is None:
            self._progress_table = self.dynamodb.Table(self.settings.DYNAMODB_PROGRESS_TABLE)
        return self._progress_table

    @property
    def achievements_table(self):
        if self._achievements_table is None:
            self._achievements_table = self.dynamodb.Table(self.settings.DYNAMODB_ACHIEVEMENTS_TABLE)
        return self._achievements_table


class DynamoKeyValueStore:
    """
    String key-value store on top of the progress table.

    Every boto failure is re-raised as StorageError so callers can fall back
    without catching unrelated exceptions. boto3 calls are blocking and run
    in a worker thread.
    """

    def __init__(self, db_client: DynamoDBClient):
        self.db_client = db_client

    async def get(self, key: str) -> Optional[str]:
        try:
            response = await asyncio.to_thread(self.db_client.progress_table.get_item, Key={'PK': key})
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"get {key} failed: {e}") from e

        item = response.get('Item')
        if not item:
            return None
        return item.get('value')

    async def set(self, key: str, value: str) -> None:
        try:
            await asyncio.to_thread(
                self.db_client.progress_table.put_item,
                Item={
                    'PK': key,
                    'value': value,
                    'updatedAt': datetime.now(timezone.utc).isoformat(),
                }
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"set {key} failed: {e}") from e
        logger.debug(f"Stored {len(value)} bytes under {key}")

    async def remove(self, key: str) -> None:
        try:
            await asyncio.to_thread(self.db_client.progress_table.delete_item, Key={'PK': key})
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"remove {key} failed: {e}") from e
