"""
Module: dynamodb.py
Description: DynamoDB client for saved image records.

Provides async operations for creating, listing and deleting records
owned by a single user. Records are keyed by (id, created_at) and found
per owner through a global secondary index on (owner_id, created_at).

Key Components:
- RecordStore: Main client class for record operations
- create(): Store a new record for an owner
- list(): Newest-first records of one owner, bounded by a limit
- delete_by_owner_and_url(): Resolve a record by URL, then delete it
- get() / delete(): Owner-checked access by record id
- Error handling: botocore failures are logged and raised as StoreError

Dependencies: boto3, botocore, datetime, typing
Author: Gallery Gateway Team
"""

from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from gallery_gateway.models.record import SavedRecord
from gallery_gateway.utils.errors import NotFoundError, StoreError
from gallery_gateway.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_OWNER_INDEX = "UserIndex"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _require_non_empty(name: str, value: Any) -> str:
    if not value or not isinstance(value, str) or not value.strip():
        raise ValueError(f"{name} must be a non-empty string")
    return value.strip()


class RecordStore:
    """
    DynamoDB client for saved image records.

    Every operation is scoped to an owner id taken from a verified token;
    a record belonging to another owner is reported as not found.

    Attributes:
        table_name: Name of the DynamoDB records table
        owner_index: Name of the (owner_id, created_at) GSI
        dynamodb: boto3 DynamoDB resource
        table: boto3 DynamoDB table resource

    Example:
        >>> store = RecordStore(table_name="gallery-saved-images")
        >>> record = await store.create("user-123", "https://images.dog.ceo/breeds/pug/1.jpg")
        >>> records = await store.list("user-123", limit=10)
    """

    def __init__(
        self,
        table_name: str,
        owner_index: str = DEFAULT_OWNER_INDEX,
        region_name: Optional[str] = None,
        timeout_seconds: float = 5.0,
        clock: Callable[[], datetime] = _utc_now
    ):
        """
        Initialize the record store.

        Args:
            table_name: Name of the DynamoDB records table
            owner_index: Name of the owner GSI
            region_name: AWS region (boto3 default chain when None)
            timeout_seconds: Connect and read timeout for each call
            clock: Source of creation timestamps

        Raises:
            ValueError: If table_name is empty or invalid
        """
        if not table_name or not isinstance(table_name, str):
            raise ValueError("table_name must be a non-empty string")

        self.table_name = table_name
        self.owner_index = owner_index
        self._clock = clock

        # Single attempt: retry policy belongs to the caller.
        config = Config(
            connect_timeout=timeout_seconds,
            read_timeout=timeout_seconds,
            retries={"total_max_attempts": 1, "mode": "standard"}
        )
        self.dynamodb = boto3.resource('dynamodb', region_name=region_name, config=config)
        self.table = self.dynamodb.Table(table_name)

        logger.info(
            "DynamoDB record store initialized",
            table_name=table_name,
            owner_index=owner_index
        )

    async def create(self, owner_id: str, image_url: str) -> SavedRecord:
        """
        Store a new record for owner_id.

        The category is derived from image_url and falls back to
        'unknown'. Saving the same URL twice creates two records.

        Args:
            owner_id: Verified subject of the caller
            image_url: URL of the image to save

        Returns:
            The stored SavedRecord

        Raises:
            ValueError: If owner_id or image_url is empty
            StoreError: If the DynamoDB write fails
        """
        owner_id = _require_non_empty("owner_id", owner_id)
        image_url = _require_non_empty("image_url", image_url)

        record = SavedRecord.new(owner_id, image_url, now=self._clock())

        try:
            self.table.put_item(
                Item=record.to_item(),
                ConditionExpression='attribute_not_exists(#id)',
                ExpressionAttributeNames={'#id': 'id'}
            )
        except (ClientError, BotoCoreError) as e:
            raise self._store_error("Failed to store record", e, owner_id=owner_id, record_id=record.id)

        logger.info(
            "Record stored in DynamoDB",
            record_id=record.id,
            owner_id=owner_id,
            category=record.category,
            table_name=self.table_name
        )
        return record

    async def list(self, owner_id: str, limit: int) -> List[SavedRecord]:
        """
        Return the owner's records, newest first.

        Each call is an independent bounded query; there is no cursor
        across calls.

        Args:
            owner_id: Verified subject of the caller
            limit: Maximum number of records (>= 1)

        Returns:
            Up to limit records ordered by created_at descending

        Raises:
            ValueError: If owner_id is empty or limit < 1
            StoreError: If the DynamoDB query fails
        """
        owner_id = _require_non_empty("owner_id", owner_id)
        if not isinstance(limit, int) or isinstance(limit, bool) or limit < 1:
            raise ValueError("limit must be a positive integer")

        records: List[SavedRecord] = []
        query_kwargs: Dict[str, Any] = {
            'IndexName': self.owner_index,
            'KeyConditionExpression': '#owner_id = :owner_id',
            'ExpressionAttributeNames': {'#owner_id': 'owner_id'},
            'ExpressionAttributeValues': {':owner_id': owner_id},
            'ScanIndexForward': False,
        }

        try:
            while len(records) < limit:
                response = self.table.query(Limit=limit - len(records), **query_kwargs)
                records.extend(SavedRecord.from_item(item) for item in response.get('Items', []))

                last_key = response.get('LastEvaluatedKey')
                if not last_key:
                    break
                query_kwargs['ExclusiveStartKey'] = last_key

        except (ClientError, BotoCoreError) as e:
            raise self._store_error("Failed to list records", e, owner_id=owner_id, limit=limit)

        logger.info(
            "Records listed from DynamoDB",
            owner_id=owner_id,
            limit=limit,
            count=len(records),
            table_name=self.table_name
        )
        return records[:limit]

    async def find_by_owner_and_url(self, owner_id: str, image_url: str) -> Optional[SavedRecord]:
        """
        Find the newest record of owner_id with exactly image_url.

        Pages through the owner index newest first; the URL filter is
        applied by DynamoDB after each page is read.

        Returns:
            Matching record, or None
        """
        owner_id = _require_non_empty("owner_id", owner_id)
        image_url = _require_non_empty("image_url", image_url)

        query_kwargs: Dict[str, Any] = {
            'IndexName': self.owner_index,
            'KeyConditionExpression': '#owner_id = :owner_id',
            'FilterExpression': '#image_url = :image_url',
            'ExpressionAttributeNames': {
                '#owner_id': 'owner_id',
                '#image_url': 'image_url'
            },
            'ExpressionAttributeValues': {
                ':owner_id': owner_id,
                ':image_url': image_url
            },
            'ScanIndexForward': False,
        }

        try:
            while True:
                response = self.table.query(**query_kwargs)
                items = response.get('Items', [])
                if items:
                    return SavedRecord.from_item(items[0])

                last_key = response.get('LastEvaluatedKey')
                if not last_key:
                    return None
                query_kwargs['ExclusiveStartKey'] = last_key

        except (ClientError, BotoCoreError) as e:
            raise self._store_error("Failed to look up record by URL", e, owner_id=owner_id)

    async def delete_by_owner_and_url(self, owner_id: str, image_url: str) -> str:
        """
        Delete the owner's record with the given URL.

        When several records share the URL, only the newest is deleted.

        Args:
            owner_id: Verified subject of the caller
            image_url: Exact URL of the record to delete

        Returns:
            Id of the deleted record

        Raises:
            NotFoundError: If the owner has no record with that URL
            StoreError: If a DynamoDB call fails
        """
        record = await self.find_by_owner_and_url(owner_id, image_url)
        if record is None:
            logger.info(
                "No record to delete for URL",
                owner_id=owner_id,
                image_url=image_url,
                table_name=self.table_name
            )
            raise NotFoundError("Image not found")

        return await self._delete_record(record)

    async def get(self, owner_id: str, record_id: str) -> SavedRecord:
        """
        Retrieve one of the owner's records by id.

        Raises:
            NotFoundError: If the id does not exist or belongs to another owner
            StoreError: If the DynamoDB query fails
        """
        owner_id = _require_non_empty("owner_id", owner_id)
        record_id = _require_non_empty("record_id", record_id)

        try:
            response = self.table.query(
                KeyConditionExpression='#id = :id',
                ExpressionAttributeNames={'#id': 'id'},
                ExpressionAttributeValues={':id': record_id},
                Limit=1
            )
        except (ClientError, BotoCoreError) as e:
            raise self._store_error("Failed to retrieve record", e, owner_id=owner_id, record_id=record_id)

        items = response.get('Items', [])
        if not items or items[0].get('owner_id') != owner_id:
            logger.warning(
                "Record not found for owner",
                owner_id=owner_id,
                record_id=record_id,
                table_name=self.table_name
            )
            raise NotFoundError()

        return SavedRecord.from_item(items[0])

    async def delete(self, owner_id: str, record_id: str) -> str:
        """
        Delete one of the owner's records by id.

        Returns:
            Id of the deleted record

        Raises:
            NotFoundError: If the id does not exist or belongs to another owner
            StoreError: If a DynamoDB call fails
        """
        record = await self.get(owner_id, record_id)
        return await self._delete_record(record)

    async def _delete_record(self, record: SavedRecord) -> str:
        try:
            self.table.delete_item(
                Key={'id': record.id, 'created_at': record.created_at},
                ConditionExpression='attribute_exists(#id)',
                ExpressionAttributeNames={'#id': 'id'}
            )
        except ClientError as e:
            if e.response['Error']['Code'] == 'ConditionalCheckFailedException':
                # Deleted concurrently between lookup and delete.
                raise NotFoundError()
            raise self._store_error("Failed to delete record", e, owner_id=record.owner_id, record_id=record.id)
        except BotoCoreError as e:
            raise self._store_error("Failed to delete record", e, owner_id=record.owner_id, record_id=record.id)

        logger.info(
            "Record deleted from DynamoDB",
            record_id=record.id,
            owner_id=record.owner_id,
            table_name=self.table_name
        )
        return record.id

    def _store_error(self, message: str, error: Exception, **context: Any) -> StoreError:
        if isinstance(error, ClientError):
            context['error_code'] = error.response['Error']['Code']
            context['error_message'] = error.response['Error']['Message']
        else:
            context['error'] = str(error)
            context['error_type'] = type(error).__name__

        logger.error(
            message,
            table_name=self.table_name,
            **context
        )
        return StoreError()
