"""
Module: test_dynamodb.py
Description: Unit tests for the DynamoDB record store.

Tests RecordStore create/list/delete operations against a moto-mocked
table, including owner isolation, ordering, the duplicate-URL delete
rule and error translation.
"""

from unittest.mock import patch

import pytest
from botocore.exceptions import ClientError, ReadTimeoutError

from gallery_gateway.models.record import SavedRecord
from gallery_gateway.storage.dynamodb import RecordStore
from gallery_gateway.utils.errors import NotFoundError, StoreError

from tests.conftest import TEST_TABLE_NAME

PUG_URL = "https://images.dog.ceo/breeds/pug/n02110958_1975.jpg"
HOUND_URL = "https://images.dog.ceo/breeds/hound-afghan/n02088094_1003.jpg"


def _client_error(operation: str) -> ClientError:
    return ClientError(
        error_response={'Error': {'Code': 'ServiceUnavailable', 'Message': 'Test error'}},
        operation_name=operation
    )


class TestRecordStoreInit:
    """Test cases for RecordStore construction."""

    def test_client_initialization(self, records_table):
        store = RecordStore(table_name=TEST_TABLE_NAME, region_name='us-east-1')

        assert store.table_name == TEST_TABLE_NAME
        assert store.owner_index == "UserIndex"
        assert hasattr(store, 'dynamodb')
        assert hasattr(store, 'table')

    def test_client_initialization_invalid_table_name(self):
        with pytest.raises(ValueError, match="table_name must be a non-empty string"):
            RecordStore(table_name="")

        with pytest.raises(ValueError, match="table_name must be a non-empty string"):
            RecordStore(table_name=None)


class TestCreate:
    """Test cases for RecordStore.create()."""

    @pytest.mark.asyncio
    async def test_create_stores_item(self, record_store, records_table):
        record = await record_store.create("user-123", HOUND_URL)

        response = records_table.get_item(Key={'id': record.id, 'created_at': record.created_at})
        item = response['Item']
        assert item['owner_id'] == "user-123"
        assert item['image_url'] == HOUND_URL
        assert item['category'] == "hound afghan"
        assert item['description'] == "A hound afghan dog"
        assert item['created_at'].endswith('Z')

    @pytest.mark.asyncio
    async def test_create_is_not_idempotent(self, record_store):
        first = await record_store.create("user-123", PUG_URL)
        second = await record_store.create("user-123", PUG_URL)

        assert first.id != second.id
        assert len(await record_store.list("user-123", 10)) == 2

    @pytest.mark.asyncio
    async def test_create_with_unparseable_url_uses_unknown_category(self, record_store):
        record = await record_store.create("user-123", "https://example.com/dog.jpg")
        assert record.category == "unknown"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("owner_id, image_url", [
        ("", PUG_URL),
        ("   ", PUG_URL),
        (None, PUG_URL),
        ("user-123", ""),
    ])
    async def test_create_invalid_arguments(self, record_store, owner_id, image_url):
        with pytest.raises(ValueError):
            await record_store.create(owner_id, image_url)

    @pytest.mark.asyncio
    async def test_create_dynamodb_error(self, record_store):
        with patch.object(record_store.table, 'put_item', side_effect=_client_error('PutItem')):
            with pytest.raises(StoreError):
                await record_store.create("user-123", PUG_URL)

    @pytest.mark.asyncio
    async def test_create_timeout(self, record_store):
        timeout = ReadTimeoutError(endpoint_url="https://dynamodb.us-east-1.amazonaws.com")
        with patch.object(record_store.table, 'put_item', side_effect=timeout):
            with pytest.raises(StoreError):
                await record_store.create("user-123", PUG_URL)


class TestList:
    """Test cases for RecordStore.list()."""

    @pytest.mark.asyncio
    async def test_list_newest_first(self, record_store):
        first = await record_store.create("user-123", PUG_URL)
        second = await record_store.create("user-123", HOUND_URL)
        third = await record_store.create("user-123", PUG_URL)

        records = await record_store.list("user-123", 10)

        assert [r.id for r in records] == [third.id, second.id, first.id]
        assert all(isinstance(r, SavedRecord) for r in records)

    @pytest.mark.asyncio
    async def test_list_respects_limit(self, record_store):
        for _ in range(5):
            await record_store.create("user-123", PUG_URL)

        records = await record_store.list("user-123", 2)

        assert len(records) == 2

    @pytest.mark.asyncio
    async def test_list_is_scoped_to_owner(self, record_store):
        mine = await record_store.create("user-123", PUG_URL)
        await record_store.create("user-456", HOUND_URL)

        records = await record_store.list("user-123", 10)
        others = await record_store.list("user-789", 10)

        assert [r.id for r in records] == [mine.id]
        assert others == []

    @pytest.mark.asyncio
    async def test_created_record_is_listed_for_any_positive_limit(self, record_store):
        record = await record_store.create("user-123", PUG_URL)

        for limit in (1, 2, 50):
            assert record.id in [r.id for r in await record_store.list("user-123", limit)]
        assert record.id not in [r.id for r in await record_store.list("user-456", 50)]

    @pytest.mark.asyncio
    async def test_list_is_repeatable(self, record_store):
        for url in (PUG_URL, HOUND_URL, PUG_URL):
            await record_store.create("user-123", url)

        first = await record_store.list("user-123", 2)
        second = await record_store.list("user-123", 2)

        assert first == second

    @pytest.mark.asyncio
    @pytest.mark.parametrize("limit", [0, -1, True, "10"])
    async def test_list_invalid_limit(self, record_store, limit):
        with pytest.raises(ValueError, match="limit must be a positive integer"):
            await record_store.list("user-123", limit)

    @pytest.mark.asyncio
    async def test_list_dynamodb_error(self, record_store):
        with patch.object(record_store.table, 'query', side_effect=_client_error('Query')):
            with pytest.raises(StoreError):
                await record_store.list("user-123", 10)


class TestDeleteByOwnerAndUrl:
    """Test cases for RecordStore.delete_by_owner_and_url()."""

    @pytest.mark.asyncio
    async def test_delete_removes_record(self, record_store):
        record = await record_store.create("user-123", PUG_URL)
        await record_store.create("user-123", HOUND_URL)

        deleted_id = await record_store.delete_by_owner_and_url("user-123", PUG_URL)

        assert deleted_id == record.id
        remaining = await record_store.list("user-123", 10)
        assert PUG_URL not in [r.image_url for r in remaining]
        assert len(remaining) == 1

    @pytest.mark.asyncio
    async def test_delete_missing_url(self, record_store):
        await record_store.create("user-123", PUG_URL)

        with pytest.raises(NotFoundError):
            await record_store.delete_by_owner_and_url("user-123", HOUND_URL)

    @pytest.mark.asyncio
    async def test_delete_other_owners_url_is_not_found(self, record_store):
        await record_store.create("user-456", PUG_URL)

        with pytest.raises(NotFoundError):
            await record_store.delete_by_owner_and_url("user-123", PUG_URL)

        assert len(await record_store.list("user-456", 10)) == 1

    @pytest.mark.asyncio
    async def test_duplicate_urls_delete_newest_first(self, record_store):
        older = await record_store.create("user-123", PUG_URL)
        newer = await record_store.create("user-123", PUG_URL)

        assert await record_store.delete_by_owner_and_url("user-123", PUG_URL) == newer.id
        assert [r.id for r in await record_store.list("user-123", 10)] == [older.id]

        assert await record_store.delete_by_owner_and_url("user-123", PUG_URL) == older.id
        assert await record_store.list("user-123", 10) == []

    @pytest.mark.asyncio
    async def test_lookup_follows_pagination(self, record_store):
        target = await record_store.create("user-123", PUG_URL)
        await record_store.create("user-123", HOUND_URL)

        real_query = record_store.table.query
        calls = []

        def paged_query(**kwargs):
            # One item per page
            calls.append(kwargs.get("ExclusiveStartKey"))
            return real_query(Limit=1, **kwargs)

        with patch.object(record_store.table, 'query', side_effect=paged_query):
            found = await record_store.find_by_owner_and_url("user-123", PUG_URL)

        assert found.id == target.id
        assert calls[0] is None

    @pytest.mark.asyncio
    async def test_delete_dynamodb_error(self, record_store):
        await record_store.create("user-123", PUG_URL)

        with patch.object(record_store.table, 'delete_item', side_effect=_client_error('DeleteItem')):
            with pytest.raises(StoreError):
                await record_store.delete_by_owner_and_url("user-123", PUG_URL)

    @pytest.mark.asyncio
    async def test_concurrent_delete_reports_not_found(self, record_store):
        await record_store.create("user-123", PUG_URL)
        conditional = ClientError(
            error_response={'Error': {'Code': 'ConditionalCheckFailedException', 'Message': 'gone'}},
            operation_name='DeleteItem'
        )

        with patch.object(record_store.table, 'delete_item', side_effect=conditional):
            with pytest.raises(NotFoundError):
                await record_store.delete_by_owner_and_url("user-123", PUG_URL)


class TestGetAndDeleteById:
    """Test cases for owner-checked access by record id."""

    @pytest.mark.asyncio
    async def test_get_own_record(self, record_store):
        record = await record_store.create("user-123", PUG_URL)

        assert await record_store.get("user-123", record.id) == record

    @pytest.mark.asyncio
    async def test_get_other_owners_record_is_not_found(self, record_store):
        record = await record_store.create("user-456", PUG_URL)

        with pytest.raises(NotFoundError):
            await record_store.get("user-123", record.id)

    @pytest.mark.asyncio
    async def test_delete_by_id(self, record_store):
        record = await record_store.create("user-123", PUG_URL)

        assert await record_store.delete("user-123", record.id) == record.id
        assert await record_store.list("user-123", 10) == []

    @pytest.mark.asyncio
    async def test_delete_by_id_other_owner(self, record_store):
        record = await record_store.create("user-456", PUG_URL)

        with pytest.raises(NotFoundError):
            await record_store.delete("user-123", record.id)

        assert len(await record_store.list("user-456", 10)) == 1

    @pytest.mark.asyncio
    async def test_delete_unknown_id(self, record_store):
        with pytest.raises(NotFoundError):
            await record_store.delete("user-123", "does-not-exist")
