"""DynamoDB key-value storage backend.

Table layout (``Posts`` by default):
- Partition key ``UserID`` (S), sort key ``PostID`` (S)
- Attributes ``Data`` (S), ``CreatedAt`` (S), ``UpdatedAt`` (S, ISO-8601)

Uses aioboto3 for async DynamoDB calls. ``read_all`` issues one Query per
page and follows ``LastEvaluatedKey`` lazily as the iterator advances.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import AsyncExitStack
from typing import TYPE_CHECKING, Any

from botocore.exceptions import BotoCoreError, ClientError
from opentelemetry.trace import NoOpTracer, Tracer
from pydantic import ValidationError

from crudapp.core.record import Record, next_update_time
from crudapp.storage.base import RecordIterator, Storage
from crudapp.storage.errors import BackendError, PostNotFoundError

if TYPE_CHECKING:
    import aioboto3

logger = logging.getLogger(__name__)

USER_ID_ATTRIBUTE = "UserID"
POST_ID_ATTRIBUTE = "PostID"
DATA_ATTRIBUTE = "Data"
CREATED_AT_ATTRIBUTE = "CreatedAt"
UPDATED_AT_ATTRIBUTE = "UpdatedAt"

_DRIVER_ERRORS = (BotoCoreError, ClientError)


def _key(user_id: str, post_id: str) -> dict[str, Any]:
    return {USER_ID_ATTRIBUTE: {"S": user_id}, POST_ID_ATTRIBUTE: {"S": post_id}}


def _to_item(record: Record) -> dict[str, Any]:
    return {
        **_key(record.user_id, record.post_id),
        DATA_ATTRIBUTE: {"S": record.data},
        CREATED_AT_ATTRIBUTE: {"S": record.created_at.isoformat()},
        UPDATED_AT_ATTRIBUTE: {"S": record.updated_at.isoformat()},
    }


def _from_item(item: dict[str, Any]) -> Record:
    try:
        return Record(
            user_id=item[USER_ID_ATTRIBUTE]["S"],
            post_id=item[POST_ID_ATTRIBUTE]["S"],
            data=item.get(DATA_ATTRIBUTE, {}).get("S", ""),
            created_at=item[CREATED_AT_ATTRIBUTE]["S"],
            updated_at=item[UPDATED_AT_ATTRIBUTE]["S"],
        )
    except (KeyError, ValidationError) as exc:
        raise BackendError("error unmarshalling item") from exc


def _is_error_code(exc: ClientError, code: str) -> bool:
    return bool(exc.response.get("Error", {}).get("Code") == code)


class DynamoRecordIterator(RecordIterator):
    """Iterates over paged Query results, owning the client it pages with."""

    def __init__(self, items: AsyncIterator[dict[str, Any]], stack: AsyncExitStack):
        self._items = items
        self._stack = stack
        self._item: dict[str, Any] | None = None

    async def next(self) -> bool:
        if self._closed:
            return False
        try:
            self._item = await anext(self._items)
        except StopAsyncIteration:
            self._item = None
        except _DRIVER_ERRORS as exc:
            raise BackendError("error reading all") from exc
        return self._item is not None

    def get(self) -> Record:
        if self._item is None:
            raise RuntimeError("get() called without a successful next()")
        return _from_item(self._item)

    async def _release(self) -> None:
        self._item = None
        aclose = getattr(self._items, "aclose", None)
        try:
            if aclose is not None:
                await aclose()
        finally:
            await self._stack.aclose()


class DynamoStorage(Storage):
    """DynamoDB-backed storage backend.

    Configuration via:
    - table_name: DynamoDB table name
    - region_name: AWS region
    - endpoint_url: For DynamoDB Local (e.g. http://localhost:8000)
    - credentials: via AWS SDK defaults
    """

    def __init__(
        self,
        table_name: str = "Posts",
        region_name: str = "us-west-2",
        endpoint_url: str | None = None,
        tracer: Tracer | None = None,
    ):
        self.table_name = table_name
        self.region_name = region_name
        self.endpoint_url = endpoint_url
        self.tracer = tracer or NoOpTracer()
        self._session: aioboto3.Session | None = None

    def _get_session(self) -> aioboto3.Session:
        """Get or create aioboto3 session."""
        if self._session is None:
            import aioboto3

            self._session = aioboto3.Session(region_name=self.region_name)
        return self._session

    def _client(self) -> Any:
        """Async context manager yielding a DynamoDB client."""
        return self._get_session().client("dynamodb", endpoint_url=self.endpoint_url)

    async def setup(self) -> None:
        """Create the table if it does not exist yet."""
        try:
            async with self._client() as client:
                try:
                    await client.describe_table(TableName=self.table_name)
                    return
                except ClientError as exc:
                    if not _is_error_code(exc, "ResourceNotFoundException"):
                        raise

                await client.create_table(
                    TableName=self.table_name,
                    KeySchema=[
                        {"AttributeName": USER_ID_ATTRIBUTE, "KeyType": "HASH"},
                        {"AttributeName": POST_ID_ATTRIBUTE, "KeyType": "RANGE"},
                    ],
                    AttributeDefinitions=[
                        {"AttributeName": USER_ID_ATTRIBUTE, "AttributeType": "S"},
                        {"AttributeName": POST_ID_ATTRIBUTE, "AttributeType": "S"},
                    ],
                    BillingMode="PAY_PER_REQUEST",
                )
                waiter = client.get_waiter("table_exists")
                await waiter.wait(TableName=self.table_name)
                logger.info(f"Created DynamoDB table {self.table_name}")
        except _DRIVER_ERRORS as exc:
            raise BackendError("error creating table") from exc

    async def health_check(self) -> bool:
        try:
            async with self._client() as client:
                await client.describe_table(TableName=self.table_name)
            return True
        except Exception:
            return False

    async def create(self, user_id: str, data: str) -> Record:
        with self.tracer.start_as_current_span("dynamodb.create"):
            record = Record.new(user_id, data)
            try:
                async with self._client() as client:
                    await client.put_item(TableName=self.table_name, Item=_to_item(record))
            except _DRIVER_ERRORS as exc:
                raise BackendError("error creating") from exc
            return record

    async def read(self, user_id: str, post_id: str) -> Record:
        with self.tracer.start_as_current_span("dynamodb.read"):
            try:
                async with self._client() as client:
                    result = await client.get_item(
                        TableName=self.table_name, Key=_key(user_id, post_id)
                    )
            except _DRIVER_ERRORS as exc:
                raise BackendError("error reading") from exc
            item = result.get("Item")
            if not item:
                raise PostNotFoundError(user_id, post_id)
            return _from_item(item)

    async def _query(self, client: Any, user_id: str) -> AsyncIterator[dict[str, Any]]:
        params: dict[str, Any] = {
            "TableName": self.table_name,
            "KeyConditionExpression": "#u = :u",
            "ExpressionAttributeNames": {"#u": USER_ID_ATTRIBUTE},
            "ExpressionAttributeValues": {":u": {"S": user_id}},
        }
        while True:
            page = await client.query(**params)
            for item in page.get("Items", []):
                yield item
            last_key = page.get("LastEvaluatedKey")
            if not last_key:
                return
            params["ExclusiveStartKey"] = last_key

    async def read_all(self, user_id: str) -> RecordIterator:
        with self.tracer.start_as_current_span("dynamodb.read_all"):
            stack = AsyncExitStack()
            try:
                client = await stack.enter_async_context(self._client())
            except _DRIVER_ERRORS as exc:
                await stack.aclose()
                raise BackendError("error reading all") from exc
            return DynamoRecordIterator(self._query(client, user_id), stack)

    async def update(self, user_id: str, post_id: str, data: str) -> Record:
        """Conditional update; a missing item fails the condition check."""
        with self.tracer.start_as_current_span("dynamodb.update"):
            current = await self.read(user_id, post_id)
            updated_at = next_update_time(current.updated_at)
            try:
                async with self._client() as client:
                    result = await client.update_item(
                        TableName=self.table_name,
                        Key=_key(user_id, post_id),
                        UpdateExpression="SET #d = :d, #ua = :ua",
                        ConditionExpression="attribute_exists(#p)",
                        ExpressionAttributeNames={
                            "#d": DATA_ATTRIBUTE,
                            "#ua": UPDATED_AT_ATTRIBUTE,
                            "#p": POST_ID_ATTRIBUTE,
                        },
                        ExpressionAttributeValues={
                            ":d": {"S": data},
                            ":ua": {"S": updated_at.isoformat()},
                        },
                        ReturnValues="ALL_NEW",
                    )
            except ClientError as exc:
                if _is_error_code(exc, "ConditionalCheckFailedException"):
                    raise PostNotFoundError(user_id, post_id) from exc
                raise BackendError("error updating") from exc
            except BotoCoreError as exc:
                raise BackendError("error updating") from exc
            return _from_item(result["Attributes"])

    async def delete(self, user_id: str, post_id: str) -> None:
        with self.tracer.start_as_current_span("dynamodb.delete"):
            try:
                async with self._client() as client:
                    await client.delete_item(
                        TableName=self.table_name, Key=_key(user_id, post_id)
                    )
            except _DRIVER_ERRORS as exc:
                raise BackendError("error deleting") from exc
