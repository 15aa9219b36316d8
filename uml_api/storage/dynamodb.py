"""DynamoDB document store implementation."""

import asyncio
import json
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from decimal import Decimal
from typing import Any
from urllib.parse import urlparse

import boto3
from boto3.dynamodb.conditions import Attr
from boto3.dynamodb.types import TypeSerializer
from botocore.exceptions import ClientError
from loguru import logger

from ..exceptions import DiagramStoreError, TransactionConflictError

# DynamoDB rejects larger transactions
MAX_TRANSACTION_ITEMS = 100

_serializer = TypeSerializer()


def _to_dynamo(value: Any) -> Any:
    """Convert plain JSON data into DynamoDB-safe types (floats become Decimal)."""
    return json.loads(json.dumps(value), parse_float=Decimal)


def _from_dynamo(value: Any) -> Any:
    """Convert DynamoDB values back to plain Python types."""
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, dict):
        return {k: _from_dynamo(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_from_dynamo(v) for v in value]
    return value


def _attr_values(values: dict[str, Any]) -> dict[str, Any]:
    return {name: _serializer.serialize(_to_dynamo(v)) for name, v in values.items()}


class DynamoDBTransaction:
    """Optimistic transaction: reads record versions, commit checks them."""

    def __init__(self, store: "DynamoDBDiagramStore") -> None:
        self.store = store
        self.versions: dict[tuple[str, str], int | None] = {}
        self.writes: list[tuple[str, str, str, dict[str, Any] | None]] = []

    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        key = self.store.key(collection, doc_id)
        response = await self.store.run(
            lambda: self.store.table.get_item(Key=key, ConsistentRead=True)
        )
        item = response.get("Item")
        self.versions[(collection, doc_id)] = int(item["version"]) if item else None
        return _from_dynamo(item["data"]) if item else None

    def set(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        self.writes.append(("set", collection, doc_id, dict(data)))

    def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        self.writes.append(("update", collection, doc_id, dict(fields)))

    def delete(self, collection: str, doc_id: str) -> None:
        self.writes.append(("delete", collection, doc_id, None))

    def new_id(self) -> str:
        return uuid.uuid4().hex

    def _condition(
        self, collection: str, doc_id: str, names: dict[str, str], values: dict[str, Any]
    ) -> str | None:
        if (collection, doc_id) not in self.versions:
            return None
        version = self.versions[(collection, doc_id)]
        if version is None:
            return "attribute_not_exists(pk)"
        names["#version"] = "version"
        values[":expected"] = version
        return "#version = :expected"

    def transact_items(self) -> list[dict[str, Any]]:
        """Build the ``TransactItems`` for the buffered writes."""
        table_name = self.store.table_name
        items: list[dict[str, Any]] = []
        written = set()

        for op, collection, doc_id, data in self.writes:
            written.add((collection, doc_id))
            key = _attr_values(self.store.key(collection, doc_id))
            names: dict[str, str] = {}
            values: dict[str, Any] = {}
            condition = self._condition(collection, doc_id, names, values)
            version = self.versions.get((collection, doc_id)) or 0

            if op == "set":
                item = {**self.store.key(collection, doc_id), "data": data, "version": version + 1}
                entry: dict[str, Any] = {"TableName": table_name, "Item": _attr_values(item)}
                kind = "Put"
            elif op == "update":
                names.update({"#data": "data", "#version": "version"})
                assignments = []
                for index, (field, value) in enumerate((data or {}).items()):
                    names[f"#f{index}"] = field
                    values[f":v{index}"] = value
                    assignments.append(f"#data.#f{index} = :v{index}")
                values[":one"] = 1
                entry = {
                    "TableName": table_name,
                    "Key": key,
                    "UpdateExpression": f"SET {', '.join(assignments)} ADD #version :one",
                }
                condition = " AND ".join(filter(None, ["attribute_exists(pk)", condition]))
                kind = "Update"
            else:
                entry = {"TableName": table_name, "Key": key}
                kind = "Delete"

            if condition:
                entry["ConditionExpression"] = condition
            if names:
                entry["ExpressionAttributeNames"] = names
            if values:
                entry["ExpressionAttributeValues"] = _attr_values(values)
            items.append({kind: entry})

        # Documents that were only read must still be unchanged at commit time.
        for (collection, doc_id), version in self.versions.items():
            if (collection, doc_id) in written:
                continue
            names, values = {}, {}
            condition = self._condition(collection, doc_id, names, values)
            entry = {
                "TableName": table_name,
                "Key": _attr_values(self.store.key(collection, doc_id)),
                "ConditionExpression": condition,
            }
            if names:
                entry["ExpressionAttributeNames"] = names
            if values:
                entry["ExpressionAttributeValues"] = _attr_values(values)
            items.append({"ConditionCheck": entry})

        return items

    async def commit(self) -> None:
        """Write all buffered changes in one ``TransactWriteItems`` call."""
        if not self.writes:
            return

        items = self.transact_items()
        if len(items) > MAX_TRANSACTION_ITEMS:
            raise DiagramStoreError(
                f"Transaction touches {len(items)} documents (limit {MAX_TRANSACTION_ITEMS})"
            )

        try:
            await self.store.run(lambda: self.store.client.transact_write_items(TransactItems=items))
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") == "TransactionCanceledException":
                raise TransactionConflictError(f"Transaction cancelled: {e}") from e
            raise


class DynamoDBDiagramStore:
    """DynamoDB document store implementation."""

    def __init__(self, database_url: str):
        """Initialize DynamoDB document store.

        Args:
            database_url: DynamoDB URL in format: dynamodb://table_name?region=us-east-1
        """
        parsed = urlparse(database_url)
        self.table_name = parsed.netloc or parsed.path.lstrip("/")
        self.region = None

        # Parse region from query string
        if parsed.query:
            for param in parsed.query.split("&"):
                if param.startswith("region="):
                    self.region = param.split("=")[1]

        self.client = None
        self.table = None

    @staticmethod
    def key(collection: str, doc_id: str) -> dict[str, str]:
        return {"pk": f"{collection}#{doc_id}", "sk": "doc"}

    async def run(self, call: Any) -> Any:
        """Run a blocking boto3 call in the default executor."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, call)

    async def startup(self) -> None:
        """Initialize DynamoDB clients."""
        resource = boto3.resource("dynamodb", region_name=self.region)
        self.table = resource.Table(self.table_name)
        self.client = boto3.client("dynamodb", region_name=self.region)
        logger.info(f"Connected to DynamoDB table: {self.table_name} in {self.region}")

    async def shutdown(self) -> None:
        """No cleanup needed for DynamoDB."""

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[DynamoDBTransaction]:
        """Open an optimistic transaction; writes commit when the block exits cleanly."""
        tx = DynamoDBTransaction(self)
        yield tx
        await tx.commit()

    async def list_documents(self, collection: str) -> list[tuple[str, dict[str, Any]]]:
        """Return every document in a collection.

        Args:
            collection: Collection name.

        Returns:
            List of ``(id, document)`` pairs.
        """
        prefix = f"{collection}#"

        def _scan() -> list[dict[str, Any]]:
            items: list[dict[str, Any]] = []
            kwargs: dict[str, Any] = {"FilterExpression": Attr("pk").begins_with(prefix)}
            while True:
                response = self.table.scan(**kwargs)
                items.extend(response.get("Items", []))
                if "LastEvaluatedKey" not in response:
                    return items
                kwargs["ExclusiveStartKey"] = response["LastEvaluatedKey"]

        items = await self.run(_scan)
        return [(item["pk"][len(prefix) :], _from_dynamo(item["data"])) for item in items]

    async def health_check(self) -> bool:
        """Check if DynamoDB is accessible.

        Returns:
            True if DynamoDB is healthy, False otherwise.
        """
        try:
            await self.run(lambda: self.table.table_status)
            return True
        except (AttributeError, RuntimeError, ClientError) as e:
            logger.warning(f"DynamoDB health check failed: {e}")
            return False
