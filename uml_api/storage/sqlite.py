"""SQLite document store implementation."""

import json
import sqlite3
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

import databases
import sqlalchemy as sa
from loguru import logger

from ..exceptions import TransactionConflictError


class SQLiteTransaction:
    """Transaction over the ``documents`` table with buffered writes."""

    def __init__(self, store: "SQLiteDiagramStore") -> None:
        self.store = store
        self.writes: list[tuple[str, str, str, dict[str, Any] | None]] = []

    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        documents = self.store.documents
        query = documents.select().where(
            (documents.c.collection == collection) & (documents.c.id == doc_id)
        )
        row = await self.store.database.fetch_one(query)
        return json.loads(row["data"]) if row else None

    def set(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        self.writes.append(("set", collection, doc_id, dict(data)))

    def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        self.writes.append(("update", collection, doc_id, dict(fields)))

    def delete(self, collection: str, doc_id: str) -> None:
        self.writes.append(("delete", collection, doc_id, None))

    def new_id(self) -> str:
        return uuid.uuid4().hex

    async def commit(self) -> None:
        """Apply buffered writes in order."""
        for op, collection, doc_id, data in self.writes:
            if op == "update":
                current = await self.get(collection, doc_id)
                if current is None:
                    raise KeyError(f"No document {collection}/{doc_id} to update")
                data = {**current, **(data or {})}
            await self._delete_row(collection, doc_id)
            if op != "delete":
                await self._insert_row(collection, doc_id, data or {})

    async def _delete_row(self, collection: str, doc_id: str) -> None:
        documents = self.store.documents
        await self.store.database.execute(
            documents.delete().where(
                (documents.c.collection == collection) & (documents.c.id == doc_id)
            )
        )

    async def _insert_row(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        await self.store.database.execute(
            self.store.documents.insert().values(
                collection=collection,
                id=doc_id,
                data=json.dumps(data),
            )
        )


class SQLiteDiagramStore:
    """SQLite/PostgreSQL document store using databases."""

    def __init__(self, database_url: str):
        """Initialize SQLite document store.

        Args:
            database_url: Database connection URL.
        """
        self.database = databases.Database(database_url)
        self.metadata = sa.MetaData()

        self.documents = sa.Table(
            "documents",
            self.metadata,
            sa.Column("collection", sa.String, primary_key=True),
            sa.Column("id", sa.String, primary_key=True),
            sa.Column("data", sa.Text, nullable=False),
        )

    async def startup(self) -> None:
        """Initialize database connection and create tables."""
        self._ensure_directory()
        await self.database.connect()
        await self.database.execute(
            """
            CREATE TABLE IF NOT EXISTS documents (
                collection VARCHAR NOT NULL,
                id VARCHAR NOT NULL,
                data TEXT NOT NULL,
                PRIMARY KEY (collection, id)
            )
            """
        )
        logger.info(f"Document store ready at {self.database.url.obscure_password}")

    async def shutdown(self) -> None:
        """Close database connection."""
        await self.database.disconnect()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[SQLiteTransaction]:
        """Open a transaction; buffered writes commit when the block exits cleanly."""
        tx = SQLiteTransaction(self)
        try:
            async with self.database.transaction():
                yield tx
                await tx.commit()
        except sqlite3.OperationalError as e:
            if "locked" in str(e):
                raise TransactionConflictError(f"Document store busy: {e}") from e
            raise

    async def list_documents(self, collection: str) -> list[tuple[str, dict[str, Any]]]:
        """Return every document in a collection.

        Args:
            collection: Collection name.

        Returns:
            List of ``(id, document)`` pairs.
        """
        query = self.documents.select().where(self.documents.c.collection == collection)
        rows = await self.database.fetch_all(query)
        return [(row["id"], json.loads(row["data"])) for row in rows]

    async def health_check(self) -> bool:
        """Check if database is accessible.

        Returns:
            True if database is healthy, False otherwise.
        """
        try:
            await self.database.execute("SELECT 1")
            return True
        except (ConnectionError, TimeoutError, sqlite3.Error):
            logger.exception("Database health check failed")
            return False

    def _ensure_directory(self) -> None:
        """Create the parent directory of a file-backed SQLite database."""
        url = self.database.url
        if url.scheme.startswith("sqlite") and url.database and url.database != ":memory:":
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)
