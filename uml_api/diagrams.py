"""Diagram library: users and their saved PlantUML diagrams."""

import time
from collections.abc import Callable
from typing import Any

from loguru import logger

from .exceptions import DiagramNotFoundError, UserExistsError, UserNotFoundError
from .models import DiagramFields, GalleryFilter
from .retry import with_transaction_retry
from .storage import DiagramStore, StoreTransaction
from .types import UML_COLLECTION, USER_COLLECTION, DiagramDocument, UserDocument
from .uml_text import detect_diagram_kinds


def now_ms() -> int:
    """Milliseconds since the epoch."""
    return int(time.time() * 1000)


def newest_first(documents: list[DiagramDocument]) -> list[DiagramDocument]:
    return sorted(documents, key=lambda doc: doc.get("timestamp", 0), reverse=True)


class DiagramLibrary:
    """Diagram library handling user and diagram documents.

    Every operation runs in a single store transaction, re-run from the start
    when the store reports a write conflict.
    """

    def __init__(
        self,
        store: DiagramStore,
        clock: Callable[[], int] = now_ms,
        transaction_attempts: int = 5,
    ) -> None:
        """Initialize with injected dependencies.

        Args:
            store: Document store holding the ``User`` and ``UML`` collections.
            clock: Returns the current time in milliseconds.
            transaction_attempts: Attempts per operation before a conflict is reported.
        """
        self.store = store
        self.clock = clock
        self.transaction_attempts = transaction_attempts

    def _retrying(self, operation: str):
        return with_transaction_retry(operation, max_attempts=self.transaction_attempts)

    async def _load_user(self, tx: StoreTransaction, uid: str) -> UserDocument:
        user = await tx.get(USER_COLLECTION, uid)
        if user is None:
            raise UserNotFoundError(f"User {uid} does not exist")
        return {"savedUML": list(user.get("savedUML", []))}

    def _new_document(self, fields: DiagramFields | dict[str, Any]) -> DiagramDocument:
        if isinstance(fields, DiagramFields):
            fields = fields.model_dump()
        return {
            "content": fields.get("content", ""),
            "privacy": fields.get("privacy", ""),
            "name": fields.get("name", ""),
            "description": fields.get("description", ""),
            "timestamp": self.clock(),
            "diagram": fields.get("diagram", ""),
        }

    async def register_user(self, uid: str) -> None:
        """Create an empty user document.

        Raises:
            UserExistsError: A user with this uid is already registered.
        """

        @self._retrying("register user")
        async def body() -> None:
            async with self.store.transaction() as tx:
                if await tx.get(USER_COLLECTION, uid) is not None:
                    raise UserExistsError("User already exists.")
                tx.set(USER_COLLECTION, uid, {"savedUML": []})

        await body()
        logger.info("Registered user")

    async def user_exists(self, uid: str) -> bool:
        @self._retrying("look up user")
        async def body() -> bool:
            async with self.store.transaction() as tx:
                return await tx.get(USER_COLLECTION, uid) is not None

        return await body()

    async def get_user_diagrams(self, uid: str) -> list[DiagramDocument]:
        """Return the user's diagrams, newest first, each tagged with its ``uml_id``."""

        @self._retrying("get user diagrams")
        async def body() -> list[DiagramDocument]:
            diagrams: list[DiagramDocument] = []
            async with self.store.transaction() as tx:
                user = await self._load_user(tx, uid)
                for uml_id in user["savedUML"]:
                    document = await tx.get(UML_COLLECTION, uml_id)
                    if document is None:
                        logger.warning(f"Skipping dangling diagram reference {uml_id}")
                        continue
                    diagrams.append({**document, "uml_id": uml_id})  # type: ignore[typeddict-item]
            return diagrams

        return newest_first(await body())

    async def get_diagram(self, uml_id: str) -> DiagramDocument:
        @self._retrying("get diagram")
        async def body() -> DiagramDocument:
            async with self.store.transaction() as tx:
                document = await tx.get(UML_COLLECTION, uml_id)
            if document is None:
                raise DiagramNotFoundError("UML diagram not found.")
            return document  # type: ignore[return-value]

        return await body()

    async def search_gallery(self, query: GalleryFilter) -> list[DiagramDocument]:
        """Return public rendered diagrams matching the name filter and any selected kind."""
        needle = query.name_contains.lower()
        kinds = query.kinds

        def matches(document: dict[str, Any]) -> bool:
            if document.get("privacy") != "public" or document.get("diagram", "") == "":
                return False
            if needle and needle not in document.get("name", "").lower():
                return False
            return bool(kinds & detect_diagram_kinds(document.get("content", "")))

        @self._retrying("search gallery")
        async def body() -> list[DiagramDocument]:
            documents = await self.store.list_documents(UML_COLLECTION)
            return [
                {**document, "uml_id": uml_id}  # type: ignore[typeddict-item]
                for uml_id, document in documents
                if matches(document)
            ]

        return newest_first(await body())

    async def create_diagram(self, uid: str, fields: DiagramFields) -> str:
        """Save a new diagram for a user and return its id."""

        @self._retrying("create diagram")
        async def body() -> str:
            async with self.store.transaction() as tx:
                user = await self._load_user(tx, uid)
                uml_id = tx.new_id()
                tx.set(UML_COLLECTION, uml_id, dict(self._new_document(fields)))
                tx.update(USER_COLLECTION, uid, {"savedUML": [*user["savedUML"], uml_id]})
            return uml_id

        uml_id = await body()
        logger.info(f"Created diagram {uml_id}")
        return uml_id

    async def copy_diagram(self, uid: str, uml_id: str) -> str:
        """Copy a diagram into a user's library as a public ``-copy``."""

        @self._retrying("copy diagram")
        async def body() -> str:
            async with self.store.transaction() as tx:
                user = await self._load_user(tx, uid)
                source = await tx.get(UML_COLLECTION, uml_id)
                if source is None:
                    raise DiagramNotFoundError("UML diagram not found.")
                copy = self._new_document(
                    {
                        "content": source.get("content", ""),
                        "privacy": "public",
                        "name": f"{source.get('name', '')}-copy",
                        "description": source.get("description", ""),
                        "diagram": source.get("diagram", ""),
                    }
                )
                new_id = tx.new_id()
                tx.set(UML_COLLECTION, new_id, dict(copy))
                tx.update(USER_COLLECTION, uid, {"savedUML": [*user["savedUML"], new_id]})
            return new_id

        new_id = await body()
        logger.info(f"Copied diagram {uml_id} to {new_id}")
        return new_id

    async def update_diagram(self, uml_id: str, fields: DiagramFields) -> None:
        """Replace a diagram's fields and refresh its timestamp."""

        @self._retrying("update diagram")
        async def body() -> None:
            async with self.store.transaction() as tx:
                tx.set(UML_COLLECTION, uml_id, dict(self._new_document(fields)))

        await body()

    async def delete_diagram(self, uid: str, uml_id: str) -> None:
        """Delete a diagram and drop it from the user's library."""

        @self._retrying("delete diagram")
        async def body() -> None:
            async with self.store.transaction() as tx:
                user = await self._load_user(tx, uid)
                tx.delete(UML_COLLECTION, uml_id)
                remaining = [saved for saved in user["savedUML"] if saved != uml_id]
                tx.update(USER_COLLECTION, uid, {"savedUML": remaining})

        await body()
        logger.info(f"Deleted diagram {uml_id}")

    async def delete_account(self, uid: str) -> None:
        """Delete a user and every diagram they own."""

        @self._retrying("delete account")
        async def body() -> None:
            async with self.store.transaction() as tx:
                user = await self._load_user(tx, uid)
                for uml_id in dict.fromkeys(user["savedUML"]):
                    tx.delete(UML_COLLECTION, uml_id)
                tx.delete(USER_COLLECTION, uid)

        await body()
        logger.info("Deleted account")

    async def health_check(self) -> bool:
        try:
            return await self.store.health_check()
        except Exception as e:  # noqa: BLE001
            logger.error(f"Store health check failed: {e}")
            return False
