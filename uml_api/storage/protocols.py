"""Storage protocol definitions using typing.Protocol."""

from contextlib import AbstractAsyncContextManager
from typing import Any, Protocol


class StoreTransaction(Protocol):
    """A unit of work against the document store.

    Reads run immediately; writes are buffered and applied together when the
    transaction commits.
    """

    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        """Read a document, or None when it does not exist."""
        ...

    def set(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        """Create or replace a document."""
        ...

    def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        """Merge fields into an existing document."""
        ...

    def delete(self, collection: str, doc_id: str) -> None:
        """Delete a document."""
        ...

    def new_id(self) -> str:
        """Generate an id for a new document."""
        ...


class DiagramStore(Protocol):
    """Document store holding the ``User`` and ``UML`` collections."""

    def transaction(self) -> AbstractAsyncContextManager[StoreTransaction]:
        """Open a transaction; buffered writes commit when the block exits cleanly."""
        ...

    async def list_documents(self, collection: str) -> list[tuple[str, dict[str, Any]]]:
        """Return every ``(id, document)`` in a collection."""
        ...

    async def health_check(self) -> bool:
        """Check if the store is reachable."""
        ...

    async def startup(self) -> None:
        """Initialize the store on startup."""
        ...

    async def shutdown(self) -> None:
        """Cleanup the store on shutdown."""
        ...
