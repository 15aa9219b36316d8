"""Storage module with a factory for creating the diagram store."""

from urllib.parse import urlparse

from loguru import logger

from ..config import settings
from .dynamodb import DynamoDBDiagramStore
from .protocols import DiagramStore, StoreTransaction
from .sqlite import SQLiteDiagramStore


def create_store(database_url: str | None = None) -> DiagramStore:
    """Create a diagram store based on the database URL.

    Args:
        database_url: Database URL. Uses settings if not provided.

    Returns:
        DiagramStore instance.
    """
    url = database_url or settings.effective_database_url

    if urlparse(url).scheme == "dynamodb":
        logger.info("Creating DynamoDB diagram store")
        return DynamoDBDiagramStore(url)
    logger.info("Creating SQLite diagram store")
    return SQLiteDiagramStore(url)


__all__ = [
    "DiagramStore",
    "DynamoDBDiagramStore",
    "SQLiteDiagramStore",
    "StoreTransaction",
    "create_store",
]
