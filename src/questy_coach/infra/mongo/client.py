"""MongoDB client for questy_coach.

This module provides the Motor connection holding the learning
memory collection and its indexes.
"""

from typing import TYPE_CHECKING, Any

from questy_coach.config import MongoSettings
from questy_coach.logging import get_logger
from questy_coach.utils.lazy_import import lazy_import

if TYPE_CHECKING:
    from motor.motor_asyncio import AsyncIOMotorCollection

__all__ = [
    "MongoClient",
    "vector_index_model",
]

logger = get_logger(__name__)

get_async_motor = lazy_import("motor.motor_asyncio", "AsyncIOMotorClient")

# Metadata fields usable as $vectorSearch pre-filters
VECTOR_FILTER_FIELDS = ("student_id", "subject", "type", "confidence")


def vector_index_model(name: str, dimensions: int) -> dict[str, Any]:
    """Atlas Vector Search index over memory embeddings and filter fields."""
    return {
        "name": name,
        "type": "vectorSearch",
        "definition": {
            "fields": [
                {
                    "type": "vector",
                    "path": "embedding",
                    "numDimensions": dimensions,
                    "similarity": "cosine",
                },
                *({"type": "filter", "path": field} for field in VECTOR_FILTER_FIELDS),
            ]
        },
    }


class MongoClient:
    """Async Motor connection for the learning memory collection.

    Example:
        client = MongoClient(settings)
        await client.connect()
        vector_search = await client.prepare(dimensions=768)
        await client.memories.find_one({"student_id": "student-1"})
        await client.disconnect()
    """

    def __init__(self, settings: MongoSettings) -> None:
        self._settings = settings
        self._client: Any = None
        self._db: Any = None

    async def connect(self) -> None:
        """Connect and ping MongoDB; connection errors propagate."""
        if self._client is not None:
            return
        AsyncIOMotorClient = get_async_motor()  # noqa: N806

        self._client = AsyncIOMotorClient(self._settings.uri.get_secret_value())
        self._db = self._client[self._settings.database]

        await self._client.admin.command("ping")
        logger.info("connected_to_mongodb", database=self._settings.database)

    async def disconnect(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
            self._db = None
            logger.info("disconnected_from_mongodb")

    @property
    def memories(self) -> "AsyncIOMotorCollection[dict[str, Any]]":
        """Learning memory collection (with the configured name prefix).

        Raises:
            RuntimeError: If not connected
        """
        if self._db is None:
            raise RuntimeError("MongoClient not connected. Call connect() first.")
        return self._db[f"{self._settings.collection_prefix}{self._settings.memories_collection}"]

    @property
    def is_atlas(self) -> bool:
        uri = self._settings.uri.get_secret_value()
        return "mongodb+srv://" in uri or "mongodb.net" in uri

    async def prepare(self, dimensions: int) -> bool:
        """Create the memory indexes and, on Atlas, the vector search index.

        Args:
            dimensions: Embedding dimensions of the vector index

        Returns:
            True if Atlas Vector Search can be used for queries
        """
        await self.memories.create_index([("student_id", 1), ("id", 1)], unique=True)
        await self.memories.create_index([("student_id", 1), ("subject", 1)])
        await self.memories.create_index("last_recalled")
        logger.info("created_mongodb_indexes")

        if not (self._settings.vector_search_enabled and self.is_atlas):
            return False

        index_name = self._settings.vector_search_index_name
        try:
            existing = await self.memories.list_search_indexes().to_list()
            if any(idx.get("name") == index_name for idx in existing):
                logger.info("vector_search_index_exists", index_name=index_name)
                return True
            await self.memories.create_search_index(vector_index_model(index_name, dimensions))
            logger.info(
                "created_vector_search_index", index_name=index_name, dimensions=dimensions
            )
            return True
        except Exception as e:
            logger.warning(
                "vector_search_index_not_available",
                error=str(e),
                hint="Vector search requires MongoDB Atlas. Falling back to a cosine scan.",
            )
            return False
