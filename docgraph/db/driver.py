# docgraph/db/driver.py
import logging
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from docgraph.core.config import settings
from docgraph.services.graph_service import GraphService

logger = logging.getLogger(__name__)

class MongoDriver:
    _client: AsyncIOMotorClient | None = None

    @classmethod
    def get_client(cls) -> AsyncIOMotorClient:
        if cls._client is None:
            logger.info("Opening MongoDB client for database '%s'.", settings.MONGO_DATABASE)
            cls._client = AsyncIOMotorClient(settings.MONGO_URI)
        return cls._client

    @classmethod
    def get_database(cls) -> AsyncIOMotorDatabase:
        return cls.get_client()[settings.MONGO_DATABASE]

    @classmethod
    async def close_client(cls) -> None:
        if cls._client is not None:
            cls._client.close()
            cls._client = None

def get_graph_service(category: str | None = None) -> GraphService:
    """Builds a GraphService for `category` (default: settings.GRAPH_CATEGORY) on the shared client."""
    return GraphService(
        MongoDriver.get_database(),
        category or settings.GRAPH_CATEGORY,
        transactional=settings.CASCADE_TRANSACTIONAL,
        retries=settings.STORE_RETRIES,
        retry_delay=settings.STORE_RETRY_DELAY,
    )
