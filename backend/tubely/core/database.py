"""
Tubely MongoDB Database Client Module

Async MongoDB connection management using Motor. Video metadata records live
in a single ``videos`` collection keyed by the record's UUID string (``_id``).

Provides:
- Connection with bounded retries and exponential backoff
- A ping health check
- The videos collection accessor and its indexes
- Startup/shutdown helpers for the FastAPI lifespan
"""

import asyncio
import logging

from motor.motor_asyncio import (
    AsyncIOMotorClient,
    AsyncIOMotorCollection,
    AsyncIOMotorDatabase,
)
from pymongo.errors import ConnectionFailure, PyMongoError, ServerSelectionTimeoutError

from tubely.config import Settings, get_settings


logger = logging.getLogger(__name__)

VIDEOS_COLLECTION = "videos"

CONNECT_MAX_RETRIES = 3
CONNECT_INITIAL_DELAY_SECONDS = 1.0
SERVER_SELECTION_TIMEOUT_MS = 5000


class DatabaseClient:
    """
    Async MongoDB client wrapper with connection pooling and lifecycle management.

    Attributes:
        _settings: Settings instance containing MongoDB configuration
        _db_name: Database name to connect to
        _client: Motor async MongoDB client instance
        _database: Motor async database instance

    Example usage:
        ```python
        db_client = DatabaseClient(get_settings())
        await db_client.connect()
        videos = db_client.get_videos_collection()
        await videos.find_one({"_id": video_id})
        await db_client.close()
        ```
    """

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._mongodb_uri = settings.mongodb_uri
        self._db_name = settings.mongodb_db_name
        self._min_pool_size = settings.mongodb_min_pool_size
        self._max_pool_size = settings.mongodb_max_pool_size
        self._client: AsyncIOMotorClient | None = None
        self._database: AsyncIOMotorDatabase | None = None

    async def connect(self) -> bool:
        """
        Establish the MongoDB connection, retrying with exponential backoff.

        Returns:
            bool: True if connected, False after all retries failed. Errors are
                logged rather than raised.
        """
        retry_delay = CONNECT_INITIAL_DELAY_SECONDS

        for attempt in range(1, CONNECT_MAX_RETRIES + 1):
            try:
                logger.info(
                    "Attempting MongoDB connection (attempt %d/%d) to %s",
                    attempt,
                    CONNECT_MAX_RETRIES,
                    self._db_name,
                )
                self._client = AsyncIOMotorClient(
                    self._mongodb_uri,
                    minPoolSize=self._min_pool_size,
                    maxPoolSize=self._max_pool_size,
                    serverSelectionTimeoutMS=SERVER_SELECTION_TIMEOUT_MS,
                    uuidRepresentation="standard",
                )
                self._database = self._client[self._db_name]
                await self._client.admin.command("ping")

                logger.info(
                    "Connected to MongoDB database %s with pool size %d-%d",
                    self._db_name,
                    self._min_pool_size,
                    self._max_pool_size,
                )
                return True

            except (ServerSelectionTimeoutError, ConnectionFailure):
                logger.exception(
                    "MongoDB connection failure (attempt %d/%d)", attempt, CONNECT_MAX_RETRIES
                )
            except PyMongoError:
                logger.exception(
                    "Unexpected MongoDB error while connecting (attempt %d/%d)",
                    attempt,
                    CONNECT_MAX_RETRIES,
                )

            if attempt < CONNECT_MAX_RETRIES:
                logger.warning("Retrying in %.1f seconds...", retry_delay)
                await asyncio.sleep(retry_delay)
                retry_delay *= 2

        logger.error(
            "Failed to connect to MongoDB after %d attempts. "
            "Check connection URI and server availability.",
            CONNECT_MAX_RETRIES,
        )
        return False

    async def close(self) -> None:
        """Close the Motor client. Safe to call when not connected."""
        if self._client is None:
            logger.warning("MongoDB close called but no active connection exists")
            return
        self._client.close()
        self._client = None
        self._database = None
        logger.info("MongoDB connection closed for database: %s", self._db_name)

    async def ping(self) -> bool:
        """Health check using the MongoDB admin ping command."""
        if self._client is None:
            return False
        try:
            await self._client.admin.command("ping")
            return True
        except PyMongoError:
            logger.exception("MongoDB ping failed")
            return False

    def get_database(self) -> AsyncIOMotorDatabase:
        """
        Raises:
            RuntimeError: If not connected to MongoDB.
        """
        if self._database is None:
            raise RuntimeError(
                "MongoDB database not available. Call connect() first or check connection status."
            )
        return self._database

    def get_videos_collection(self) -> AsyncIOMotorCollection:
        """
        Get the collection of video metadata records.

        Documents carry the owner's ``user_id``, title, description,
        ``video_url``/``thumbnail_url`` references and timestamps.
        """
        return self.get_database()[VIDEOS_COLLECTION]

    async def create_indexes(self) -> None:
        """Create indexes for listing a user's videos newest first."""
        videos = self.get_videos_collection()
        try:
            await videos.create_index("user_id")
            await videos.create_index([("user_id", 1), ("created_at", -1)])
        except PyMongoError:
            logger.exception("Error creating MongoDB indexes")
            raise
        logger.info("Created indexes on %s collection", VIDEOS_COLLECTION)


class _DatabaseClientContainer:
    """Container for the database client singleton."""

    client: DatabaseClient | None = None


_container = _DatabaseClientContainer()


async def init_db(settings: Settings | None = None) -> DatabaseClient:
    """
    Initialize the global database client. Called on application startup.

    Raises:
        RuntimeError: If the connection fails after all retries.
    """
    if _container.client is not None:
        logger.warning("Database client already initialized, returning existing instance")
        return _container.client

    client = DatabaseClient(settings or get_settings())
    if not await client.connect():
        raise RuntimeError(
            "Failed to establish MongoDB connection. "
            "Check mongodb_uri configuration and server availability."
        )
    await client.create_indexes()

    _container.client = client
    logger.info("MongoDB database client initialization complete")
    return client


async def close_db() -> None:
    """Close the global database client. Called on application shutdown."""
    if _container.client is None:
        return
    await _container.client.close()
    _container.client = None


def get_db_client() -> DatabaseClient:
    """
    Get the global database client.

    Raises:
        RuntimeError: If init_db() has not run or failed.
    """
    if _container.client is None:
        raise RuntimeError(
            "Database client not initialized. Call init_db() first during application startup."
        )
    return _container.client
