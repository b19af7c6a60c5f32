import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import PyMongoError

from review_api.core.config import settings

logger = logging.getLogger(__name__)

REVIEWS = "reviews"
MOVIE_RATINGS = "movie_ratings"

_client: AsyncIOMotorClient | None = None


async def get_client() -> AsyncIOMotorClient:
    """
    Process-wide Motor client with bounded timeouts, so no storage call
    blocks a request indefinitely.
    """
    global _client
    if _client is None:
        _client = AsyncIOMotorClient(
            settings.mongo_dsn,
            appname="review-service",
            tz_aware=True,
            maxPoolSize=50,
            minPoolSize=0,
            serverSelectionTimeoutMS=3000,
            connectTimeoutMS=3000,
            socketTimeoutMS=5000,
            retryWrites=True,
        )
        try:
            await _client.admin.command("ping")
        except Exception as e:
            logger.warning("mongo_ping_failed", extra={"err": str(e)})
    return _client


async def get_mongo_db() -> AsyncIOMotorDatabase:
    client = await get_client()
    return client[settings.mongo_db]


async def ensure_indexes(db: AsyncIOMotorDatabase) -> None:
    """Create the indexes the review/rating queries rely on (best effort)."""
    try:
        await db[REVIEWS].create_index(
            [("movie_id", ASCENDING), ("review_date", DESCENDING)])
        await db[MOVIE_RATINGS].create_index(
            [("movie_id", ASCENDING)], unique=True)
    except PyMongoError as e:
        logger.warning("mongo_index_creation_failed", extra={"err": str(e)})


async def close_client() -> None:
    global _client
    if _client is not None:
        _client.close()
        _client = None
