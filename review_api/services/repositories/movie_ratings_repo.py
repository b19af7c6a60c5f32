from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from review_api.db.mongo import MOVIE_RATINGS

ZERO_ROW: Dict[str, Any] = {
    "average_rating": 0.0,
    "total_reviews": 0,
    "rating_1_count": 0,
    "rating_2_count": 0,
    "rating_3_count": 0,
    "rating_4_count": 0,
    "rating_5_count": 0,
}


class MovieRatingsRepo:
    """One cache document per movie_id."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self._col = db[MOVIE_RATINGS]

    async def get_by_movie_id(self, movie_id: int) -> Optional[dict]:
        return await self._col.find_one({"movie_id": movie_id}, {"_id": 0})

    async def ensure_doc(self, movie_id: int) -> dict:
        """Insert a zero row unless one exists; never touches existing data."""
        return await self._col.find_one_and_update(
            {"movie_id": movie_id},
            {"$setOnInsert": {
                **ZERO_ROW,
                "last_updated": datetime.now(timezone.utc),
            }},
            upsert=True,
            return_document=ReturnDocument.AFTER,
            projection={"_id": 0},
        )

    async def replace_stats(self, movie_id: int, stats: Dict[str, Any]) -> dict:
        """
        Write every aggregate field in one $set, so concurrent writers can
        only ever leave a complete snapshot behind.

        Reviews are never removed, so a snapshot covering fewer reviews than
        the stored row is older than it and is not written.
        """
        fields = {k: v for k, v in stats.items() if k != "movie_id"}
        fields["last_updated"] = datetime.now(timezone.utc)
        doc = await self._col.find_one_and_update(
            {"movie_id": movie_id,
             "total_reviews": {"$lte": fields["total_reviews"]}},
            {"$set": fields},
            return_document=ReturnDocument.AFTER,
            projection={"_id": 0},
        )
        if doc is not None:
            return doc

        current = await self.get_by_movie_id(movie_id)
        if current is not None:
            return current
        try:
            await self._col.insert_one({"movie_id": movie_id, **fields})
        except DuplicateKeyError:
            # another writer created the row first; compare against it
            return await self.replace_stats(movie_id, stats)
        return await self.get_by_movie_id(movie_id)

    async def delete(self, movie_id: int) -> bool:
        res = await self._col.delete_one({"movie_id": movie_id})
        return res.deleted_count == 1
