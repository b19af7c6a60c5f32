"""Mongo repository for reviews collection."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorDatabase

from review_api.db.mongo import REVIEWS

RATING_STEP = Decimal("0.1")


def to_rating(value: Any) -> Decimal:
    """Ratings are stored as doubles; read them back with one decimal."""
    return Decimal(str(value)).quantize(RATING_STEP)


class ReviewsRepo:
    """Review rows plus the per-movie scans the rating cache is built from."""

    def __init__(self, db: AsyncIOMotorDatabase) -> None:
        self.col = db[REVIEWS]

    async def insert(
        self,
        movie_id: int,
        user_name: str,
        rating: Decimal,
        comment: Optional[str],
    ) -> Dict[str, Any]:
        """Insert a new review and return the stored document."""
        now = datetime.now(timezone.utc)
        doc = {
            'movie_id': movie_id,
            'user_name': user_name,
            'rating': float(rating),
            'comment': comment,
            'review_date': now,
            'created_at': now,
            'updated_at': now,
        }
        result = await self.col.insert_one(doc)
        doc['_id'] = result.inserted_id
        return doc

    async def get_by_id(self, review_id: str) -> Optional[Dict[str, Any]]:
        """Get single review by its id; malformed ids simply match nothing."""
        try:
            oid = ObjectId(review_id)
        except (InvalidId, TypeError):
            return None
        return await self.col.find_one({'_id': oid})

    async def list_by_movie(
        self,
        movie_id: int,
        limit: int,
        offset: int,
    ) -> List[Dict[str, Any]]:
        """Newest reviews first."""
        cursor = (
            self.col.find({'movie_id': movie_id})
            .sort([('review_date', -1), ('_id', -1)])
            .skip(offset)
            .limit(limit)
        )
        return [doc async for doc in cursor]

    async def list_ratings(self, movie_id: int) -> List[Decimal]:
        """Every rating of a movie (the full scan used by recompute)."""
        cursor = self.col.find({'movie_id': movie_id},
                               {'_id': 0, 'rating': 1})
        return [to_rating(doc['rating']) async for doc in cursor]

    async def count_by_movie(self, movie_id: int) -> int:
        return await self.col.count_documents({'movie_id': movie_id})

    async def exists_by_movie(self, movie_id: int) -> bool:
        doc = await self.col.find_one({'movie_id': movie_id}, {'_id': 1})
        return doc is not None

    async def rating_totals(self, movie_id: int) -> Tuple[Decimal, int]:
        """(sum of ratings, count) computed by the database."""
        pipeline = [
            {'$match': {'movie_id': movie_id}},
            {
                '$group': {
                    '_id': '$movie_id',
                    'total': {'$sum': '$rating'},
                    'count': {'$sum': 1},
                },
            },
        ]
        docs = await self.col.aggregate(pipeline).to_list(length=1)
        if not docs:
            return Decimal('0'), 0
        return to_rating(docs[0]['total']), int(docs[0]['count'])
