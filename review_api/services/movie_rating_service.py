"""Per-movie rating cache: recompute, serve summaries, self-heal on miss."""

from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Iterable, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from review_api.clients.movie_service import MovieServiceClient
from review_api.models.ratings import STARS, MovieRating, RatingSummary
from review_api.services.repositories.movie_ratings_repo import (
    MovieRatingsRepo,
)
from review_api.services.repositories.reviews_repo import ReviewsRepo

logger = logging.getLogger(__name__)

AVERAGE_STEP = Decimal('0.01')
ZERO_AVERAGE = Decimal('0.00')


def average_rating(total: Decimal, count: int) -> Decimal:
    """sum / count, half-up to two places; 0.00 when there is nothing."""
    if count <= 0:
        return ZERO_AVERAGE
    return (total / Decimal(count)).quantize(AVERAGE_STEP,
                                             rounding=ROUND_HALF_UP)


def star_bucket(rating: Decimal) -> int:
    """Integer part of the rating (4.5 counts as a 4-star review)."""
    return int(rating)


def compute_rating_stats(ratings: Iterable[Decimal]) -> Optional[Dict[str, Any]]:
    """Cache fields for a complete set of ratings, or None if it is empty."""
    buckets = dict.fromkeys(STARS, 0)
    total = Decimal('0')
    count = 0
    for rating in ratings:
        total += rating
        count += 1
        star = star_bucket(rating)
        if star in buckets:
            buckets[star] += 1
    if count == 0:
        return None

    stats: Dict[str, Any] = {
        'average_rating': average_rating(total, count),
        'total_reviews': count,
    }
    for star, value in buckets.items():
        stats[f'rating_{star}_count'] = value
    return stats


def rating_from_doc(doc: Dict[str, Any]) -> MovieRating:
    data = dict(doc)
    data['average_rating'] = Decimal(
        str(data.get('average_rating', 0))).quantize(AVERAGE_STEP)
    return MovieRating.model_validate(data)


class MovieRatingService:
    """Keeps `movie_ratings` consistent with the authoritative reviews.

    Every write recomputes the whole row from the movie's reviews, so the
    cached average always equals the half-up rounded mean of the stored
    ratings and the star buckets always add up to the review count.
    """

    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        movies: MovieServiceClient,
    ) -> None:
        self.repo = MovieRatingsRepo(db)
        self.reviews = ReviewsRepo(db)
        self.movies = movies

    # ---------- READ ----------

    async def get_summary(self, movie_id: int) -> RatingSummary:
        """Cached summary; recomputed on a miss. MovieNotFound propagates."""
        try:
            movie = await self.movies.get_movie(movie_id)
        except Exception as error:
            logger.error(
                'rating_summary_movie_lookup_failed',
                extra={'movie_id': movie_id, 'err': str(error)},
            )
            raise

        try:
            doc = await self.repo.get_by_movie_id(movie_id)
            if doc is not None:
                rating: Optional[MovieRating] = rating_from_doc(doc)
            else:
                logger.debug('rating_cache_miss',
                             extra={'movie_id': movie_id})
                rating = await self.recompute(movie_id)
        except PyMongoError as error:
            raise RuntimeError(
                f'mongo_rating_summary_error: {error}') from error

        if rating is None:
            return RatingSummary(
                movie_id=movie_id,
                movie_title=movie.title,
                average_rating=ZERO_AVERAGE,
                total_reviews=0,
                rating_distribution={},
            )
        return RatingSummary(
            movie_id=movie_id,
            movie_title=movie.title,
            average_rating=rating.average_rating,
            total_reviews=rating.total_reviews,
            rating_distribution=rating.distribution(),
        )

    # ---------- WRITE ----------

    async def apply_new_review(self, review: Dict[str, Any]) -> Optional[MovieRating]:
        """Reflect a freshly stored review in the cache (full recompute).

        The row equals what ``recompute`` would write; only ``last_updated``
        differs between two writes.
        """
        movie_id = int(review['movie_id'])
        logger.debug('rating_cache_update', extra={'movie_id': movie_id})
        return await self.recompute(movie_id)

    async def recompute(self, movie_id: int) -> Optional[MovieRating]:
        """Rebuild the cache row from every review; drop it if none remain."""
        ratings = await self.reviews.list_ratings(movie_id)
        stats = compute_rating_stats(ratings)
        if stats is None:
            await self.repo.delete(movie_id)
            logger.debug('rating_cache_removed',
                         extra={'movie_id': movie_id})
            return None

        stored = dict(stats)
        stored['average_rating'] = float(stats['average_rating'])
        doc = await self.repo.replace_stats(movie_id, stored)
        logger.info(
            'rating_cache_recomputed',
            extra={
                'movie_id': movie_id,
                'average_rating': str(stats['average_rating']),
                'total_reviews': stats['total_reviews'],
            },
        )
        return rating_from_doc(doc)

    async def initialize(self, movie_id: int) -> MovieRating:
        """Make sure a row exists; an existing row is left untouched."""
        return rating_from_doc(await self.repo.ensure_doc(movie_id))

    async def delete(self, movie_id: int) -> bool:
        logger.debug('rating_cache_delete', extra={'movie_id': movie_id})
        return await self.repo.delete(movie_id)
