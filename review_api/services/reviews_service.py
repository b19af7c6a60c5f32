"""Reviews service: submission workflow and read paths."""

from __future__ import annotations

import logging
import math
from typing import Any, Dict, List

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from review_api.clients.movie_service import MovieServiceClient
from review_api.core.exceptions import MovieNotFound, ReviewNotFound
from review_api.models.movies import FALLBACK_TITLE
from review_api.models.reviews import (
    MovieReviewsResponse,
    ReviewItem,
    ReviewSubmission,
)
from review_api.services.movie_rating_service import (
    MovieRatingService,
    average_rating,
)
from review_api.services.repositories.reviews_repo import (
    ReviewsRepo,
    to_rating,
)

logger = logging.getLogger(__name__)


def to_review_item(doc: Dict[str, Any], movie_title: str) -> ReviewItem:
    return ReviewItem(
        id=str(doc['_id']),
        movie_id=doc['movie_id'],
        movie_title=movie_title,
        user_name=doc['user_name'],
        rating=to_rating(doc['rating']),
        comment=doc.get('comment'),
        review_date=doc['review_date'],
    )


class ReviewsService:
    """Business logic for reviews.

    Consistency contract of a submission: an explicit "movie not found"
    aborts before anything is written; the review insert is the only step
    whose failure reaches the caller; the rating cache update afterwards is
    best effort and its failures are only logged.
    """

    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        movies: MovieServiceClient,
        ratings: MovieRatingService,
    ) -> None:
        self.repo = ReviewsRepo(db)
        self.movies = movies
        self.ratings = ratings

    # ---------- CREATE ----------

    async def submit_review(self, data: ReviewSubmission) -> ReviewItem:
        """Validate the movie, store the review, refresh the rating cache."""
        try:
            movie = await self.movies.get_movie(data.movie_id)
        except MovieNotFound:
            logger.warning('review_for_unknown_movie',
                           extra={'movie_id': data.movie_id})
            raise

        try:
            saved = await self.repo.insert(
                movie_id=data.movie_id,
                user_name=data.user_name,
                rating=data.rating,
                comment=data.comment,
            )
        except PyMongoError as error:
            raise RuntimeError(
                f'mongo_review_create_error: {error}') from error

        logger.info(
            'review_submitted',
            extra={'review_id': str(saved['_id']),
                   'movie_id': data.movie_id},
        )

        try:
            await self.ratings.apply_new_review(saved)
        except Exception:
            # the review is already stored; the cache heals on next read
            logger.exception('rating_cache_update_failed',
                             extra={'movie_id': data.movie_id})

        return to_review_item(saved, movie.title)

    # ---------- READ ----------

    async def get_reviews_for_movie(
        self,
        movie_id: int,
        page: int = 0,
        size: int = 10,
    ) -> MovieReviewsResponse:
        """Page of reviews (newest first) with the movie's average."""
        try:
            movie = await self.movies.get_movie(movie_id)
        except MovieNotFound:
            logger.warning('reviews_for_unknown_movie',
                           extra={'movie_id': movie_id})
            raise

        try:
            docs = await self.repo.list_by_movie(movie_id,
                                                 limit=size,
                                                 offset=page * size)
            total, count = await self.repo.rating_totals(movie_id)
        except PyMongoError as error:
            raise RuntimeError(f'mongo_review_list_error: {error}') from error

        items: List[ReviewItem] = [
            to_review_item(doc, movie.title) for doc in docs
        ]
        total_pages = math.ceil(count / size) if size else 0
        return MovieReviewsResponse(
            reviews=items,
            average_rating=average_rating(total, count),
            total_reviews=count,
            page=page,
            total_pages=total_pages,
            size=size,
            first=page == 0,
            last=page >= total_pages - 1,
        )

    async def get_review(self, review_id: str) -> ReviewItem:
        try:
            doc = await self.repo.get_by_id(review_id)
        except PyMongoError as error:
            raise RuntimeError(f'mongo_review_get_error: {error}') from error
        if doc is None:
            logger.warning('review_not_found',
                           extra={'review_id': review_id})
            raise ReviewNotFound(review_id)

        # the title is decoration here; any catalog problem degrades it
        try:
            title = (await self.movies.get_movie(doc['movie_id'])).title
        except Exception as error:
            logger.warning(
                'review_movie_title_failed',
                extra={'review_id': review_id, 'err': str(error)},
            )
            title = FALLBACK_TITLE
        return to_review_item(doc, title)

    async def has_reviews(self, movie_id: int) -> bool:
        try:
            return await self.repo.exists_by_movie(movie_id)
        except PyMongoError as error:
            raise RuntimeError(f'mongo_review_get_error: {error}') from error

    async def get_review_count(self, movie_id: int) -> int:
        try:
            return await self.repo.count_by_movie(movie_id)
        except PyMongoError as error:
            raise RuntimeError(f'mongo_review_get_error: {error}') from error
