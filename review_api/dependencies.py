from fastapi import Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from review_api.clients.movie_service import (
    MovieServiceClient,
    get_movie_client as _movie_client_singleton,
)
from review_api.db.mongo import get_mongo_db
from review_api.services.movie_rating_service import MovieRatingService
from review_api.services.reviews_service import ReviewsService


async def get_db() -> AsyncIOMotorDatabase:
    return await get_mongo_db()


async def get_movie_client() -> MovieServiceClient:
    return _movie_client_singleton()


async def get_movie_rating_service(
        db=Depends(get_db),
        movies: MovieServiceClient = Depends(get_movie_client),
) -> MovieRatingService:
    return MovieRatingService(db, movies)


async def get_reviews_service(
        db=Depends(get_db),
        movies: MovieServiceClient = Depends(get_movie_client),
        ratings: MovieRatingService = Depends(get_movie_rating_service),
) -> ReviewsService:
    return ReviewsService(db, movies, ratings)
