from http import HTTPStatus

from fastapi import APIRouter, Depends, Path, Query

from review_api.api.http_utils import handle_runtime_errors
from review_api.dependencies import (
    get_movie_rating_service,
    get_reviews_service,
)
from review_api.models.ratings import RatingSummary
from review_api.models.reviews import (
    MovieReviewsResponse,
    ReviewItem,
    ReviewSubmission,
)
from review_api.services.movie_rating_service import MovieRatingService
from review_api.services.reviews_service import ReviewsService

router = APIRouter(prefix="/api/v1/reviews", tags=["reviews"])

ERRMAP = {
    "movie_not_found": HTTPStatus.NOT_FOUND,
    "review_not_found": HTTPStatus.NOT_FOUND,
    "movie_service_unavailable": HTTPStatus.SERVICE_UNAVAILABLE,
}


@router.post("", response_model=ReviewItem,
             status_code=HTTPStatus.CREATED)
@handle_runtime_errors(ERRMAP)
async def submit_review(
    body: ReviewSubmission,
    svc: ReviewsService = Depends(get_reviews_service),
):
    return await svc.submit_review(body)


@router.get("/movie/{movie_id}",
            response_model=MovieReviewsResponse,
            status_code=HTTPStatus.OK)
@handle_runtime_errors(ERRMAP)
async def get_reviews_for_movie(
    movie_id: int,
    page: int = Query(0, ge=0),
    size: int = Query(10, ge=1, le=100),
    svc: ReviewsService = Depends(get_reviews_service),
):
    return await svc.get_reviews_for_movie(movie_id=movie_id,
                                           page=page,
                                           size=size)


@router.get("/movie/{movie_id}/rating",
            response_model=RatingSummary,
            status_code=HTTPStatus.OK)
@handle_runtime_errors(ERRMAP)
async def get_rating_summary(
    movie_id: int,
    svc: MovieRatingService = Depends(get_movie_rating_service),
):
    return await svc.get_summary(movie_id)


@router.get("/movie/{movie_id}/has-reviews",
            response_model=bool,
            status_code=HTTPStatus.OK)
@handle_runtime_errors(ERRMAP)
async def has_reviews(
    movie_id: int,
    svc: ReviewsService = Depends(get_reviews_service),
):
    return await svc.has_reviews(movie_id)


@router.get("/movie/{movie_id}/count",
            response_model=int,
            status_code=HTTPStatus.OK)
@handle_runtime_errors(ERRMAP)
async def get_review_count(
    movie_id: int,
    svc: ReviewsService = Depends(get_reviews_service),
):
    return await svc.get_review_count(movie_id)


@router.get("/{review_id}", response_model=ReviewItem,
            status_code=HTTPStatus.OK)
@handle_runtime_errors(ERRMAP)
async def get_review(
    review_id: str = Path(..., description="Mongo ObjectId"),
    svc: ReviewsService = Depends(get_reviews_service),
):
    return await svc.get_review(review_id)
