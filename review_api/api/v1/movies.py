from http import HTTPStatus

from fastapi import APIRouter, Depends

from review_api.api.http_utils import handle_runtime_errors
from review_api.clients.movie_service import MovieServiceClient
from review_api.dependencies import get_movie_client
from review_api.models.movies import MovieExistsResponse

router = APIRouter(prefix="/api/v1/movies", tags=["movies"])


@router.get("/{movie_id}/exists",
            response_model=MovieExistsResponse,
            status_code=HTTPStatus.OK)
@handle_runtime_errors(
    {"movie_service_unavailable": HTTPStatus.SERVICE_UNAVAILABLE})
async def movie_exists(
    movie_id: int,
    movies: MovieServiceClient = Depends(get_movie_client),
) -> MovieExistsResponse:
    exists = await movies.movie_exists(movie_id)
    return MovieExistsResponse(movie_id=movie_id, exists=exists)
