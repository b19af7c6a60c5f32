import httpx
import pytest
from httpx import ASGITransport, AsyncClient
from mongomock_motor import AsyncMongoMockClient

from review_api.clients.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerConfig,
)
from review_api.clients.movie_service import MovieServiceClient
from review_api.dependencies import get_db, get_movie_client
from review_api.main import app
from review_api.services.movie_rating_service import MovieRatingService
from review_api.services.reviews_service import ReviewsService
from tests.helpers import FakeCatalog, FakeClock

# window 5, threshold 60%, minimum 3 calls, 3s open, 2 half-open trials
BREAKER_CONFIG = CircuitBreakerConfig(
    sliding_window_size=5,
    minimum_number_of_calls=3,
    failure_rate_threshold=60.0,
    wait_duration_in_open_state=3.0,
    permitted_calls_in_half_open=2,
)


@pytest.fixture
def db():
    """Fresh in-memory Mongo database per test."""
    return AsyncMongoMockClient()["reviews_test"]


@pytest.fixture
def catalog() -> FakeCatalog:
    return FakeCatalog()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def breaker(clock) -> CircuitBreaker:
    return CircuitBreaker("movieService", BREAKER_CONFIG, clock=clock)


@pytest.fixture
async def movies(catalog, breaker):
    client = MovieServiceClient(
        "http://movie-service",
        timeout=2.0,
        retry_attempts=2,
        retry_wait=0,
        breaker=breaker,
        transport=httpx.MockTransport(catalog.handler),
    )
    yield client
    await client.aclose()


@pytest.fixture
def rating_service(db, movies) -> MovieRatingService:
    return MovieRatingService(db, movies)


@pytest.fixture
def reviews_service(db, movies, rating_service) -> ReviewsService:
    return ReviewsService(db, movies, rating_service)


@pytest.fixture
async def client(db, movies):
    async def override_db():
        return db

    async def override_movies():
        return movies

    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[get_movie_client] = override_movies
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport,
                           base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
