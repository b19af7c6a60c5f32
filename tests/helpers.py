import asyncio
from decimal import Decimal
from typing import Dict, Optional

import httpx

from review_api.services.repositories.reviews_repo import ReviewsRepo


def movie_payload(movie_id: int, title: str = "Inception") -> dict:
    return {
        "id": movie_id,
        "title": title,
        "description": "A thief who steals corporate secrets",
        "durationMinutes": 148,
        "genre": "Sci-Fi",
        "language": "English",
        "releaseDate": "2010-07-16",
    }


class FakeClock:
    """Monotonic clock the tests move by hand."""

    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeCatalog:
    """In-process movie catalog behind httpx.MockTransport."""

    def __init__(self) -> None:
        self.movies: Dict[int, dict] = {}
        self.calls = 0
        self.status: Optional[int] = None
        self.body: Optional[bytes] = None
        self.error: Optional[type] = None
        self.delay = 0.0

    def add(self, movie_id: int, title: str = "Inception") -> dict:
        self.movies[movie_id] = movie_payload(movie_id, title)
        return self.movies[movie_id]

    def fail(self, status: int = 503) -> None:
        self.status = status

    def heal(self) -> None:
        self.status = None
        self.body = None
        self.error = None
        self.delay = 0.0

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error("catalog is down", request=request)
        if self.status is not None:
            return httpx.Response(self.status, json={"error": "boom"})
        if self.body is not None:
            return httpx.Response(
                200, content=self.body,
                headers={"Content-Type": "application/json"})
        movie_id = int(request.url.path.rsplit("/", 1)[-1])
        movie = self.movies.get(movie_id)
        if movie is None:
            return httpx.Response(404, json={"error": "not found"})
        return httpx.Response(200, json=movie)


async def seed_reviews(db, movie_id: int, *ratings: str) -> None:
    repo = ReviewsRepo(db)
    for n, rating in enumerate(ratings):
        await repo.insert(movie_id=movie_id,
                          user_name=f"user-{n}",
                          rating=Decimal(rating),
                          comment=None)
