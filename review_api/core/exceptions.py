"""Domain errors shared by the gateway, services and HTTP layer."""

from __future__ import annotations


class ReviewServiceError(Exception):
    """Base class; `code` is the stable string used in API error details."""

    code = "internal_error"


class MovieNotFound(ReviewServiceError):
    """The catalog answered definitively: no such movie."""

    code = "movie_not_found"

    def __init__(self, movie_id: int) -> None:
        super().__init__(f"Movie not found with ID: {movie_id}")
        self.movie_id = movie_id


class MovieServiceUnavailable(ReviewServiceError):
    """Availability fault talking to the catalog (timeout, 5xx, bad body...)."""

    code = "movie_service_unavailable"

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class CallNotPermitted(MovieServiceUnavailable):
    """Raised by an open circuit breaker instead of calling upstream."""

    def __init__(self, name: str) -> None:
        super().__init__(f"circuit breaker '{name}' is OPEN")
        self.name = name


class ReviewNotFound(ReviewServiceError):
    code = "review_not_found"

    def __init__(self, review_id: str) -> None:
        super().__init__(f"Review not found with ID: {review_id}")
        self.review_id = review_id
