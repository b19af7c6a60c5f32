"""HTTP client for the movie catalog service.

Each attempt runs under a per-attempt timeout and through the circuit
breaker; availability faults are retried a bounded number of times. The
catalog's "not found" answer is a data fact: it is never retried, never
counted by the breaker and never replaced by the fallback movie.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

import httpx
from pydantic import ValidationError

from review_api.clients.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerConfig,
)
from review_api.core.config import settings
from review_api.core.exceptions import (
    CallNotPermitted,
    MovieNotFound,
    MovieServiceUnavailable,
)
from review_api.models.movies import (
    FALLBACK_TITLE,
    TITLE_UNAVAILABLE,
    MovieDetail,
)

logger = logging.getLogger(__name__)

MOVIE_PATH = "/api/v1/movies/{movie_id}"


class MovieServiceClient:
    """Resilient read-only gateway to the movie catalog."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 3.0,
        retry_attempts: int = 2,
        retry_wait: float = 0.5,
        breaker: Optional[CircuitBreaker] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.timeout = timeout
        self.retry_attempts = max(1, retry_attempts)
        self.retry_wait = retry_wait
        self.breaker = breaker or CircuitBreaker("movieService")
        self._http = httpx.AsyncClient(
            base_url=base_url,
            timeout=httpx.Timeout(timeout),
            headers={"Accept": "application/json"},
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    # ---------- single attempt ----------

    async def _request_once(self, movie_id: int) -> MovieDetail:
        url = MOVIE_PATH.format(movie_id=movie_id)
        try:
            response = await asyncio.wait_for(self._http.get(url),
                                              timeout=self.timeout)
        except asyncio.TimeoutError as error:
            raise MovieServiceUnavailable(
                f"Movie service timed out after {self.timeout}s"
            ) from error
        except httpx.HTTPError as error:
            raise MovieServiceUnavailable(
                f"Movie service unavailable: {error!r}"
            ) from error

        if response.status_code == httpx.codes.NOT_FOUND:
            logger.warning("movie_not_found", extra={"movie_id": movie_id})
            raise MovieNotFound(movie_id)
        if response.is_server_error:
            raise MovieServiceUnavailable(
                "Movie service returned server error: "
                f"{response.status_code}")
        if not response.is_success:
            raise MovieServiceUnavailable(
                f"Movie service client error: {response.status_code}")

        try:
            payload = response.json()
        except ValueError as error:
            raise MovieServiceUnavailable(
                "Movie service returned a malformed body") from error
        if payload is None:
            logger.warning("movie_service_empty_body",
                           extra={"movie_id": movie_id})
            raise MovieNotFound(movie_id)
        try:
            return MovieDetail.model_validate(payload)
        except ValidationError as error:
            raise MovieServiceUnavailable(
                f"Movie service returned an invalid movie: {error}"
            ) from error

    async def _attempt(self, movie_id: int) -> MovieDetail:
        return await self.breaker.call(
            lambda: self._request_once(movie_id),
            ignore=(MovieNotFound,),
        )

    # ---------- public API ----------

    async def fetch_movie(self, movie_id: int) -> MovieDetail:
        """Strict fetch: raises MovieNotFound or MovieServiceUnavailable."""
        last_error: Optional[MovieServiceUnavailable] = None
        for attempt in range(1, self.retry_attempts + 1):
            try:
                return await self._attempt(movie_id)
            except CallNotPermitted:
                raise
            except MovieServiceUnavailable as error:
                last_error = error
                logger.warning(
                    "movie_service_attempt_failed",
                    extra={"movie_id": movie_id,
                           "attempt": attempt,
                           "err": error.detail},
                )
                if attempt < self.retry_attempts:
                    await asyncio.sleep(self.retry_wait)

        raise MovieServiceUnavailable(
            f"Movie service unavailable after {self.retry_attempts} "
            f"attempts: {last_error.detail}"
        ) from last_error

    async def get_movie(self, movie_id: int) -> MovieDetail:
        """Read path: availability faults degrade to a placeholder movie."""
        try:
            return await self.fetch_movie(movie_id)
        except MovieServiceUnavailable as error:
            logger.error(
                "movie_service_fallback",
                extra={"movie_id": movie_id,
                       "breaker_state": self.breaker.state.value,
                       "err": error.detail},
            )
            return MovieDetail.fallback(movie_id)

    async def movie_exists(self, movie_id: int) -> bool:
        """True/False when the catalog can tell; raises when it cannot."""
        try:
            await self.fetch_movie(movie_id)
            return True
        except MovieNotFound:
            return False
        except MovieServiceUnavailable as error:
            logger.warning(
                "movie_existence_unknown",
                extra={"movie_id": movie_id, "err": error.detail},
            )
            raise

    async def get_movie_title(self, movie_id: int) -> str:
        try:
            movie = await self.fetch_movie(movie_id)
        except MovieNotFound:
            return FALLBACK_TITLE
        except MovieServiceUnavailable:
            logger.warning("movie_title_unavailable",
                           extra={"movie_id": movie_id})
            return TITLE_UNAVAILABLE
        return movie.title


_client: MovieServiceClient | None = None


def get_movie_client() -> MovieServiceClient:
    """Process-wide client, so every request shares one breaker."""
    global _client
    if _client is None:
        _client = MovieServiceClient(
            settings.movie_service_base_url,
            timeout=settings.movie_service_timeout,
            retry_attempts=settings.movie_service_retry_attempts,
            retry_wait=settings.movie_service_retry_wait,
            breaker=CircuitBreaker(
                "movieService",
                CircuitBreakerConfig(
                    sliding_window_size=settings.cb_sliding_window_size,
                    minimum_number_of_calls=(
                        settings.cb_minimum_number_of_calls),
                    failure_rate_threshold=(
                        settings.cb_failure_rate_threshold),
                    wait_duration_in_open_state=(
                        settings.cb_wait_duration_in_open_state),
                    permitted_calls_in_half_open=(
                        settings.cb_permitted_calls_in_half_open),
                ),
            ),
        )
    return _client


async def close_movie_client() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None
