"""Catalog gateway: classification, retries, breaker and fallback."""

import asyncio
from datetime import date

import httpx
import pytest

from review_api.clients.circuit_breaker import CircuitState
from review_api.clients.movie_service import MovieServiceClient
from review_api.core.exceptions import (
    CallNotPermitted,
    MovieNotFound,
    MovieServiceUnavailable,
)
from review_api.models.movies import (
    FALLBACK_DESCRIPTION,
    FALLBACK_TITLE,
    TITLE_UNAVAILABLE,
)


@pytest.fixture
async def single_shot(catalog, breaker):
    """Client without retries: one outbound request per call."""
    client = MovieServiceClient(
        "http://movie-service",
        retry_attempts=1,
        retry_wait=0,
        breaker=breaker,
        transport=httpx.MockTransport(catalog.handler),
    )
    yield client
    await client.aclose()


async def test_get_movie_parses_catalog_payload(movies, catalog):
    catalog.add(1, "Inception")

    movie = await movies.get_movie(1)

    assert movie.title == "Inception"
    assert movie.duration_minutes == 148
    assert movie.release_date == date(2010, 7, 16)
    assert catalog.calls == 1


async def test_not_found_is_raised_once_and_not_counted(movies, catalog):
    with pytest.raises(MovieNotFound):
        await movies.get_movie(404)

    assert catalog.calls == 1
    assert movies.breaker.metrics()["buffered_calls"] == 0


async def test_null_body_means_not_found(movies, catalog):
    catalog.body = b"null"

    with pytest.raises(MovieNotFound):
        await movies.get_movie(1)
    assert catalog.calls == 1


async def test_server_error_is_retried_then_falls_back(movies, catalog):
    catalog.add(1)
    catalog.fail(503)

    movie = await movies.get_movie(1)

    assert catalog.calls == 2
    assert movie.id == 1
    assert movie.title == FALLBACK_TITLE
    assert movie.description == FALLBACK_DESCRIPTION
    assert movie.duration_minutes == 0
    assert movie.release_date is None


async def test_retry_recovers_when_second_attempt_succeeds(catalog, breaker):
    catalog.add(1, "Heat")
    statuses = [500]

    async def flaky(request):
        if statuses:
            catalog.calls += 1
            return httpx.Response(statuses.pop(), json={})
        return await catalog.handler(request)

    client = MovieServiceClient(
        "http://movie-service",
        retry_attempts=2,
        retry_wait=0,
        breaker=breaker,
        transport=httpx.MockTransport(flaky),
    )
    try:
        movie = await client.get_movie(1)
    finally:
        await client.aclose()

    assert movie.title == "Heat"
    assert catalog.calls == 2
    assert breaker.metrics()["failed_calls"] == 1
    assert breaker.metrics()["successful_calls"] == 1


@pytest.mark.parametrize("status", [400, 409, 502, 504])
async def test_other_statuses_are_availability_faults(movies, catalog, status):
    catalog.fail(status)

    with pytest.raises(MovieServiceUnavailable):
        await movies.fetch_movie(1)


async def test_connection_error_falls_back(movies, catalog):
    catalog.error = httpx.ConnectError

    movie = await movies.get_movie(1)
    assert movie.title == FALLBACK_TITLE
    assert catalog.calls == 2


async def test_malformed_body_falls_back(movies, catalog):
    catalog.body = b"{not json"

    assert (await movies.get_movie(1)).title == FALLBACK_TITLE


async def test_invalid_movie_shape_falls_back(movies, catalog):
    catalog.body = b'{"id": "abc"}'

    assert (await movies.get_movie(1)).title == FALLBACK_TITLE


async def test_slow_attempt_times_out(catalog, breaker):
    catalog.add(1)
    catalog.delay = 0.5
    client = MovieServiceClient(
        "http://movie-service",
        timeout=0.05,
        retry_attempts=1,
        retry_wait=0,
        breaker=breaker,
        transport=httpx.MockTransport(catalog.handler),
    )
    try:
        with pytest.raises(MovieServiceUnavailable):
            await client.fetch_movie(1)
        assert breaker.metrics()["failed_calls"] == 1
    finally:
        await client.aclose()


async def test_consecutive_faults_open_breaker_and_stop_traffic(
        single_shot, catalog):
    catalog.fail(503)

    for _ in range(5):
        movie = await single_shot.get_movie(1)
        assert movie.title == FALLBACK_TITLE

    assert single_shot.breaker.state is CircuitState.OPEN
    # three failures opened it; the remaining calls never left the process
    assert catalog.calls == 3

    for _ in range(3):
        assert (await single_shot.get_movie(1)).title == FALLBACK_TITLE
    assert catalog.calls == 3


async def test_open_breaker_strict_fetch_raises_not_permitted(
        single_shot, catalog):
    catalog.fail(503)
    for _ in range(3):
        await single_shot.get_movie(1)

    with pytest.raises(CallNotPermitted):
        await single_shot.fetch_movie(1)


async def test_half_open_trials_close_breaker(single_shot, catalog, clock):
    catalog.add(1, "Alien")
    catalog.fail(503)
    for _ in range(3):
        await single_shot.get_movie(1)
    assert single_shot.breaker.state is CircuitState.OPEN

    clock.advance(3.0)
    catalog.heal()

    assert (await single_shot.get_movie(1)).title == "Alien"
    assert single_shot.breaker.state is CircuitState.HALF_OPEN
    assert (await single_shot.get_movie(1)).title == "Alien"
    assert single_shot.breaker.state is CircuitState.CLOSED


async def test_half_open_trial_failure_reopens(single_shot, catalog, clock):
    catalog.fail(503)
    for _ in range(3):
        await single_shot.get_movie(1)

    clock.advance(3.0)
    calls_before = catalog.calls
    await single_shot.get_movie(1)

    assert catalog.calls == calls_before + 1
    assert single_shot.breaker.state is CircuitState.OPEN


async def test_not_found_does_not_open_breaker(single_shot, catalog):
    for _ in range(10):
        with pytest.raises(MovieNotFound):
            await single_shot.get_movie(99)

    assert single_shot.breaker.state is CircuitState.CLOSED
    assert catalog.calls == 10


async def test_movie_exists(movies, catalog):
    catalog.add(1)

    assert await movies.movie_exists(1) is True
    assert await movies.movie_exists(2) is False


async def test_movie_exists_raises_when_unknown(movies, catalog):
    catalog.fail(500)

    with pytest.raises(MovieServiceUnavailable):
        await movies.movie_exists(1)


async def test_get_movie_title_variants(movies, catalog):
    catalog.add(1, "Arrival")

    assert await movies.get_movie_title(1) == "Arrival"
    assert await movies.get_movie_title(2) == FALLBACK_TITLE

    catalog.fail(503)
    assert await movies.get_movie_title(1) == TITLE_UNAVAILABLE


async def test_cancelled_trials_do_not_wedge_half_open(
        single_shot, catalog, clock):
    catalog.add(1, "Alien")
    catalog.fail(503)
    for _ in range(3):
        await single_shot.get_movie(1)
    clock.advance(3.0)

    catalog.heal()
    catalog.delay = 5.0
    trials = [asyncio.create_task(single_shot.fetch_movie(1))
              for _ in range(2)]
    await asyncio.sleep(0.01)
    for task in trials:
        task.cancel()
    await asyncio.gather(*trials, return_exceptions=True)

    catalog.delay = 0.0
    movie = await single_shot.fetch_movie(1)

    assert movie.title == "Alien"
    assert single_shot.breaker.state is CircuitState.HALF_OPEN
