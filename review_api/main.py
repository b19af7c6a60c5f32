from contextlib import asynccontextmanager

from fastapi import FastAPI

from review_api.api.v1.debug import include_debug_routes
from review_api.api.v1.movies import router as movies_router
from review_api.api.v1.reviews import router as reviews_router
from review_api.clients.movie_service import close_movie_client
from review_api.core.config import settings
from review_api.core.logger import setup_json_logging, shutdown_logging
from review_api.core.middleware import RequestContextMiddleware
from review_api.core.sentry import init_sentry
from review_api.db.mongo import close_client, ensure_indexes, get_mongo_db


@asynccontextmanager
async def lifespan(app: FastAPI):
    # logging first, so startup problems are visible
    setup_json_logging(service=settings.app_name, level=settings.log_level)
    init_sentry(settings.sentry_dsn,
                environment=settings.env,
                traces_sample_rate=settings.sentry_traces_sample_rate)

    await ensure_indexes(await get_mongo_db())

    try:
        yield
    finally:
        await close_movie_client()
        await close_client()
        shutdown_logging()


app = FastAPI(title="Review Service", lifespan=lifespan)

app.add_middleware(RequestContextMiddleware)

include_debug_routes(app)


@app.get("/health")
def health():
    return {"status": "ok"}


app.include_router(reviews_router)
app.include_router(movies_router)
