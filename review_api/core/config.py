# review_api/core/config.py
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "review_service"
    env: str = Field(default="local")
    host: str = "0.0.0.0"
    port: int = 8080
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    mongo_dsn: str = Field(
        default="mongodb://mongo:27017/reviews",
        alias="MONGO_DSN"
    )
    mongo_db: str = "reviews"

    # movie catalog upstream
    movie_service_base_url: str = Field(
        default="http://movie-service:8080",
        alias="MOVIE_SERVICE_BASE_URL"
    )
    movie_service_timeout: float = 3.0
    movie_service_retry_attempts: int = 2
    movie_service_retry_wait: float = 0.5

    # circuit breaker around the movie catalog
    cb_sliding_window_size: int = 5
    cb_minimum_number_of_calls: int = 3
    cb_failure_rate_threshold: float = 60.0
    cb_wait_duration_in_open_state: float = 3.0
    cb_permitted_calls_in_half_open: int = 2

    sentry_dsn: str = Field(default="", alias="SENTRY_DSN")
    sentry_test_enabled: bool = Field(default=False,
                                      alias="SENTRY_TEST_ENABLED")
    sentry_traces_sample_rate: float = 1.0

    model_config = SettingsConfigDict(env_file="infra/.env", extra="ignore")


settings = Settings()
