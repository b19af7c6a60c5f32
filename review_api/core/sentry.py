import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.logging import LoggingIntegration

from review_api.core.exceptions import MovieNotFound, ReviewNotFound


def init_sentry(dsn: str,
                environment: str = "dev",
                traces_sample_rate: float = 1.0) -> bool:
    """Enable Sentry when a DSN is configured; return whether it was."""
    if not dsn:
        return False
    sentry_sdk.init(
        dsn=dsn,
        environment=environment,
        integrations=[
            LoggingIntegration(level=None, event_level=None),
            FastApiIntegration(),
        ],
        # not-found answers are business facts, not incidents
        ignore_errors=[MovieNotFound, ReviewNotFound],
        traces_sample_rate=traces_sample_rate,
        send_default_pii=False,
    )
    return True
