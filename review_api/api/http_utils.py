from functools import wraps
from http import HTTPStatus

from fastapi import HTTPException

from review_api.core.exceptions import ReviewServiceError


def handle_runtime_errors(mapping: dict[str, HTTPStatus]):
    """
    Translate service errors into HTTPException.

    Domain errors are matched by their `code`, RuntimeError by a text code
    contained in its message. Example mapping:
    {"movie_not_found": 404, "movie_service_unavailable": 503}
    Anything unmapped becomes 500 internal_error.
    """
    def decorator(fn):
        @wraps(fn)
        async def wrapper(*args, **kwargs):
            try:
                return await fn(*args, **kwargs)
            except ReviewServiceError as e:
                status = mapping.get(e.code)
                if status is None:
                    raise HTTPException(
                        status_code=HTTPStatus.INTERNAL_SERVER_ERROR,
                        detail="internal_error")
                raise HTTPException(status_code=status, detail=e.code)
            except RuntimeError as e:
                msg = str(e)
                for key, status in mapping.items():
                    if key in msg:
                        raise HTTPException(status_code=status, detail=key)
                raise HTTPException(
                    status_code=HTTPStatus.INTERNAL_SERVER_ERROR,
                    detail="internal_error")
        return wrapper
    return decorator
