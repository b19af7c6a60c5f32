from __future__ import annotations

from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

FALLBACK_TITLE = "Unknown Movie"
FALLBACK_DESCRIPTION = "Movie details temporarily unavailable"
TITLE_UNAVAILABLE = "Movie Title Unavailable"


class MovieDetail(BaseModel):
    """Movie as served by the catalog (camelCase on the wire)."""

    model_config = ConfigDict(alias_generator=to_camel,
                              populate_by_name=True,
                              extra="ignore")

    id: int
    title: str
    description: Optional[str] = None
    duration_minutes: Optional[int] = 0
    genre: Optional[str] = None
    language: Optional[str] = None
    release_date: Optional[date] = None

    @classmethod
    def fallback(cls, movie_id: int) -> "MovieDetail":
        """Placeholder used while the catalog is unavailable."""
        return cls(
            id=movie_id,
            title=FALLBACK_TITLE,
            description=FALLBACK_DESCRIPTION,
            duration_minutes=0,
            genre="Unknown",
            language="Unknown",
            release_date=None,
        )


class MovieExistsResponse(BaseModel):
    movie_id: int
    exists: bool
