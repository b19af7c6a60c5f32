from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Dict, Optional

from pydantic import BaseModel

from review_api.models.reviews import JsonDecimal

STARS = (1, 2, 3, 4, 5)


class MovieRating(BaseModel):
    """Cached aggregate for one movie (collection `movie_ratings`)."""

    movie_id: int
    average_rating: JsonDecimal = Decimal("0")
    total_reviews: int = 0
    rating_1_count: int = 0
    rating_2_count: int = 0
    rating_3_count: int = 0
    rating_4_count: int = 0
    rating_5_count: int = 0
    last_updated: Optional[datetime] = None

    def rating_count(self, star: int) -> int:
        return getattr(self, f"rating_{star}_count") if star in STARS else 0

    def distribution(self) -> Dict[str, int]:
        return {str(star): self.rating_count(star) for star in STARS}


class RatingSummary(BaseModel):
    movie_id: int
    movie_title: str
    average_rating: JsonDecimal
    total_reviews: int
    rating_distribution: Dict[str, int]
