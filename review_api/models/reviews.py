from datetime import datetime
from decimal import Decimal
from typing import Annotated, List, Optional

from pydantic import BaseModel, Field, PlainSerializer, field_validator

# Decimal in code, plain JSON number on the wire
JsonDecimal = Annotated[
    Decimal, PlainSerializer(float, return_type=float, when_used="json")
]


class ReviewSubmission(BaseModel):
    movie_id: int
    user_name: str = Field(min_length=1, max_length=100)
    rating: Decimal = Field(ge=Decimal("1.0"), le=Decimal("5.0"),
                            decimal_places=1)
    comment: Optional[str] = Field(default=None, max_length=1000)

    @field_validator("user_name")
    @classmethod
    def user_name_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("User name is required")
        return value


class ReviewItem(BaseModel):
    id: str
    movie_id: int
    movie_title: str
    user_name: str
    rating: JsonDecimal
    comment: Optional[str] = None
    review_date: datetime


class MovieReviewsResponse(BaseModel):
    reviews: List[ReviewItem]
    average_rating: JsonDecimal
    total_reviews: int
    page: int
    total_pages: int
    size: int
    first: bool
    last: bool
