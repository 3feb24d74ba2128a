"""
Pydantic schemas for reviews.

Clients may review a booking once it is completed.  These schemas
define the payload and the response, which embeds the author and a
summary of the reviewed booking.
"""

from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator

from .booking import BookingStatus
from .common import ApiModel, ProviderSummary, UserSummary

COMMENT_MAX_LENGTH = 1000


class ReviewCreate(ApiModel):
    """Schema for creating a new review."""

    booking_id: int = Field(..., ge=1, description="Identifier of the booking being reviewed")
    rating: int = Field(..., ge=1, le=5, strict=True, description="Rating from 1 to 5")
    comment: Optional[str] = Field(None, description="Optional textual comment")

    @field_validator("rating", mode="before")
    @classmethod
    def integral_rating(cls, v):
        """Accept ``5.0`` as ``5``; strings, booleans and fractions stay invalid."""
        if isinstance(v, float) and v.is_integer():
            return int(v)
        return v

    @field_validator("comment")
    @classmethod
    def sanitize_comment(cls, v: Optional[str]) -> Optional[str]:
        """Trim whitespace from the comment and enforce a maximum length."""
        if v is None:
            return None
        v = v.strip()
        if len(v) > COMMENT_MAX_LENGTH:
            raise ValueError(f"Comment must be {COMMENT_MAX_LENGTH} characters or fewer")
        return v or None


class ReviewedService(ApiModel):
    id: int
    title: str


class ReviewedBooking(ApiModel):
    id: int
    status: BookingStatus
    service: ReviewedService
    provider: ProviderSummary


class ReviewRead(ApiModel):
    id: int
    booking_id: int
    author_id: int
    rating: int
    comment: Optional[str] = None
    created_at: datetime
    author: UserSummary
    booking: ReviewedBooking
