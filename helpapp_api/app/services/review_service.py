"""
Business logic for reviews.

A review may be attached to a booking only after the booking is
``COMPLETED``, only by that booking's client, and only once.  The
one-review-per-booking rule is checked before inserting and is also
backed by the ``UNIQUE`` constraint on ``reviews.booking_id``; if a
concurrent request wins the race the constraint violation is reported
as ``ReviewAlreadyExists`` as well.
"""

import logging
import sqlite3

from ..core.db import Database, is_unique_violation
from ..core.errors import (
    BookingNotCompleted,
    BookingNotFound,
    InternalError,
    ReviewAlreadyExists,
    Unauthorized,
    ValidationError,
)
from ..schemas.booking import BookingStatus
from ..schemas.review import ReviewCreate, ReviewRead

logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 5

REVIEW_SELECT = """
    SELECT r.id, r.booking_id, r.author_id, r.rating, r.comment, r.created_at,
           a.name AS author_name, a.email AS author_email,
           b.status AS booking_status, b.service_id, b.provider_id,
           s.title AS service_title,
           p.name AS provider_name
    FROM reviews r
    JOIN users a ON a.id = r.author_id
    JOIN bookings b ON b.id = r.booking_id
    JOIN services s ON s.id = b.service_id
    JOIN users p ON p.id = b.provider_id
"""


def _row_to_review(row: sqlite3.Row) -> ReviewRead:
    return ReviewRead(
        id=row["id"],
        booking_id=row["booking_id"],
        author_id=row["author_id"],
        rating=row["rating"],
        comment=row["comment"],
        created_at=row["created_at"],
        author={"id": row["author_id"], "name": row["author_name"], "email": row["author_email"]},
        booking={
            "id": row["booking_id"],
            "status": row["booking_status"],
            "service": {"id": row["service_id"], "title": row["service_title"]},
            "provider": {"id": row["provider_id"], "name": row["provider_name"]},
        },
    )


class ReviewService:
    """Service for admitting reviews of completed bookings."""

    def __init__(self, db: Database) -> None:
        self.db = db

    def get(self, review_id: int) -> ReviewRead:
        row = self.db.fetch_one(REVIEW_SELECT + " WHERE r.id = ?", (review_id,))
        return _row_to_review(row)

    async def create(self, author_id: int, data: ReviewCreate) -> ReviewRead:
        """Create a review of ``data.booking_id`` written by ``author_id``."""
        rating = data.rating
        if isinstance(rating, bool) or not isinstance(rating, int) or not MIN_RATING <= rating <= MAX_RATING:
            raise ValidationError(f"Rating must be an integer between {MIN_RATING} and {MAX_RATING}")

        booking = self.db.fetch_one(
            "SELECT id, client_id, status FROM bookings WHERE id = ?",
            (data.booking_id,),
        )
        if not booking:
            raise BookingNotFound()
        if booking["status"] != BookingStatus.COMPLETED.value:
            raise BookingNotCompleted()
        if booking["client_id"] != author_id:
            raise Unauthorized("Unauthorized: Only the client who made the booking can review it.")
        existing = self.db.fetch_one(
            "SELECT id FROM reviews WHERE booking_id = ?",
            (data.booking_id,),
        )
        if existing:
            raise ReviewAlreadyExists()

        try:
            with self.db.transaction() as cursor:
                cursor.execute(
                    "INSERT INTO reviews (booking_id, author_id, rating, comment) VALUES (?, ?, ?, ?)",
                    (data.booking_id, author_id, rating, data.comment),
                )
                review_id = cursor.lastrowid
        except sqlite3.IntegrityError as exc:
            if not is_unique_violation(exc):
                logger.error("Review insert for booking %s failed: %s", data.booking_id, exc)
                raise InternalError("Could not store review")
            logger.warning("Duplicate review for booking %s rejected by the store", data.booking_id)
            raise ReviewAlreadyExists()
        logger.info("User %s submitted review %s for booking %s", author_id, review_id, data.booking_id)
        return self.get(review_id)
