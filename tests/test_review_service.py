import asyncio
import sqlite3
from contextlib import contextmanager

import pydantic
import pytest

from helpapp_api.app.core.errors import (
    BookingNotCompleted,
    BookingNotFound,
    InternalError,
    ReviewAlreadyExists,
    Unauthorized,
    ValidationError,
)
from helpapp_api.app.schemas.booking import BookingCreate, BookingStatus
from helpapp_api.app.schemas.review import ReviewCreate
from helpapp_api.app.services.booking_service import BookingService
from helpapp_api.app.services.review_service import ReviewService


@pytest.fixture
def reviews(db):
    return ReviewService(db)


@pytest.fixture
def make_booking(db, seeded):
    bookings = BookingService(db)

    def _make(*statuses):
        booking = asyncio.run(
            bookings.create(seeded.client, BookingCreate(provider_id=seeded.provider, service_id=seeded.service))
        )
        for status in statuses:
            asyncio.run(bookings.update_status(booking.id, status, seeded.provider))
        return booking

    return _make


@pytest.fixture
def completed(make_booking):
    return make_booking(BookingStatus.ACCEPTED, BookingStatus.COMPLETED)


def review_count(db):
    return db.fetch_one("SELECT COUNT(*) AS n FROM reviews")["n"]


def test_client_reviews_completed_booking(reviews, completed, seeded):
    review = asyncio.run(
        reviews.create(seeded.client, ReviewCreate(booking_id=completed.id, rating=5, comment="  Great job  "))
    )
    assert review.rating == 5
    assert review.comment == "Great job"
    assert review.author.id == seeded.client
    assert review.author.email == "client@example.com"
    assert review.booking.id == completed.id
    assert review.booking.status is BookingStatus.COMPLETED
    assert review.booking.service.title == "Basic Plumbing Fix"
    assert review.booking.provider.id == seeded.provider


def test_comment_is_optional(reviews, completed, seeded):
    review = asyncio.run(reviews.create(seeded.client, ReviewCreate(booking_id=completed.id, rating=1)))
    assert review.comment is None


def test_unknown_booking(reviews, seeded):
    with pytest.raises(BookingNotFound):
        asyncio.run(reviews.create(seeded.client, ReviewCreate(booking_id=9999, rating=4)))


@pytest.mark.parametrize("statuses", [(), (BookingStatus.ACCEPTED,), (BookingStatus.REJECTED,)])
def test_booking_must_be_completed(reviews, make_booking, seeded, db, statuses):
    booking = make_booking(*statuses)
    with pytest.raises(BookingNotCompleted):
        asyncio.run(reviews.create(seeded.client, ReviewCreate(booking_id=booking.id, rating=4)))
    assert review_count(db) == 0


@pytest.mark.parametrize("author", ["other_client", "provider"])
def test_only_the_booking_client_may_review(reviews, completed, seeded, db, author):
    with pytest.raises(Unauthorized):
        asyncio.run(reviews.create(getattr(seeded, author), ReviewCreate(booking_id=completed.id, rating=4)))
    assert review_count(db) == 0


def test_second_review_for_same_booking_is_rejected(reviews, completed, seeded, db):
    asyncio.run(reviews.create(seeded.client, ReviewCreate(booking_id=completed.id, rating=5)))
    with pytest.raises(ReviewAlreadyExists):
        asyncio.run(reviews.create(seeded.client, ReviewCreate(booking_id=completed.id, rating=3)))
    assert review_count(db) == 1


def test_concurrent_duplicate_is_caught_by_unique_constraint(reviews, completed, seeded, db, monkeypatch):
    original_fetch_one = db.fetch_one

    def fetch_one(sql, params=()):
        if sql.startswith("SELECT id FROM reviews"):
            # The competing request inserts its review right after our check.
            with db.transaction() as cursor:
                cursor.execute(
                    "INSERT INTO reviews (booking_id, author_id, rating) VALUES (?, ?, ?)",
                    (completed.id, seeded.client, 2),
                )
            return None
        return original_fetch_one(sql, params)

    monkeypatch.setattr(db, "fetch_one", fetch_one)
    with pytest.raises(ReviewAlreadyExists):
        asyncio.run(reviews.create(seeded.client, ReviewCreate(booking_id=completed.id, rating=5)))
    monkeypatch.undo()
    assert review_count(db) == 1


@pytest.mark.parametrize("rating", [0, 6, True])
def test_rating_is_reasserted(reviews, completed, seeded, rating):
    data = ReviewCreate.model_construct(booking_id=completed.id, rating=rating, comment=None)
    with pytest.raises(ValidationError):
        asyncio.run(reviews.create(seeded.client, data))


def test_non_unique_constraint_failure_is_not_a_duplicate(reviews, completed, seeded, db, monkeypatch):
    @contextmanager
    def failing_transaction():
        raise sqlite3.IntegrityError("FOREIGN KEY constraint failed")
        yield

    monkeypatch.setattr(db, "transaction", failing_transaction)
    with pytest.raises(InternalError):
        asyncio.run(reviews.create(seeded.client, ReviewCreate(booking_id=completed.id, rating=5)))


def test_integral_float_rating_is_accepted():
    assert ReviewCreate(booking_id=1, rating=5.0).rating == 5


@pytest.mark.parametrize("rating", ["5", True, 4.5, 6.0])
def test_non_integer_or_out_of_range_rating_is_rejected(rating):
    with pytest.raises(pydantic.ValidationError):
        ReviewCreate(booking_id=1, rating=rating)
