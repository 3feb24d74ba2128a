import asyncio

import pytest

from helpapp_api.app.core.errors import (
    AccountNotFound,
    BookingNotFound,
    InvalidTransition,
    ProviderNotFound,
    ServiceNotFound,
    ServiceOwnershipMismatch,
    TerminalState,
    Unauthorized,
)
from helpapp_api.app.schemas.booking import BookingCreate, BookingStatus
from helpapp_api.app.services import booking_service as booking_module
from helpapp_api.app.services.booking_service import BookingService, check_transition

PENDING = BookingStatus.PENDING
ACCEPTED = BookingStatus.ACCEPTED
REJECTED = BookingStatus.REJECTED
COMPLETED = BookingStatus.COMPLETED


@pytest.fixture
def bookings(db):
    return BookingService(db)


@pytest.fixture
def booking(bookings, seeded):
    return asyncio.run(
        bookings.create(seeded.client, BookingCreate(provider_id=seeded.provider, service_id=seeded.service))
    )


def move(bookings, booking_id, *statuses, provider_id):
    for status in statuses:
        asyncio.run(bookings.update_status(booking_id, status, provider_id))


def stored_status(db, booking_id):
    return db.fetch_one("SELECT status FROM bookings WHERE id = ?", (booking_id,))["status"]


def test_create_starts_pending_with_party_summaries(booking, seeded):
    assert booking.status is PENDING
    assert booking.client_id == seeded.client
    assert booking.provider.id == seeded.provider
    assert booking.provider.email == "provider@example.com"
    assert booking.client.name == "Client"
    assert booking.service.title == "Basic Plumbing Fix"


def test_create_rejects_unknown_provider(bookings, seeded):
    with pytest.raises(ProviderNotFound):
        asyncio.run(bookings.create(seeded.client, BookingCreate(provider_id=9999, service_id=seeded.service)))


def test_create_rejects_user_who_is_not_a_provider(bookings, seeded):
    with pytest.raises(ProviderNotFound):
        asyncio.run(bookings.create(seeded.client, BookingCreate(provider_id=seeded.admin, service_id=seeded.service)))


def test_create_rejects_unknown_service(bookings, seeded):
    with pytest.raises(ServiceNotFound):
        asyncio.run(bookings.create(seeded.client, BookingCreate(provider_id=seeded.provider, service_id=9999)))


def test_create_rejects_service_of_another_provider(bookings, seeded, db):
    with pytest.raises(ServiceOwnershipMismatch):
        asyncio.run(
            bookings.create(seeded.client, BookingCreate(provider_id=seeded.provider, service_id=seeded.other_service))
        )
    assert db.fetch_one("SELECT COUNT(*) AS n FROM bookings")["n"] == 0


@pytest.mark.parametrize(
    "path, final",
    [
        ((ACCEPTED,), ACCEPTED),
        ((REJECTED,), REJECTED),
        ((ACCEPTED, COMPLETED), COMPLETED),
    ],
)
def test_legal_transitions(bookings, booking, seeded, db, path, final):
    move(bookings, booking.id, *path, provider_id=seeded.provider)
    assert stored_status(db, booking.id) == final.value


def test_update_returns_enriched_booking(bookings, booking, seeded):
    updated = asyncio.run(bookings.update_status(booking.id, ACCEPTED, seeded.provider))
    assert updated.status is ACCEPTED
    assert updated.service.id == seeded.service
    assert updated.client.id == seeded.client


@pytest.mark.parametrize(
    "path, attempt, error",
    [
        ((), PENDING, InvalidTransition),
        ((), COMPLETED, InvalidTransition),
        ((ACCEPTED,), PENDING, InvalidTransition),
        ((ACCEPTED,), ACCEPTED, InvalidTransition),
        ((ACCEPTED,), REJECTED, InvalidTransition),
        ((REJECTED,), ACCEPTED, TerminalState),
        ((REJECTED,), PENDING, TerminalState),
        ((ACCEPTED, COMPLETED), PENDING, TerminalState),
        ((ACCEPTED, COMPLETED), REJECTED, TerminalState),
    ],
)
def test_illegal_transitions_leave_status_unchanged(bookings, booking, seeded, db, path, attempt, error):
    move(bookings, booking.id, *path, provider_id=seeded.provider)
    before = stored_status(db, booking.id)
    with pytest.raises(error):
        asyncio.run(bookings.update_status(booking.id, attempt, seeded.provider))
    assert stored_status(db, booking.id) == before


@pytest.mark.parametrize("actor", ["other_provider", "client", "admin"])
def test_only_the_booking_provider_may_update(bookings, booking, seeded, db, actor):
    with pytest.raises(Unauthorized):
        asyncio.run(bookings.update_status(booking.id, ACCEPTED, getattr(seeded, actor)))
    assert stored_status(db, booking.id) == PENDING.value


def test_update_unknown_booking(bookings, seeded):
    with pytest.raises(BookingNotFound):
        asyncio.run(bookings.update_status(9999, ACCEPTED, seeded.provider))


def test_transition_lost_to_concurrent_update_is_rejected(bookings, booking, seeded, db, monkeypatch):
    original = booking_module.check_transition

    def check_then_race(current, new):
        original(current, new)
        # A competing request rejects the booking between our read and our write.
        with db.transaction() as cursor:
            cursor.execute("UPDATE bookings SET status = 'REJECTED' WHERE id = ?", (booking.id,))

    monkeypatch.setattr(booking_module, "check_transition", check_then_race)
    with pytest.raises(InvalidTransition):
        asyncio.run(bookings.update_status(booking.id, ACCEPTED, seeded.provider))
    assert stored_status(db, booking.id) == REJECTED.value


def test_list_for_user_covers_both_roles_newest_first(bookings, seeded):
    first = asyncio.run(
        bookings.create(seeded.client, BookingCreate(provider_id=seeded.provider, service_id=seeded.service))
    )
    other = BookingCreate(provider_id=seeded.other_provider, service_id=seeded.other_service)
    second = asyncio.run(bookings.create(seeded.client, other))
    third = asyncio.run(
        bookings.create(seeded.other_client, BookingCreate(provider_id=seeded.provider, service_id=seeded.service))
    )

    assert [b.id for b in asyncio.run(bookings.list_for_user(seeded.client))] == [second.id, first.id]
    assert [b.id for b in asyncio.run(bookings.list_for_user(seeded.provider))] == [third.id, first.id]
    assert asyncio.run(bookings.list_for_user(seeded.admin)) == []


@pytest.mark.parametrize(
    "current, new",
    [(PENDING, ACCEPTED), (PENDING, REJECTED), (ACCEPTED, COMPLETED)],
)
def test_check_transition_allows_lifecycle_edges(current, new):
    check_transition(current, new)


@pytest.mark.parametrize("terminal", [COMPLETED, REJECTED])
@pytest.mark.parametrize("new", list(BookingStatus))
def test_check_transition_refuses_to_leave_terminal_states(terminal, new):
    with pytest.raises(TerminalState):
        check_transition(terminal, new)


def test_create_for_a_client_missing_from_the_store(bookings, seeded, db):
    with pytest.raises(AccountNotFound):
        asyncio.run(bookings.create(9999, BookingCreate(provider_id=seeded.provider, service_id=seeded.service)))
    assert db.fetch_one("SELECT COUNT(*) AS n FROM bookings")["n"] == 0
