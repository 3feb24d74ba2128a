"""
Business logic for bookings.

A booking starts ``PENDING``.  Its assigned provider may accept or
reject it, and complete it once accepted::

    PENDING ──> ACCEPTED ──> COMPLETED
       └──────> REJECTED

``COMPLETED`` and ``REJECTED`` are terminal.  Ownership is always
checked against the provider stored on the booking.  Status writes are
conditional on the status that was read, so when two transitions race
only one of them changes the row and the other fails with
``InvalidTransition``.
"""

import logging
import sqlite3
from typing import Dict, FrozenSet, List

from ..core.db import Database, is_foreign_key_violation
from ..core.errors import (
    AccountNotFound,
    BookingNotFound,
    InternalError,
    InvalidTransition,
    ProviderNotFound,
    ServiceNotFound,
    ServiceOwnershipMismatch,
    TerminalState,
    Unauthorized,
)
from ..schemas.booking import BookingCreate, BookingRead, BookingStatus
from ..schemas.user import Role

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: Dict[BookingStatus, FrozenSet[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.ACCEPTED, BookingStatus.REJECTED}),
    BookingStatus.ACCEPTED: frozenset({BookingStatus.COMPLETED}),
}
TERMINAL_STATES: FrozenSet[BookingStatus] = frozenset({BookingStatus.COMPLETED, BookingStatus.REJECTED})

BOOKING_SELECT = """
    SELECT b.id, b.client_id, b.provider_id, b.service_id, b.status,
           b.created_at, b.updated_at,
           c.name AS client_name, c.email AS client_email,
           p.name AS provider_name, p.email AS provider_email,
           s.title AS service_title, s.description AS service_description
    FROM bookings b
    JOIN users c ON c.id = b.client_id
    JOIN users p ON p.id = b.provider_id
    JOIN services s ON s.id = b.service_id
"""


def check_transition(current: BookingStatus, new: BookingStatus) -> None:
    """Raise unless ``current -> new`` is a legal booking transition."""
    if current in TERMINAL_STATES:
        raise TerminalState()
    if new not in ALLOWED_TRANSITIONS.get(current, frozenset()):
        raise InvalidTransition(f"Invalid status transition from {current.value} to {new.value}.")


def _row_to_booking(row: sqlite3.Row) -> BookingRead:
    return BookingRead(
        id=row["id"],
        client_id=row["client_id"],
        provider_id=row["provider_id"],
        service_id=row["service_id"],
        status=row["status"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        client={"id": row["client_id"], "name": row["client_name"], "email": row["client_email"]},
        provider={"id": row["provider_id"], "name": row["provider_name"], "email": row["provider_email"]},
        service={
            "id": row["service_id"],
            "title": row["service_title"],
            "description": row["service_description"],
        },
    )


class BookingService:
    """Service for creating bookings and moving them through their lifecycle."""

    def __init__(self, db: Database) -> None:
        self.db = db

    def get(self, booking_id: int) -> BookingRead:
        row = self.db.fetch_one(BOOKING_SELECT + " WHERE b.id = ?", (booking_id,))
        if not row:
            raise BookingNotFound()
        return _row_to_booking(row)

    async def create(self, client_id: int, data: BookingCreate) -> BookingRead:
        """Create a ``PENDING`` booking of ``data.service_id`` with ``data.provider_id``.

        The provider must exist with the ``PROVIDER`` role and own the
        service.  The caller's ``CLIENT`` role is enforced by the
        endpoint's gate.
        """
        provider = self.db.fetch_one(
            "SELECT id FROM users WHERE id = ? AND role = ?",
            (data.provider_id, Role.PROVIDER.value),
        )
        if not provider:
            raise ProviderNotFound()
        service = self.db.fetch_one(
            "SELECT id, provider_id FROM services WHERE id = ?",
            (data.service_id,),
        )
        if not service:
            raise ServiceNotFound()
        if service["provider_id"] != data.provider_id:
            raise ServiceOwnershipMismatch()

        try:
            with self.db.transaction() as cursor:
                cursor.execute(
                    "INSERT INTO bookings (client_id, provider_id, service_id, status) VALUES (?, ?, ?, ?)",
                    (client_id, data.provider_id, data.service_id, BookingStatus.PENDING.value),
                )
                booking_id = cursor.lastrowid
        except sqlite3.IntegrityError as exc:
            if is_foreign_key_violation(exc):
                # Provider and service were checked above, so the client is the stale reference.
                logger.warning("Booking rejected: client %s no longer exists", client_id)
                raise AccountNotFound()
            logger.error("Booking insert for client %s failed: %s", client_id, exc)
            raise InternalError("Could not store booking")
        logger.info(
            "Client %s booked service %s with provider %s (booking %s)",
            client_id, data.service_id, data.provider_id, booking_id,
        )
        return self.get(booking_id)

    async def update_status(
        self, booking_id: int, new_status: BookingStatus, acting_provider_id: int
    ) -> BookingRead:
        """Move a booking to ``new_status`` on behalf of its provider."""
        row = self.db.fetch_one(
            "SELECT id, provider_id, status FROM bookings WHERE id = ?",
            (booking_id,),
        )
        if not row:
            raise BookingNotFound()
        if row["provider_id"] != acting_provider_id:
            raise Unauthorized("Unauthorized: You are not the provider for this booking.")
        current = BookingStatus(row["status"])
        check_transition(current, new_status)

        with self.db.transaction() as cursor:
            cursor.execute(
                """
                UPDATE bookings SET status = ?, updated_at = CURRENT_TIMESTAMP
                WHERE id = ? AND provider_id = ? AND status = ?
                """,
                (new_status.value, booking_id, acting_provider_id, current.value),
            )
            changed = cursor.rowcount
        if changed != 1:
            # Another request moved the booking after we read it.
            logger.warning(
                "Booking %s changed concurrently; %s -> %s not applied",
                booking_id, current.value, new_status.value,
            )
            raise InvalidTransition(f"Invalid status transition from {current.value} to {new_status.value}.")
        logger.info(
            "Provider %s moved booking %s from %s to %s",
            acting_provider_id, booking_id, current.value, new_status.value,
        )
        return self.get(booking_id)

    async def list_for_user(self, user_id: int) -> List[BookingRead]:
        """Return bookings where the user is the client or the provider, newest first."""
        rows = self.db.fetch_all(
            BOOKING_SELECT + " WHERE b.client_id = ? OR b.provider_id = ? ORDER BY b.created_at DESC, b.id DESC",
            (user_id, user_id),
        )
        return [_row_to_booking(row) for row in rows]
