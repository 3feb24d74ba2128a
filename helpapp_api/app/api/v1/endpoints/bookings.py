"""
Booking endpoints for API v1.

Clients create bookings; either party lists them; the assigned
provider moves them through their lifecycle.  Ownership and transition
rules live in ``BookingService``; these handlers only compose the
gate with the service call.
"""

from typing import List

from fastapi import APIRouter, Depends, Path, status

from helpapp_api.app.api.deps import get_booking_service
from helpapp_api.app.core.security import Identity, authenticate, require_role
from helpapp_api.app.schemas.booking import BookingCreate, BookingRead, BookingStatusUpdate
from helpapp_api.app.schemas.user import Role
from helpapp_api.app.services.booking_service import BookingService


router = APIRouter()


@router.post(
    "/bookings",
    response_model=BookingRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_booking(
    data: BookingCreate,
    identity: Identity = Depends(require_role(Role.CLIENT)),
    bookings: BookingService = Depends(get_booking_service),
) -> BookingRead:
    """Book a provider's service.  Only clients may create bookings."""
    return await bookings.create(identity.user_id, data)


@router.get("/bookings", response_model=List[BookingRead])
async def list_bookings(
    identity: Identity = Depends(authenticate),
    bookings: BookingService = Depends(get_booking_service),
) -> List[BookingRead]:
    """List the caller's bookings, as client or as provider, newest first."""
    return await bookings.list_for_user(identity.user_id)


@router.patch("/bookings/{booking_id}", response_model=BookingRead)
async def update_booking_status(
    data: BookingStatusUpdate,
    booking_id: int = Path(..., description="ID of the booking"),
    identity: Identity = Depends(require_role(Role.PROVIDER)),
    bookings: BookingService = Depends(get_booking_service),
) -> BookingRead:
    """Accept, reject or complete a booking.

    Only the provider assigned to the booking may change its status.
    """
    return await bookings.update_status(booking_id, data.status, identity.user_id)
