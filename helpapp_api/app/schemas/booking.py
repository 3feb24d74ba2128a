"""
Pydantic models for bookings.

A booking links a client, a provider and one of the provider's
services.  Its ``status`` follows the lifecycle enforced by
``services.booking_service``.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import Field

from .common import ApiModel, ServiceSummary, UserSummary


class BookingStatus(str, Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    COMPLETED = "COMPLETED"


class BookingCreate(ApiModel):
    """Schema for creating a booking."""

    provider_id: int = Field(..., ge=1, description="Provider offering the service")
    service_id: int = Field(..., ge=1, description="Service to book; must belong to the provider")


class BookingStatusUpdate(ApiModel):
    status: BookingStatus


class BookingRead(ApiModel):
    id: int
    client_id: int
    provider_id: int
    service_id: int
    status: BookingStatus
    created_at: datetime
    updated_at: Optional[datetime] = None
    client: UserSummary
    provider: UserSummary
    service: ServiceSummary
