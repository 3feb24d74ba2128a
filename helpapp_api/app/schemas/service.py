"""
Pydantic models for the service catalog.

Service types group the services offered by providers.  Listing the
catalog returns every type with its services and their providers.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import Field, field_validator

from .common import ApiModel, UserSummary


class ServiceTypeCreate(ApiModel):
    name: str = Field(..., min_length=1, examples=["Plumbing"])
    description: Optional[str] = None

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v):
        return v.strip() if isinstance(v, str) else v


class ServiceTypeRead(ApiModel):
    id: int
    name: str
    description: Optional[str] = None
    created_at: Optional[datetime] = None


class ServiceCreate(ApiModel):
    """Schema for a provider offering a new service."""

    title: str = Field(..., min_length=1, examples=["Basic Plumbing Fix"])
    description: Optional[str] = None
    price: float = Field(..., ge=0, examples=[50.0])
    service_type_id: int = Field(..., ge=1)

    @field_validator("title", mode="before")
    @classmethod
    def strip_title(cls, v):
        return v.strip() if isinstance(v, str) else v


class ServiceRead(ApiModel):
    id: int
    title: str
    description: Optional[str] = None
    price: float
    provider_id: int
    service_type_id: int
    created_at: Optional[datetime] = None
    provider: UserSummary


class ServiceTypeWithServices(ServiceTypeRead):
    services: List[ServiceRead] = []
