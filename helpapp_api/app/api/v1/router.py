"""
Top‑level router for version 1 of the API.

This router aggregates the domain routers.  When new domains are
introduced, update this file to include their routers.
"""

from fastapi import APIRouter

from .endpoints import auth, bookings, reviews, services

router = APIRouter()

router.include_router(auth.router, tags=["auth"])
# The bookings and reviews routers define their own paths internally.
router.include_router(bookings.router, tags=["bookings"])
router.include_router(reviews.router, tags=["reviews"])
router.include_router(services.router, prefix="/services", tags=["services"])
