"""
FastAPI dependencies that hand the shared ``Database`` to services.
"""

from fastapi import Depends, Request

from ..core.db import Database
from ..services.booking_service import BookingService
from ..services.catalog_service import CatalogService
from ..services.review_service import ReviewService
from ..services.user_service import UserService


def get_db(request: Request) -> Database:
    return request.app.state.db


def get_user_service(db: Database = Depends(get_db)) -> UserService:
    return UserService(db)


def get_booking_service(db: Database = Depends(get_db)) -> BookingService:
    return BookingService(db)


def get_review_service(db: Database = Depends(get_db)) -> ReviewService:
    return ReviewService(db)


def get_catalog_service(db: Database = Depends(get_db)) -> CatalogService:
    return CatalogService(db)
