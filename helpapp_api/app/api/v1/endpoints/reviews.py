"""
API endpoints for reviews.

A client may review a booking once it is completed.  The response
embeds the author and a summary of the reviewed booking.
"""

from fastapi import APIRouter, Depends, status

from helpapp_api.app.api.deps import get_review_service
from helpapp_api.app.core.security import Identity, require_role
from helpapp_api.app.schemas.review import ReviewCreate, ReviewRead
from helpapp_api.app.schemas.user import Role
from helpapp_api.app.services.review_service import ReviewService


router = APIRouter()


@router.post(
    "/reviews",
    response_model=ReviewRead,
    status_code=status.HTTP_201_CREATED,
    summary="Submit a review",
)
async def create_review(
    data: ReviewCreate,
    identity: Identity = Depends(require_role(Role.CLIENT)),
    reviews: ReviewService = Depends(get_review_service),
) -> ReviewRead:
    """Review a completed booking.  Each booking can be reviewed once."""
    return await reviews.create(identity.user_id, data)
