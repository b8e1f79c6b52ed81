from __future__ import annotations

from fastapi import APIRouter

from review_api.api.deps import CurrentUser
from review_api.schemas.auth import SessionUserResponse, UserProfile

router = APIRouter(tags=["Employee"])


@router.get("/profile", response_model=SessionUserResponse)
async def profile(user: CurrentUser) -> SessionUserResponse:
    """Return the profile of the logged-in employee."""
    return SessionUserResponse(user=UserProfile(**user))
