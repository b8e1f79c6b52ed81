"""Auth route group: starts and ends the session-backed login."""

from __future__ import annotations

import logging

from fastapi import APIRouter

from review_api.api.deps import SESSION_USER_KEY, CurrentUser, SessionDep
from review_api.schemas.auth import LoginRequest, SessionUserResponse, UserProfile

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Auth"])


@router.post("/login", response_model=SessionUserResponse)
async def login(payload: LoginRequest, session: SessionDep) -> SessionUserResponse:
    """Store the user profile in the session.

    The first write to a new session is what makes the session middleware
    persist it and send the session cookie.
    """
    profile = UserProfile(email=payload.email, name=payload.name, role=payload.role)
    session[SESSION_USER_KEY] = profile.model_dump()
    logger.info("auth.login", extra={"role": profile.role})
    return SessionUserResponse(user=profile)


@router.post("/logout", status_code=204)
async def logout(session: SessionDep) -> None:
    session.invalidate()
    logger.info("auth.logout")


@router.get("/me", response_model=SessionUserResponse)
async def me(user: CurrentUser) -> SessionUserResponse:
    return SessionUserResponse(user=UserProfile(**user))
