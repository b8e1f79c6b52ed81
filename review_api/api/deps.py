"""Request-scoped dependencies shared by the route groups."""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import Depends, Request

from review_api.core.errors import AuthenticationAppError
from review_api.core.session import Session

SESSION_USER_KEY = "user"


def get_session(request: Request) -> Session:
    return request.state.session


def require_user(session: Annotated[Session, Depends(get_session)]) -> dict[str, Any]:
    """Return the logged-in user stored in the session.

    Raises:
        AuthenticationAppError: If the session holds no user.
    """
    user = session.get(SESSION_USER_KEY)
    if not user:
        raise AuthenticationAppError(
            code="not_authenticated",
            message="Login required",
            details={"hint": "POST /api/v1/auth/login first"},
        )
    return user


SessionDep = Annotated[Session, Depends(get_session)]
CurrentUser = Annotated[dict[str, Any], Depends(require_user)]
