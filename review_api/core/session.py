"""Server-side sessions referenced by a signed cookie.

Each request gets a ``Session`` (a dict) exposed as ``request.session`` and
``request.state.session``. After the response is produced the middleware
decides what to persist:

- a new session nobody wrote to is never saved and gets no cookie
- an existing session whose contents did not change is not re-saved
- an invalidated session is destroyed in the store and its cookie cleared
- anything else is saved (last write wins) and the cookie refreshed, unless
  the request ended in a server error, in which case its writes are dropped

Modification is detected by comparing a JSON fingerprint taken at load
time with the contents at the end of the request, so nested mutations
(``session["reviews"].append(...)``) count as writes.
"""

from __future__ import annotations

import json
import logging
import secrets
from typing import Any

from fastapi import Request, Response
from itsdangerous import BadSignature, Signer

from review_api.adapters.session.base import AbstractSessionStore
from review_api.core.config import AppSettings

logger = logging.getLogger(__name__)

_SIGNER_SALT = "review_api.session"


def _fingerprint(data: dict[str, Any]) -> str:
    return json.dumps(data, sort_keys=True, default=str)


class Session(dict):
    """Session data for the current request.

    Attributes:
        session_id: Opaque token stored (signed) in the session cookie.
        is_new: True when no stored record was found for the request.
        invalidated: True after ``invalidate()``; the record will be deleted.
    """

    def __init__(self, session_id: str, data: dict[str, Any] | None = None, *, is_new: bool) -> None:
        super().__init__(data or {})
        self.session_id = session_id
        self.is_new = is_new
        self.invalidated = False
        self._fingerprint = _fingerprint(dict(self))

    @property
    def modified(self) -> bool:
        return _fingerprint(dict(self)) != self._fingerprint

    def invalidate(self) -> None:
        """Drop all data and delete the stored record at the end of the request."""
        self.clear()
        self.invalidated = True


def new_session_id() -> str:
    return secrets.token_urlsafe(32)


def sign_session_id(session_id: str, secret: str) -> str:
    return Signer(secret, salt=_SIGNER_SALT).sign(session_id).decode("utf-8")


def unsign_session_id(cookie_value: str, secret: str) -> str | None:
    """Return the session id from a signed cookie value, or None if tampered."""
    try:
        return Signer(secret, salt=_SIGNER_SALT).unsign(cookie_value).decode("utf-8")
    except BadSignature:
        return None


def _is_secure_request(request: Request, app_settings: AppSettings) -> bool:
    if request.url.scheme == "https":
        return True
    if app_settings.trusted_proxy_hops > 0:
        forwarded_proto = request.headers.get("x-forwarded-proto", "")
        return forwarded_proto.split(",")[0].strip().lower() == "https"
    return False


async def load_session(request: Request, store: AbstractSessionStore, app_settings: AppSettings) -> Session:
    """Resolve the session for ``request`` from its cookie and the store."""

    cookie_value = request.cookies.get(app_settings.session_cookie_name)
    if cookie_value:
        session_id = unsign_session_id(cookie_value, app_settings.session_secret)
        if session_id is None:
            logger.warning("session.bad_signature")
        else:
            data = await store.load(session_id)
            if data is not None:
                return Session(session_id, data, is_new=False)
            logger.debug("session.not_found")

    return Session(new_session_id(), is_new=True)


async def commit_session(
    request: Request,
    response: Response,
    session: Session,
    store: AbstractSessionStore,
    app_settings: AppSettings,
) -> None:
    """Persist, refresh or destroy ``session`` according to what the request did."""

    cookie_name = app_settings.session_cookie_name

    if session.invalidated:
        if not session.is_new:
            await store.destroy(session.session_id)
            logger.info("session.destroyed")
        response.delete_cookie(cookie_name, path="/", httponly=True, samesite="lax")
        return

    if not session.modified:
        return
    if session.is_new and not session:
        return

    await store.save(session.session_id, dict(session))
    logger.info(
        "session.saved",
        extra={"is_new": session.is_new, "keys": sorted(session.keys())},
    )

    response.set_cookie(
        cookie_name,
        sign_session_id(session.session_id, app_settings.session_secret),
        max_age=app_settings.session_timeout_seconds,
        path="/",
        httponly=True,
        secure=_is_secure_request(request, app_settings),
        samesite="lax",
    )


async def session_middleware(request: Request, call_next) -> Response:
    """Attach a session to the request and commit it after the response.

    Reads the store handle from ``request.app.state.session_store`` so tests
    and the application lifespan decide which backend is used.
    """

    app_settings: AppSettings = request.app.state.settings.app
    store: AbstractSessionStore = request.app.state.session_store

    session = await load_session(request, store, app_settings)
    request.scope["session"] = session
    request.state.session = session

    response = await call_next(request)
    if response.status_code >= 500:
        # Writes made by a request that failed are dropped
        logger.info("session.discarded", extra={"status_code": response.status_code})
        return response

    await commit_session(request, response, session, store, app_settings)
    return response
