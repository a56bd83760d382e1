"""
Resolve the signed-in shop owner from the session cookie or header.
"""

from typing import Optional

from fastapi import Depends, HTTPException, Request, status

from mockup_publisher.clients.sqlite_store import SQLiteStore
from mockup_publisher.dependencies.clients import get_session_signer, get_sqlite_store
from mockup_publisher.services.session import InvalidSessionToken, SessionTokenSigner

SESSION_COOKIE_NAME = "session"
SESSION_HEADER_NAME = "X-Session-Token"


def _session_token(request: Request) -> Optional[str]:
    return request.headers.get(SESSION_HEADER_NAME) or request.cookies.get(SESSION_COOKIE_NAME)


def _session_email(request: Request, signer: SessionTokenSigner, store: SQLiteStore) -> str:
    claims = signer.claims(_session_token(request))
    email = claims["sub"]
    # Logging out revokes every token issued up to that moment.
    revoked_at = store.get_sessions_revoked_at(email)
    if revoked_at is not None and float(claims.get("iat", 0)) <= revoked_at:
        raise InvalidSessionToken("Session was signed out.")
    return email


def get_optional_user(
    request: Request,
    signer: SessionTokenSigner = Depends(get_session_signer),
    store: SQLiteStore = Depends(get_sqlite_store),
) -> Optional[str]:
    """Return the session email, or ``None`` for anonymous callers."""
    try:
        return _session_email(request, signer, store)
    except InvalidSessionToken:
        return None


def get_current_user(
    request: Request,
    signer: SessionTokenSigner = Depends(get_session_signer),
    store: SQLiteStore = Depends(get_sqlite_store),
) -> str:
    """Return the session email or reject the request with 401."""
    try:
        return _session_email(request, signer, store)
    except InvalidSessionToken as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required.",
        ) from exc


__all__ = [
    "SESSION_COOKIE_NAME",
    "SESSION_HEADER_NAME",
    "get_current_user",
    "get_optional_user",
]
