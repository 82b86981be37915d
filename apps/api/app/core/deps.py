"""FastAPI dependencies for authentication, tenant context, and database access."""

from typing import Generator
from uuid import UUID

import jwt
from fastapi import Depends, HTTPException, Request, Response
from sqlalchemy.orm import Session

from app.core import permissions
from app.core.config import settings
from app.core.org_context import resolve_org_context
from app.core.security import create_session_token, decode_session_token
from app.db.models import User
from app.db.session import SessionLocal
from app.schemas.auth import OrgContext


# Cookie and header names
COOKIE_NAME = "compass_session"
CSRF_HEADER = "X-Requested-With"
CSRF_HEADER_VALUE = "XMLHttpRequest"


def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency.

    Yields a database session and ensures it's closed after the request.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _decode_cookie(request: Request) -> dict | None:
    token = request.cookies.get(COOKIE_NAME)
    if not token:
        return None
    try:
        return decode_session_token(token)
    except jwt.InvalidTokenError:
        return None


def get_current_user_optional(
    request: Request,
    db: Session = Depends(get_db),
) -> User | None:
    """
    Authenticated user from the session cookie, or None.

    Validates the JWT, that the user exists and is active, and that the
    token version matches (revocation support).
    """
    payload = _decode_cookie(request)
    if payload is None:
        return None
    try:
        user_id = UUID(payload["sub"])
    except (KeyError, ValueError):
        return None
    user = db.get(User, user_id)
    if not user or not user.is_active:
        return None
    if user.token_version != payload.get("token_version"):
        return None
    return user


def get_current_user(
    user: User | None = Depends(get_current_user_optional),
) -> User:
    """
    Raises:
        HTTPException 401: Authentication failed
    """
    if user is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return user


def get_org_context(
    request: Request,
    db: Session = Depends(get_db),
    user: User | None = Depends(get_current_user_optional),
) -> OrgContext | None:
    """
    Request-scoped tenant binding.

    Resolved once per request; routers pass the value explicitly into
    services.
    """
    requested_org_id = None
    if user is not None:
        payload = _decode_cookie(request) or {}
        raw_org_id = payload.get("org_id")
        if raw_org_id:
            try:
                requested_org_id = UUID(raw_org_id)
            except ValueError:
                requested_org_id = None
    return resolve_org_context(db, user, requested_org_id)


def require_org_context(
    context: OrgContext | None = Depends(get_org_context),
) -> OrgContext:
    """
    Raises:
        HTTPException 401: No session or no active organization
    """
    if context is None:
        raise HTTPException(status_code=401, detail="No organization context")
    return context


def require_admin_context(
    context: OrgContext = Depends(require_org_context),
) -> OrgContext:
    """
    Org context for OWNER/ADMIN callers only.

    Raises:
        Forbidden: caller is not an admin in the active org
    """
    permissions.require_admin(context)
    return context


def require_csrf_header(request: Request) -> None:
    """
    Verify CSRF header on mutations.

    Apply to state-changing endpoints (POST, PATCH, DELETE).

    Raises:
        HTTPException 403: Missing or invalid CSRF header
    """
    if request.headers.get(CSRF_HEADER) != CSRF_HEADER_VALUE:
        raise HTTPException(
            status_code=403,
            detail=f"Missing CSRF header. Include '{CSRF_HEADER}: {CSRF_HEADER_VALUE}'"
        )


def set_session_cookie(response: Response, user: User, org_id: UUID | None) -> None:
    """Issue (or re-issue) the session cookie bound to `org_id`."""
    response.set_cookie(
        key=COOKIE_NAME,
        value=create_session_token(user.id, org_id, user.token_version),
        max_age=settings.JWT_EXPIRES_HOURS * 3600,
        httponly=True,
        samesite="lax",
        secure=settings.cookie_secure,
        path="/",
    )
