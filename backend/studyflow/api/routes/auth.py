"""
Authentication Routes

Endpoints:
- POST /auth/google - Exchange a Google id_token for a session
- POST /auth/logout - Clear session
- GET /auth/me - Get current user identity

The client runs Google's popup sign-in and posts the resulting id_token
here. The token is verified against Google's public keys, the user is
upserted, and a JWT is returned both in an HttpOnly cookie and in the body.
Google access/refresh tokens are never stored.
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, HTTPException, Response, status
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token as google_id_token
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from studyflow.api.deps import CurrentUser, DbSession, create_access_token
from studyflow.config import get_settings
from studyflow.db.models import AuthIdentity, User
from studyflow.schemas.auth import GoogleAuthRequest, TokenResponse
from studyflow.schemas.user import UserRead

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])
settings = get_settings()

GOOGLE_ISSUERS = ("accounts.google.com", "https://accounts.google.com")


def verify_google_token(token: str) -> dict:
    """
    Verify a Google id_token and return its claims.

    Checks signature, expiry, audience and issuer.

    Raises:
        ValueError: If the token is invalid
    """
    idinfo = google_id_token.verify_oauth2_token(
        token,
        google_requests.Request(),
        settings.google_client_id,
    )
    if idinfo.get("iss") not in GOOGLE_ISSUERS:
        raise ValueError("Invalid issuer")
    return idinfo


async def upsert_google_user(db: AsyncSession, idinfo: dict) -> User:
    """
    Find or create the user behind a verified Google identity.

    Unverified emails are ignored for account linking to avoid hijacking.
    """
    provider_user_id = idinfo["sub"]
    email = idinfo.get("email")
    name = idinfo.get("name", email or "Unknown User")
    if email and not idinfo.get("email_verified", False):
        email = None

    result = await db.execute(
        select(AuthIdentity)
        .options(selectinload(AuthIdentity.user))
        .where(
            AuthIdentity.provider == "google",
            AuthIdentity.provider_user_id == provider_user_id,
        )
    )
    auth_identity = result.scalar_one_or_none()

    if auth_identity:
        auth_identity.last_login_at = datetime.now(timezone.utc)
        if email:
            auth_identity.email = email
        return auth_identity.user

    user = None
    if email:
        result = await db.execute(select(User).where(User.email == email.lower()))
        user = result.scalar_one_or_none()

    if user is None:
        user = User(email=email.lower() if email else None, name=name)
        db.add(user)
        await db.flush()  # Get user.id
        logger.info("Created user %s from Google sign-in", user.id)

    db.add(
        AuthIdentity(
            user_id=user.id,
            provider="google",
            provider_user_id=provider_user_id,
            email=email,
        )
    )
    return user


def _cookie_options() -> dict:
    # Cross-domain deployments need samesite="none" + secure=True
    return {
        "httponly": True,
        "secure": settings.cookie_cross_domain or settings.environment != "development",
        "samesite": "none" if settings.cookie_cross_domain else "lax",
    }


@router.post("/google", response_model=TokenResponse)
async def google_login(
    request: GoogleAuthRequest,
    response: Response,
    db: DbSession,
) -> TokenResponse:
    """Exchange a Google id_token for a session JWT."""
    try:
        idinfo = verify_google_token(request.id_token)
    except ValueError as e:
        logger.warning("Rejected Google id_token: %s", e)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid Google id_token: {e}",
        )

    user = await upsert_google_user(db, idinfo)
    await db.commit()

    access_token = create_access_token(user.id)
    expires_in = settings.jwt_expire_minutes * 60
    response.set_cookie(
        key="access_token",
        value=access_token,
        max_age=expires_in,
        **_cookie_options(),
    )

    return TokenResponse(access_token=access_token, expires_in=expires_in)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(response: Response) -> None:
    """
    Clear the authentication cookie.

    A JWT the client stored elsewhere stays valid until it expires.
    """
    response.delete_cookie(key="access_token", **_cookie_options())


@router.get("/me", response_model=UserRead)
async def get_me(current_user: CurrentUser) -> UserRead:
    """Get the current authenticated user's identity."""
    return UserRead.model_validate(current_user)
