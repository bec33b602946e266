"""Authentication endpoints."""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timezone
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import RedirectResponse
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .. import models, schemas
from ..auth import check_user_can_authenticate, create_access_token, get_current_user
from ..deps import get_db
from ..services.auth_identities import add_password_identity, find_identity_by_password
from ..services.oauth import (
    PROVIDERS,
    OAuthError,
    OAuthProvider,
    build_authorize_url,
    fetch_profile,
    resolve_oauth_user,
)
from ..services.user_profiles import annotate_user_with_follows
from ..settings import CLIENT_URL, is_production
from ..utils.handles import is_username_taken

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])

OAUTH_STATE_COOKIE = "oauth_state"
OAUTH_STATE_MAX_AGE_SECONDS = 600


def _auth_response(db: Session, user: models.User, message: str) -> schemas.ApiResponse[schemas.AuthData]:
    annotate_user_with_follows(db, user)
    return schemas.ApiResponse(
        message=message,
        data=schemas.AuthData(
            token=create_access_token(user.id),
            user=schemas.UserFull.model_validate(user),
        ),
    )


@router.post(
    "/register",
    response_model=schemas.ApiResponse[schemas.AuthData],
    status_code=status.HTTP_201_CREATED,
)
def register(
    payload: schemas.RegisterRequest,
    db: Session = Depends(get_db),
) -> schemas.ApiResponse[schemas.AuthData]:
    """
    Register a new user with a password.

    - Email is stored lower-cased and must be unused
    - Username must be unused
    - Returns a signed token so the client is logged in immediately
    """
    email = payload.email.lower().strip()

    existing_email = db.query(models.User).filter(models.User.email == email).first()
    if existing_email:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email already registered",
        )

    if is_username_taken(db, payload.username):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Username already taken",
        )

    user = models.User(
        username=payload.username,
        email=email,
        first_name=payload.first_name,
        last_name=payload.last_name,
        role="user",
        is_active=True,
        is_email_verified=False,
        social_links={},
        preferences={"email_notifications": True, "newsletter": False},
        last_login=datetime.now(timezone.utc),
    )
    db.add(user)
    try:
        db.flush()
        add_password_identity(db, user_id=user.id, email=email, password=payload.password)
        db.commit()
        db.refresh(user)
    except IntegrityError as e:
        db.rollback()
        error_str = str(e.orig) if hasattr(e, "orig") else str(e)
        logger.info(f"Registration conflict: {error_str}")
        detail = "Username already taken" if "username" in error_str.lower() else "Email already registered"
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=detail)

    logger.info(f"Registered user {user.id} ({user.username})")
    return _auth_response(db, user, "User registered successfully")


@router.post("/login", response_model=schemas.ApiResponse[schemas.AuthData])
def login(
    payload: schemas.LoginRequest,
    db: Session = Depends(get_db),
) -> schemas.ApiResponse[schemas.AuthData]:
    """
    Login with email and password.

    Unknown email, OAuth-only account, deactivated account and wrong password
    all produce the same 401.
    """
    email = payload.email.lower().strip()

    identity = find_identity_by_password(db, email, payload.password)
    user = identity.user if identity else None

    if not user or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        )

    user.last_login = datetime.now(timezone.utc)
    db.commit()
    db.refresh(user)

    logger.info(f"User {user.id} logged in")
    return _auth_response(db, user, "Login successful")


@router.get("/me", response_model=schemas.ApiResponse[schemas.UserData])
def get_me(
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> schemas.ApiResponse[schemas.UserData]:
    """Full profile of the authenticated user, with follower summaries."""
    annotate_user_with_follows(db, current_user)
    return schemas.ApiResponse(
        data=schemas.UserData(user=schemas.UserFull.model_validate(current_user)),
    )


@router.post("/refresh", response_model=schemas.ApiResponse[schemas.TokenData])
def refresh_token(
    current_user: models.User = Depends(get_current_user),
) -> schemas.ApiResponse[schemas.TokenData]:
    """Issue a fresh token for a caller whose current token is still valid."""
    check_user_can_authenticate(current_user)
    return schemas.ApiResponse(
        message="Token refreshed successfully",
        data=schemas.TokenData(token=create_access_token(current_user.id)),
    )


# ============================================================================
# OAUTH (Google, Facebook)
# ============================================================================


def _login_error_redirect(error: str) -> RedirectResponse:
    response = RedirectResponse(url=f"{CLIENT_URL}/login?{urlencode({'error': error})}")
    response.delete_cookie(OAUTH_STATE_COOKIE, path="/api/auth")
    return response


def _get_provider(name: str) -> OAuthProvider:
    provider = PROVIDERS[name]
    if not provider.configured:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"{provider.display_name} OAuth not configured",
        )
    return provider


def _oauth_start(provider_name: str) -> RedirectResponse:
    provider = _get_provider(provider_name)

    # The state nonce lives only in this cookie for the length of one handshake
    state = secrets.token_urlsafe(32)
    response = RedirectResponse(url=build_authorize_url(provider, state))
    response.set_cookie(
        OAUTH_STATE_COOKIE,
        state,
        max_age=OAUTH_STATE_MAX_AGE_SECONDS,
        httponly=True,
        secure=is_production(),
        samesite="lax",
        path="/api/auth",
    )
    return response


def _oauth_callback(
    provider_name: str,
    request: Request,
    code: str | None,
    state: str | None,
    error: str | None,
    db: Session,
) -> RedirectResponse:
    provider = PROVIDERS[provider_name]
    if not provider.configured:
        logger.error(f"{provider.display_name} OAuth callback hit but provider is not configured")
        return _login_error_redirect("auth_failed")

    expected_state = request.cookies.get(OAUTH_STATE_COOKIE)
    if not state or not expected_state or not secrets.compare_digest(state, expected_state):
        logger.warning(f"{provider.display_name} OAuth callback rejected: state mismatch")
        return _login_error_redirect("auth_failed")

    if error or not code:
        logger.warning(f"{provider.display_name} OAuth callback returned error: {error}")
        return _login_error_redirect("auth_failed")

    try:
        profile = fetch_profile(provider, code)
        user = resolve_oauth_user(db, profile)
    except OAuthError as e:
        logger.error(f"{provider.display_name} OAuth failed: {e}")
        return _login_error_redirect("auth_failed")
    except IntegrityError as e:
        db.rollback()
        logger.error(f"{provider.display_name} OAuth account resolution failed: {e}", exc_info=True)
        return _login_error_redirect("auth_failed")

    if not user.is_active:
        logger.warning(f"{provider.display_name} OAuth login for deactivated user {user.id}")
        return _login_error_redirect("auth_failed")

    try:
        token = create_access_token(user.id)
    except Exception as e:
        logger.error(f"Token generation failed for user {user.id}: {e}", exc_info=True)
        return _login_error_redirect("token_failed")

    logger.info(f"User {user.id} signed in with {provider.display_name}")
    response = RedirectResponse(url=f"{CLIENT_URL}/auth/callback?{urlencode({'token': token})}")
    response.delete_cookie(OAUTH_STATE_COOKIE, path="/api/auth")
    return response


@router.get("/google")
def google_login() -> RedirectResponse:
    """Redirect to Google's consent screen."""
    return _oauth_start("google")


@router.get("/google/callback")
def google_callback(
    request: Request,
    code: str | None = Query(None),
    state: str | None = Query(None),
    error: str | None = Query(None),
    db: Session = Depends(get_db),
) -> RedirectResponse:
    """Complete Google sign-in and redirect back to the client with a token."""
    return _oauth_callback("google", request, code, state, error, db)


@router.get("/facebook")
def facebook_login() -> RedirectResponse:
    """Redirect to Facebook's login dialog."""
    return _oauth_start("facebook")


@router.get("/facebook/callback")
def facebook_callback(
    request: Request,
    code: str | None = Query(None),
    state: str | None = Query(None),
    error: str | None = Query(None),
    db: Session = Depends(get_db),
) -> RedirectResponse:
    """Complete Facebook sign-in and redirect back to the client with a token."""
    return _oauth_callback("facebook", request, code, state, error, db)
