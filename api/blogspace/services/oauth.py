"""Google and Facebook OAuth: authorize URLs, code exchange, and account resolution."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any
from urllib.parse import urlencode

import httpx
from sqlalchemy.orm import Session

from .. import models
from ..settings import OAUTH_REDIRECT_BASE
from ..utils.handles import generate_unique_username
from .auth_identities import add_oauth_identity, find_identity_by_oauth

logger = logging.getLogger(__name__)

HTTP_TIMEOUT_SECONDS = 10.0


class OAuthError(Exception):
    """The provider handshake failed (bad code, provider error, missing profile)."""


@dataclass(frozen=True)
class OAuthProvider:
    name: str
    display_name: str
    client_id: str | None
    client_secret: str | None
    authorize_url: str
    token_url: str
    profile_url: str
    scope: str

    @property
    def configured(self) -> bool:
        return bool(self.client_id and self.client_secret)

    @property
    def redirect_uri(self) -> str:
        return f"{OAUTH_REDIRECT_BASE}/api/auth/{self.name}/callback"


@dataclass
class OAuthProfile:
    """Normalized profile returned by any provider."""

    provider: str
    provider_user_id: str
    email: str | None = None
    first_name: str = ""
    last_name: str = ""
    avatar: str | None = None
    raw: dict[str, Any] = field(default_factory=dict)


PROVIDERS: dict[str, OAuthProvider] = {
    "google": OAuthProvider(
        name="google",
        display_name="Google",
        client_id=os.getenv("GOOGLE_CLIENT_ID"),
        client_secret=os.getenv("GOOGLE_CLIENT_SECRET"),
        authorize_url="https://accounts.google.com/o/oauth2/v2/auth",
        token_url="https://oauth2.googleapis.com/token",
        profile_url="https://openidconnect.googleapis.com/v1/userinfo",
        scope="openid profile email",
    ),
    "facebook": OAuthProvider(
        name="facebook",
        display_name="Facebook",
        client_id=os.getenv("FACEBOOK_APP_ID"),
        client_secret=os.getenv("FACEBOOK_APP_SECRET"),
        authorize_url="https://www.facebook.com/v18.0/dialog/oauth",
        token_url="https://graph.facebook.com/v18.0/oauth/access_token",
        profile_url="https://graph.facebook.com/v18.0/me",
        scope="email",
    ),
}


def build_authorize_url(provider: OAuthProvider, state: str) -> str:
    params = {
        "client_id": provider.client_id,
        "redirect_uri": provider.redirect_uri,
        "response_type": "code",
        "scope": provider.scope,
        "state": state,
    }
    return f"{provider.authorize_url}?{urlencode(params)}"


def _parse_google(data: dict[str, Any]) -> OAuthProfile:
    return OAuthProfile(
        provider="google",
        provider_user_id=str(data["sub"]),
        email=data.get("email") or None,
        first_name=data.get("given_name") or "",
        last_name=data.get("family_name") or "",
        avatar=data.get("picture") or None,
        raw=data,
    )


def _parse_facebook(data: dict[str, Any]) -> OAuthProfile:
    picture = (data.get("picture") or {}).get("data") or {}
    return OAuthProfile(
        provider="facebook",
        provider_user_id=str(data["id"]),
        email=data.get("email") or None,
        first_name=data.get("first_name") or "",
        last_name=data.get("last_name") or "",
        avatar=picture.get("url") or None,
        raw=data,
    )


def fetch_profile(provider: OAuthProvider, code: str) -> OAuthProfile:
    """
    Exchange an authorization code for an access token and fetch the user profile.

    Raises:
        OAuthError: on any provider HTTP failure or malformed response
    """
    token_data = {
        "client_id": provider.client_id,
        "client_secret": provider.client_secret,
        "code": code,
        "redirect_uri": provider.redirect_uri,
        "grant_type": "authorization_code",
    }

    try:
        with httpx.Client(timeout=HTTP_TIMEOUT_SECONDS) as client:
            logger.info("Exchanging %s OAuth code for access token", provider.display_name)
            response = client.post(
                provider.token_url,
                data=token_data,
                headers={"Accept": "application/json"},
            )
            response.raise_for_status()
            token_response = response.json()

            access_token = token_response.get("access_token")
            if not access_token:
                raise OAuthError(
                    f"{provider.display_name} OAuth error: "
                    f"{token_response.get('error_description', token_response.get('error', 'no access token'))}"
                )

            if provider.name == "facebook":
                profile_response = client.get(
                    provider.profile_url,
                    params={
                        "fields": "id,email,first_name,last_name,picture.type(large)",
                        "access_token": access_token,
                    },
                )
            else:
                profile_response = client.get(
                    provider.profile_url,
                    headers={"Authorization": f"Bearer {access_token}"},
                )
            profile_response.raise_for_status()
            data = profile_response.json()
    except httpx.HTTPError as e:
        logger.error(f"{provider.display_name} OAuth HTTP error: {e}", exc_info=True)
        raise OAuthError(str(e)) from e

    try:
        if provider.name == "facebook":
            return _parse_facebook(data)
        return _parse_google(data)
    except KeyError as e:
        raise OAuthError(f"{provider.display_name} profile missing field {e}") from e


def resolve_oauth_user(db: Session, profile: OAuthProfile) -> models.User:
    """
    Find or create the local account for an OAuth profile.

    1. An identity for (provider, provider id) exists: that user signs in.
    2. A user with the same email exists: link the identity to them.
    3. Otherwise create a new user with a derived unique username.

    Commits once. The returned user may be inactive; callers must check.
    """
    now = datetime.now(timezone.utc)
    metadata = {
        "first_name": profile.first_name,
        "last_name": profile.last_name,
        "avatar": profile.avatar,
    }

    identity = find_identity_by_oauth(db, profile.provider, profile.provider_user_id)
    if identity:
        user = identity.user
        user.last_login = now
        db.commit()
        db.refresh(user)
        return user

    email = profile.email.lower() if profile.email else None
    user = None
    if email:
        user = db.query(models.User).filter(models.User.email == email).first()

    if user:
        logger.info(f"Linking {profile.provider} account to existing user {user.username}")
        if not user.avatar and profile.avatar:
            user.avatar = profile.avatar
    else:
        username = generate_unique_username(db, email, profile.provider_user_id)
        logger.info(f"Creating new {profile.provider} user {username}")
        user = models.User(
            username=username,
            email=email,
            first_name=profile.first_name[:50],
            last_name=profile.last_name[:50],
            avatar=profile.avatar,
            role="user",
            is_active=True,
            is_email_verified=bool(email),
            social_links={},
            preferences={},
        )
        db.add(user)
        db.flush()

    user.last_login = now
    add_oauth_identity(
        db,
        user_id=user.id,
        provider=profile.provider,
        provider_user_id=profile.provider_user_id,
        email=email,
        provider_metadata=metadata,
    )
    db.commit()
    db.refresh(user)
    return user
