from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import urlencode

import httpx

from smartmark.extensions import db
from smartmark.models import User


class IdentityError(Exception):
    pass


@dataclass
class ProviderProfile:
    subject: str
    email: str | None
    full_name: str | None
    avatar_url: str | None


def _first_claim(claims: dict, *names: str) -> str | None:
    for name in names:
        value = claims.get(name)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def authorization_url(
    authorize_url: str, client_id: str, redirect_uri: str, scopes: str, state: str
) -> str:
    params = {
        "client_id": client_id,
        "redirect_uri": redirect_uri,
        "response_type": "code",
        "scope": scopes,
        "state": state,
        "access_type": "online",
        "prompt": "select_account",
    }
    return f"{authorize_url}?{urlencode(params)}"


def exchange_code(
    token_url: str,
    client_id: str,
    client_secret: str,
    code: str,
    redirect_uri: str,
    timeout: float = 10.0,
) -> str:
    try:
        response = httpx.post(
            token_url,
            data={
                "grant_type": "authorization_code",
                "code": code,
                "client_id": client_id,
                "client_secret": client_secret,
                "redirect_uri": redirect_uri,
            },
            headers={"Accept": "application/json"},
            timeout=timeout,
        )
        response.raise_for_status()
        payload = response.json()
    except (httpx.HTTPError, ValueError) as exc:
        raise IdentityError(f"token exchange failed: {exc}") from exc

    access_token = payload.get("access_token") if isinstance(payload, dict) else None
    if not access_token:
        raise IdentityError("token exchange returned no access_token")
    return access_token


def fetch_profile(userinfo_url: str, access_token: str, timeout: float = 10.0):
    try:
        response = httpx.get(
            userinfo_url,
            headers={"Authorization": f"Bearer {access_token}"},
            timeout=timeout,
        )
        response.raise_for_status()
        claims = response.json()
    except (httpx.HTTPError, ValueError) as exc:
        raise IdentityError(f"userinfo request failed: {exc}") from exc

    if not isinstance(claims, dict):
        raise IdentityError("userinfo response is not an object")
    subject = _first_claim(claims, "sub", "id", "user_id")
    if not subject:
        raise IdentityError("userinfo response has no subject")
    return ProviderProfile(
        subject=subject,
        email=_first_claim(claims, "email"),
        full_name=_first_claim(claims, "name", "full_name"),
        avatar_url=_first_claim(claims, "picture", "avatar_url"),
    )


def upsert_user(profile: ProviderProfile) -> User:
    user = User.query.filter_by(subject=profile.subject).first()
    if not user:
        user = User(subject=profile.subject)
        db.session.add(user)
    user.email = profile.email
    user.full_name = profile.full_name
    user.avatar_url = profile.avatar_url
    db.session.commit()
    return user
