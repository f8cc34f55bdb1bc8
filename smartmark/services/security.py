from datetime import timedelta, timezone
from functools import wraps

from flask import g, jsonify, request
from flask_login import current_user

from smartmark.extensions import db
from smartmark.models import ApiToken, utcnow


# last_used_at is refreshed at most this often per token, so realtime
# polling does not write on every request.
LAST_USED_RESOLUTION = timedelta(minutes=5)


def _bearer_token():
    scheme, _, token = request.headers.get("Authorization", "").partition(" ")
    if scheme.lower() != "bearer":
        return None
    token = token.strip()
    if not token.startswith(f"{ApiToken.TOKEN_PREFIX}_"):
        return None
    return token


def _touch(token_row):
    now = utcnow()
    last_used = token_row.last_used_at
    if last_used is not None and last_used.tzinfo is None:
        last_used = last_used.replace(tzinfo=timezone.utc)
    if last_used is None or now - last_used >= LAST_USED_RESOLUTION:
        token_row.last_used_at = now
        db.session.commit()


def token_for_request():
    token = _bearer_token()
    if not token:
        return None
    token_row = ApiToken.query.filter_by(token_hash=ApiToken.hash_token(token)).first()
    if token_row is None or token_row.revoked_at is not None:
        return None
    _touch(token_row)
    return token_row


def get_authenticated_api_user():
    """Return the signed-in session user, else the owner of the Bearer token."""
    if current_user.is_authenticated:
        g.api_token = None
        return current_user
    token_row = token_for_request()
    g.api_token = token_row
    return token_row.user if token_row else None


def api_auth_required(func):
    @wraps(func)
    def wrapped(*args, **kwargs):
        user = get_authenticated_api_user()
        if not user:
            response = jsonify({"error": "authentication required"})
            response.headers["WWW-Authenticate"] = 'Bearer realm="smartmark"'
            return response, 401
        g.api_user = user
        return func(*args, **kwargs)

    return wrapped
