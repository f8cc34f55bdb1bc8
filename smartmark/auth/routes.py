import secrets

from flask import current_app, jsonify, redirect, request, session, url_for
from flask_login import current_user, login_required, login_user, logout_user

from smartmark.auth import auth_bp
from smartmark.extensions import db
from smartmark.models import ApiToken
from smartmark.services.identity import (
    IdentityError,
    authorization_url,
    exchange_code,
    fetch_profile,
    upsert_user,
)
from smartmark.services.security import get_authenticated_api_user


OAUTH_STATE_KEY = "oauth_state"


def _callback_url() -> str:
    return url_for("auth.callback", _external=True)


@auth_bp.route("/signin", methods=["GET"])
def signin():
    if current_user.is_authenticated:
        return redirect(current_app.config["OAUTH_POST_LOGIN_REDIRECT"])

    client_id = current_app.config.get("OAUTH_CLIENT_ID")
    if not client_id:
        return jsonify({"error": "identity provider not configured"}), 500

    state = secrets.token_urlsafe(24)
    session[OAUTH_STATE_KEY] = state
    return redirect(
        authorization_url(
            current_app.config["OAUTH_AUTHORIZE_URL"],
            client_id=client_id,
            redirect_uri=_callback_url(),
            scopes=current_app.config["OAUTH_SCOPES"],
            state=state,
        )
    )


@auth_bp.route("/callback", methods=["GET"])
def callback():
    expected_state = session.pop(OAUTH_STATE_KEY, None)
    if request.args.get("error"):
        return jsonify({"error": request.args["error"]}), 400

    state = request.args.get("state") or ""
    if not expected_state or not secrets.compare_digest(
        state.encode("utf-8"), expected_state.encode("utf-8")
    ):
        return jsonify({"error": "invalid oauth state"}), 400
    code = request.args.get("code") or ""
    if not code:
        return jsonify({"error": "authorization code is required"}), 400

    try:
        access_token = exchange_code(
            current_app.config["OAUTH_TOKEN_URL"],
            client_id=current_app.config["OAUTH_CLIENT_ID"],
            client_secret=current_app.config["OAUTH_CLIENT_SECRET"] or "",
            code=code,
            redirect_uri=_callback_url(),
        )
        profile = fetch_profile(current_app.config["OAUTH_USERINFO_URL"], access_token)
    except IdentityError as exc:
        current_app.logger.warning("Sign-in failed: %s", exc)
        return jsonify({"error": "sign-in failed"}), 502

    user = upsert_user(profile)
    login_user(user)
    return redirect(current_app.config["OAUTH_POST_LOGIN_REDIRECT"])


@auth_bp.route("/signout", methods=["POST"])
def signout():
    logout_user()
    return jsonify({"status": "signed_out"})


@auth_bp.route("/session", methods=["GET"])
def session_info():
    user = get_authenticated_api_user()
    if not user:
        return jsonify({"error": "authentication required"}), 401
    return jsonify({"user": user.as_session_dict()})


@auth_bp.route("/tokens", methods=["POST"])
@login_required
def issue_api_token():
    payload = request.get_json(silent=True) or {}
    name = (payload.get("name") or "Smart Bookmark CLI").strip()

    token, token_hash = ApiToken.issue_token()
    row = ApiToken(user_id=current_user.id, name=name, token_hash=token_hash)
    db.session.add(row)
    db.session.commit()
    return jsonify({"token": token, "name": name}), 201
