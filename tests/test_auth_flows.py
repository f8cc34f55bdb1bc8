from urllib.parse import parse_qs, urlparse

from smartmark.auth import routes as auth_routes
from smartmark.extensions import db
from smartmark.models import ApiToken, User
from smartmark.services.identity import IdentityError, ProviderProfile


def _start_signin(client) -> str:
    response = client.get("/auth/signin")
    assert response.status_code == 302
    location = urlparse(response.headers["Location"])
    params = parse_qs(location.query)
    assert location.netloc == "accounts.google.com"
    assert params["client_id"] == ["test-client"]
    assert params["response_type"] == ["code"]
    assert params["redirect_uri"] == ["http://localhost/auth/callback"]
    return params["state"][0]


def _fake_provider(monkeypatch, profile: ProviderProfile, calls=None):
    def _exchange(token_url, client_id, client_secret, code, redirect_uri):
        if calls is not None:
            calls.append((code, redirect_uri))
        return "access-token"

    monkeypatch.setattr(auth_routes, "exchange_code", _exchange)
    monkeypatch.setattr(auth_routes, "fetch_profile", lambda url, token: profile)


def test_signin_callback_creates_user_and_session(client, app, monkeypatch):
    calls = []
    _fake_provider(
        monkeypatch,
        ProviderProfile(
            subject="google-123",
            email="ada@example.com",
            full_name="Ada Lovelace",
            avatar_url="https://img.example/ada.png",
        ),
        calls,
    )

    state = _start_signin(client)
    response = client.get(f"/auth/callback?code=abc&state={state}")
    assert response.status_code == 302
    assert response.headers["Location"].endswith("/auth/session")
    assert calls == [("abc", "http://localhost/auth/callback")]

    response = client.get("/auth/session")
    assert response.status_code == 200
    user = response.get_json()["user"]
    assert user["display_name"] == "Ada Lovelace"
    assert user["avatar_url"] == "https://img.example/ada.png"

    with app.app_context():
        assert User.query.filter_by(subject="google-123").count() == 1


def test_repeat_signin_updates_existing_user(client, app, monkeypatch):
    with app.app_context():
        db.session.add(User(subject="google-123", full_name="Old Name"))
        db.session.commit()

    _fake_provider(
        monkeypatch,
        ProviderProfile("google-123", "ada@example.com", None, None),
    )
    state = _start_signin(client)
    client.get(f"/auth/callback?code=abc&state={state}")

    with app.app_context():
        users = User.query.all()
        assert len(users) == 1
        assert users[0].display_name == "ada@example.com"


def test_callback_rejects_mismatched_state(client, monkeypatch):
    _fake_provider(monkeypatch, ProviderProfile("google-123", None, None, None))
    _start_signin(client)

    response = client.get("/auth/callback?code=abc&state=forged")
    assert response.status_code == 400
    assert response.get_json() == {"error": "invalid oauth state"}
    assert client.get("/auth/session").status_code == 401


def test_callback_reports_provider_error(client):
    _start_signin(client)
    response = client.get("/auth/callback?error=access_denied")
    assert response.status_code == 400
    assert response.get_json() == {"error": "access_denied"}


def test_callback_token_exchange_failure_is_502(client, monkeypatch):
    def _fail(*args, **kwargs):
        raise IdentityError("token exchange failed")

    monkeypatch.setattr(auth_routes, "exchange_code", _fail)
    state = _start_signin(client)

    response = client.get(f"/auth/callback?code=abc&state={state}")
    assert response.status_code == 502


def test_signout_clears_session(client, monkeypatch):
    _fake_provider(monkeypatch, ProviderProfile("google-123", None, None, None))
    state = _start_signin(client)
    client.get(f"/auth/callback?code=abc&state={state}")
    assert client.get("/auth/session").get_json()["user"]["display_name"] == "User"

    response = client.post("/auth/signout")
    assert response.get_json() == {"status": "signed_out"}
    assert client.get("/auth/session").status_code == 401


def test_issued_token_authenticates_store_calls(client, app, monkeypatch):
    assert client.post("/auth/tokens", json={"name": "cli"}).status_code == 401

    _fake_provider(monkeypatch, ProviderProfile("google-123", None, "Ada", None))
    state = _start_signin(client)
    client.get(f"/auth/callback?code=abc&state={state}")

    response = client.post("/auth/tokens", json={"name": "cli"})
    assert response.status_code == 201
    token = response.get_json()["token"]
    assert token.startswith("sb_")

    client.post("/auth/signout")
    anonymous = app.test_client()
    response = anonymous.get(
        "/api/v1/me", headers={"Authorization": f"Bearer {token}"}
    )
    assert response.status_code == 200
    assert response.get_json()["display_name"] == "Ada"

    with app.app_context():
        row = ApiToken.query.one()
        assert row.name == "cli"
        assert row.last_used_at is not None
