from __future__ import annotations

from conftest import TEST_EMAIL, TEST_PASSWORD
from skintrack.services.refresh_tokens import find_valid_refresh_token
from skintrack.core.tokens import verify_refresh_token
from skintrack.core import config as app_config

MOBILE = "/api/auth/mobile"


def _no_cookie(res) -> bool:
    return "set-cookie" not in {k.lower() for k in res.headers.keys()}


def _login(client, email: str = TEST_EMAIL, password: str = TEST_PASSWORD) -> dict:
    res = client.post(f"{MOBILE}/login", json={"email": email, "password": password})
    assert res.status_code == 200
    return res.json()["data"]


def test_mobile_login_returns_both_tokens_in_body(client, user):
    res = client.post(f"{MOBILE}/login", json={"email": TEST_EMAIL, "password": TEST_PASSWORD})

    assert res.status_code == 200
    assert _no_cookie(res)
    data = res.json()["data"]
    assert set(data) == {"user", "accessToken", "refreshToken"}
    assert data["user"] == {"id": user.id, "email": TEST_EMAIL}


def test_mobile_signup_created(client):
    res = client.post(f"{MOBILE}/signup", json={"email": "phone@example.com", "password": "Pass123!"})

    assert res.status_code == 201
    assert _no_cookie(res)
    data = res.json()["data"]
    assert data["user"]["email"] == "phone@example.com"
    assert data["accessToken"] and data["refreshToken"]


def test_mobile_signup_duplicate_and_weak_password(client, user):
    dup = client.post(f"{MOBILE}/signup", json={"email": TEST_EMAIL, "password": TEST_PASSWORD})
    weak = client.post(f"{MOBILE}/signup", json={"email": "x@example.com", "password": "password"})

    assert dup.status_code == 409
    assert dup.json() == {"success": False, "error": "email_exists"}
    assert weak.status_code == 400
    assert weak.json()["details"]["violations"] == ["uppercase", "number"]


def test_mobile_refresh_rotates_and_detects_replay(client, db_session, user):
    first = _login(client)["refreshToken"]

    res = client.post(f"{MOBILE}/refresh", json={"refreshToken": first})
    assert res.status_code == 200
    assert _no_cookie(res)
    data = res.json()["data"]
    assert set(data) == {"accessToken", "refreshToken"}
    second = data["refreshToken"]
    assert second != first

    replay = client.post(f"{MOBILE}/refresh", json={"refreshToken": first})
    assert replay.status_code == 401
    assert replay.json() == {"success": False, "error": "invalid_token"}

    jti = verify_refresh_token(second, app_config.settings.REFRESH_SECRET).jti
    assert find_valid_refresh_token(db_session, jti) is None


def test_mobile_refresh_ignores_cookie(client, user):
    token = _login(client)["refreshToken"]

    res = client.post(f"{MOBILE}/refresh", headers={"Cookie": f"refresh_token={token}"})

    assert res.status_code == 400
    assert res.json()["error"] == "missing_refresh_token"


def test_mobile_refresh_missing_or_blank_token(client):
    assert client.post(f"{MOBILE}/refresh").json()["error"] == "missing_refresh_token"
    res = client.post(f"{MOBILE}/refresh", json={"refreshToken": "   "})
    assert res.status_code == 400
    assert res.json()["error"] == "missing_refresh_token"


def test_mobile_logout_revokes_body_token(client, db_session, user):
    data = _login(client)

    res = client.post(
        f"{MOBILE}/logout",
        json={"refreshToken": data["refreshToken"]},
        headers={"Authorization": f"Bearer {data['accessToken']}"},
    )

    assert res.status_code == 200
    assert res.json() == {"success": True, "data": None, "message": "Disconnected"}
    assert _no_cookie(res)

    again = client.post(f"{MOBILE}/refresh", json={"refreshToken": data["refreshToken"]})
    assert again.status_code == 401


def test_mobile_logout_without_body_still_succeeds(client, user):
    data = _login(client)

    res = client.post(f"{MOBILE}/logout", headers={"Authorization": f"Bearer {data['accessToken']}"})

    assert res.status_code == 200


def test_mobile_logout_requires_bearer(client, user):
    data = _login(client)

    res = client.post(f"{MOBILE}/logout", json={"refreshToken": data["refreshToken"]})

    assert res.status_code == 401
    assert res.json()["error"] == "unauthorized"
