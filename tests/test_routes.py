"""Tests for the auth, employee and review route groups."""

from fastapi.testclient import TestClient


def test_login_returns_profile(client):
    response = client.post(
        "/api/v1/auth/login",
        json={"email": "ana@example.com", "name": "Ana", "role": "admin"},
    )

    assert response.status_code == 200
    assert response.json() == {"user": {"email": "ana@example.com", "name": "Ana", "role": "admin"}}


def test_login_requires_json_body(client):
    response = client.post("/api/v1/auth/login", data={"email": "ana@example.com", "name": "Ana"})

    assert response.status_code == 422


def test_login_rejects_unknown_role(client):
    response = client.post(
        "/api/v1/auth/login",
        json={"email": "ana@example.com", "name": "Ana", "role": "root"},
    )

    assert response.status_code == 422


def test_protected_routes_require_login(client):
    for method, path in (
        ("GET", "/api/v1/auth/me"),
        ("GET", "/api/v1/employee/profile"),
        ("GET", "/api/v1/review"),
        ("POST", "/api/v1/review"),
    ):
        response = client.request(method, path, json={})
        assert response.status_code == 401, path
        assert response.json()["error"]["code"] == "not_authenticated"


def test_me_and_profile_after_login(client, login):
    login(email="bo@example.com", name="Bo")

    me = client.get("/api/v1/auth/me")
    profile = client.get("/api/v1/employee/profile")

    assert me.json()["user"]["email"] == "bo@example.com"
    assert profile.json() == me.json()


def test_review_drafts_accumulate_in_session(client, login):
    login()

    assert client.get("/api/v1/review").json() == {"reviews": []}

    for rating in (3, 5):
        response = client.post(
            "/api/v1/review",
            json={"employee_email": "bo@example.com", "rating": rating, "feedback": "Good work"},
        )
        assert response.status_code == 201

    reviews = client.get("/api/v1/review").json()["reviews"]
    assert [r["rating"] for r in reviews] == [3, 5]


def test_review_rating_is_validated(client, login):
    login()

    response = client.post(
        "/api/v1/review",
        json={"employee_email": "bo@example.com", "rating": 6, "feedback": "Too generous"},
    )

    assert response.status_code == 422
    assert response.json()["error"]["code"] == "validation_error"


def test_logout_without_session_is_harmless(client, session_store):
    response = client.post("/api/v1/auth/logout")

    assert response.status_code == 204
    assert session_store.destroyed == []


def test_sessions_are_isolated_between_clients(app, client, login):
    login()
    other = TestClient(app)

    assert other.get("/api/v1/auth/me").status_code == 401


def test_review_collection_answers_without_trailing_slash(client, login):
    login()

    direct = client.get("/api/v1/review", follow_redirects=False)
    slashed = client.get("/api/v1/review/", follow_redirects=False)

    assert direct.status_code == 200
    assert slashed.status_code == 307
    assert slashed.headers["location"].endswith("/api/v1/review")
