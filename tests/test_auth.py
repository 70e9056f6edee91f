import pytest

from models.user import User, UserRole

from tests._utils import PASSWORD, create_user, login


def register(client, **overrides):
    payload = {
        "name": "Ada Lovelace",
        "email": "ada@example.com",
        "password": "analytical-engine",
        "password_confirmation": "analytical-engine",
        "role": "speaker",
    }
    payload.update(overrides)
    return client.post("/api/register", json=payload)


def test_register_logs_in(client, db):
    rv = register(client)
    assert rv.status_code == 201
    body = rv.get_json()
    assert body["status"] == "success"
    assert body["message"] == "Registration successful"
    assert body["data"]["user"]["email"] == "ada@example.com"
    assert body["data"]["user"]["role"] == "speaker"
    assert "password_hash" not in body["data"]["user"]

    # The session cookie is already authenticated
    rv = client.get("/api/user")
    assert rv.status_code == 200
    assert rv.get_json()["data"]["user"]["name"] == "Ada Lovelace"

    user = User.get_by_email("ada@example.com")
    assert user.role == UserRole.SPEAKER
    assert user.password_hash != "analytical-engine"
    assert user.check_password("analytical-engine")


def test_register_as_reviewer(client):
    rv = register(client, email="grace@example.com", role="reviewer")
    assert rv.status_code == 201
    assert rv.get_json()["data"]["user"]["role"] == "reviewer"


def test_register_cannot_choose_admin(client):
    rv = register(client, email="mallory@example.com", role="admin")
    assert rv.status_code == 422
    body = rv.get_json()
    assert body["status"] == "error"
    assert "role" in body["errors"]
    assert User.get_by_email("mallory@example.com") is None


@pytest.mark.parametrize(
    "overrides,field",
    [
        ({"name": ""}, "name"),
        ({"name": "x" * 256}, "name"),
        ({"email": "not-an-email"}, "email"),
        ({"password": "short", "password_confirmation": "short"}, "password"),
        ({"password_confirmation": "something-else"}, "password"),
        ({"role": ""}, "role"),
        ({"name": 123}, "name"),
        ({"email": 5}, "email"),
        ({"email": ["speaker@example.com"]}, "email"),
        ({"password": 12345678, "password_confirmation": 12345678}, "password"),
        ({"role": 1}, "role"),
        ({"name": "   "}, "name"),
    ],
)
def test_register_validation(client, overrides, field):
    rv = register(client, **{"email": "validation@example.com", **overrides})
    assert rv.status_code == 422
    assert field in rv.get_json()["errors"]


def test_register_duplicate_email(client, db):
    create_user(UserRole.SPEAKER, email="taken@example.com")
    rv = register(client, email="TAKEN@example.com")
    assert rv.status_code == 422
    assert rv.get_json()["errors"]["email"] == ["The email has already been taken."]


def test_login_success(client, db):
    user = create_user(UserRole.SPEAKER)
    rv = client.post("/api/login", json={"email": user.email, "password": PASSWORD})
    assert rv.status_code == 200
    body = rv.get_json()
    assert body["message"] == "Login successful"
    assert body["data"]["user"]["id"] == user.id


def test_login_wrong_password(client, db):
    user = create_user(UserRole.SPEAKER)
    rv = client.post("/api/login", json={"email": user.email, "password": "wrong-password"})
    assert rv.status_code == 401
    assert rv.get_json() == {"status": "error", "message": "Invalid credentials"}

    # No session was established
    assert client.get("/api/user").status_code == 401


def test_login_unknown_user(client):
    rv = client.post("/api/login", json={"email": "nobody@example.com", "password": "whatever"})
    assert rv.status_code == 401


def test_login_validation(client):
    rv = client.post("/api/login", json={"email": "", "password": ""})
    assert rv.status_code == 422
    errors = rv.get_json()["errors"]
    assert "email" in errors
    assert "password" in errors


def test_logout(client, db):
    user = create_user(UserRole.REVIEWER)
    login(client, user)
    assert client.get("/api/user").status_code == 200

    rv = client.post("/api/logout")
    assert rv.status_code == 200
    assert rv.get_json()["message"] == "Logout successful"
    assert rv.headers.get("X-CSRFToken")

    assert client.get("/api/user").status_code == 401


def test_unauthenticated_requests_are_rejected(client):
    for method, url in [
        ("get", "/api/user"),
        ("post", "/api/logout"),
        ("get", "/api/proposals"),
        ("post", "/api/proposals"),
        ("get", "/api/tags"),
        ("get", "/api/reviews/rating-options"),
        ("get", "/api/admin/proposals"),
    ]:
        rv = getattr(client, method)(url)
        assert rv.status_code == 401, url
        assert rv.get_json()["status"] == "error"
