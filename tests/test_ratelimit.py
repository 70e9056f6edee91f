import pytest

from main import limiter
from models.user import UserRole

from tests._utils import PASSWORD, create_user, pdf_upload
from tests.conftest import app_factory


@pytest.fixture(scope="module")
def app():
    yield from app_factory(
        RATELIMIT_ENABLED=True,
        RATE_LIMIT_AUTH="3 per minute",
        RATE_LIMIT_PROPOSALS="2 per hour",
        RATE_LIMIT_UPLOADS_USER="1 per hour",
        RATE_LIMIT_UPLOADS_IP="1 per hour",
    )


@pytest.fixture(autouse=True)
def reset_limits(app):
    limiter.reset()


def test_auth_limit(db, client):
    user = create_user(UserRole.SPEAKER)
    for _ in range(3):
        rv = client.post("/api/login", json={"email": user.email, "password": "wrong"})
        assert rv.status_code == 401

    # Even the right password is refused once the quota is used up
    rv = client.post("/api/login", json={"email": user.email, "password": PASSWORD})
    assert rv.status_code == 429
    assert rv.get_json() == {
        "status": "error",
        "message": "Too many authentication attempts. Please try again later.",
    }

    # Registration shares the same quota
    rv = client.post("/api/register", json={"name": "x"})
    assert rv.status_code == 429


def test_proposal_submission_limit(db, client_for):
    client = client_for(create_user(UserRole.SPEAKER))
    for n in range(2):
        rv = client.post("/api/proposals", json={"title": f"Talk {n}", "description": "d"})
        assert rv.status_code == 201

    rv = client.post("/api/proposals", json={"title": "One too many", "description": "d"})
    assert rv.status_code == 429
    assert rv.get_json()["message"] == "Too many proposal submissions. Please try again later."

    # Reading isn't limited
    assert client.get("/api/proposals").status_code == 200


def test_upload_limit(db, client_for):
    client = client_for(create_user(UserRole.SPEAKER))
    rv = client.post(
        "/api/proposals",
        data={"title": "With file", "description": "d", "file": pdf_upload()},
        content_type="multipart/form-data",
    )
    assert rv.status_code == 201
    proposal_id = rv.get_json()["data"]["proposal"]["id"]

    rv = client.put(
        f"/api/proposals/{proposal_id}",
        data={"file": pdf_upload()},
        content_type="multipart/form-data",
    )
    assert rv.status_code == 429
    assert rv.get_json()["message"] == "Too many file uploads. Please try again later."

    # Updates without a file don't count against the upload quota
    rv = client.put(f"/api/proposals/{proposal_id}", json={"title": "Renamed"})
    assert rv.status_code == 200
