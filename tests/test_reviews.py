import pytest
from freezegun import freeze_time
from sqlalchemy.exc import IntegrityError

from models.review import Review, ReviewRating
from models.user import UserRole

from tests._utils import create_proposal, create_review, create_user


@pytest.fixture
def proposal(db, speaker):
    return create_proposal(speaker, "Reviewable")


def test_rating_options(client_for, speaker):
    rv = client_for(speaker).get("/api/reviews/rating-options")
    assert rv.status_code == 200
    ratings = rv.get_json()["data"]["ratings"]
    assert [r["value"] for r in ratings] == [1, 2, 3, 4, 5, 10]
    assert ratings[0] == {"value": 1, "label": "1 - Poor"}
    assert ratings[-1] == {"value": 10, "label": "10 - Outstanding"}


def test_rating_labels():
    assert ReviewRating(5).label == "5 - Excellent"
    assert ReviewRating.values() == [1, 2, 3, 4, 5, 10]


def test_create_review(db, client_for, reviewer, proposal):
    rv = client_for(reviewer).post(
        f"/api/proposals/{proposal.id}/reviews", json={"rating": 5, "comment": "Great topic"}
    )
    assert rv.status_code == 201
    body = rv.get_json()
    assert body["message"] == "Review created successfully"
    review = body["data"]["review"]
    assert review["rating"] == 5
    assert review["comment"] == "Great topic"
    assert review["proposal_id"] == proposal.id
    assert review["reviewer"]["id"] == reviewer.id

    rv = client_for(reviewer).get(f"/api/proposals/{proposal.id}")
    data = rv.get_json()["data"]["proposal"]
    assert data["reviews_count"] == 1
    assert data["average_rating"] == 5.0


def test_duplicate_review(db, client_for, reviewer, proposal):
    client = client_for(reviewer)
    assert client.post(f"/api/proposals/{proposal.id}/reviews", json={"rating": 3}).status_code == 201

    rv = client.post(f"/api/proposals/{proposal.id}/reviews", json={"rating": 4})
    assert rv.status_code == 422
    assert rv.get_json()["message"] == "You have already reviewed this proposal"

    db.session.expire_all()
    assert len(proposal.reviews) == 1
    assert proposal.reviews[0].rating == 3


def test_one_review_per_reviewer_in_the_database(db, reviewer, proposal):
    create_review(proposal, reviewer, 2)
    db.session.add(Review(proposal, reviewer, 4))
    with pytest.raises(IntegrityError):
        db.session.commit()
    db.session.rollback()


@pytest.mark.parametrize("rating", [0, 6, 7, 11, "five", None, 4.5, "4.5", True, [5]])
def test_invalid_rating(client_for, reviewer, proposal, rating):
    rv = client_for(reviewer).post(f"/api/proposals/{proposal.id}/reviews", json={"rating": rating})
    assert rv.status_code == 422
    assert "rating" in rv.get_json()["errors"]

    assert proposal.reviews == []


def test_whole_float_rating_is_accepted(client_for, reviewer, proposal):
    rv = client_for(reviewer).post(f"/api/proposals/{proposal.id}/reviews", json={"rating": 4.0})
    assert rv.status_code == 201
    assert rv.get_json()["data"]["review"]["rating"] == 4


def test_comment_must_be_a_string(client_for, reviewer, proposal):
    rv = client_for(reviewer).post(f"/api/proposals/{proposal.id}/reviews", json={"rating": 4, "comment": 42})
    assert rv.status_code == 422
    assert rv.get_json()["errors"]["comment"] == ["The comment field must be a string."]


def test_only_reviewers_review(client_for, speaker, admin, proposal):
    rv = client_for(speaker).post(f"/api/proposals/{proposal.id}/reviews", json={"rating": 4})
    assert rv.status_code == 403

    rv = client_for(admin).post(f"/api/proposals/{proposal.id}/reviews", json={"rating": 4})
    assert rv.status_code == 201


def test_review_missing_proposal(client_for, reviewer):
    rv = client_for(reviewer).post("/api/proposals/999999/reviews", json={"rating": 4})
    assert rv.status_code == 404
    assert rv.get_json()["message"] == "Proposal not found"


def test_list_reviews(db, client_for, speaker, proposal):
    reviewers = [create_user(UserRole.REVIEWER) for _ in range(3)]
    for day, reviewer in enumerate(reviewers, start=1):
        with freeze_time(f"2026-04-0{day} 09:00:00"):
            create_review(proposal, reviewer, day)

    rv = client_for(speaker).get(f"/api/proposals/{proposal.id}/reviews?per_page=2")
    assert rv.status_code == 200
    data = rv.get_json()["data"]
    # Newest first
    assert [r["reviewer"]["id"] for r in data["reviews"]] == [reviewers[2].id, reviewers[1].id]
    assert data["pagination"] == {"current_page": 1, "last_page": 2, "per_page": 2, "total": 3}


def test_show_review(db, client_for, reviewer, speaker, proposal):
    review = create_review(proposal, reviewer, 4, "Good")
    other = create_proposal(speaker, "Another")

    rv = client_for(speaker).get(f"/api/proposals/{proposal.id}/reviews/{review.id}")
    assert rv.status_code == 200
    assert rv.get_json()["data"]["review"]["comment"] == "Good"

    # The review exists, but not on this proposal
    rv = client_for(speaker).get(f"/api/proposals/{other.id}/reviews/{review.id}")
    assert rv.status_code == 404
    assert rv.get_json()["message"] == "Review not found for this proposal"

    rv = client_for(speaker).get(f"/api/proposals/{proposal.id}/reviews/999999")
    assert rv.status_code == 404


def test_update_review(db, client_for, admin, reviewer, proposal):
    review = create_review(proposal, reviewer, 2, "Meh")
    url = f"/api/proposals/{proposal.id}/reviews/{review.id}"

    # Not even the author may edit a review
    rv = client_for(reviewer).put(url, json={"rating": 5})
    assert rv.status_code == 403

    rv = client_for(admin).put(url, json={"rating": 10, "comment": "Changed my mind"})
    assert rv.status_code == 200
    assert rv.get_json()["message"] == "Review updated successfully"
    data = rv.get_json()["data"]["review"]
    assert data["rating"] == 10
    assert data["comment"] == "Changed my mind"

    # The comment is left alone when it isn't sent
    rv = client_for(admin).put(url, json={"rating": 4})
    assert rv.get_json()["data"]["review"]["comment"] == "Changed my mind"

    rv = client_for(admin).put(url, json={"rating": 8})
    assert rv.status_code == 422


def test_reviewer_queue(db, client_for, reviewer, speaker):
    create_proposal(speaker, "In the queue")
    rv = client_for(reviewer).get("/api/review/proposals?search=queue")
    assert rv.status_code == 200
    assert [p["title"] for p in rv.get_json()["data"]["proposals"]] == ["In the queue"]

    assert client_for(speaker).get("/api/review/proposals").status_code == 403
