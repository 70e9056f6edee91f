import pytest

from apps.common import cache as proposal_cache
from main import cache
from models.proposal import ProposalStatus
from models.tag import Tag
from models.user import UserRole

from tests._utils import create_proposal, create_review, create_user


@pytest.fixture(scope="module")
def app(app_with_cache):
    yield app_with_cache


@pytest.fixture(autouse=True)
def clear_cache(app):
    cache.clear()


def tag_names(client, query=""):
    rv = client.get(f"/api/tags{query}")
    assert rv.status_code == 200
    return [t["name"] for t in rv.get_json()["data"]["tags"]]


def test_keys():
    assert proposal_cache.top_rated_key(10) == "top_rated_proposals:limit:10"
    assert proposal_cache.user_key(3) == "user:3"
    assert proposal_cache.proposal_key(7) == "proposal:7"
    assert proposal_cache.tags_key() == "tags:v0"
    assert proposal_cache.tags_key("py").startswith("tags:v0:search:")
    assert proposal_cache.tags_key("py") != proposal_cache.tags_key("js")


def test_remember_computes_once():
    calls = []

    def compute():
        calls.append(1)
        return {"answer": 42}

    assert proposal_cache.remember_user(compute, 1) == {"answer": 42}
    assert proposal_cache.remember_user(compute, 1) == {"answer": 42}
    assert len(calls) == 1

    proposal_cache.forget_user(1)
    proposal_cache.remember_user(compute, 1)
    assert len(calls) == 2


def test_forget_tags_expires_every_variant():
    proposal_cache.remember_tags(lambda: ["all"])
    proposal_cache.remember_tags(lambda: ["filtered"], "fil")
    old_keys = (proposal_cache.tags_key(), proposal_cache.tags_key("fil"))

    proposal_cache.forget_tags()

    assert proposal_cache.tags_key() not in old_keys
    assert proposal_cache.remember_tags(lambda: ["fresh"]) == ["fresh"]
    assert proposal_cache.remember_tags(lambda: ["fresh filtered"], "fil") == ["fresh filtered"]


def test_forget_top_rated_covers_every_limit():
    for limit in (1, 10, proposal_cache.TOP_RATED_MAX_LIMIT):
        proposal_cache.remember_top_rated(lambda: ["cached"], limit)

    proposal_cache.forget_top_rated()

    for limit in (1, 10, proposal_cache.TOP_RATED_MAX_LIMIT):
        assert cache.get(proposal_cache.top_rated_key(limit)) is None


def test_tag_listing_is_cached(db, client_for, speaker):
    client = client_for(speaker)
    Tag.get_or_create("cached-alpha")
    db.session.commit()
    assert "cached-alpha" in tag_names(client)
    assert tag_names(client, "?search=cached") == ["cached-alpha"]

    # Written behind the API's back, so the cached lists don't know about it yet
    Tag.get_or_create("cached-beta")
    db.session.commit()
    assert "cached-beta" not in tag_names(client)
    assert tag_names(client, "?search=cached") == ["cached-alpha"]

    rv = client.post("/api/tags", json={"name": "cached-gamma"})
    assert rv.status_code == 201
    assert {"cached-alpha", "cached-beta", "cached-gamma"} <= set(tag_names(client))
    assert tag_names(client, "?search=cached") == ["cached-alpha", "cached-beta", "cached-gamma"]


def test_new_proposal_tags_invalidate_tag_cache(db, client_for, speaker):
    client = client_for(speaker)
    assert "brand-new-tag" not in tag_names(client)

    rv = client.post("/api/proposals", json={"title": "Tagged", "description": "d", "tags": ["brand-new-tag"]})
    assert rv.status_code == 201
    assert "brand-new-tag" in tag_names(client)


def test_proposal_detail_is_invalidated_on_change(db, client_for, speaker, reviewer):
    proposal = create_proposal(speaker, "Cached detail")
    owner = client_for(speaker)

    assert owner.get(f"/api/proposals/{proposal.id}").get_json()["data"]["proposal"]["reviews_count"] == 0
    assert cache.get(proposal_cache.proposal_key(proposal.id)) is not None

    rv = client_for(reviewer).post(f"/api/proposals/{proposal.id}/reviews", json={"rating": 4})
    assert rv.status_code == 201
    assert cache.get(proposal_cache.proposal_key(proposal.id)) is None

    data = owner.get(f"/api/proposals/{proposal.id}").get_json()["data"]["proposal"]
    assert data["reviews_count"] == 1

    owner.put(f"/api/proposals/{proposal.id}", json={"title": "Cached detail v2"})
    data = owner.get(f"/api/proposals/{proposal.id}").get_json()["data"]["proposal"]
    assert data["title"] == "Cached detail v2"


def test_top_rated_is_invalidated_by_reviews(db, client_for, speaker):
    reviewers = [create_user(UserRole.REVIEWER) for _ in range(2)]
    proposal = create_proposal(speaker, "Climbing the chart", status=ProposalStatus.APPROVED)
    create_review(proposal, reviewers[0], 5)

    client = client_for(speaker)
    titles = [p["title"] for p in client.get("/api/proposals/top-rated").get_json()["data"]["proposals"]]
    assert "Climbing the chart" in titles

    # A poor review drags the average below the threshold
    rv = client_for(reviewers[1]).post(f"/api/proposals/{proposal.id}/reviews", json={"rating": 1})
    assert rv.status_code == 201

    titles = [p["title"] for p in client.get("/api/proposals/top-rated").get_json()["data"]["proposals"]]
    assert "Climbing the chart" not in titles
