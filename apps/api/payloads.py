from flask import url_for

from models.proposal import Proposal
from models.review import Review
from models.tag import Tag
from models.user import User


def iso(dt):
    return dt.isoformat() if dt is not None else None


def user_payload(user: User) -> dict:
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "role": user.role.value,
        "created_at": iso(user.created),
        "updated_at": iso(user.modified),
    }


def user_summary(user: User) -> dict:
    return {"id": user.id, "name": user.name, "email": user.email, "role": user.role.value}


def tag_payload(tag: Tag) -> dict:
    return {"id": tag.id, "name": tag.name}


def review_payload(review: Review) -> dict:
    return {
        "id": review.id,
        "proposal_id": review.proposal_id,
        "rating": review.rating,
        "comment": review.comment,
        "reviewer": user_summary(review.reviewer),
        "created_at": iso(review.created),
        "updated_at": iso(review.modified),
    }


def proposal_payload(
    proposal: Proposal,
    with_reviews: bool = False,
    average_rating: float | None = None,
    reviews_count: int | None = None,
) -> dict:
    """The JSON form of a proposal.

    `average_rating` and `reviews_count` may be passed in when they've
    already been aggregated in SQL, to avoid loading the reviews.
    """
    if reviews_count is None:
        reviews_count = proposal.reviews_count
        average_rating = proposal.average_rating

    data = {
        "id": proposal.id,
        "title": proposal.title,
        "description": proposal.description,
        "file_path": (
            url_for("api.proposal_download", proposal_id=proposal.id) if proposal.has_file else None
        ),
        "status": proposal.status.value,
        "user": user_summary(proposal.user),
        "tags": [tag_payload(t) for t in proposal.tags],
        "average_rating": average_rating,
        "reviews_count": reviews_count,
        "created_at": iso(proposal.created),
        "updated_at": iso(proposal.modified),
    }
    if with_reviews:
        data["reviews"] = [review_payload(r) for r in proposal.reviews]
    return data
