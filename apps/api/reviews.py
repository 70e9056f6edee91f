import sys
from typing import ClassVar

from flask import current_app as app
from flask import request
from flask_login import current_user
from flask_restful import Resource
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload

from apps.common import clamp_int, failure_message, require_login, success
from apps.common import cache as proposal_cache
from apps.common.errors import DuplicateReview, ProposalNotFound, ReviewNotFound
from apps.common.forms import ReviewForm, field_supplied, validate_or_raise
from apps.common.policy import Action, ensure_allowed
from apps.common.search import Page, ProposalFilters, search_backend
from apps.notifications import emit, proposal_reviewed
from main import db, get_or_404
from models.proposal import Proposal
from models.review import Review, ReviewRating

from . import api
from .payloads import review_payload
from .proposals import current_actor, paginated_proposals

REVIEWS_PER_PAGE = 10
MAX_REVIEWS_PER_PAGE = 50


def get_review_for(proposal: Proposal, review_id: int) -> Review:
    review = get_or_404(db, Review, review_id, ReviewNotFound)
    if review.proposal_id != proposal.id:
        raise ReviewNotFound()
    return review


def review_changed(proposal: Proposal):
    proposal_cache.forget_proposal_related(proposal.id)
    search_backend().index_proposal(proposal)


class RatingOptions(Resource):
    method_decorators: ClassVar = [require_login]

    def get(self):
        return success("Rating options retrieved successfully", {"ratings": ReviewRating.options()})


class ProposalReviewList(Resource):
    method_decorators: ClassVar = [require_login]

    @failure_message("Failed to retrieve reviews")
    def get(self, proposal_id):
        proposal = get_or_404(db, Proposal, proposal_id, ProposalNotFound)
        ensure_allowed(current_actor(), Action.VIEW_ANY_REVIEW, proposal)

        page = clamp_int(request.args.get("page"), 1, 1, sys.maxsize)
        per_page = clamp_int(request.args.get("per_page"), REVIEWS_PER_PAGE, 1, MAX_REVIEWS_PER_PAGE)

        query = Review.for_proposal(proposal.id)
        total = db.session.scalar(select(func.count()).select_from(query.order_by(None).subquery()))
        reviews = db.session.scalars(
            query.options(selectinload(Review.reviewer)).limit(per_page).offset((page - 1) * per_page)
        ).all()
        result = Page(list(reviews), total or 0, page, per_page)

        return success(
            "Reviews retrieved successfully",
            {
                "reviews": [review_payload(r) for r in result.items],
                "pagination": result.pagination(),
            },
        )

    @failure_message("Failed to create review")
    def post(self, proposal_id):
        proposal = get_or_404(db, Proposal, proposal_id, ProposalNotFound)
        reviewer = current_actor()
        ensure_allowed(reviewer, Action.CREATE_REVIEW, proposal)
        form = validate_or_raise(ReviewForm())

        if Review.has_reviewed(proposal.id, reviewer.id):
            raise DuplicateReview()

        review = Review(proposal, reviewer, form.rating.data, form.comment.data or None)
        db.session.add(review)
        try:
            db.session.commit()
        except IntegrityError:
            # Another request from the same reviewer got there first
            db.session.rollback()
            raise DuplicateReview()

        app.logger.info("User %s reviewed proposal %s with %s", reviewer.id, proposal.id, review.rating)
        review_changed(proposal)
        emit(proposal_reviewed, proposal=proposal, review=review)
        return success("Review created successfully", {"review": review_payload(review)}, 201)


class ProposalReviewItem(Resource):
    method_decorators: ClassVar = [require_login]

    @failure_message("Failed to retrieve review")
    def get(self, proposal_id, review_id):
        proposal = get_or_404(db, Proposal, proposal_id, ProposalNotFound)
        review = get_review_for(proposal, review_id)
        ensure_allowed(current_actor(), Action.VIEW_REVIEW, review)
        return success("Review retrieved successfully", {"review": review_payload(review)})

    @failure_message("Failed to update review")
    def put(self, proposal_id, review_id):
        proposal = get_or_404(db, Proposal, proposal_id, ProposalNotFound)
        review = get_review_for(proposal, review_id)
        ensure_allowed(current_actor(), Action.UPDATE_REVIEW, review)
        form = validate_or_raise(ReviewForm())

        review.rating = int(ReviewRating(form.rating.data))
        if field_supplied("comment"):
            review.comment = form.comment.data or None
        db.session.commit()

        app.logger.info("User %s updated review %s on proposal %s", current_user.id, review.id, proposal.id)
        review_changed(proposal)
        return success("Review updated successfully", {"review": review_payload(review)})


class ReviewerProposalList(Resource):
    """Every proposal, for reviewers working through the queue."""

    method_decorators: ClassVar = [require_login]

    @failure_message("Failed to retrieve proposals")
    def get(self):
        ensure_allowed(current_actor(), Action.LIST_FOR_REVIEW)
        filters = ProposalFilters.from_args(request.args)
        return success("Proposals retrieved successfully", paginated_proposals(filters))


api.add_resource(RatingOptions, "/reviews/rating-options", endpoint="rating_options")
api.add_resource(ProposalReviewList, "/proposals/<int:proposal_id>/reviews", endpoint="proposal_reviews")
api.add_resource(
    ProposalReviewItem, "/proposals/<int:proposal_id>/reviews/<int:review_id>", endpoint="proposal_review"
)
api.add_resource(ReviewerProposalList, "/review/proposals", endpoint="review_proposals")
