import sys
from typing import ClassVar

from flask import current_app as app
from flask import request, send_file
from flask_login import current_user
from flask_restful import Resource
from sqlalchemy import func, select
from sqlalchemy.orm import selectinload

from apps.common import clamp_int, failure_message, require_login, success
from apps.common import cache as proposal_cache
from apps.common.errors import ProposalFileNotFound, ProposalNotFound
from apps.common.forms import ProposalForm, ProposalUpdateForm, field_supplied, validate_or_raise
from apps.common.policy import Action, ensure_allowed
from apps.common.ratelimit import proposal_submission_limit, upload_limit
from apps.common.search import DEFAULT_PER_PAGE, MAX_PER_PAGE, ProposalFilters, search_backend
from apps.common.storage import ProposalStorage
from apps.notifications import emit, proposal_submitted
from main import db, get_or_404
from models.proposal import Proposal, ProposalStatus
from models.review import Review
from models.tag import Tag

from . import api
from .payloads import proposal_payload

TOP_RATED_DEFAULT_LIMIT = 10
TOP_RATED_MIN_AVERAGE = 4.0


def current_actor():
    return current_user._get_current_object()


def paginated_proposals(filters: ProposalFilters) -> dict:
    page = clamp_int(request.args.get("page"), 1, 1, sys.maxsize)
    per_page = clamp_int(request.args.get("per_page"), DEFAULT_PER_PAGE, 1, MAX_PER_PAGE)
    result = search_backend().search(filters, page, per_page)
    return {
        "proposals": [proposal_payload(p) for p in result.items],
        "pagination": result.pagination(),
    }


def proposal_changed(proposal: Proposal, tags_changed: bool = False):
    """Bring caches and the search index up to date after a committed change."""
    proposal_cache.forget_proposal_related(proposal.id)
    proposal_cache.forget_user_related(proposal.user_id)
    if tags_changed:
        proposal_cache.forget_tags()
    search_backend().index_proposal(proposal)


class ProposalList(Resource):
    decorators: ClassVar = [proposal_submission_limit, upload_limit]
    method_decorators: ClassVar = [require_login]

    @failure_message("Failed to retrieve proposals")
    def get(self):
        user = current_actor()
        ensure_allowed(user, Action.VIEW_ANY_PROPOSAL)

        filters = ProposalFilters.from_args(request.args)
        if not (user.is_admin or user.is_reviewer):
            filters.user_id = user.id
        return success("Proposals retrieved successfully", paginated_proposals(filters))

    @failure_message("Failed to create proposal")
    def post(self):
        user = current_actor()
        ensure_allowed(user, Action.CREATE_PROPOSAL)
        form = validate_or_raise(ProposalForm())

        storage = ProposalStorage.from_app()
        stored_path = None
        try:
            proposal = Proposal(user, form.title.data, form.description.data)
            db.session.add(proposal)
            if form.file.data:
                stored_path = storage.save(form.file.data)
                proposal.file_path = stored_path
            proposal.tags = Tag.resolve_names(form.tags.data or [])
            db.session.commit()
        except Exception:
            db.session.rollback()
            storage.delete(stored_path)
            raise

        app.logger.info("User %s submitted proposal %s", user.id, proposal.id)
        proposal_changed(proposal, tags_changed=bool(proposal.tags))
        emit(proposal_submitted, proposal=proposal)
        return success("Proposal created successfully", {"proposal": proposal_payload(proposal)}, 201)


class TopRatedProposals(Resource):
    method_decorators: ClassVar = [require_login]

    @staticmethod
    def compute(limit: int) -> list[dict]:
        average = func.avg(Review.rating).label("average_rating")
        count = func.count(Review.id).label("reviews_count")
        rows = db.session.execute(
            select(Proposal, average, count)
            .join(Review, Review.proposal_id == Proposal.id)
            .where(Proposal.status == ProposalStatus.APPROVED)
            .group_by(Proposal.id)
            .having(average >= TOP_RATED_MIN_AVERAGE)
            .order_by(average.desc(), count.desc(), Proposal.id)
            .limit(limit)
            .options(selectinload(Proposal.user), selectinload(Proposal.tags))
        ).all()
        return [
            proposal_payload(proposal, average_rating=round(float(avg), 1), reviews_count=n)
            for proposal, avg, n in rows
        ]

    @failure_message("Failed to retrieve top-rated proposals")
    def get(self):
        limit = clamp_int(
            request.args.get("limit"), TOP_RATED_DEFAULT_LIMIT, 1, proposal_cache.TOP_RATED_MAX_LIMIT
        )
        proposals = proposal_cache.remember_top_rated(lambda: self.compute(limit), limit)
        return success("Top-rated proposals retrieved successfully", {"proposals": proposals})


class ProposalItem(Resource):
    decorators: ClassVar = [upload_limit]
    method_decorators: ClassVar = [require_login]

    @failure_message("Failed to retrieve proposal")
    def get(self, proposal_id):
        proposal = get_or_404(db, Proposal, proposal_id, ProposalNotFound)
        ensure_allowed(current_actor(), Action.VIEW_PROPOSAL, proposal)

        data = proposal_cache.remember_proposal(
            lambda: proposal_payload(proposal, with_reviews=True), proposal.id
        )
        return success("Proposal retrieved successfully", {"proposal": data})

    @failure_message("Failed to update proposal")
    def put(self, proposal_id):
        proposal = get_or_404(db, Proposal, proposal_id, ProposalNotFound)
        ensure_allowed(current_actor(), Action.UPDATE_PROPOSAL, proposal)
        form = validate_or_raise(ProposalUpdateForm())

        storage = ProposalStorage.from_app()
        new_path = None
        old_path = None
        tags_changed = field_supplied("tags")
        try:
            if field_supplied("title"):
                proposal.title = form.title.data
            if field_supplied("description"):
                proposal.description = form.description.data
            if form.file.data:
                new_path = storage.save(form.file.data)
                old_path = proposal.file_path
                proposal.file_path = new_path
            if tags_changed:
                proposal.tags = Tag.resolve_names(form.tags.data or [])
            db.session.commit()
        except Exception:
            db.session.rollback()
            storage.delete(new_path)
            raise

        # Only drop the old file once the new one is committed
        storage.delete(old_path)

        app.logger.info("User %s updated proposal %s", current_user.id, proposal.id)
        proposal_changed(proposal, tags_changed=tags_changed)
        return success(
            "Proposal updated successfully",
            {"proposal": proposal_payload(proposal, with_reviews=True)},
        )

    def patch(self, proposal_id):
        return self.put(proposal_id)

    @failure_message("Failed to delete proposal")
    def delete(self, proposal_id):
        proposal = get_or_404(db, Proposal, proposal_id, ProposalNotFound)
        ensure_allowed(current_actor(), Action.DELETE_PROPOSAL, proposal)

        file_path = proposal.file_path
        owner_id = proposal.user_id
        db.session.delete(proposal)
        db.session.commit()

        ProposalStorage.from_app().delete(file_path)
        proposal_cache.forget_proposal_related(proposal_id)
        proposal_cache.forget_user_related(owner_id)
        search_backend().remove_proposal(proposal_id)

        app.logger.info("User %s deleted proposal %s", current_user.id, proposal_id)
        return success("Proposal deleted successfully")


class ProposalDownload(Resource):
    method_decorators: ClassVar = [require_login]

    @failure_message("Failed to download file")
    def get(self, proposal_id):
        proposal = get_or_404(db, Proposal, proposal_id, ProposalNotFound)
        ensure_allowed(current_actor(), Action.DOWNLOAD_PROPOSAL_FILE, proposal)

        storage = ProposalStorage.from_app()
        if not storage.exists(proposal.file_path):
            raise ProposalFileNotFound()

        return send_file(
            storage.absolute_path(proposal.file_path),
            mimetype="application/pdf",
            as_attachment=True,
            download_name=f"proposal-{proposal.id}.pdf",
        )


api.add_resource(ProposalList, "/proposals", endpoint="proposals")
api.add_resource(TopRatedProposals, "/proposals/top-rated", endpoint="proposals_top_rated")
api.add_resource(ProposalItem, "/proposals/<int:proposal_id>", endpoint="proposal")
api.add_resource(ProposalDownload, "/proposals/<int:proposal_id>/download", endpoint="proposal_download")
