from typing import ClassVar

from flask import current_app as app
from flask import request
from flask_login import current_user
from flask_restful import Resource

from apps.common import failure_message, require_login, success
from apps.common.errors import ProposalNotFound
from apps.common.forms import StatusForm, validate_or_raise
from apps.common.policy import Action, ensure_allowed
from apps.common.search import ProposalFilters
from apps.notifications import emit, proposal_status_changed
from main import db, get_or_404
from models.proposal import Proposal, ProposalStatus

from . import api
from .payloads import proposal_payload
from .proposals import current_actor, paginated_proposals, proposal_changed


class AdminProposalList(Resource):
    method_decorators: ClassVar = [require_login]

    @failure_message("Failed to retrieve proposals")
    def get(self):
        ensure_allowed(current_actor(), Action.ADMIN_LIST_PROPOSALS)
        filters = ProposalFilters.from_args(request.args, allow_user_filter=True)
        return success("Proposals retrieved successfully", paginated_proposals(filters))


class ProposalStatusUpdate(Resource):
    method_decorators: ClassVar = [require_login]

    @failure_message("Failed to update proposal status")
    def patch(self, proposal_id):
        proposal = get_or_404(db, Proposal, proposal_id, ProposalNotFound)
        ensure_allowed(current_actor(), Action.UPDATE_PROPOSAL_STATUS, proposal)
        form = validate_or_raise(StatusForm())

        new_status = ProposalStatus(form.status.data)
        old_status = proposal.set_status(new_status)
        db.session.commit()

        proposal_changed(proposal)
        if old_status != new_status:
            app.logger.info(
                "User %s changed proposal %s from %s to %s",
                current_user.id,
                proposal.id,
                old_status.value,
                new_status.value,
            )
            emit(proposal_status_changed, proposal=proposal, old_status=old_status, new_status=new_status)

        return success(
            "Proposal status updated successfully",
            {"proposal": proposal_payload(proposal, with_reviews=True)},
        )


api.add_resource(AdminProposalList, "/admin/proposals", endpoint="admin_proposals")
api.add_resource(ProposalStatusUpdate, "/admin/proposals/<int:proposal_id>/status", endpoint="admin_proposal_status")
