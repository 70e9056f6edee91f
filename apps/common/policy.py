"""Who may do what.

All authorisation decisions go through `authorize`, so the rules live in one
table rather than being spread over the handlers. Handlers look up the
resource (404 if it's missing) before asking.
"""

import enum
import logging

from models.proposal import Proposal
from models.user import User

from .errors import Forbidden

logger = logging.getLogger(__name__)


class Action(enum.Enum):
    VIEW_ANY_PROPOSAL = "view_any_proposal"
    VIEW_PROPOSAL = "view_proposal"
    CREATE_PROPOSAL = "create_proposal"
    UPDATE_PROPOSAL = "update_proposal"
    DELETE_PROPOSAL = "delete_proposal"
    UPDATE_PROPOSAL_STATUS = "update_proposal_status"
    DOWNLOAD_PROPOSAL_FILE = "download_proposal_file"
    VIEW_ANY_REVIEW = "view_any_review"
    VIEW_REVIEW = "view_review"
    CREATE_REVIEW = "create_review"
    UPDATE_REVIEW = "update_review"
    LIST_FOR_REVIEW = "list_for_review"
    ADMIN_LIST_PROPOSALS = "admin_list_proposals"


def _can_see_proposal(user: User, proposal: Proposal) -> bool:
    # Speakers only ever see their own submissions
    return user.is_admin or user.is_reviewer or proposal.is_owned_by(user)


def _owner_or_admin(user: User, proposal: Proposal) -> bool:
    return user.is_admin or proposal.is_owned_by(user)


RULES = {
    Action.VIEW_ANY_PROPOSAL: lambda user, _: True,
    Action.VIEW_PROPOSAL: _can_see_proposal,
    Action.CREATE_PROPOSAL: lambda user, _: user.is_speaker,
    Action.UPDATE_PROPOSAL: _owner_or_admin,
    Action.DELETE_PROPOSAL: _owner_or_admin,
    Action.UPDATE_PROPOSAL_STATUS: lambda user, _: user.is_admin,
    Action.DOWNLOAD_PROPOSAL_FILE: _can_see_proposal,
    Action.VIEW_ANY_REVIEW: lambda user, _: True,
    Action.VIEW_REVIEW: lambda user, _: True,
    Action.CREATE_REVIEW: lambda user, _: user.is_reviewer,
    Action.UPDATE_REVIEW: lambda user, _: user.is_admin,
    Action.LIST_FOR_REVIEW: lambda user, _: user.is_reviewer,
    Action.ADMIN_LIST_PROPOSALS: lambda user, _: user.is_admin,
}


def authorize(user: User | None, action: Action, resource=None) -> bool:
    if user is None or not user.is_authenticated:
        return False
    return RULES[action](user, resource)


def ensure_allowed(user: User | None, action: Action, resource=None):
    """Raise `Forbidden` unless `user` may perform `action`."""
    if not authorize(user, action, resource):
        logger.info(
            "Denied %s on %r to user %s", action.value, resource, getattr(user, "id", None)
        )
        raise Forbidden()
