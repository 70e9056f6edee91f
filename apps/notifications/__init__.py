"""Proposal lifecycle events and the notification emails they trigger.

Handlers send these signals after their transaction has committed. The
listeners only queue `EmailJob`s; the `send_emails` scheduled task delivers
them out of process.
"""

import logging

from blinker import Namespace
from flask import current_app as app
from flask import render_template

from main import db
from models.email import EmailJob
from models.proposal import Proposal, ProposalStatus
from models.review import Review
from models.user import User

logger = logging.getLogger(__name__)

events = Namespace()

proposal_submitted = events.signal("proposal-submitted")
proposal_reviewed = events.signal("proposal-reviewed")
proposal_status_changed = events.signal("proposal-status-changed")


def emit(signal, **kwargs):
    """Send `signal`, logging rather than raising if a listener fails.

    By the time this is called the change has been committed, so a broken
    notification mustn't turn a successful request into an error.
    """
    try:
        signal.send(app._get_current_object(), **kwargs)
    except Exception:
        db.session.rollback()
        logger.exception("Error handling %s event", signal.name)


def queue_email(subject: str, template: str, users: list[User], **context) -> EmailJob | None:
    if not users:
        return None
    job = EmailJob(subject, render_template(template, **context), users)
    db.session.add(job)
    db.session.commit()
    logger.info("Queued '%s' for %s recipient(s)", subject, len(users))
    return job


def on_proposal_submitted(sender, proposal: Proposal, **extra):
    queue_email(
        f"New talk proposal: {proposal.title}",
        "emails/proposal-submitted.txt",
        User.admins(),
        proposal=proposal,
    )


def on_proposal_reviewed(sender, proposal: Proposal, review: Review, **extra):
    queue_email(
        f"Your proposal has been reviewed: {proposal.title}",
        "emails/proposal-reviewed.txt",
        [proposal.user],
        proposal=proposal,
        review=review,
    )


def on_proposal_status_changed(
    sender, proposal: Proposal, old_status: ProposalStatus, new_status: ProposalStatus, **extra
):
    queue_email(
        f"Your proposal has been {new_status.value}: {proposal.title}",
        "emails/proposal-status-changed.txt",
        [proposal.user],
        proposal=proposal,
        old_status=old_status,
        new_status=new_status,
    )


def connect_listeners():
    # Connecting the same receiver again is a no-op, so this is safe to call per app
    proposal_submitted.connect(on_proposal_submitted)
    proposal_reviewed.connect(on_proposal_reviewed)
    proposal_status_changed.connect(on_proposal_status_changed)


from . import tasks  # noqa: E402,F401
