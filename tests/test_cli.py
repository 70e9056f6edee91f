from sqlalchemy import func, select

from models.proposal import Proposal
from models.review import Review
from models.scheduled_task import ScheduledTaskResult
from models.user import User, UserRole

from tests._utils import create_proposal, create_user


def test_create_admin(app, db):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["create_admin", "Boss@Example.com", "The Boss"], input="s3cret-pass\ns3cret-pass\n")
    assert result.exit_code == 0, result.output
    assert "Created admin" in result.output

    user = User.get_by_email("boss@example.com")
    assert user.role == UserRole.ADMIN
    assert user.check_password("s3cret-pass")


def test_create_admin_promotes_existing_user(app, db):
    user = create_user(UserRole.SPEAKER)
    runner = app.test_cli_runner()
    result = runner.invoke(args=["create_admin", user.email, "Ignored"], input="new-pass-123\nnew-pass-123\n")
    assert result.exit_code == 0, result.output
    assert "is now an admin" in result.output

    db.session.expire_all()
    assert user.role == UserRole.ADMIN
    assert user.check_password("new-pass-123")


def test_seed_dummy_data(app, db):
    proposals_before = db.session.scalar(select(func.count(Proposal.id)))

    result = app.test_cli_runner().invoke(args=["seed_dummy_data"])
    assert result.exit_code == 0, result.output
    assert "Created 20 proposals" in result.output

    assert db.session.scalar(select(func.count(Proposal.id))) == proposals_before + 20
    assert User.get_by_email("admin@example.com").is_admin
    assert db.session.scalar(select(func.count(Review.id))) > 0

    # Nobody reviews the same proposal twice
    duplicates = db.session.execute(
        select(Review.proposal_id, Review.reviewer_id)
        .group_by(Review.proposal_id, Review.reviewer_id)
        .having(func.count() > 1)
    ).all()
    assert duplicates == []


def test_reindex_proposals(app, db):
    create_proposal(create_user(UserRole.SPEAKER), "Reindex me")
    total = db.session.scalar(select(func.count(Proposal.id)))

    result = app.test_cli_runner().invoke(args=["reindex_proposals"])
    assert result.exit_code == 0, result.output
    assert f"Indexed {total} proposals with DatabaseSearch" in result.output


def test_periodic_sends_queued_email(app, db, client_for, outbox):
    admin = create_user(UserRole.ADMIN)
    speaker = create_user(UserRole.SPEAKER)
    rv = client_for(speaker).post("/api/proposals", json={"title": "Cron job", "description": "d"})
    assert rv.status_code == 201

    result = app.test_cli_runner().invoke(args=["periodic", "--force"])
    assert result.exit_code == 0, result.output

    assert admin.email in [m.to[0] for m in outbox]
    latest = ScheduledTaskResult.get_latest_run("apps.notifications.tasks.send_emails")
    assert latest is not None
    assert "exception" not in latest.result
