import click
from sqlalchemy import select

from apps.base import base as app
from apps.common.search import proposal_loader_options, search_backend
from main import db
from models.proposal import Proposal
from models.scheduled_task import execute_scheduled_tasks
from models.user import User, UserRole


@app.cli.command("periodic")
@click.option(
    "-f",
    "--force/--no-force",
    default=False,
    help="Run all tasks regardless of schedule",
)
def periodic(force):
    """Execute periodic scheduled tasks"""
    execute_scheduled_tasks(force)


@app.cli.command("create_admin")
@click.argument("email")
@click.argument("name")
@click.password_option()
def create_admin(email, name, password):
    """Create an admin account, or promote an existing user to admin"""
    user = User.get_by_email(email)
    if user:
        user.role = UserRole.ADMIN
        click.echo(f"{user.email} already exists and is now an admin")
    else:
        user = User(email, name, UserRole.ADMIN)
        db.session.add(user)
        click.echo(f"Created admin {email}")
    user.set_password(password)
    db.session.commit()


@app.cli.command("reindex_proposals")
def reindex_proposals():
    """Push every proposal to the configured search backend"""
    backend = search_backend()
    count = 0
    for proposal in db.session.scalars(select(Proposal).options(*proposal_loader_options())):
        backend.index_proposal(proposal)
        count += 1
    click.echo(f"Indexed {count} proposals with {backend.__class__.__name__}")
