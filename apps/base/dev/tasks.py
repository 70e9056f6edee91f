""" Development CLI tasks """

import click

from apps.base import base

from .fake import DEFAULT_PASSWORD, FakeDataGenerator


@base.cli.command("seed_dummy_data")
def seed_dummy_data():
    """Make fake users, tags, proposals and reviews"""
    count = FakeDataGenerator().run()
    click.echo(f"Created {count} proposals. Every seeded account's password is {DEFAULT_PASSWORD!r}")
