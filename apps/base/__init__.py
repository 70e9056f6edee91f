from flask import Blueprint

base = Blueprint("base", __name__, cli_group=None)


@base.route("/health")
def health():
    return {"status": "ok"}


from . import tasks_admin  # noqa
from . import dev  # noqa
