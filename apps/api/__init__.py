from flask import Blueprint
from flask_restful import Api

from apps.common import render_error
from main import csrf


class ProposalsApi(Api):
    def handle_error(self, e):
        # Everything, including aborts and unexpected exceptions, gets the JSON error envelope
        return render_error(e)


api_bp = Blueprint("api", __name__)
api = ProposalsApi(api_bp, decorators=[csrf.exempt])

from . import auth  # noqa
from . import proposals  # noqa
from . import reviews  # noqa
from . import admin  # noqa
from . import tags  # noqa
