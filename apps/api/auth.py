from typing import ClassVar

from flask import current_app as app
from flask import session
from flask_login import current_user, login_user, logout_user
from flask_restful import Resource
from flask_wtf.csrf import generate_csrf

from apps.common import failure_message, require_login, success
from apps.common import cache as proposal_cache
from apps.common.errors import InvalidCredentials
from apps.common.forms import LoginForm, RegisterForm, validate_or_raise
from apps.common.ratelimit import auth_limit
from loggingmanager import clear_user_id, set_user_id
from main import db
from models.user import User

from . import api
from .payloads import user_payload


def start_session(user: User, remember: bool = False):
    # Drop anything from a previous session before logging in
    session.clear()
    login_user(user, remember=remember, fresh=True)
    set_user_id(user.id)
    proposal_cache.remember_user(lambda: user_payload(user), user.id)


class Register(Resource):
    decorators: ClassVar = [auth_limit]

    @failure_message("Failed to register user")
    def post(self):
        form = validate_or_raise(RegisterForm())

        user = User(form.email.data, form.name.data, form.role.data)
        user.set_password(form.password.data)
        db.session.add(user)
        db.session.commit()

        app.logger.info("Registered new %s %s with id %s", user.role.value, user.email, user.id)
        start_session(user)
        return success("Registration successful", {"user": user_payload(user)}, 201)


class Login(Resource):
    decorators: ClassVar = [auth_limit]

    @failure_message("Failed to login")
    def post(self):
        form = validate_or_raise(LoginForm())

        user = User.get_by_email(form.email.data)
        if user is None or not user.check_password(form.password.data):
            app.logger.info("Failed login attempt for %s", form.email.data)
            raise InvalidCredentials()

        start_session(user, remember=form.remember.data)
        app.logger.info("User %s logged in", user.id)
        return success("Login successful", {"user": user_payload(user)})


class Logout(Resource):
    method_decorators: ClassVar = [require_login]

    @failure_message("Failed to logout")
    def post(self):
        user_id = current_user.id
        logout_user()
        session.clear()
        clear_user_id()
        proposal_cache.forget_user(user_id)

        app.logger.info("User %s logged out", user_id)
        # The old token went with the session; hand the client its replacement
        return success("Logout successful", headers={"X-CSRFToken": generate_csrf()})


class CurrentUser(Resource):
    method_decorators: ClassVar = [require_login]

    @failure_message("Failed to retrieve user")
    def get(self):
        user = current_user._get_current_object()
        data = proposal_cache.remember_user(lambda: user_payload(user), user.id)
        return success("User retrieved successfully", {"user": data})


api.add_resource(Register, "/register")
api.add_resource(Login, "/login")
api.add_resource(Logout, "/logout")
api.add_resource(CurrentUser, "/user")
