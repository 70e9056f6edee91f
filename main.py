import logging
from typing import TypeVar

from flask import Flask, abort
from flask_caching import Cache
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_login import LoginManager
from flask_mailman import Mail
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from flask_wtf.csrf import CSRFProtect
from sqlalchemy import MetaData
from sqlalchemy.exc import NoResultFound
from sqlalchemy.orm import DeclarativeBase

from loggingmanager import configure_logging, create_logging_manager, set_user_id

install_logging = configure_logging()

logger = logging.getLogger(__name__)

naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(column_0_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class BaseModel(DeclarativeBase):
    metadata = MetaData(naming_convention=naming_convention)


M = TypeVar("M", bound=BaseModel)


def get_or_404(db: SQLAlchemy, model: type[M], id: int, error: type[Exception] | None = None) -> M:
    """Look up a row by primary key, raising `error` (or a bare 404) if it's missing."""
    try:
        return db.session.get_one(model, id)
    except NoResultFound:
        if error is not None:
            raise error()
        abort(404)


db = SQLAlchemy(model_class=BaseModel)

cache = Cache()
migrate = Migrate()
mail = Mail()
login_manager = LoginManager()
csrf = CSRFProtect()
limiter = Limiter(key_func=get_remote_address)


def check_cache_configuration():
    """Check the cache configuration is appropriate for production"""
    if cache.cache.__class__.__name__ == "SimpleCache":
        # SimpleCache is per-process, not appropriate for prod
        logger.warning("Per-process cache being used outside dev server - invalidation will not be shared")

    TEST_CACHE_KEY = "proposals_test_cache_key"
    cache.set(TEST_CACHE_KEY, "exists")
    if cache.get(TEST_CACHE_KEY) != "exists":
        logger.warning("Flask-Caching backend does not appear to be working. Performance may be affected.")


def create_app(dev_server=False, config_override=None):
    app = Flask(__name__)
    app.config.from_envvar("SETTINGS_FILE")
    if config_override:
        app.config.from_mapping(config_override)

    if "SECRET_KEY" not in app.config:
        raise RuntimeError("SECRET_KEY must be set in the app config")

    if install_logging:
        create_logging_manager(app)

    from apps.metrics import record_request_metrics

    record_request_metrics(app)

    for extension in (cache, db, mail, csrf, limiter):
        extension.init_app(app)

    migrate.init_app(app, db)

    login_manager.init_app(app)

    from models.user import User

    @login_manager.user_loader
    def load_user(userid: str) -> User | None:
        user = db.session.get(User, int(userid))
        if user:
            set_user_id(user.id)
        return user

    from apps.common.errors import Unauthenticated

    @login_manager.unauthorized_handler
    def unauthorized():
        raise Unauthenticated()

    from apps.common.search import create_search_backend

    app.extensions["proposal_search"] = create_search_backend(app.config)

    from apps.notifications import connect_listeners

    connect_listeners()

    @app.after_request
    def send_security_headers(response):
        use_hsts = app.config.get("HSTS", False)
        if use_hsts:
            max_age = app.config.get("HSTS_MAX_AGE", 3600 * 24 * 30 * 6)
            response.headers["Strict-Transport-Security"] = f"max-age={max_age}"

        response.headers["X-Frame-Options"] = "deny"
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return response

    if not app.debug and not app.testing:
        check_cache_configuration()

    from apps.common import register_error_handlers

    register_error_handlers(app)

    @app.shell_context_processor
    def shell_imports():
        import models
        from apps.common.storage import ProposalStorage

        ctx = {name: getattr(models, name) for name in dir(models) if name[0].isupper()}
        ctx.update(db=db, cache=cache, search=app.extensions["proposal_search"], storage=ProposalStorage.from_app())
        return ctx

    from apps.api import api_bp
    from apps.base import base
    from apps.metrics import metrics

    app.register_blueprint(base)
    app.register_blueprint(metrics)
    app.register_blueprint(api_bp, url_prefix=app.config.get("API_PREFIX", "/api"))

    return app
