" PyTest Config. This contains global-level pytest fixtures. "

import os
import os.path
import shutil
import tempfile

import pytest
from flask import g

from main import create_app
from main import db as db_obj
from models.user import User, UserRole
from tests._utils import create_user, login


@pytest.fixture(scope="module")
def app():
    """Fixture to provide an instance of the app.
    This will also create a Flask app_context and tear it down.

    This fixture is scoped to the module level to avoid too much
    database setup and teardown.
    """
    yield from app_factory()


@pytest.fixture(scope="module")
def app_with_cache():
    yield from app_factory(CACHE_TYPE="flask_caching.backends.SimpleCache")


def app_factory(**config_override):
    if "SETTINGS_FILE" not in os.environ:
        root = os.path.join(os.path.dirname(os.path.abspath(__file__)), "..")
        os.environ["SETTINGS_FILE"] = os.path.join(root, "config", "test.cfg")

    tmpdir = os.environ.get("TMPDIR", tempfile.gettempdir())
    prometheus_dir = os.path.join(tmpdir, "proposals_test_prometheus")
    os.environ["PROMETHEUS_MULTIPROC_DIR"] = prometheus_dir

    if os.path.exists(prometheus_dir):
        shutil.rmtree(prometheus_dir)
    if not os.path.exists(prometheus_dir):
        os.mkdir(prometheus_dir)

    storage_root = tempfile.mkdtemp(prefix="proposals_test_storage")
    config_override.setdefault("PROPOSAL_STORAGE_ROOT", storage_root)

    app = create_app(config_override=config_override)

    # Requests reuse the app context pushed below, and with it `g`. Flask-Login
    # caches the user there, so drop it to make each request load its own.
    @app.before_request
    def forget_cached_user():
        g.pop("_login_user", None)

    with app.app_context():
        db_obj.drop_all()
        db_obj.create_all()

        yield app

        db_obj.session.close()
        db_obj.drop_all()

    shutil.rmtree(storage_root, ignore_errors=True)


@pytest.fixture
def client(app):
    "Yield a test HTTP client for the app"
    yield app.test_client()


@pytest.fixture(scope="module")
def db(app):
    "Yield the DB object"
    yield db_obj


@pytest.fixture
def outbox(app):
    "Capture mail sent through the locmem backend and yield the outbox."
    mailman = app.extensions["mailman"]
    mailman.outbox = []
    yield mailman.outbox


@pytest.fixture(scope="module")
def admin(db) -> User:
    yield create_user(UserRole.ADMIN)


@pytest.fixture(scope="module")
def reviewer(db) -> User:
    yield create_user(UserRole.REVIEWER)


@pytest.fixture(scope="module")
def speaker(db) -> User:
    yield create_user(UserRole.SPEAKER)


@pytest.fixture(scope="module")
def other_speaker(db) -> User:
    yield create_user(UserRole.SPEAKER)


@pytest.fixture
def client_for(app):
    "Return a function which gives a fresh test client logged in as the given user."

    def make(user: User):
        return login(app.test_client(), user)

    return make
