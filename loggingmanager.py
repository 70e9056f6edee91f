"""Logging setup and request-scoped logging context.

Werkzeug logs the request after the Flask app context has ended,
so the authenticated user's ID and the request line are kept in a
Werkzeug `Local` and read back by `ContextFormatter`, rather than
taken from flask_login or flask.request.
"""

import logging
import logging.config
from pathlib import Path

import yaml
from werkzeug.local import Local, LocalManager

local = Local()
local_manager = LocalManager([local])

LOGGING_CONFIG = Path(__file__).parent / "logging.yaml"
LOGGING_OVERRIDE = Path("logging.override.yaml")


def merge_config(base: dict, override: dict) -> dict:
    """Recursively merge `override` into `base`. `None` values leave the base alone."""
    for key, value in override.items():
        if isinstance(value, dict):
            base[key] = merge_config(base.get(key, {}), value)
        elif value is not None:
            base[key] = value
    return base


def configure_logging() -> bool:
    """Install the logging config, returning whether we did.

    Existing root handlers (pytest's, or anything that logged before import)
    are left alone.
    """
    if logging.root.handlers:
        return False

    conf = yaml.safe_load(LOGGING_CONFIG.read_text())
    if LOGGING_OVERRIDE.is_file():
        merge_config(conf, yaml.safe_load(LOGGING_OVERRIDE.read_text()) or {})

    logging.config.dictConfig(conf)
    return True


class ContextFormatter(logging.Formatter):
    """Adds `user` and `request` attributes to each record for the format string."""

    def format(self, record):
        record.user = getattr(local, "user_id", None)
        record.request = getattr(local, "request_line", "-")
        return super().format(record)


def set_user_id(uid):
    """Set the user ID for later use in logging."""
    local.user_id = uid


def clear_user_id():
    local.user_id = None


def create_logging_manager(app):
    # Flask installs its own handler on first use of app.logger; route through root instead
    app.logger.propagate = True
    app.logger.handlers = []
    logging.root.setLevel(logging.DEBUG if app.debug else logging.INFO)

    wsgi_app = app.wsgi_app

    def record_request_line(environ, start_response):
        local.request_line = f"{environ.get('REQUEST_METHOD', '-')} {environ.get('PATH_INFO', '')}"
        return wsgi_app(environ, start_response)

    # The manager's middleware clears the Local once the response is finished
    app.wsgi_app = local_manager.make_middleware(record_request_line)
