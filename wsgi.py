import os

from werkzeug.middleware.proxy_fix import ProxyFix

os.environ.setdefault("SETTINGS_FILE", os.path.join(os.path.dirname(__file__), "config", "production.cfg"))

from main import create_app  # noqa: E402

# ProxyFix handles the X-Forwarded-For and X-Forwarded-Proto headers, which the
# per-IP rate limits depend on
app = ProxyFix(create_app(), x_for=1, x_proto=1)
