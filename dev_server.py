"""Entry point for `flask --app dev_server run`, with SQLite tables created on start."""

import os
import shutil

prometheus_dir = "var/prometheus"
os.environ["PROMETHEUS_MULTIPROC_DIR"] = prometheus_dir
os.environ.setdefault("SETTINGS_FILE", os.path.join(os.path.dirname(__file__), "config", "development.cfg"))

if os.path.exists(prometheus_dir):
    shutil.rmtree(prometheus_dir, True)
os.makedirs(prometheus_dir, exist_ok=True)

import prometheus_client.multiprocess  # noqa: E402

from main import create_app, db  # noqa: E402

app = create_app(dev_server=True)

with app.app_context():
    db.create_all()


@app.after_request
def prometheus_cleanup(response):
    # this keeps livesum and liveall accurate
    # other metrics will hang around until restart
    prometheus_client.multiprocess.mark_process_dead(os.getpid())
    return response
