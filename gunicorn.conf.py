import os
import shutil

# Must be set before prometheus_client is imported, here and in the workers
prometheus_dir = os.environ.setdefault("PROMETHEUS_MULTIPROC_DIR", "var/prometheus")

import prometheus_client.multiprocess  # noqa: E402

bind = os.environ.get("BIND", "0.0.0.0:8000")
workers = int(os.environ.get("WORKERS", "4"))
wsgi_app = "wsgi:app"


def on_starting(server):
    if os.path.exists(prometheus_dir):
        shutil.rmtree(prometheus_dir)
    os.makedirs(prometheus_dir, exist_ok=True)


def child_exit(server, worker):
    # this keeps livesum and liveall accurate
    # other metrics will hang around until restart
    prometheus_client.multiprocess.mark_process_dead(worker.pid)
