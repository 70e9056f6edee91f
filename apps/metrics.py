import logging
import time

from flask import Blueprint, Response, g, request
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    PlatformCollector,
    generate_latest,
)
from prometheus_client.core import Counter, GaugeMetricFamily, Histogram
from prometheus_client.multiprocess import MultiProcessCollector
from sqlalchemy import String, cast

from main import db
from models import count_groups
from models.email import EmailJobRecipient
from models.proposal import Proposal
from models.review import Review
from models.tag import Tag
from models.user import User

metrics = Blueprint("metric", __name__)

request_duration = Histogram("proposals_request_duration_seconds", "Request duration", ["endpoint", "method"])
request_total = Counter("proposals_request_total", "Total request count", ["endpoint", "method", "http_status"])

logger = logging.getLogger(__name__)


def record_request_metrics(app):
    @app.before_request
    def start_timer():
        g.request_started = time.monotonic()

    @app.after_request
    def observe_request(response):
        started = g.get("request_started")
        if started is None:
            logger.error("No start time for %s, check before_request ordering", request.path)
        else:
            request_duration.labels(request.endpoint, request.method).observe(time.monotonic() - started)
        request_total.labels(request.endpoint, request.method, response.status_code).inc()
        return response


def gauge_groups(gauge, query, *entities):
    for count, *key in count_groups(query, *entities):
        gauge.add_metric([str(k) for k in key], count)


class ExternalMetrics:
    def __init__(self, registry=None):
        if registry is not None:
            registry.register(self)

    def collect(self):
        # Strictly, we should include all possible combinations, with 0

        proposals = GaugeMetricFamily("proposals_proposals", "Talk proposals", labels=["status"])
        reviews = GaugeMetricFamily("proposals_reviews", "Proposal reviews", labels=["rating"])
        users = GaugeMetricFamily("proposals_users", "Registered users", labels=["role"])
        tags = GaugeMetricFamily("proposals_tags", "Tags")
        email_jobs = GaugeMetricFamily("proposals_emails", "Email recipients", labels=["sent"])

        gauge_groups(proposals, db.session.query(Proposal), Proposal.status)
        gauge_groups(reviews, db.session.query(Review), Review.rating)
        gauge_groups(users, db.session.query(User), User.role)
        tags.add_metric([], db.session.query(Tag).count())
        gauge_groups(
            email_jobs,
            db.session.query(EmailJobRecipient),
            cast(EmailJobRecipient.sent, String),
        )

        return [proposals, reviews, users, tags, email_jobs]


@metrics.route("/metrics")
def collect_metrics():
    registry = CollectorRegistry()
    MultiProcessCollector(registry)
    PlatformCollector(registry)
    ExternalMetrics(registry)

    data = generate_latest(registry)

    return Response(data, mimetype=CONTENT_TYPE_LATEST)
