"""Proposal listing and search.

Two backends share one interface: `DatabaseSearch` builds the query in SQL,
`AlgoliaSearch` asks Algolia for matching ids when there's a search string
and loads the rows from the database. The backend is picked once at app
start by `create_search_backend` and kept in `app.extensions["proposal_search"]`.
"""

import logging
import math
from dataclasses import dataclass, field

import requests
from flask import current_app as app
from sqlalchemy import func, select
from sqlalchemy.orm import selectinload

from main import db
from models.proposal import Proposal, ProposalStatus
from models.review import Review

logger = logging.getLogger(__name__)

DEFAULT_PER_PAGE = 15
MAX_PER_PAGE = 100


@dataclass
class ProposalFilters:
    search: str | None = None
    tag_ids: list[int] = field(default_factory=list)
    status: ProposalStatus | None = None
    user_id: int | None = None

    @classmethod
    def from_args(cls, args, allow_user_filter: bool = False) -> "ProposalFilters":
        """Build filters from query-string arguments, ignoring anything malformed."""
        search = (args.get("search") or "").strip() or None

        tag_ids = []
        for raw in args.getlist("tags"):
            for part in raw.split(","):
                part = part.strip()
                if part.isdecimal():
                    tag_ids.append(int(part))

        user_id = None
        if allow_user_filter:
            user_id = args.get("user_id", type=int)

        return cls(
            search=search,
            tag_ids=tag_ids,
            status=ProposalStatus.parse(args.get("status")),
            user_id=user_id,
        )


@dataclass
class Page:
    items: list
    total: int
    page: int
    per_page: int

    @property
    def last_page(self) -> int:
        return max(1, math.ceil(self.total / self.per_page))

    def pagination(self) -> dict:
        return {
            "current_page": self.page,
            "last_page": self.last_page,
            "per_page": self.per_page,
            "total": self.total,
        }


def proposal_loader_options():
    return (
        selectinload(Proposal.user),
        selectinload(Proposal.tags),
        selectinload(Proposal.reviews).selectinload(Review.reviewer),
    )


class DatabaseSearch:
    def build_query(self, filters: ProposalFilters):
        query = Proposal.query_all()
        if filters.search:
            query = Proposal.search_by_title(query, filters.search)
        if filters.tag_ids:
            query = Proposal.by_tags(query, filters.tag_ids)
        if filters.status is not None:
            query = Proposal.by_status(query, filters.status)
        if filters.user_id is not None:
            query = Proposal.by_user(query, filters.user_id)
        return query

    def search(self, filters: ProposalFilters, page: int = 1, per_page: int = DEFAULT_PER_PAGE) -> Page:
        query = self.build_query(filters)
        total = db.session.scalar(select(func.count()).select_from(query.order_by(None).subquery()))

        items = db.session.scalars(
            query.options(*proposal_loader_options())
            .order_by(Proposal.created.desc(), Proposal.id.desc())
            .limit(per_page)
            .offset((page - 1) * per_page)
        ).all()
        return Page(list(items), total or 0, page, per_page)

    def index_proposal(self, proposal: Proposal):
        pass

    def remove_proposal(self, proposal_id: int):
        pass


class AlgoliaError(Exception):
    pass


class AlgoliaSearch(DatabaseSearch):
    """Full-text search through Algolia's REST API.

    Listings without a search string are served from the database, since
    Algolia adds nothing there.
    """

    def __init__(self, app_id: str, api_key: str, index: str, timeout: float = 5.0):
        self.app_id = app_id
        self.index = index
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update(
            {
                "X-Algolia-Application-Id": app_id,
                "X-Algolia-API-Key": api_key,
            }
        )

    def _url(self, path: str, write: bool = False) -> str:
        host = f"{self.app_id}.algolia.net" if write else f"{self.app_id}-dsn.algolia.net"
        return f"https://{host}/1/indexes/{self.index}{path}"

    @staticmethod
    def build_filters(filters: ProposalFilters) -> str:
        clauses = []
        if filters.user_id is not None:
            clauses.append(f"user_id:{filters.user_id}")
        if filters.status is not None:
            clauses.append(f"status:{filters.status.value}")
        if filters.tag_ids:
            clauses.append("(" + " OR ".join(f"tag_ids:{t}" for t in filters.tag_ids) + ")")
        return " AND ".join(clauses)

    def search(self, filters: ProposalFilters, page: int = 1, per_page: int = DEFAULT_PER_PAGE) -> Page:
        if not filters.search:
            return super().search(filters, page, per_page)

        params = {
            "query": filters.search,
            "page": page - 1,
            "hitsPerPage": per_page,
            "attributesToRetrieve": ["objectID"],
        }
        algolia_filters = self.build_filters(filters)
        if algolia_filters:
            params["filters"] = algolia_filters

        response = self.session.post(self._url("/query"), json=params, timeout=self.timeout)
        if response.status_code != 200:
            raise AlgoliaError(f"Algolia query failed (HTTP {response.status_code}): {response.text}")
        result = response.json()

        ids = [int(hit["objectID"]) for hit in result.get("hits", [])]
        return Page(self._load_in_order(ids), result.get("nbHits", 0), page, per_page)

    def _load_in_order(self, ids: list[int]) -> list[Proposal]:
        if not ids:
            return []
        rows = db.session.scalars(
            select(Proposal).where(Proposal.id.in_(ids)).options(*proposal_loader_options())
        ).all()
        by_id = {p.id: p for p in rows}
        # Hits for rows deleted since indexing are dropped
        return [by_id[i] for i in ids if i in by_id]

    def index_proposal(self, proposal: Proposal):
        try:
            response = self.session.put(
                self._url(f"/{proposal.id}", write=True),
                json=proposal.to_search_document(),
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            logger.warning("Unable to index proposal %s in Algolia: %r", proposal.id, e)

    def remove_proposal(self, proposal_id: int):
        try:
            response = self.session.delete(self._url(f"/{proposal_id}", write=True), timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            logger.warning("Unable to remove proposal %s from Algolia: %r", proposal_id, e)


def create_search_backend(config) -> DatabaseSearch:
    driver = config.get("SEARCH_DRIVER", "database")
    if driver == "algolia":
        if config.get("ALGOLIA_APP_ID") and config.get("ALGOLIA_API_KEY"):
            return AlgoliaSearch(
                config["ALGOLIA_APP_ID"],
                config["ALGOLIA_API_KEY"],
                config.get("ALGOLIA_INDEX", "proposals"),
                config.get("ALGOLIA_TIMEOUT", 5.0),
            )
        logger.warning("SEARCH_DRIVER is algolia but no Algolia credentials are set, searching the database")
    elif driver != "database":
        logger.warning("Unknown SEARCH_DRIVER %r, searching the database", driver)
    return DatabaseSearch()


def search_backend() -> DatabaseSearch:
    return app.extensions["proposal_search"]
