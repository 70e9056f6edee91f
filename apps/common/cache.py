"""Named cache entries on top of Flask-Caching.

Only JSON-ready payloads are cached, never ORM instances. Each family of
keys has its own TTL; the `forget_*` functions are called by the handlers
that change the underlying rows.
"""

import hashlib
import logging
from collections.abc import Callable

from main import cache

logger = logging.getLogger(__name__)

TAGS_TTL = 3600
TOP_RATED_TTL = 900
USER_TTL = 300
PROPOSAL_TTL = 1800

TOP_RATED_MAX_LIMIT = 50

TAGS_GENERATION_KEY = "tags:generation"


def _tags_generation() -> int:
    return cache.get(TAGS_GENERATION_KEY) or 0


def tags_key(search: str | None = None) -> str:
    # The generation is part of the key so forget_tags() can expire every search variant at once
    key = f"tags:v{_tags_generation()}"
    if search:
        key += ":search:" + hashlib.md5(search.encode("utf-8")).hexdigest()
    return key


def top_rated_key(limit: int = 10) -> str:
    return f"top_rated_proposals:limit:{limit}"


def user_key(user_id: int) -> str:
    return f"user:{user_id}"


def proposal_key(proposal_id: int) -> str:
    return f"proposal:{proposal_id}"


def remember(key: str, timeout: int, compute: Callable):
    value = cache.get(key)
    if value is None:
        value = compute()
        cache.set(key, value, timeout=timeout)
    return value


def remember_tags(compute: Callable, search: str | None = None):
    return remember(tags_key(search), TAGS_TTL, compute)


def remember_top_rated(compute: Callable, limit: int = 10):
    return remember(top_rated_key(limit), TOP_RATED_TTL, compute)


def remember_user(compute: Callable, user_id: int):
    return remember(user_key(user_id), USER_TTL, compute)


def remember_proposal(compute: Callable, proposal_id: int):
    return remember(proposal_key(proposal_id), PROPOSAL_TTL, compute)


def forget_tags():
    cache.set(TAGS_GENERATION_KEY, _tags_generation() + 1, timeout=0)


def forget_top_rated():
    cache.delete_many(*[top_rated_key(limit) for limit in range(1, TOP_RATED_MAX_LIMIT + 1)])


def forget_user(user_id: int):
    cache.delete(user_key(user_id))


def forget_proposal(proposal_id: int):
    cache.delete(proposal_key(proposal_id))


def forget_proposal_related(proposal_id: int):
    """A proposal, its reviews or its status changed."""
    logger.debug("Forgetting cache entries for proposal %s", proposal_id)
    forget_proposal(proposal_id)
    forget_top_rated()


def forget_user_related(user_id: int):
    forget_user(user_id)
