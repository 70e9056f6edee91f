from datetime import UTC, datetime
from typing import TYPE_CHECKING

import datetype
from sqlalchemy import true
from sqlalchemy.orm import Query
from sqlalchemy.sql.functions import func

from main import db

# If we're type checking, we want models to inherit from the BaseModel (trivial subclass
# of DeclarativeBase) as mypy can't handle using the sqlalchemy-flask generated db.Model
if TYPE_CHECKING:
    from main import BaseModel
else:
    BaseModel = db.Model


def naive_utcnow() -> datetype.DateTime[None]:
    return datetype.naive(datetime.now(UTC).replace(tzinfo=None))


def exists(query):
    return db.session.query(true()).filter(query.exists()).scalar()


def count_groups(selectable, *entities):
    if isinstance(selectable, Query):
        return (
            selectable.with_entities(func.count().label("count"), *entities)
            .group_by(*entities)
            .order_by(*entities)
        )
    return db.session.execute(
        selectable.with_only_columns(func.count().label("count"), *entities)
        .group_by(*entities)
        .order_by(*entities)
    )


from .email import *  # noqa: F403
from .proposal import *  # noqa: F403
from .review import *  # noqa: F403
from .scheduled_task import *  # noqa: F403
from .tag import *  # noqa: F403
from .user import *  # noqa: F403

db.configure_mappers()
