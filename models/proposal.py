from __future__ import annotations

import enum
import typing
from datetime import datetime

from sqlalchemy import ForeignKey, Select, exists, select
from sqlalchemy.orm import Mapped, mapped_column, relationship

from . import BaseModel, naive_utcnow
from .tag import ProposalTag

if typing.TYPE_CHECKING:
    from .review import Review
    from .tag import Tag
    from .user import User

__all__ = [
    "Proposal",
    "ProposalStatus",
]

MAX_TITLE_LENGTH = 255


class ProposalStatus(enum.StrEnum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

    @classmethod
    def values(cls) -> list[str]:
        return [status.value for status in cls]

    @classmethod
    def parse(cls, value) -> ProposalStatus | None:
        """Return the matching status, or None for anything that isn't one."""
        try:
            return cls(value)
        except ValueError:
            return None


class Proposal(BaseModel):
    __tablename__ = "proposal"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("user.id", ondelete="CASCADE"), index=True)
    title: Mapped[str] = mapped_column(index=True)
    description: Mapped[str] = mapped_column()
    # Relative to PROPOSAL_STORAGE_ROOT
    file_path: Mapped[str | None] = mapped_column()
    status: Mapped[ProposalStatus] = mapped_column(default=ProposalStatus.PENDING, index=True)
    created: Mapped[datetime] = mapped_column(default=naive_utcnow, index=True)
    modified: Mapped[datetime] = mapped_column(default=naive_utcnow, onupdate=naive_utcnow)

    user: Mapped[User] = relationship(back_populates="proposals")
    tags: Mapped[list[Tag]] = relationship(
        back_populates="proposals",
        secondary=ProposalTag,
        order_by="Tag.name",
    )
    reviews: Mapped[list[Review]] = relationship(
        back_populates="proposal",
        cascade="all, delete-orphan",
        order_by="Review.created.desc()",
    )

    def __init__(self, user: User, title: str, description: str):
        self.user = user
        self.title = title
        self.description = description
        self.status = ProposalStatus.PENDING

    def __repr__(self):
        return f"<Proposal {self.id} '{self.title}' ({self.status.value})>"

    @property
    def has_file(self) -> bool:
        return self.file_path is not None

    @property
    def reviews_count(self) -> int:
        return len(self.reviews)

    @property
    def average_rating(self) -> float | None:
        if not self.reviews:
            return None
        return round(sum(r.rating for r in self.reviews) / len(self.reviews), 1)

    def is_owned_by(self, user: User) -> bool:
        return self.user_id == user.id

    def set_status(self, status: ProposalStatus | str) -> ProposalStatus:
        """Set the status and return the previous one."""
        old = self.status
        self.status = ProposalStatus(status)
        return old

    # Query helpers. These all take and return a `Select` so they can be chained.
    @classmethod
    def query_all(cls) -> Select:
        return select(Proposal)

    @staticmethod
    def by_status(query: Select, status: ProposalStatus | str) -> Select:
        return query.where(Proposal.status == ProposalStatus(status))

    @staticmethod
    def by_user(query: Select, user_id: int) -> Select:
        return query.where(Proposal.user_id == user_id)

    @staticmethod
    def by_tags(query: Select, tag_ids: list[int]) -> Select:
        """Proposals carrying any of the given tags."""
        return query.where(
            exists()
            .where(ProposalTag.c.proposal_id == Proposal.id)
            .where(ProposalTag.c.tag_id.in_(tag_ids))
        )

    @staticmethod
    def search_by_title(query: Select, term: str) -> Select:
        return query.where(Proposal.title.like(f"%{term}%"))

    def to_search_document(self) -> dict:
        return {
            "objectID": str(self.id),
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "status": self.status.value,
            "user_id": self.user_id,
            "user_name": self.user.name,
            "user_email": self.user.email,
            "tags": [t.name for t in self.tags],
            "tag_ids": [t.id for t in self.tags],
            "average_rating": self.average_rating,
            "reviews_count": self.reviews_count,
            "created_at": self.created.isoformat(),
            "updated_at": self.modified.isoformat(),
        }


from .review import Review  # noqa: E402
from .tag import Tag  # noqa: E402
from .user import User  # noqa: E402
