from __future__ import annotations

import enum
import typing
from datetime import datetime

from sqlalchemy import ForeignKey, UniqueConstraint, select
from sqlalchemy.orm import Mapped, mapped_column, relationship

from main import db

from . import BaseModel, exists, naive_utcnow

if typing.TYPE_CHECKING:
    from .proposal import Proposal
    from .user import User

__all__ = [
    "Review",
    "ReviewRating",
]


class ReviewRating(enum.IntEnum):
    ONE = 1
    TWO = 2
    THREE = 3
    FOUR = 4
    FIVE = 5
    TEN = 10

    @property
    def label(self) -> str:
        return f"{self.value} - {RATING_LABELS[self]}"

    @classmethod
    def values(cls) -> list[int]:
        return [rating.value for rating in cls]

    @classmethod
    def options(cls) -> list[dict]:
        return [{"value": rating.value, "label": rating.label} for rating in cls]


RATING_LABELS = {
    ReviewRating.ONE: "Poor",
    ReviewRating.TWO: "Fair",
    ReviewRating.THREE: "Good",
    ReviewRating.FOUR: "Very Good",
    ReviewRating.FIVE: "Excellent",
    ReviewRating.TEN: "Outstanding",
}


class Review(BaseModel):
    __tablename__ = "review"
    __table_args__ = (UniqueConstraint("proposal_id", "reviewer_id", name="uq_review_proposal_reviewer"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    proposal_id: Mapped[int] = mapped_column(ForeignKey("proposal.id", ondelete="CASCADE"), index=True)
    reviewer_id: Mapped[int] = mapped_column(ForeignKey("user.id", ondelete="CASCADE"), index=True)
    # Stored as the plain integer so AVG() works on it
    rating: Mapped[int] = mapped_column()
    comment: Mapped[str | None] = mapped_column()
    created: Mapped[datetime] = mapped_column(default=naive_utcnow, index=True)
    modified: Mapped[datetime] = mapped_column(default=naive_utcnow, onupdate=naive_utcnow)

    proposal: Mapped[Proposal] = relationship(back_populates="reviews")
    reviewer: Mapped[User] = relationship(back_populates="reviews")

    def __init__(self, proposal: Proposal, reviewer: User, rating: int, comment: str | None = None):
        self.proposal = proposal
        self.reviewer = reviewer
        self.rating = int(ReviewRating(rating))
        self.comment = comment

    def __repr__(self):
        return f"<Review {self.id} proposal={self.proposal_id} reviewer={self.reviewer_id} rating={self.rating}>"

    @classmethod
    def has_reviewed(cls, proposal_id: int, reviewer_id: int) -> bool:
        return exists(
            db.session.query(Review).filter_by(proposal_id=proposal_id, reviewer_id=reviewer_id)
        )

    @classmethod
    def for_proposal(cls, proposal_id: int):
        return (
            select(Review)
            .where(Review.proposal_id == proposal_id)
            .order_by(Review.created.desc(), Review.id.desc())
        )


from .proposal import Proposal  # noqa: E402
from .user import User  # noqa: E402
