from typing import TYPE_CHECKING

from sqlalchemy import Column, ForeignKey, Integer, Table, select
from sqlalchemy.orm import Mapped, mapped_column, relationship

from main import db

from . import BaseModel

if TYPE_CHECKING:
    from .proposal import Proposal

__all__ = [
    "ProposalTag",
    "Tag",
]

MAX_TAG_LENGTH = 255


ProposalTag = Table(
    "proposal_tag",
    BaseModel.metadata,
    Column("proposal_id", Integer, ForeignKey("proposal.id", ondelete="CASCADE"), primary_key=True),
    Column("tag_id", Integer, ForeignKey("tag.id", ondelete="CASCADE"), primary_key=True),
)


class Tag(BaseModel):
    __tablename__ = "tag"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(unique=True)

    proposals: Mapped[list["Proposal"]] = relationship(back_populates="tags", secondary=ProposalTag)

    def __init__(self, name: str):
        self.name = name

    def __str__(self):
        return self.name

    def __repr__(self):
        return f"<Tag {self.id} '{self.name}'>"

    @classmethod
    def get_by_name(cls, name: str) -> "Tag | None":
        return db.session.execute(select(Tag).where(Tag.name == name)).scalar_one_or_none()

    @classmethod
    def get_or_create(cls, name: str) -> "Tag":
        """Find a tag by its exact name, adding a new one to the session if there isn't one."""
        tag = cls.get_by_name(name)
        if tag is None:
            tag = Tag(name)
            db.session.add(tag)
            # Flush so that a repeated name later in the same request finds this row
            db.session.flush()
        return tag

    @classmethod
    def resolve_names(cls, names: list[str]) -> list["Tag"]:
        res = []
        for name in names:
            tag = cls.get_or_create(name)
            if tag not in res:
                res.append(tag)
        return res

    @classmethod
    def search(cls, term: str | None = None) -> list["Tag"]:
        query = select(Tag).order_by(Tag.name)
        if term:
            query = query.where(Tag.name.like(f"%{term}%"))
        return list(db.session.scalars(query))
