from __future__ import annotations

import enum
import typing
from datetime import datetime

import bcrypt
from flask_login import UserMixin
from sqlalchemy import Index, func, select
from sqlalchemy.orm import Mapped, mapped_column, relationship

from main import db

from . import BaseModel, naive_utcnow

if typing.TYPE_CHECKING:
    from .proposal import Proposal
    from .review import Review

__all__ = [
    "User",
    "UserRole",
]


class UserRole(enum.StrEnum):
    ADMIN = "admin"
    REVIEWER = "reviewer"
    SPEAKER = "speaker"

    @classmethod
    def values(cls) -> list[str]:
        return [role.value for role in cls]

    @classmethod
    def registration_roles(cls) -> list[str]:
        """Roles a user may pick for themselves. Admins are created with `flask create_admin`."""
        return [cls.REVIEWER.value, cls.SPEAKER.value]


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


class User(BaseModel, UserMixin):
    __tablename__ = "user"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column()
    email: Mapped[str] = mapped_column(unique=True, index=True)
    password_hash: Mapped[str] = mapped_column()
    role: Mapped[UserRole] = mapped_column(default=UserRole.SPEAKER)
    created: Mapped[datetime] = mapped_column(default=naive_utcnow)
    modified: Mapped[datetime] = mapped_column(default=naive_utcnow, onupdate=naive_utcnow)

    proposals: Mapped[list[Proposal]] = relationship(
        back_populates="user",
        lazy="dynamic",
        cascade="all, delete-orphan",
    )
    reviews: Mapped[list[Review]] = relationship(
        back_populates="reviewer",
        lazy="dynamic",
        cascade="all, delete-orphan",
    )

    def __init__(self, email: str, name: str, role: UserRole | str = UserRole.SPEAKER):
        self.email = email
        self.name = name
        self.role = UserRole(role)

    def __repr__(self):
        return f"<User {self.email} ({self.role.value})>"

    def set_password(self, password: str):
        self.password_hash = hash_password(password)

    def check_password(self, password: str) -> bool:
        if not self.password_hash:
            return False
        return bcrypt.checkpw(password.encode("utf-8"), self.password_hash.encode("utf-8"))

    # Admins satisfy every role check
    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_reviewer(self) -> bool:
        return self.role == UserRole.REVIEWER or self.is_admin

    @property
    def is_speaker(self) -> bool:
        return self.role == UserRole.SPEAKER or self.is_admin

    @classmethod
    def get_by_email(cls, email) -> User | None:
        return db.session.execute(
            select(User).where(func.lower(User.email) == func.lower(email))
        ).scalar_one_or_none()

    @classmethod
    def does_user_exist(cls, email):
        return bool(User.get_by_email(email))

    @classmethod
    def admins(cls) -> list[User]:
        return list(db.session.scalars(select(User).where(User.role == UserRole.ADMIN).order_by(User.id)))


Index("ix_user_email_lower", func.lower(User.email), unique=True)


from .proposal import Proposal  # noqa: E402
from .review import Review  # noqa: E402
