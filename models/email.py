from datetime import datetime

from sqlalchemy import ForeignKey, select
from sqlalchemy.orm import Mapped, mapped_column, relationship

from main import db
from models.user import User

from . import BaseModel, naive_utcnow

__all__ = ["EmailJob", "EmailJobRecipient"]


class EmailJob(BaseModel):
    """A notification email, queued to be sent to one or more users by the `send_emails` task."""

    __tablename__ = "email_job"
    id: Mapped[int] = mapped_column(primary_key=True)
    subject: Mapped[str]
    text_body: Mapped[str]
    created: Mapped[datetime] = mapped_column(default=naive_utcnow)

    recipients: Mapped[list["EmailJobRecipient"]] = relationship(
        back_populates="job", cascade="all, delete-orphan"
    )

    def __init__(self, subject: str, text_body: str, users: list[User] | None = None):
        self.subject = subject
        self.text_body = text_body
        for user in users or []:
            EmailJobRecipient(self, user)

    def __repr__(self):
        return f"<EmailJob {self.id} '{self.subject}'>"


class EmailJobRecipient(BaseModel):
    __tablename__ = "email_recipient"
    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("user.id", ondelete="CASCADE"))
    job_id: Mapped[int] = mapped_column(ForeignKey("email_job.id", ondelete="CASCADE"))
    sent: Mapped[bool] = mapped_column(default=False)

    user: Mapped[User] = relationship()
    job: Mapped[EmailJob] = relationship(back_populates="recipients")

    def __init__(self, job: EmailJob, user: User):
        self.job = job
        self.user = user
        self.sent = False

    @classmethod
    def unsent(cls) -> list["EmailJobRecipient"]:
        return list(
            db.session.scalars(
                select(EmailJobRecipient)
                .where(EmailJobRecipient.sent == False)  # noqa: E712
                .order_by(EmailJobRecipient.id)
            )
        )
