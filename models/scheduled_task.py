"""A simple job scheduler for work that shouldn't happen inside a request.

To schedule a task:
```
from models.scheduled_task import scheduled_task

@scheduled_task(minutes=5)
def my_function():
    ...
```

The return value or any exception raised is recorded in `ScheduledTaskResult`.

Tasks are run by the `flask periodic` command, which is expected to be
called from cron, so granularity is no better than a minute.
"""

import logging
from datetime import datetime, timedelta
from functools import wraps

import pendulum
from sqlalchemy import JSON, select, text
from sqlalchemy.orm import Mapped, Session, mapped_column

from main import db

from . import BaseModel, naive_utcnow

__all__ = ["ScheduledTaskResult"]

tasks = []
log = logging.getLogger(__name__)


class ScheduledTask:
    def __init__(self, func, duration):
        self.func = func
        self.duration = duration

    @property
    def name(self):
        return self.func.__module__ + "." + self.func.__name__

    def __repr__(self):
        return f"<ScheduledTask: {self.name}, every {self.duration}>"


class ScheduledTaskResult(BaseModel):
    __tablename__ = "scheduled_task_result"
    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(index=True)
    start_time: Mapped[datetime] = mapped_column()
    duration: Mapped[timedelta | None] = mapped_column()
    result: Mapped[dict] = mapped_column(JSON)

    def __init__(self, job_name: str):
        self.name = job_name
        self.start_time = naive_utcnow()
        self.result = {}

    def finish(self):
        self.duration = naive_utcnow() - self.start_time

    @classmethod
    def get_latest_run(cls, name: str, session: Session | None = None) -> "ScheduledTaskResult | None":
        if session is None:
            session = db.session
        return session.scalars(
            select(cls).where(cls.name == name).order_by(cls.start_time.desc()).limit(1)
        ).one_or_none()

    @classmethod
    def cleanup(cls, session: Session | None = None):
        """Delete results older than a week"""
        if session is None:
            session = db.session
        cutoff = naive_utcnow() - pendulum.duration(days=7)
        session.query(cls).filter(cls.start_time < cutoff).delete()


def scheduled_task(**kwargs):
    def decorator(f):
        duration = pendulum.duration(**kwargs)
        if duration < pendulum.duration(minutes=1):
            raise ValueError("Please provide a duration greater than 1 minute")
        tasks.append(ScheduledTask(f, duration))

        @wraps(f)
        def wrapper(*args, **kwargs):
            return f(*args, **kwargs)

        return wrapper

    return decorator


def execute_scheduled_tasks(force=False):
    # Use a separate session, so tasks calling commit don't free our lock
    with Session(db.engine) as session:
        if session.bind.dialect.name == "postgresql":
            # Stop two cron runs picking up the same tasks
            session.execute(text(f"LOCK TABLE {ScheduledTaskResult.__tablename__} IN EXCLUSIVE MODE"))

        tasks_to_run = []
        if force:
            tasks_to_run += tasks
        else:
            now = naive_utcnow()
            for task in tasks:
                res = ScheduledTaskResult.get_latest_run(task.name, session)
                if res is None or res.start_time + task.duration < now:
                    tasks_to_run.append(task)

        log.info("Running %s periodic tasks...", len(tasks_to_run))
        for task in tasks_to_run:
            log.info("Running %s", task.name)
            result = ScheduledTaskResult(task.name)
            try:
                result.result["returnval"] = task.func()

            except Exception as e:
                log.exception(f"Exception in {task.name}: {repr(e)}")
                result.result["exception"] = repr(e)

            # Clean up the main session whatever happens
            db.session.rollback()

            result.finish()
            session.add(result)

        ScheduledTaskResult.cleanup(session)
        session.commit()
    log.info("Tasks complete.")
    return [task.name for task in tasks_to_run]
