from datetime import datetime
from typing import Any, Optional, Protocol, Sequence
from sqlmodel import Session, select, desc
from opsdesk.core.exceptions import InternalError, InvalidTransitionError
from opsdesk.models import CommandJob, Host, JobStatus, TERMINAL_STATUSES, User
from opsdesk.schemas.host import HostSummary
from opsdesk.schemas.job import JobRead
from opsdesk.schemas.user import UserSummary


class JobStore(Protocol):
    """Persistence contract for command job records."""

    def create(self, job: CommandJob) -> CommandJob: ...

    def update(self, job_id: str, **patch: Any) -> CommandJob: ...

    def get(self, job_id: str) -> Optional[CommandJob]: ...

    def describe(self, job_id: str) -> Optional[JobRead]: ...

    def list_recent(self, limit: int = 50) -> list[JobRead]: ...

    def list_running(self, started_before: datetime) -> list[CommandJob]: ...


class JobService:
    """Stores command job records and serves the execution history.

    Writes are staged on the shared session and flushed, never committed:
    the caller owns the transaction boundary. Host and user display fields
    are joined from the registry at read time, so history shows current
    names rather than names at execution time.
    """
    def __init__(self, db: Session):
        self.db = db

    def create(self, job: CommandJob) -> CommandJob:
        self.db.add(job)
        self.db.flush()
        return job

    def update(self, job_id: str, **patch: Any) -> CommandJob:
        """Applies a partial patch to a single job record.

        Why: The execution service is the only writer of a job, so no
        compare-and-swap is done. A job that already reached a terminal
        status is never touched again.

        Args:
            job_id: Primary key of the job.
            **patch: Column values to overwrite.

        Returns:
            The patched job record.

        Raises:
            InternalError: If the job does not exist.
            InvalidTransitionError: If the job is already terminal.
        """
        job = self.db.get(CommandJob, job_id)
        if job is None:
            raise InternalError(f"Job {job_id} not found")
        if job.status in TERMINAL_STATUSES:
            raise InvalidTransitionError(f"Job {job_id} is already {JobStatus(job.status).value}")
        for key, value in patch.items():
            if not hasattr(job, key):
                raise InternalError(f"Unknown job field: {key}")
            setattr(job, key, value)
        self.db.add(job)
        self.db.flush()
        return job

    def get(self, job_id: str) -> Optional[CommandJob]:
        return self.db.get(CommandJob, job_id)

    def describe(self, job_id: str) -> Optional[JobRead]:
        """Returns a single job with its host and user display fields."""
        job = self.get(job_id)
        if job is None:
            return None
        return self._with_context([job])[0]

    def list_recent(self, limit: int = 50) -> list[JobRead]:
        """Retrieves the most recent jobs, newest first.

        Args:
            limit: Maximum number of jobs to return.

        Returns:
            Up to ``limit`` jobs ordered by start time descending. Jobs sharing
            a start time come back in no particular order.
        """
        statement = select(CommandJob).order_by(desc(CommandJob.start_time)).limit(limit)
        return self._with_context(self.db.exec(statement).all())

    def list_running(self, started_before: datetime) -> list[CommandJob]:
        statement = (
            select(CommandJob)
            .where(CommandJob.status == JobStatus.RUNNING)
            .where(CommandJob.start_time < started_before)
        )
        return list(self.db.exec(statement).all())

    def _with_context(self, jobs: Sequence[CommandJob]) -> list[JobRead]:
        host_ids = {job.host_id for job in jobs}
        user_ids = {job.executed_by for job in jobs if job.executed_by}
        hosts = {}
        if host_ids:
            hosts = {h.id: h for h in self.db.exec(select(Host).where(Host.id.in_(host_ids))).all()}
        users = {}
        if user_ids:
            users = {u.id: u for u in self.db.exec(select(User).where(User.id.in_(user_ids))).all()}

        rows = []
        for job in jobs:
            host = hosts.get(job.host_id)
            user = users.get(job.executed_by) if job.executed_by else None
            rows.append(JobRead(
                **job.model_dump(),
                host=HostSummary.model_validate(host) if host else None,
                user=UserSummary.model_validate(user) if user else None,
            ))
        return rows
