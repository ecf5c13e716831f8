"""In-memory implementations of the store protocols for service tests."""
from datetime import datetime
from typing import Any, Optional

from opsdesk.core.exceptions import InvalidTransitionError
from opsdesk.models import AuditAction, AuditEvent, CommandJob, HostStatus, JobStatus, TERMINAL_STATUSES
from opsdesk.schemas.audit import AuditEventRead
from opsdesk.schemas.host import HostTarget
from opsdesk.schemas.job import JobRead


def make_host(host_id: str, status: HostStatus = HostStatus.ONLINE, name: Optional[str] = None) -> HostTarget:
    return HostTarget(id=host_id, name=name or f"host {host_id}", hostname=f"{host_id}.example.com", status=status)


class FakeHosts:
    def __init__(self, *hosts: HostTarget):
        self.hosts = {h.id: h for h in hosts}

    def get(self, host_id: str) -> Optional[HostTarget]:
        return self.hosts.get(host_id)

    def get_status(self, host_id: str) -> Optional[HostStatus]:
        host = self.get(host_id)
        return host.status if host else None


class FakeJobs:
    def __init__(self, fail_on_create: bool = False):
        self.jobs: dict[str, CommandJob] = {}
        self.fail_on_create = fail_on_create

    def create(self, job: CommandJob) -> CommandJob:
        if self.fail_on_create:
            raise RuntimeError("job store unavailable")
        self.jobs[job.id] = job
        return job

    def update(self, job_id: str, **patch: Any) -> CommandJob:
        job = self.jobs[job_id]
        if job.status in TERMINAL_STATUSES:
            raise InvalidTransitionError(f"Job {job_id} is already terminal")
        for key, value in patch.items():
            setattr(job, key, value)
        return job

    def get(self, job_id: str) -> Optional[CommandJob]:
        return self.jobs.get(job_id)

    def describe(self, job_id: str) -> Optional[JobRead]:
        job = self.get(job_id)
        return JobRead(**job.model_dump()) if job else None

    def list_recent(self, limit: int = 50) -> list[JobRead]:
        ordered = sorted(self.jobs.values(), key=lambda j: j.start_time, reverse=True)
        return [JobRead(**j.model_dump()) for j in ordered[:limit]]

    def list_running(self, started_before: datetime) -> list[CommandJob]:
        return [j for j in self.jobs.values() if j.status == JobStatus.RUNNING and j.start_time < started_before]


class FakeAudit:
    def __init__(self):
        self.events: list[AuditEvent] = []

    def append(self, event: AuditEvent) -> None:
        self.events.append(event)

    def record(self, action: AuditAction, details=None, identity=None, source_address=None, agent_string=None) -> AuditEvent:
        event = AuditEvent(
            action=action,
            details=details,
            identity=identity,
            source_address=source_address,
            agent_string=agent_string,
        )
        self.append(event)
        return event

    def list_recent(self, limit: int = 100) -> list[AuditEventRead]:
        ordered = sorted(self.events, key=lambda e: e.timestamp, reverse=True)
        return [AuditEventRead(**e.model_dump()) for e in ordered[:limit]]


class FakeTransaction:
    def __init__(self):
        self.commits = 0
        self.rollbacks = 0

    def commit(self) -> None:
        self.commits += 1

    def rollback(self) -> None:
        self.rollbacks += 1
