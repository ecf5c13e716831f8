from datetime import datetime, timedelta
from typing import NoReturn, Optional, Protocol
import asyncio
import logging

from opsdesk.core.exceptions import InternalError, NotFoundError, PreconditionError, TransportError, ValidationError
from opsdesk.models import AuditAction, CommandJob, HostStatus, JobStatus
from opsdesk.schemas.host import HostTarget
from opsdesk.services.audit import AuditLogger
from opsdesk.services.hosts import HostGate
from opsdesk.services.jobs import JobStore
from opsdesk.services.transport import CommandTransport, ExecutionResult
from opsdesk.utils.clock import as_utc, utcnow

logger = logging.getLogger(__name__)

ORPHANED_JOB_OUTPUT = "[SYSTEM] Job interrupted before completion."


class Transaction(Protocol):
    def commit(self) -> None: ...

    def rollback(self) -> None: ...


def elapsed_ms(start: datetime, end: datetime) -> int:
    return (as_utc(end) - as_utc(start)) // timedelta(milliseconds=1)


class ExecutionService:
    """Runs ad-hoc commands against registered hosts and records the outcome.

    A submission validates its input, checks the host gate once, commits a
    RUNNING job, awaits the transport under a deadline, then commits the
    terminal job state together with its EXECUTE_COMMAND audit event. The
    request is held for the whole round trip; there is no queue and no
    early handle.

    Host status is not re-checked while the command runs, so a host that
    goes offline mid-execution still gets its job finished normally.
    Concurrent submissions against the same host are not serialized.

    Attributes:
        hosts: Host registry gate.
        jobs: Job record store.
        audit: Audit event log.
        transport: Command transport (scripted or real).
        tx: Transaction shared by ``jobs`` and ``audit``.
        timeout: Deadline in seconds for a single transport call, or None.
    """
    def __init__(
        self,
        hosts: HostGate,
        jobs: JobStore,
        audit: AuditLogger,
        transport: CommandTransport,
        tx: Transaction,
        timeout: Optional[float] = None,
    ):
        self.hosts = hosts
        self.jobs = jobs
        self.audit = audit
        self.transport = transport
        self.tx = tx
        self.timeout = timeout

    async def submit(
        self,
        host_id: Optional[str],
        command: Optional[str],
        identity: Optional[str] = None,
        source_address: Optional[str] = None,
        agent_string: Optional[str] = None,
    ) -> CommandJob:
        """Executes a command on a host and returns the finished job record.

        Args:
            host_id: ID of the registered target host.
            command: Command text, passed to the transport unchanged.
            identity: ID of the acting user, None when anonymous.
            source_address: Client address for the audit event.
            agent_string: Client user agent for the audit event.

        Returns:
            The job record in a terminal status (SUCCESS, FAILED or TIMEOUT).

        Raises:
            ValidationError: If host_id or command is missing or blank.
            NotFoundError: If the host is not registered.
            PreconditionError: If the host is not ONLINE.
            InternalError: If persistence or the transport fails. The
                ``recoverable`` flag tells whether the job was still closed.
        """
        if not host_id or not command or not host_id.strip() or not command.strip():
            raise ValidationError("Host ID and command are required")

        try:
            host = self.hosts.get(host_id)
        except Exception as e:
            logger.exception(f"Host lookup failed for {host_id}")
            raise InternalError("Failed to execute command") from e

        if host is None:
            raise NotFoundError("Host not found")
        if host.status != HostStatus.ONLINE:
            raise PreconditionError("Host is not online")

        try:
            job = self.jobs.create(CommandJob(
                command=command,
                status=JobStatus.RUNNING,
                start_time=utcnow(),
                host_id=host.id,
                executed_by=identity,
            ))
            job_id = job.id
            self.tx.commit()
        except Exception as e:
            logger.exception(f"Could not create job for {command!r} on {host.name}")
            self.tx.rollback()
            raise InternalError("Failed to execute command") from e

        logger.info(f"Job {job_id} started: {command!r} on {host.name}")
        audit_context = dict(identity=identity, source_address=source_address, agent_string=agent_string)

        try:
            result = await self._execute(command, host)
        except Exception as e:
            logger.exception(f"Transport failed for job {job_id}")
            self._abandon(job_id, command, host, f"Transport error: {e}", audit_context, cause=e)

        try:
            job = self._finish(job_id, command, host, result, audit_context)
        except Exception as e:
            logger.exception(f"Could not record result of job {job_id}")
            self._abandon(job_id, command, host, f"Result could not be recorded: {e}", audit_context, cause=e)

        logger.info(f"Job {job_id} finished with status {result.status.value} in {job.duration} ms")
        return job

    async def _execute(self, command: str, host: HostTarget) -> ExecutionResult:
        try:
            return await asyncio.wait_for(self._call_transport(command, host), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Command {command!r} on {host.name} exceeded {self.timeout}s deadline")
            return ExecutionResult(
                output=f"Command timed out after {self.timeout:g}s: {command}",
                status=JobStatus.TIMEOUT,
            )

    async def _call_transport(self, command: str, host: HostTarget) -> ExecutionResult:
        # Only the deadline above may yield TIMEOUT; a transport's own timeout is a failure.
        try:
            return await self.transport.execute(command, host)
        except (asyncio.TimeoutError, TimeoutError) as e:
            raise TransportError(f"{type(e).__name__}: {e}" if str(e) else type(e).__name__) from e

    def _finish(
        self,
        job_id: str,
        command: str,
        host: HostTarget,
        result: ExecutionResult,
        audit_context: dict,
    ) -> CommandJob:
        """Commits the terminal job state and its audit event as one unit."""
        job = self.jobs.get(job_id)
        if job is None:
            raise InternalError(f"Job {job_id} disappeared during execution")
        end_time = max(utcnow(), as_utc(job.start_time))
        job = self.jobs.update(
            job_id,
            status=result.status,
            output=result.output,
            exit_code=result.exit_code,
            end_time=end_time,
            duration=elapsed_ms(job.start_time, end_time),
        )
        self.audit.record(
            AuditAction.EXECUTE_COMMAND,
            details=f'Executed command "{command}" on "{host.name}"',
            **audit_context,
        )
        self.tx.commit()
        return job

    def _abandon(
        self,
        job_id: str,
        command: str,
        host: HostTarget,
        reason: str,
        audit_context: dict,
        cause: Exception,
    ) -> NoReturn:
        """Closes a job as FAILED after an error, then raises InternalError.

        Why: The pending transaction is rolled back first, so a half-written
        result never lands. If this compensating write fails too, the job is
        left RUNNING and the startup sweep closes it later.
        """
        try:
            self.tx.rollback()
            job = self.jobs.get(job_id)
            if job is None:
                raise InternalError(f"Job {job_id} disappeared during execution")
            end_time = max(utcnow(), as_utc(job.start_time))
            self.jobs.update(
                job_id,
                status=JobStatus.FAILED,
                output=f"Command failed: {command}\nError: {reason}",
                end_time=end_time,
                duration=elapsed_ms(job.start_time, end_time),
            )
            self.audit.record(
                AuditAction.EXECUTE_COMMAND,
                details=f'Command "{command}" on "{host.name}" failed: {reason}',
                **audit_context,
            )
            self.tx.commit()
        except Exception:
            logger.exception(f"Could not close job {job_id}; it stays RUNNING until recovered")
            try:
                self.tx.rollback()
            except Exception:
                logger.exception(f"Rollback after failed close of job {job_id} failed")
            raise InternalError("Failed to execute command", recoverable=False) from cause

        logger.warning(f"Job {job_id} closed as FAILED: {reason}")
        raise InternalError("Failed to execute command", recoverable=True) from cause


def recover_orphaned_jobs(
    jobs: JobStore,
    audit: AuditLogger,
    tx: Transaction,
    older_than: timedelta,
) -> int:
    """Force-fails jobs that were left in the RUNNING state.

    Why: A crash between job creation and the final commit leaves a job
    RUNNING forever. Only jobs older than ``older_than`` are touched, so that
    executions still in flight elsewhere are left alone.

    Args:
        jobs: Job record store.
        audit: Audit event log, one RECOVER_JOB event per closed job.
        tx: Transaction shared by both stores.
        older_than: Minimum age of a RUNNING job before it is closed.

    Returns:
        Number of jobs closed.
    """
    now = utcnow()
    stale = jobs.list_running(started_before=now - older_than)
    if not stale:
        return 0

    logger.info(f"Found {len(stale)} orphaned jobs. Cleaning up...")
    for job in stale:
        end_time = max(now, as_utc(job.start_time))
        jobs.update(
            job.id,
            status=JobStatus.FAILED,
            output=f"{job.output}\n{ORPHANED_JOB_OUTPUT}" if job.output else ORPHANED_JOB_OUTPUT,
            end_time=end_time,
            duration=elapsed_ms(job.start_time, end_time),
        )
        audit.record(
            AuditAction.RECOVER_JOB,
            details=f'Closed interrupted job {job.id} for command "{job.command}"',
            identity=job.executed_by,
        )
    tx.commit()
    logger.info(f"Cleaned up {len(stale)} orphaned jobs.")
    return len(stale)
