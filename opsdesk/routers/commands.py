from fastapi import APIRouter, Request, Depends, Query
from typing import List, Optional
from sqlalchemy.exc import SQLAlchemyError
import logging
from opsdesk.core.config import get_settings
from opsdesk.core.exceptions import InternalError
from opsdesk.dependencies import get_current_identity, get_execution_service, get_job_service
from opsdesk.models import User
from opsdesk.schemas.job import CommandRequest, JobRead
from opsdesk.services import ExecutionService, JobService

settings = get_settings()
logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/commands", tags=["commands"])

@router.post("/execute", response_model=JobRead)
async def execute_command(
    payload: CommandRequest,
    request: Request,
    service: ExecutionService = Depends(get_execution_service),
    jobs: JobService = Depends(get_job_service),
    current_user: Optional[User] = Depends(get_current_identity),
) -> JobRead:
    """Runs a command on a registered host and returns the finished job.

    Why: Execution is synchronous on purpose; the response is only sent
    once the job reached a terminal status, so the caller waits for the
    full transport round trip.

    Args:
        payload: Target host ID and command text.
        request: Request, used for the audit provenance fields.
        service: Injected ExecutionService.
        jobs: Injected JobService, used to attach display fields.
        current_user: Acting user, None when anonymous.

    Returns:
        The completed job record with host and user display fields.
    """
    job = await service.submit(
        payload.host_id,
        payload.command,
        identity=current_user.id if current_user else None,
        source_address=request.client.host if request.client else None,
        agent_string=request.headers.get("user-agent"),
    )
    return jobs.describe(job.id)

@router.get("/history", response_model=List[JobRead])
def get_command_history(
    limit: Optional[int] = Query(default=None, ge=1),
    jobs: JobService = Depends(get_job_service),
    current_user: Optional[User] = Depends(get_current_identity),
) -> List[JobRead]:
    """Lists the most recent command executions, newest first.

    Args:
        limit: Optional page size, capped at JOB_HISTORY_LIMIT.
        jobs: Injected JobService.
        current_user: Acting user, None when anonymous.

    Returns:
        Up to JOB_HISTORY_LIMIT job records.
    """
    page_size = min(limit or settings.JOB_HISTORY_LIMIT, settings.JOB_HISTORY_LIMIT)
    try:
        return jobs.list_recent(limit=page_size)
    except SQLAlchemyError as e:
        logger.exception("Failed to fetch command history")
        raise InternalError("Failed to fetch command history") from e
