from fastapi import APIRouter, Depends, Query
from typing import List, Optional
from sqlalchemy.exc import SQLAlchemyError
import logging
from opsdesk.core.config import get_settings
from opsdesk.core.exceptions import InternalError
from opsdesk.dependencies import get_audit_service, get_current_identity
from opsdesk.models import User
from opsdesk.schemas.audit import AuditEventRead
from opsdesk.services import AuditService

settings = get_settings()
logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/logs", tags=["logs"])

@router.get("/activity", response_model=List[AuditEventRead])
def get_activity_log(
    limit: Optional[int] = Query(default=None, ge=1),
    audit: AuditService = Depends(get_audit_service),
    current_user: Optional[User] = Depends(get_current_identity),
) -> List[AuditEventRead]:
    """Lists the most recent audit events across the console.

    Args:
        limit: Optional page size, capped at AUDIT_HISTORY_LIMIT.
        audit: Injected AuditService.
        current_user: Acting user, None when anonymous.

    Returns:
        Up to AUDIT_HISTORY_LIMIT events ordered by timestamp descending.
    """
    page_size = min(limit or settings.AUDIT_HISTORY_LIMIT, settings.AUDIT_HISTORY_LIMIT)
    try:
        return audit.list_recent(limit=page_size)
    except SQLAlchemyError as e:
        logger.exception("Failed to fetch activity logs")
        raise InternalError("Failed to fetch activity logs") from e
