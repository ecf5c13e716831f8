from functools import lru_cache
from typing import Generator, Optional
from fastapi import Depends, HTTPException, Request, status
from sqlmodel import Session
from opsdesk.core.config import get_settings
from opsdesk.core.database import engine
from opsdesk.core.security import resolve_identity
from opsdesk.models import User
from opsdesk.services import (
    AuditService,
    CommandTransport,
    ExecutionService,
    HostService,
    JobService,
    build_transport,
)

def get_db() -> Generator[Session, None, None]:
    with Session(engine) as session:
        yield session

def get_host_service(db: Session = Depends(get_db)) -> HostService:
    return HostService(db)

def get_job_service(db: Session = Depends(get_db)) -> JobService:
    return JobService(db)

def get_audit_service(db: Session = Depends(get_db)) -> AuditService:
    return AuditService(db)

@lru_cache()
def get_transport() -> CommandTransport:
    return build_transport(get_settings())

def get_execution_service(
    db: Session = Depends(get_db),
    hosts: HostService = Depends(get_host_service),
    jobs: JobService = Depends(get_job_service),
    audit: AuditService = Depends(get_audit_service),
    transport: CommandTransport = Depends(get_transport),
) -> ExecutionService:
    return ExecutionService(
        hosts=hosts,
        jobs=jobs,
        audit=audit,
        transport=transport,
        tx=db,
        timeout=get_settings().COMMAND_TIMEOUT_SECONDS,
    )

def get_current_identity(request: Request, db: Session = Depends(get_db)) -> Optional[User]:
    """Dependency resolving the acting user; raises 401 when auth is required and missing."""
    user = resolve_identity(request, db)
    if user is None and get_settings().REQUIRE_AUTH:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return user
