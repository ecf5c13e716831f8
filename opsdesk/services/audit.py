from typing import Optional, Protocol
from sqlmodel import Session, select, desc
from opsdesk.models import AuditAction, AuditEvent, User
from opsdesk.schemas.audit import AuditEventRead
from opsdesk.schemas.user import UserSummary


class AuditLogger(Protocol):
    """Append-only log of identity-attributed actions."""

    def append(self, event: AuditEvent) -> None: ...

    def record(
        self,
        action: AuditAction,
        details: Optional[str] = None,
        identity: Optional[str] = None,
        source_address: Optional[str] = None,
        agent_string: Optional[str] = None,
    ) -> AuditEvent: ...

    def list_recent(self, limit: int = 100) -> list[AuditEventRead]: ...


class AuditService:
    """Records immutable audit events for actions across the console.

    Like the job store, appends are flushed on the shared session and
    committed by the caller, so an audit event lands in the same
    transaction as the change it describes. A failing append propagates to
    the caller of the audited operation.
    """
    def __init__(self, db: Session):
        self.db = db

    def append(self, event: AuditEvent) -> None:
        self.db.add(event)
        self.db.flush()

    def record(
        self,
        action: AuditAction,
        details: Optional[str] = None,
        identity: Optional[str] = None,
        source_address: Optional[str] = None,
        agent_string: Optional[str] = None,
    ) -> AuditEvent:
        """Builds and appends a single audit event.

        Args:
            action: Enumerated action tag, e.g. EXECUTE_COMMAND.
            details: Human-readable description of the action.
            identity: ID of the acting user; None for anonymous actions.
            source_address: Client address the request came from.
            agent_string: Client user agent.

        Returns:
            The appended event.
        """
        event = AuditEvent(
            action=action,
            details=details,
            identity=identity,
            source_address=source_address,
            agent_string=agent_string[:500] if agent_string else None,
        )
        self.append(event)
        return event

    def list_recent(self, limit: int = 100) -> list[AuditEventRead]:
        """Retrieves the most recent audit events, newest first.

        Args:
            limit: Maximum number of events to return.

        Returns:
            Up to ``limit`` events ordered by timestamp descending, each with
            the acting user's current display fields.
        """
        statement = select(AuditEvent).order_by(desc(AuditEvent.timestamp)).limit(limit)
        events = self.db.exec(statement).all()

        user_ids = {e.identity for e in events if e.identity}
        users = {}
        if user_ids:
            users = {u.id: u for u in self.db.exec(select(User).where(User.id.in_(user_ids))).all()}

        return [
            AuditEventRead(
                **event.model_dump(),
                user=UserSummary.model_validate(users[event.identity]) if event.identity in users else None,
            )
            for event in events
        ]
