from typing import Optional, Protocol
from sqlmodel import Session
from opsdesk.models import Host, HostStatus
from opsdesk.schemas.host import HostTarget


class HostGate(Protocol):
    """Read-only access to the host registry used as the execution precondition."""

    def get(self, host_id: str) -> Optional[HostTarget]: ...

    def get_status(self, host_id: str) -> Optional[HostStatus]: ...


class HostService:
    """Host Gate backed by the host table.

    The registry itself is maintained elsewhere; this service only reads it.
    """
    def __init__(self, db: Session):
        self.db = db

    def get(self, host_id: str) -> Optional[HostTarget]:
        """Fetches a snapshot of a host by its primary key.

        Args:
            host_id: The unique ID of the host.

        Returns:
            A HostTarget if the host is registered, else None.
        """
        host = self.db.get(Host, host_id)
        if host is None:
            return None
        return HostTarget.model_validate(host)

    def get_status(self, host_id: str) -> Optional[HostStatus]:
        host = self.get(host_id)
        return host.status if host else None
