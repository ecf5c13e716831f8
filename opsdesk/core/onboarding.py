from sqlmodel import Session, select
from opsdesk.models import AuditAction, Host, HostStatus, User, UserRole
from opsdesk.services.audit import AuditService
from opsdesk.utils.clock import utcnow
import logging

logger = logging.getLogger(__name__)

DEMO_USERS = [
    {"username": "admin", "name": "Admin User", "email": "admin@example.com", "role": UserRole.ADMIN},
    {"username": "operator", "name": "Regular User", "email": "user@example.com", "role": UserRole.USER},
]

DEMO_HOSTS = [
    {
        "id": "server-1",
        "name": "Production Web Server",
        "hostname": "192.168.1.100",
        "username": "admin",
        "description": "Main production server for web applications",
        "status": HostStatus.ONLINE,
        "owner": "admin",
    },
    {
        "id": "server-2",
        "name": "Database Server",
        "hostname": "192.168.1.101",
        "username": "dbadmin",
        "description": "MySQL database server",
        "status": HostStatus.ONLINE,
        "owner": "admin",
    },
    {
        "id": "server-3",
        "name": "Development Server",
        "hostname": "192.168.1.102",
        "username": "dev",
        "description": "Development and testing environment",
        "status": HostStatus.OFFLINE,
        "owner": "operator",
    },
]

def seed_users(db: Session):
    """
    Seeds the demo admin and operator accounts.
    Idempotent: checks for existence before creating.
    """
    for user_data in DEMO_USERS:
        existing_user = db.exec(select(User).where(User.username == user_data["username"])).first()
        if not existing_user:
            logger.info(f"Seeding user: {user_data['username']} ({user_data['role'].value})")
            db.add(User(**user_data))
        else:
            logger.debug(f"User {user_data['username']} already exists, skipping.")
    db.commit()

def seed_hosts(db: Session):
    """
    Seeds demo hosts and records a CREATE_HOST audit event for each new one.
    """
    audit = AuditService(db)
    for host_data in DEMO_HOSTS:
        if db.get(Host, host_data["id"]):
            continue
        data = dict(host_data)
        owner = db.exec(select(User).where(User.username == data.pop("owner"))).first()
        host = Host(**data, added_by=owner.id if owner else None, last_checked=utcnow())
        db.add(host)
        audit.record(
            AuditAction.CREATE_HOST,
            details=f'Created host "{host.name}" at {host.hostname}:{host.port}',
            identity=host.added_by,
        )
        logger.info(f"Seeding host: {host.name} ({host.status.value})")
    db.commit()
