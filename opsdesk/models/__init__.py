from .host import Host, HostStatus
from .user import User, UserRole
from .job import CommandJob, JobStatus, TERMINAL_STATUSES
from .audit import AuditEvent, AuditAction
