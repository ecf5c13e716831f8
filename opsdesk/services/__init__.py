from .hosts import HostGate, HostService
from .jobs import JobStore, JobService
from .audit import AuditLogger, AuditService
from .transport import CommandTransport, ExecutionResult, ScriptedTransport, SSHTransport, build_transport
from .execution import ExecutionService, recover_orphaned_jobs
