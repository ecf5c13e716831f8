from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional, Protocol
import asyncio
import logging
import random

import asyncssh

from opsdesk.core.config import Settings
from opsdesk.models import JobStatus
from opsdesk.schemas.host import HostTarget

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExecutionResult:
    output: str
    status: JobStatus
    exit_code: Optional[int] = None


class CommandTransport(Protocol):
    """Runs one command against one host and reports its outcome.

    Implementations return SUCCESS or FAILED; deadlines are enforced by the
    caller, not the transport.
    """

    async def execute(self, command: str, host: HostTarget) -> ExecutionResult: ...


UNAME_OUTPUT = "Linux demo-server 5.15.0-91-generic #101-Ubuntu SMP Tue Nov 14 13:52:09 UTC 2023 x86_64 x86_64 x86_64 GNU/Linux"

DF_OUTPUT = """Filesystem      Size  Used Avail Use% Mounted on
/dev/sda1        50G   15G   33G  32% /
/dev/sdb1       200G   80G  110G  43% /data
tmpfs           7.8G     0  7.8G   0% /dev/shm"""

FREE_OUTPUT = """              total        used        free      shared  buff/cache   available
Mem:           15.6G       2.1G       10.2G       123M       3.3G       12.8G
Swap:          2.0G          0B       2.0G"""

SYSTEMCTL_OUTPUT = """UNIT                           LOAD   ACTIVE SUB     DESCRIPTION
ssh.service                     loaded active running OpenSSH SSH daemon
nginx.service                   loaded active running A high performance web server
mysql.service                   loaded active running MySQL Community Server
docker.service                  loaded active running Docker Application Container Engine"""

PS_OUTPUT = """USER         PID %CPU %MEM    VSZ   RSS TTY      STAT START   TIME COMMAND
root           1  0.0  0.2  16856 10736 ?        Ss   10:00   0:01 /sbin/init
root         234  0.0  0.1  16920  9044 ?        Ss   10:00   0:00 /lib/systemd/systemd-journald
root         567  0.0  0.3  72128 23456 ?        Ssl  10:00   0:02 /usr/sbin/sshd -D"""

# Checked in order; the first substring found in the command wins.
CANNED_OUTPUTS = (
    ("uname", UNAME_OUTPUT),
    ("df", DF_OUTPUT),
    ("free", FREE_OUTPUT),
    ("systemctl", SYSTEMCTL_OUTPUT),
    ("ps", PS_OUTPUT),
)


class ScriptedTransport:
    """Placeholder transport that classifies commands without contacting hosts.

    Known diagnostic commands map to fixed payloads regardless of the target.
    Anything else succeeds with a synthetic payload, except for a fixed share
    of calls that fail, so the failure path gets exercised end to end.

    Attributes:
        min_delay_ms: Lower bound of the simulated latency.
        max_delay_ms: Upper bound of the simulated latency.
        failure_rate: Probability that an unrecognised command fails.
    """
    def __init__(
        self,
        min_delay_ms: int = 500,
        max_delay_ms: int = 3500,
        failure_rate: float = 0.1,
        rng: Optional[random.Random] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if min_delay_ms < 0 or max_delay_ms < min_delay_ms:
            raise ValueError("Invalid scripted delay range")
        self.min_delay_ms = min_delay_ms
        self.max_delay_ms = max_delay_ms
        self.failure_rate = failure_rate
        self.rng = rng or random.Random()
        self.sleep = sleep

    async def execute(self, command: str, host: HostTarget) -> ExecutionResult:
        delay_ms = self.rng.uniform(self.min_delay_ms, self.max_delay_ms)
        await self.sleep(delay_ms / 1000)
        return self.classify(command)

    def classify(self, command: str) -> ExecutionResult:
        """Maps a command string to its scripted output and outcome.

        Args:
            command: The raw command text.

        Returns:
            The canned payload for a recognised command, or a synthetic
            success/failure payload for anything else.
        """
        for pattern, output in CANNED_OUTPUTS:
            if pattern in command:
                return ExecutionResult(output=output, status=JobStatus.SUCCESS, exit_code=0)

        if self.rng.random() < self.failure_rate:
            return ExecutionResult(
                output=f"Command failed: {command}\nError: Command not found or permission denied",
                status=JobStatus.FAILED,
                exit_code=127,
            )
        return ExecutionResult(
            output=(
                f"Command executed successfully: {command}\n"
                f"Output generated at {datetime.now(timezone.utc).isoformat()}\n"
                "This is a simulated output for demonstration purposes."
            ),
            status=JobStatus.SUCCESS,
            exit_code=0,
        )


class SSHTransport:
    """Runs commands on the target host over SSH using asyncssh.

    Why: This is the production replacement for the scripted transport. The
    job lifecycle is unchanged; only the output and exit status become real.
    """
    def __init__(self, connect_timeout: float = 10.0, known_hosts: Optional[str] = None):
        self.connect_timeout = connect_timeout
        self.known_hosts = known_hosts

    async def execute(self, command: str, host: HostTarget) -> ExecutionResult:
        connect_kwargs = {
            "port": host.port,
            "username": host.username,
            "known_hosts": self.known_hosts,
            "connect_timeout": self.connect_timeout,
        }
        if host.ssh_key_path:
            connect_kwargs["client_keys"] = [host.ssh_key_path]

        try:
            async with asyncssh.connect(host.hostname, **connect_kwargs) as conn:
                result = await conn.run(command, check=False)
        except (OSError, asyncssh.Error) as e:
            logger.warning(f"SSH execution on {host.hostname}:{host.port} failed: {e}")
            return ExecutionResult(
                output=f"Command failed: {command}\nError: {type(e).__name__}: {e}",
                status=JobStatus.FAILED,
            )

        output = _as_text(result.stdout) + _as_text(result.stderr)
        exit_code = result.exit_status
        status = JobStatus.SUCCESS if exit_code == 0 else JobStatus.FAILED
        return ExecutionResult(output=output, status=status, exit_code=exit_code)


def _as_text(stream) -> str:
    if not stream:
        return ""
    if isinstance(stream, bytes):
        return stream.decode("utf-8", errors="replace")
    return stream


def build_transport(settings: Settings) -> CommandTransport:
    """Creates the transport selected by the TRANSPORT setting."""
    if settings.TRANSPORT == "ssh":
        logger.info("Using SSH command transport")
        return SSHTransport(
            connect_timeout=settings.SSH_CONNECT_TIMEOUT,
            known_hosts=settings.SSH_KNOWN_HOSTS,
        )
    if settings.TRANSPORT != "scripted":
        raise ValueError(f"Unknown command transport: {settings.TRANSPORT}")
    logger.info("Using scripted command transport")
    return ScriptedTransport(
        min_delay_ms=settings.SCRIPTED_MIN_DELAY_MS,
        max_delay_ms=settings.SCRIPTED_MAX_DELAY_MS,
        failure_rate=settings.SCRIPTED_FAILURE_RATE,
    )
