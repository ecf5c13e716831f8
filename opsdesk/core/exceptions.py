"""Error taxonomy for the command execution pipeline.

Each error carries the HTTP status and the category reported to clients.
Validation and precondition errors are raised before any job record exists.
"""

from fastapi import status


class OpsDeskError(Exception):
    """Base exception for OpsDesk."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    category: str = "internal"

    def __init__(self, message: str = "An error occurred"):
        self.message = message
        super().__init__(self.message)


class ValidationError(OpsDeskError):
    """Raised when request input is missing or malformed."""

    status_code = status.HTTP_400_BAD_REQUEST
    category = "validation"


class NotFoundError(OpsDeskError):
    """Raised when a referenced host does not exist."""

    status_code = status.HTTP_404_NOT_FOUND
    category = "not_found"


class PreconditionError(OpsDeskError):
    """Raised when a host exists but is not reachable."""

    status_code = status.HTTP_400_BAD_REQUEST
    category = "precondition"


class InternalError(OpsDeskError):
    """Raised on persistence or downstream failure.

    ``recoverable`` is True when the affected job was still brought to a
    terminal status and audited; False when it may be left RUNNING for the
    orphan sweep.
    """

    def __init__(self, message: str = "Internal error", recoverable: bool = False):
        super().__init__(message)
        self.recoverable = recoverable


class InvalidTransitionError(InternalError):
    """Raised when a terminal job record is patched again."""


class TransportError(InternalError):
    """Raised when a transport gives up on its own, before the execution deadline."""
