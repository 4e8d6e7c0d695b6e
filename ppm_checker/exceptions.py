"""Exception hierarchy for the PPM checker."""

from typing import Optional


class PPMCheckerError(Exception):
    """Base exception for checker errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class BootstrapError(PPMCheckerError):
    """A required host collaborator could not be located."""
    pass


class RateLimitedError(PPMCheckerError):
    """The host refused an outbound message because of rate limiting."""

    def __init__(
        self,
        message: str = "Rate limited",
        retry_after: Optional[float] = None,
        remaining_content: Optional[str] = None,
    ):
        super().__init__(message, {"retry_after": retry_after})
        self.retry_after = retry_after
        # Set when part of a message was already delivered.
        self.remaining_content = remaining_content
