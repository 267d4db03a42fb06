"""Exception hierarchy for prbot.

Fatal errors abort the workflow and surface as a non-zero exit status.
Per-file errors raised inside the patch worker pool are caught there.
"""

from __future__ import annotations

from typing import Optional


class PrbotError(Exception):
    """Base class for all prbot errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class UsageError(PrbotError):
    """Raised when the repository argument is malformed."""


class CredentialError(PrbotError):
    """Raised when the auth token cannot be read."""


class CheckerUnavailableError(PrbotError):
    """Raised when the formatter executable cannot be found."""


class FormatSyntaxError(PrbotError):
    """Raised by a checker when the input is not valid source."""


class GitHubAPIError(PrbotError):
    """Raised when a GitHub API call fails."""

    def __init__(self, operation: str, status_code: Optional[int] = None, detail: str = ""):
        self.operation = operation
        self.status_code = status_code
        self.detail = detail
        status = f" (HTTP {status_code})" if status_code is not None else ""
        suffix = f": {detail}" if detail else ""
        super().__init__(f"{operation} failed{status}{suffix}")


class WorkflowStateError(PrbotError):
    """Raised when a step reads an unset field or rewrites a set one."""


class WorkflowStepError(PrbotError):
    """Raised when a fatal workflow step fails.

    ``step`` names the failed step so the diagnostic identifies it.
    """

    def __init__(self, step: str, cause: Exception):
        self.step = step
        self.cause = cause
        super().__init__(f"{step}: {cause}")
