"""Exception hierarchy.

Repository- and branch-level errors are caught by the pipeline and turned into
warnings; the CLI translates whatever escapes into a message and exit code.
"""

from __future__ import annotations


class ReportingError(Exception):
    """Base exception for the entire application."""


class MalformedIdentity(ReportingError):
    """A repository full name cannot be split into owner and name."""


class ProviderFailure(ReportingError):
    """A call to the remote repository provider failed."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class UnsupportedOutputFormat(ReportingError):
    """The requested output format has no renderer."""


class InvalidTimeWindow(ReportingError, ValueError):
    """The start of the reporting window is after its end."""


class RequestCancelled(ProviderFailure):
    """The run was cancelled before the provider call could complete."""

    def __init__(self, message: str = "request cancelled") -> None:
        super().__init__(message)
