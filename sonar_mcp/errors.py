"""Error taxonomy shared by the configuration loader and the API client.

Every error carries an ``ErrorKind`` so callers can branch on it without
matching message strings:

    try:
        client.get_issues("org_repo")
    except SonarClientError as exc:
        if exc.kind is ErrorKind.UNAUTHORIZED:
            ...
"""

from enum import Enum


class ErrorKind(str, Enum):
    CONFIGURATION = "configuration"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    UPSTREAM = "upstream"


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------

class SonarError(Exception):
    """Base exception for everything raised by this package."""

    kind: ErrorKind = ErrorKind.UPSTREAM


class ConfigError(SonarError):
    """Raised when the configuration is missing or invalid."""

    kind = ErrorKind.CONFIGURATION


# ---------------------------------------------------------------------------
# Per-call errors
# ---------------------------------------------------------------------------

class SonarClientError(SonarError):
    """Base exception for a failed call to the SonarQube API.

    The message is always ``"<operation>: <detail>"``.
    """

    def __init__(self, operation: str, detail: str, status_code: int | None = None) -> None:
        super().__init__(f"{operation}: {detail}")
        self.operation = operation
        self.detail = detail
        self.status_code = status_code


class AuthenticationError(SonarClientError):
    """Raised on HTTP 401 — invalid or expired token."""

    kind = ErrorKind.UNAUTHORIZED


class ForbiddenError(SonarClientError):
    """Raised on HTTP 403 — the token lacks the required permission."""

    kind = ErrorKind.FORBIDDEN


class NotFoundError(SonarClientError):
    """Raised on HTTP 404 — project, file, rule or hotspot not found."""

    kind = ErrorKind.NOT_FOUND


class UpstreamError(SonarClientError):
    """Raised on any other non-2xx response or an unreadable body."""

    kind = ErrorKind.UPSTREAM


class NetworkError(UpstreamError):
    """Raised on connection timeout or unreachable server."""
