"""Error types shared by the resolver and the HTTP layer."""

from enum import Enum


class InvalidTargetURLError(ValueError):
    """Raised when the requested URL is missing, malformed, or not http(s)."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class DeadlineExceeded(Exception):
    """Raised when the shared resolve deadline has run out."""


class FetchFailure(str, Enum):
    """Terminal classification of a fetch strategy that produced no document."""

    TIMEOUT = "timeout"
    NETWORK = "network"
    BLOCKED = "blocked"
    UNSUPPORTED_CONTENT_TYPE = "unsupported-content-type"
    EMPTY_BODY = "empty-body"
    UPSTREAM_ERROR = "upstream-error"

    @property
    def http_status(self) -> int:
        if self is FetchFailure.TIMEOUT:
            return 504
        if self in (FetchFailure.NETWORK, FetchFailure.UPSTREAM_ERROR):
            return 502
        return 200
