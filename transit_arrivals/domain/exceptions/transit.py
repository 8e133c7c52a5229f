from __future__ import annotations


class TransitError(Exception):
    """Base exception for the arrivals service."""


class ConfigError(TransitError):
    """Raised at boot when a required setting is missing or malformed."""


class LoadError(TransitError):
    """Raised when the GTFS archive or one of its required files cannot be loaded."""

    def __init__(self, file: str, cause: str | BaseException) -> None:
        self.file = file
        self.cause = cause
        super().__init__(f"Failed to load {file}: {cause}")


class FeedTransportError(TransitError):
    """Raised when the realtime feed cannot be fetched."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        retryable: bool | None = None,
    ) -> None:
        self.status_code = status_code
        if retryable is None:
            # Network failures and 5xx are retried; 4xx are not.
            retryable = status_code is None or status_code >= 500
        self.retryable = retryable
        super().__init__(message)


class FeedDecodeError(TransitError):
    """Raised when the feed body is not a valid GTFS-realtime FeedMessage."""


class BusPublishError(TransitError):
    """Raised when a single message cannot be published to the event bus."""


class BusDecodeError(TransitError):
    """Raised when a consumed message is not a valid VehiclePosition."""


class QueryNotFound(TransitError):
    """Raised when a queried route, direction or stop does not exist."""


class QueryBadRequest(TransitError):
    """Raised when query parameters are missing or invalid."""
