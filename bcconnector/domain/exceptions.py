"""Exception hierarchy for the connector.

Transport-level failures (DNS, refused connections, timeouts) are not wrapped:
they reach the caller as raised by the transport.
"""

from typing import Optional


class ConnectorError(Exception):
    """Base class for all errors raised by the connector."""


class ConfigurationError(ConnectorError, ValueError):
    """Raised at construction when a required setting is missing or invalid."""


class InvalidRequestError(ConnectorError, ValueError):
    """Raised when a request cannot be built (empty path, unsupported body)."""


class ApiError(ConnectorError):
    """The API answered with a status other than 200 or 429."""

    def __init__(
        self,
        status_code: int,
        body: str,
        method: Optional[str] = None,
        url: Optional[str] = None,
        message: Optional[str] = None,
    ):
        self.status_code = status_code
        self.body = body
        self.method = method
        self.url = url
        if message is None:
            target = f" for {method} {url}" if method and url else ""
            message = f"API returned status {status_code}{target}: {body}"
        super().__init__(message)


class RetryLimitExceeded(ApiError):
    """Raised when a call is still throttled after the configured number of retries."""

    def __init__(
        self,
        attempts: int,
        body: str,
        method: Optional[str] = None,
        url: Optional[str] = None,
    ):
        super().__init__(
            429,
            body,
            method=method,
            url=url,
            message=f"Still rate limited after {attempts} attempts for {method} {url}",
        )
        self.attempts = attempts


class ResponseParseError(ConnectorError):
    """A 200 response whose body is not valid JSON."""

    def __init__(self, status_code: int, body: str, reason: str = ""):
        self.status_code = status_code
        self.body = body
        detail = f": {reason}" if reason else ""
        super().__init__(f"Could not parse response body as JSON{detail}")


class RequestCancelled(ConnectorError):
    """The caller cancelled the request through its cancellation token."""
