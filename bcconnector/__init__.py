"""bcconnector: async CRUD connector for store-scoped e-commerce REST APIs.

Requests are authenticated from stored configuration and throttled (HTTP 429)
requests are retried transparently after the server-specified delay.
"""

from bcconnector.core.connection import Connection
from bcconnector.domain.exceptions import (
    ApiError,
    ConfigurationError,
    ConnectorError,
    InvalidRequestError,
    RequestCancelled,
    ResponseParseError,
    RetryLimitExceeded,
)
from bcconnector.domain.models.connection import ConnectionConfig, HttpMethod
from bcconnector.infrastructure.resilience.api_retry import RetryPolicy
from bcconnector.infrastructure.resilience.cancellation import CancellationToken

__version__ = "1.0.0"

__all__ = [
    "Connection",
    "ConnectionConfig",
    "HttpMethod",
    "RetryPolicy",
    "CancellationToken",
    "ConnectorError",
    "ConfigurationError",
    "InvalidRequestError",
    "ApiError",
    "RetryLimitExceeded",
    "ResponseParseError",
    "RequestCancelled",
]
