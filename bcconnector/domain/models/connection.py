"""Domain models for the connector configuration and individual requests."""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional
from urllib.parse import urlsplit

from bcconnector.domain.exceptions import ConfigurationError, InvalidRequestError
from bcconnector.domain.models.common import (
    JsonPayload,
    ResourcePath,
    ResourceUrl,
    default_headers,
    normalize_path,
)


class HttpMethod(str, Enum):
    """HTTP methods supported by the connector."""
    GET = "GET"
    PUT = "PUT"
    POST = "POST"
    DELETE = "DELETE"

    @property
    def accepts_body(self) -> bool:
        return self in (HttpMethod.PUT, HttpMethod.POST)


# Field name -> human readable description, used in configuration errors.
_REQUIRED_FIELDS = {
    "store_hash": "store hash",
    "access_token": "store OAuth access token",
    "client_id": "app client id",
    "api_base_url": "API base URL",
}


@dataclass(frozen=True)
class ConnectionConfig:
    """Immutable connector configuration.

    Attributes:
        store_hash: The store's hash, used in the resource root URL.
        access_token: OAuth token sent as X-Auth-Token. Never shown in repr.
        client_id: App client id sent as X-Auth-Client.
        api_base_url: Absolute base URL of the API, e.g. 'https://api.bigcommerce.com'.
        max_concurrent_requests: Ceiling on simultaneous in-flight requests
            (None means unbounded).
        resource_root: Derived, api_base_url + '/stores/' + store_hash + '/v2'.

    Raises:
        ConfigurationError: If a required field is missing, empty or invalid.
    """
    store_hash: str
    access_token: str = field(repr=False)
    client_id: str
    api_base_url: str
    max_concurrent_requests: Optional[int] = None
    resource_root: str = field(init=False)

    def __post_init__(self) -> None:
        for name, description in _REQUIRED_FIELDS.items():
            value = getattr(self, name)
            if not isinstance(value, str) or not value.strip():
                raise ConfigurationError(
                    f"Connection needs the {description} ({name})."
                )

        parts = urlsplit(self.api_base_url)
        if parts.scheme not in ("http", "https") or not parts.netloc:
            raise ConfigurationError(
                f"api_base_url must be an absolute http(s) URL, got '{self.api_base_url}'."
            )

        limit = self.max_concurrent_requests
        if limit is not None and (isinstance(limit, bool) or not isinstance(limit, int) or limit < 1):
            raise ConfigurationError(
                f"max_concurrent_requests must be a positive integer or None, got {limit!r}."
            )

        # frozen dataclass: derived field is set once here
        object.__setattr__(
            self, "resource_root", f"{self.api_base_url}/stores/{self.store_hash}/v2"
        )


@dataclass(frozen=True)
class RequestDescriptor:
    """A fully built request: method, normalized path, URL, headers and JSON content."""
    method: HttpMethod
    path: ResourcePath
    url: ResourceUrl
    headers: Dict[str, str] = field(repr=False)
    content: Optional[str] = None

    @classmethod
    def build(
        cls,
        config: ConnectionConfig,
        method: HttpMethod,
        path: str,
        body: JsonPayload = None,
    ) -> "RequestDescriptor":
        """Builds the request options shared by every HTTP method.

        Args:
            config: The connector configuration supplying URL and credentials.
            method: The HTTP method.
            path: Resource path relative to the resource root, with or without
                a leading '/'.
            body: Structured payload for PUT/POST; must be None for GET/DELETE.

        Raises:
            InvalidRequestError: Empty path, body on GET/DELETE or a body that
                cannot be serialized to JSON.
        """
        if not isinstance(method, HttpMethod):
            try:
                method = HttpMethod(str(method).upper())
            except ValueError as e:
                raise InvalidRequestError(f"Unsupported HTTP method: {method!r}") from e
        if not isinstance(path, str) or not path.strip("/ "):
            raise InvalidRequestError(f"A non-empty resource path is required, got {path!r}.")

        content: Optional[str] = None
        if body is not None:
            if not method.accepts_body:
                raise InvalidRequestError(f"{method.value} requests do not take a body.")
            try:
                content = json.dumps(body, allow_nan=False)
            except (TypeError, ValueError) as e:
                raise InvalidRequestError(f"Request body is not JSON serializable: {e}") from e

        normalized = normalize_path(path)
        return cls(
            method=method,
            path=normalized,
            url=ResourceUrl(config.resource_root + normalized),
            headers=default_headers(config.client_id, config.access_token),
            content=content,
        )
