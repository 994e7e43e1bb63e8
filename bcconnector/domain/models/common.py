"""Defines common Value Objects used across the connector.

These objects represent simple values such as resource paths and header
names, ensuring consistency between the core and its adapters.
"""

from typing import Any, Dict, Mapping, NewType, Optional
from dataclasses import dataclass, field

# === Core Value Objects ===

# Using NewType for semantic clarity, although they are strings at runtime.
StoreHash = NewType("StoreHash", str)          # Identifies the store in the resource root
ResourcePath = NewType("ResourcePath", str)    # Relative API path, e.g. '/products/42'
ResourceUrl = NewType("ResourceUrl", str)      # Fully-qualified request URL

# Structured payload exchanged with the API (decoded JSON)
JsonPayload = Any

# === Wire contract ===
JSON_MEDIA_TYPE = "application/json"
AUTH_CLIENT_HEADER = "X-Auth-Client"
AUTH_TOKEN_HEADER = "X-Auth-Token"
# BigCommerce sends X-Retry-After; the standard header is accepted as well.
RETRY_AFTER_HEADERS = ("X-Retry-After", "Retry-After")

SUCCESS_STATUS = 200
RATE_LIMITED_STATUS = 429


@dataclass(frozen=True)
class TransportResponse:
    """Raw result of one HTTP exchange as returned by a Transport."""
    status_code: int
    headers: Mapping[str, str] = field(default_factory=dict)
    body: str = ""

    def header(self, name: str) -> Optional[str]:
        """Case-insensitive header lookup."""
        wanted = name.lower()
        for key, value in self.headers.items():
            if key.lower() == wanted:
                return value
        return None


def normalize_path(path: str) -> ResourcePath:
    """Returns the path with exactly one leading '/'."""
    return ResourcePath("/" + path.lstrip("/"))


def default_headers(client_id: str, access_token: str) -> Dict[str, str]:
    """Headers sent with every request."""
    return {
        "Accept": JSON_MEDIA_TYPE,
        "Content-Type": JSON_MEDIA_TYPE,
        AUTH_CLIENT_HEADER: client_id,
        AUTH_TOKEN_HEADER: access_token,
    }
