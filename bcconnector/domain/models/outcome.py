"""Classification of a single HTTP exchange.

The variants here, not raw status codes, drive what the connector does next:
resolve, back off and retry, or raise.
"""

import json
import math
from dataclasses import dataclass
from typing import Optional, Union

from bcconnector.domain.exceptions import ApiError, ConnectorError, ResponseParseError
from bcconnector.domain.models.common import (
    RATE_LIMITED_STATUS,
    RETRY_AFTER_HEADERS,
    SUCCESS_STATUS,
    JsonPayload,
    TransportResponse,
)
from bcconnector.domain.models.connection import RequestDescriptor


@dataclass(frozen=True)
class Success:
    """200 response with a decoded JSON body."""
    data: JsonPayload


@dataclass(frozen=True)
class RateLimited:
    """429 response; the call must wait retry_after_seconds before retrying."""
    retry_after_seconds: float
    body: str = ""


@dataclass(frozen=True)
class Failure:
    """Terminal failure: any other status, or a 200 with a malformed body."""
    status_code: int
    body: str
    error: ConnectorError


ResponseOutcome = Union[Success, RateLimited, Failure]


def parse_retry_after(response: TransportResponse) -> Optional[float]:
    """Reads the server-requested delay in seconds, or None if absent/unparsable."""
    for name in RETRY_AFTER_HEADERS:
        raw = response.header(name)
        if raw is None:
            continue
        try:
            seconds = float(raw.strip())
        except ValueError:
            return None
        if math.isnan(seconds) or math.isinf(seconds) or seconds < 0:
            return None
        return seconds
    return None


def classify_response(
    request: RequestDescriptor,
    response: TransportResponse,
    default_retry_after: float,
) -> ResponseOutcome:
    """Maps a raw transport response to Success, RateLimited or Failure.

    Args:
        request: The request that produced the response (used in error details).
        response: The raw status, headers and body.
        default_retry_after: Delay used when a 429 carries no usable header.
    """
    if response.status_code == RATE_LIMITED_STATUS:
        retry_after = parse_retry_after(response)
        if retry_after is None:
            retry_after = default_retry_after
        return RateLimited(retry_after_seconds=retry_after, body=response.body)

    if response.status_code == SUCCESS_STATUS:
        if not response.body.strip():
            return Success(data=None)
        try:
            return Success(data=json.loads(response.body))
        except json.JSONDecodeError as e:
            error = ResponseParseError(response.status_code, response.body, reason=str(e))
            error.__cause__ = e
            return Failure(status_code=response.status_code, body=response.body, error=error)

    return Failure(
        status_code=response.status_code,
        body=response.body,
        error=ApiError(
            response.status_code,
            response.body,
            method=request.method.value,
            url=request.url,
        ),
    )
