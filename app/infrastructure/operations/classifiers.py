"""Error classifiers for HTTP client exceptions.

Converts httpx exceptions raised while talking to the internal API into
standardized OperationResult objects so callers never handle raw transport
errors.

Usage:
    from infrastructure.operations.classifiers import classify_http_error

    try:
        response = await client.get(url)
        response.raise_for_status()
    except httpx.HTTPError as exc:
        return classify_http_error(exc, service="internal_api")
"""

from typing import Optional

import httpx

from infrastructure.operations.result import OperationResult


def _retry_after_seconds(response: httpx.Response, default: int = 60) -> int:
    header_value = response.headers.get("retry-after")
    if not header_value:
        return default
    try:
        return int(header_value)
    except (ValueError, TypeError):
        return default


def classify_http_status(
    response: httpx.Response, service: str = "HTTP"
) -> OperationResult:
    """Classify a non-2xx response into an error OperationResult.

    Status Code Mapping:
    - 429: Rate limiting -> TRANSIENT_ERROR with retry_after
    - 401/403: -> UNAUTHORIZED
    - 404: -> NOT_FOUND
    - 5xx: -> TRANSIENT_ERROR
    - Other 4xx: -> PERMANENT_ERROR
    """
    status_code = response.status_code
    body = response.text[:200]

    if status_code == 429:
        return OperationResult.transient_error(
            f"{service} rate limited",
            error_code="RATE_LIMITED",
            retry_after=_retry_after_seconds(response),
        )

    if status_code in (401, 403):
        return OperationResult.unauthorized(
            f"{service} rejected credentials ({status_code})",
            error_code="UNAUTHORIZED" if status_code == 401 else "FORBIDDEN",
        )

    if status_code == 404:
        return OperationResult.not_found(f"{service} resource not found")

    if 500 <= status_code < 600:
        return OperationResult.transient_error(
            f"{service} server error ({status_code}): {body}",
            error_code="SERVER_ERROR",
        )

    return OperationResult.permanent_error(
        f"{service} client error ({status_code}): {body}",
        error_code="HTTP_ERROR",
    )


def classify_http_error(
    exc: Exception, service: Optional[str] = None
) -> OperationResult:
    """Classify an httpx exception into an error OperationResult.

    HTTPStatusError is mapped by status code; timeouts and other transport
    failures are transient. A URL httpx cannot build (``InvalidURL``) and
    anything else are permanent.

    Args:
        exc: Exception raised by httpx (or by response.raise_for_status)
        service: Label used in messages, e.g. "internal_api"

    Returns:
        OperationResult with appropriate status, message and error_code
    """
    label = service or "HTTP"

    if isinstance(exc, httpx.HTTPStatusError):
        return classify_http_status(exc.response, service=label)

    if isinstance(exc, httpx.TimeoutException):
        return OperationResult.transient_error(
            f"{label} request timed out: {exc}",
            error_code="TIMEOUT",
        )

    if isinstance(exc, httpx.InvalidURL):
        return OperationResult.permanent_error(
            f"{label} invalid request URL: {exc}",
            error_code="INVALID_URL",
        )

    if isinstance(exc, httpx.TransportError):
        return OperationResult.transient_error(
            f"{label} connection error: {type(exc).__name__}: {exc}",
            error_code="CONNECTION_ERROR",
        )

    return OperationResult.permanent_error(
        f"{label} error: {type(exc).__name__}: {exc}",
        error_code="UNKNOWN_ERROR",
    )
