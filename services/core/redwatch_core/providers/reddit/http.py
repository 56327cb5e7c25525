"""HTTP error translation shared by the Reddit clients.

httpx failures are mapped onto the pipeline's error taxonomy right at the
boundary so nothing above this package ever sees an httpx exception.
"""

from typing import Any

import httpx

from redwatch_core.domain.errors import AuthError, TransientError, ValidationError


def is_transient_status(status_code: int) -> bool:
    """429 and every 5xx are worth retrying."""
    return status_code == 429 or status_code >= 500


def raise_for_reddit_status(
    response: httpx.Response,
    action: str,
    client_error: type[Exception] = ValidationError,
) -> None:
    """Raise the taxonomy error matching a non-2xx response.

    Args:
        response: The HTTP response to check.
        action: Short description used in the error message.
        client_error: Error raised for 4xx responses other than 401/403/429.

    Raises:
        TransientError: On 429 or 5xx.
        AuthError: On 401 or 403.
        client_error: On any other non-2xx status.
    """
    status = response.status_code
    if 200 <= status < 300:
        return
    if is_transient_status(status):
        raise TransientError(f"{action} failed: HTTP {status}", status_code=status)
    if status in (401, 403):
        raise AuthError(f"{action} rejected: HTTP {status}")
    raise client_error(f"{action} failed: HTTP {status}")


def parse_json(response: httpx.Response, action: str) -> Any:
    """Decode a JSON body, treating garbage as a validation failure."""
    try:
        return response.json()
    except ValueError as e:
        raise ValidationError(f"{action} returned invalid JSON: {e}")


def transport_error(exc: httpx.TransportError, action: str) -> TransientError:
    """Wrap a timeout or connection failure."""
    return TransientError(f"{action} failed: {type(exc).__name__}: {exc}")
