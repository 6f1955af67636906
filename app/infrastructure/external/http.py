"""Shared outbound HTTP helper.

All clients use the AppContext's single httpx.AsyncClient (connection
reuse, one configured timeout). Failures are logged with their cause and
re-raised as UpstreamError so callers never see transport details.
"""

from typing import Any

import httpx

from app.infrastructure.exceptions import UpstreamError, UpstreamPayloadError
from app.shared.telemetry.logging import get_logger

logger = get_logger(__name__)


async def request_json(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    service: str,
    action: str,
    **kwargs: Any,
) -> Any:
    """Send a request and return the decoded JSON body.

    Raises:
        UpstreamError: On transport failure, timeout or non-2xx status.
        UpstreamPayloadError: When a 2xx body is not JSON.
    """
    try:
        response = await client.request(method, url, **kwargs)
    except httpx.HTTPError as e:
        logger.error("%s %s failed: %s", service, action, e)
        raise UpstreamError(service, action) from e
    if response.status_code >= 400:
        logger.error(
            "%s %s failed: status=%d", service, action, response.status_code
        )
        raise UpstreamError(service, action, response.status_code)
    if not response.content:
        return {}
    try:
        return response.json()
    except ValueError as e:
        logger.error("%s %s returned non-JSON body", service, action)
        raise UpstreamPayloadError(service, action) from e
