"""HTTP transport helpers shared by the OAuth service and the API client.

Every request is bounded by a wall-clock timeout. httpx exceptions and error
responses are translated into TransportError so the retry policy can classify
them by status code.
"""

import asyncio
import logging
from typing import Any

import httpx

from workdocs.domain.errors import TransportError

logger = logging.getLogger(__name__)

DEFAULT_REQUEST_TIMEOUT_SECONDS = 30.0


async def post(
    client: httpx.AsyncClient,
    url: str,
    timeout: float = DEFAULT_REQUEST_TIMEOUT_SECONDS,
    **kwargs: Any
) -> httpx.Response:
    """POSTs a request and returns the successful response.

    Args:
        client: The shared async HTTP client.
        url: Target URL.
        timeout: Wall-clock limit for the whole request, in seconds.
        **kwargs: Passed to `httpx.AsyncClient.post` (data, content, headers...).

    Raises:
        TransportError: With `status_code=None` for timeouts and network
            failures, or the response status for 4xx/5xx responses.
    """
    try:
        response = await asyncio.wait_for(client.post(url, timeout=timeout, **kwargs), timeout=timeout)
    except (asyncio.TimeoutError, httpx.TimeoutException) as e:
        raise TransportError(f"Request to {url} timed out after {timeout:.0f}s") from e
    except httpx.HTTPError as e:
        raise TransportError(f"Request to {url} failed: {type(e).__name__}: {e}") from e

    if response.is_error:
        # Do not log the body, it may echo sensitive request data
        if response.status_code >= 500:
            logger.error(f"Request to {url} failed with server error {response.status_code} {response.reason_phrase}")
        raise TransportError(
            f"HTTP {response.status_code} {response.reason_phrase} from {url}",
            status_code=response.status_code,
        )
    return response
