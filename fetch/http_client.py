import httpx
import logging
from typing import Any, Dict, Optional

# Default timeout configuration (in seconds)
DEFAULT_TIMEOUT = 10.0
DEFAULT_CONNECT_TIMEOUT = 5.0

DEFAULT_HEADERS = {"User-Agent": "repo-analyser"}


def build_client(
    timeout: Optional[float] = None,
    connect_timeout: Optional[float] = None,
    headers: Optional[Dict[str, str]] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """
    Create an AsyncClient with the project's timeout and header defaults.

    Args:
        timeout: Total request timeout in seconds (default: 10s)
        connect_timeout: Connection timeout in seconds (default: 5s)
        headers: Extra headers merged over the defaults
        transport: Optional transport (tests pass httpx.MockTransport)
    """
    timeout_config = httpx.Timeout(
        timeout=timeout or DEFAULT_TIMEOUT,
        connect=connect_timeout or DEFAULT_CONNECT_TIMEOUT
    )
    return httpx.AsyncClient(
        timeout=timeout_config,
        headers={**DEFAULT_HEADERS, **(headers or {})},
        follow_redirects=True,
        transport=transport,
    )


async def fetch_url(
    client: httpx.AsyncClient,
    url: str,
    method: str = "GET",
    params: Optional[Dict[str, Any]] = None,
    json_body: Optional[Any] = None,
) -> httpx.Response:
    """
    Send one request on an existing client, logging timeouts and transport errors.

    Status codes are not raised here; callers decide what a 404 or 5xx means.
    """
    logger = logging.getLogger(__name__)
    logger.debug(f"HTTP {method} {url}")

    try:
        response = await client.request(method, url, params=params, json=json_body)
        logger.debug(f"HTTP {response.status_code} {url} ({len(response.content)} bytes)")
        return response
    except httpx.TimeoutException as e:
        logger.warning(f"HTTP timeout for {url}: {e}")
        raise
    except httpx.RequestError as e:
        logger.warning(f"HTTP request error for {url}: {e}")
        raise
