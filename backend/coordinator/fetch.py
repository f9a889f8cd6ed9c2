"""
Fetch Relay - outbound HTTP on behalf of the page agent and the panel.

Only the coordinator talks to the network. Responses are returned in the
FETCH_API shape {ok, status, statusText, headers, data}; transport failures
are reported in the same shape instead of raising.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from agent.models import NetworkError

logger = logging.getLogger(__name__)


class FetchRelay:
    """
    httpx-backed relay.

    ``transport`` is passed straight to ``httpx.AsyncClient`` and is how
    tests substitute ``httpx.MockTransport``.
    """

    def __init__(self, timeout_s: float = 30.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.timeout_s = timeout_s
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout_s,
            follow_redirects=True,
            transport=self.transport,
        )

    def _failure(self, status: int, message: str) -> Dict[str, Any]:
        return {
            "ok": False,
            "status": status,
            "statusText": message,
            "error": message,
            "data": None,
        }

    async def fetch(self, url: str, options: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Perform a request described by fetch()-style options.

        Args:
            url: Absolute URL
            options: {method, headers, body}; body is sent as-is

        Returns:
            FETCH_API response dict
        """
        options = options or {}
        method = options.get("method", "GET").upper()
        logger.info(f"Fetching API: {method} {url}")

        try:
            async with self._client() as client:
                response = await client.request(
                    method,
                    url,
                    headers=options.get("headers"),
                    content=options.get("body"),
                )
        except httpx.TimeoutException:
            message = f"Request timeout after {self.timeout_s:g} seconds"
            logger.error(f"Fetch {url} failed: {message}")
            return self._failure(408, message)
        except httpx.ConnectError as e:
            logger.error(f"Fetch {url} failed: {e}")
            return self._failure(0, "Network error: Failed to connect to server")
        except (httpx.RequestError, httpx.InvalidURL) as e:
            logger.error(f"Fetch {url} failed: {e}")
            return self._failure(0, str(e) or type(e).__name__)

        content_type = response.headers.get("content-type", "")
        if "application/json" in content_type:
            try:
                data = response.json()
            except ValueError:
                logger.warning(f"Could not parse response from {url} as JSON")
                data = response.text
        else:
            data = response.text

        logger.info(f"Fetch API response status: {response.status_code} {response.reason_phrase}")

        return {
            "ok": response.is_success,
            "status": response.status_code,
            "statusText": response.reason_phrase,
            "headers": dict(response.headers),
            "data": data,
        }

    async def download(self, url: str) -> bytes:
        """Fetch a binary resource (the task video). Raises NetworkError."""
        logger.info(f"Downloading: {url}")
        try:
            async with self._client() as client:
                response = await client.get(url)
        except (httpx.RequestError, httpx.InvalidURL) as e:
            raise NetworkError(f"Failed to fetch video: {e}") from e

        if not response.is_success:
            raise NetworkError(f"Failed to fetch video: {response.status_code} {response.reason_phrase}")
        return response.content
