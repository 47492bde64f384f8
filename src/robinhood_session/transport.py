"""
Async HTTP transport for the Robinhood API.

A Transport is bound to one RequestConfiguration. The session builds a new
one every time the token changes, so an in-flight request always carries the
headers that were current when it was issued.
"""

import logging
from typing import Any, Optional

import httpx

from .errors import RequestError
from .session import RequestConfiguration

logger = logging.getLogger(__name__)


def _error_from_response(response: httpx.Response) -> RequestError:
    """Build a RequestError from a non-2xx response."""
    detail = None
    message = f"{response.status_code} {response.reason_phrase}".strip()
    try:
        body = response.json()
    except ValueError:
        body = None

    if isinstance(body, dict):
        detail = body.get("detail")
        if detail:
            message = str(detail)
        elif body.get("message"):
            message = str(body["message"])
        elif body.get("non_field_errors"):
            message = "; ".join(str(e) for e in body["non_field_errors"])

    return RequestError(message, detail=detail, status_code=response.status_code)


class Transport:
    """Sends requests with a fixed header set and parses JSON responses."""

    def __init__(
        self,
        config: RequestConfiguration,
        timeout: float = 30,
        http_transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize Transport.

        Args:
            config: Headers and decoding options for every request
            timeout: Request timeout in seconds
            http_transport: Optional httpx transport (used by tests)
        """
        self.config = config
        self.timeout = timeout
        self._http_transport = http_transport

    async def _request(
        self,
        method: str,
        uri: str,
        params: Optional[dict] = None,
        data: Optional[dict] = None,
        full_response: bool = False,
    ) -> Any:
        """
        Make a request with the configured headers.

        Args:
            method: HTTP method (GET, POST)
            uri: Absolute URL
            params: Optional query parameters
            data: Optional form body
            full_response: Return the httpx.Response instead of parsed JSON

        Returns:
            Parsed JSON body, or the response itself when full_response is set

        Raises:
            RequestError: On network failure or non-2xx status
        """
        headers = dict(self.config.headers)
        if not self.config.gzip:
            headers["Accept-Encoding"] = "identity"

        try:
            async with httpx.AsyncClient(
                timeout=float(self.timeout),
                headers=headers,
                transport=self._http_transport,
            ) as client:
                response = await client.request(
                    method=method,
                    url=uri,
                    params=params,
                    data=data,
                )
        except httpx.HTTPError as e:
            logger.debug(f"{method} {uri} failed: {e}")
            raise RequestError(str(e) or type(e).__name__) from e

        logger.debug(f"{method} {uri} -> {response.status_code}")

        if response.is_error:
            raise _error_from_response(response)

        if full_response:
            return response
        if not self.config.json:
            return response.text
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise RequestError(f"Invalid JSON in response from {uri}") from e

    async def get(self, uri: str, params: Optional[dict] = None) -> Any:
        """Make GET request."""
        return await self._request("GET", uri, params=params)

    async def post(
        self, uri: str, data: Optional[dict] = None, full_response: bool = False
    ) -> Any:
        """Make POST request with a form-encoded body."""
        return await self._request("POST", uri, data=data, full_response=full_response)
