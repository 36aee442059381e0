"""HTTP client driver using httpx.AsyncClient.

This driver implements the :class:`~inferable.kernel.ports.transport.Transport`
protocol, providing async HTTP calls with connection pooling, bearer
authentication, timeout configuration, and automatic JSON parsing. One
driver (and its connection pool) is shared by every service poll loop and the
heartbeat of a client.
"""

from __future__ import annotations

from typing import Any

import httpx

from inferable.kernel.exceptions import ConfigurationError, HttpStatusError, TransportError
from inferable.kernel.logging import get_logger
from inferable.kernel.ports.transport import TransportResponse

logger = get_logger(__name__)


class HttpClientDriver:
    """Transport driver using httpx.AsyncClient.

    Parameters
    ----------
    base_url : str
        Control-plane endpoint; every request path is appended to it. Must
        start with ``http://`` or ``https://``.
    timeout : float
        Request timeout in seconds (default: 30.0).
    headers : dict[str, str] | None
        Default headers included in every request.
    bearer_token : str | None
        Adds ``Authorization: Bearer <token>`` to the default headers.
    follow_redirects : bool
        Whether to follow HTTP redirects (default: True).

    Raises
    ------
    ConfigurationError
        If ``base_url`` is not an http(s) URL.

    Examples
    --------
    Basic usage::

        http = HttpClientDriver(base_url="https://api.inferable.ai", bearer_token="sk-...")
        response = await http.arequest("GET", "/live")
        print(response.body)
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        headers: dict[str, str] | None = None,
        bearer_token: str | None = None,
        follow_redirects: bool = True,
    ) -> None:
        if not base_url.startswith(("http://", "https://")):
            raise ConfigurationError("api_endpoint", f"invalid URL: {base_url}")

        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._default_headers = dict(headers) if headers else {}
        self._follow_redirects = follow_redirects
        self._client: httpx.AsyncClient | None = None
        # Test hook: inject a custom transport
        self._transport: httpx.AsyncBaseTransport | None = None

        if bearer_token:
            self._default_headers["Authorization"] = f"Bearer {bearer_token}"

    @property
    def base_url(self) -> str:
        return self._base_url

    def _get_client(self) -> httpx.AsyncClient:
        """Lazily create the httpx client on first use."""
        if self._client is None:
            kwargs: dict[str, Any] = {
                "base_url": self._base_url,
                "timeout": self._timeout,
                "headers": self._default_headers,
                "follow_redirects": self._follow_redirects,
            }
            if self._transport is not None:
                kwargs["transport"] = self._transport
            self._client = httpx.AsyncClient(**kwargs)
        return self._client

    def _merge_headers(self, headers: dict[str, str] | None) -> dict[str, str] | None:
        """Merge per-request headers with defaults."""
        if not headers:
            return None
        # Per-request headers override defaults
        return {**self._default_headers, **headers}

    def _parse_response(self, response: httpx.Response) -> TransportResponse:
        """Parse an httpx response into a :class:`TransportResponse`.

        The body is parsed JSON if the content-type is JSON, raw text
        otherwise, and ``None`` for an empty body.
        """
        content_type = response.headers.get("content-type", "")
        body: Any
        if not response.content:
            body = None
        elif "application/json" in content_type:
            try:
                body = response.json()
            except ValueError:
                body = response.text
        else:
            body = response.text

        return TransportResponse(
            status_code=response.status_code,
            headers={key.lower(): value for key, value in response.headers.items()},
            body=body,
        )

    async def arequest(
        self,
        method: str,
        path: str,
        *,
        headers: dict[str, str] | None = None,
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> TransportResponse:
        """Make an async HTTP request.

        Parameters
        ----------
        method : str
            HTTP method (GET, POST, PUT, DELETE, ...).
        path : str
            Path relative to ``base_url``.
        headers : dict[str, str] | None
            Optional per-request headers.
        params : dict[str, Any] | None
            Optional query parameters.
        json : Any
            JSON body. When set, ``Content-Type: application/json`` is sent.

        Returns
        -------
        TransportResponse
            The parsed 2xx response.

        Raises
        ------
        HttpStatusError
            On a 4xx/5xx response.
        TransportError
            On connection errors, timeouts, unencodable bodies and other
            transport failures.
        """
        client = self._get_client()
        try:
            response = await client.request(
                method,
                path,
                headers=self._merge_headers(headers),
                params=params,
                json=json,
            )
        except httpx.HTTPError as e:
            logger.debug("{} {} failed: {!r}", method, path, e)
            raise TransportError(method, path, f"error making request: {e!r}") from e
        except (TypeError, ValueError) as e:
            # Body could not be encoded (NaN, non-JSON types); nothing was sent
            logger.debug("{} {} body not encodable: {!r}", method, path, e)
            raise TransportError(method, path, f"error encoding request: {e!r}") from e

        result = self._parse_response(response)
        if result.status_code >= 400:
            raise HttpStatusError(method, path, result.status_code, result.body)
        return result

    async def aclose(self) -> None:
        """Close the underlying httpx client and release connection pool resources."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
