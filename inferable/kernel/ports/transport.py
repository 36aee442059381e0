"""Port interface for the control-plane transport.

The core never talks HTTP directly: every remote operation goes through a
:class:`Transport`, which the client builds from
:class:`~inferable.drivers.http_client.HttpClientDriver` unless one is
injected (tests, custom proxies).
"""

from __future__ import annotations

from abc import abstractmethod
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable


@dataclass(frozen=True, slots=True)
class TransportResponse:
    """Successful (2xx) response returned by a transport.

    Attributes
    ----------
    status_code : int
        HTTP status code.
    headers : dict[str, str]
        Response headers with lower-cased names.
    body : Any
        Parsed JSON body, raw text for non-JSON responses, ``None`` when empty.
    """

    status_code: int
    headers: dict[str, str] = field(default_factory=dict)
    body: Any = None

    def header(self, name: str) -> str | None:
        """Case-insensitive header lookup."""
        return self.headers.get(name.lower())


@runtime_checkable
class Transport(Protocol):
    """Issues authenticated requests against the control plane."""

    @abstractmethod
    async def arequest(
        self,
        method: str,
        path: str,
        *,
        headers: dict[str, str] | None = None,
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> TransportResponse:
        """Send one request.

        Args
        ----
            method: HTTP method (GET, POST, ...)
            path: Path relative to the configured endpoint, e.g. ``/machines``
            headers: Per-request headers, merged over the transport defaults
            params: Query parameters
            json: JSON-serializable body; omitted when ``None``

        Returns
        -------
        TransportResponse
            The 2xx response

        Raises
        ------
        HttpStatusError
            If the server answers with a 4xx/5xx status (carries the body)
        TransportError
            If the request could not be completed (DNS, connect, timeout)
        """
        ...

    @abstractmethod
    async def aclose(self) -> None:
        """Release pooled connections."""
        ...
