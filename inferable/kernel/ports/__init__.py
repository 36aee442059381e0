"""Port interfaces for the client."""

from inferable.kernel.ports.transport import Transport, TransportResponse

__all__ = ["Transport", "TransportResponse"]
