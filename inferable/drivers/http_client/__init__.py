"""httpx-backed transport driver."""

from inferable.drivers.http_client.http_client import HttpClientDriver

__all__ = ["HttpClientDriver"]
