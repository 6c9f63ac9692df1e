"""HTTP transport for the stick's /stick endpoint.

Each call is a single POST of an already-encoded body; the response body is
returned as bytes (httpx undoes gzip/deflate content encoding).
"""

import logging
from typing import Optional

import httpx

from ..config import Endpoint, StickSettings
from ..protocol.exceptions import StickAuthError, StickDeviceBusyError, StickTransportError

logger = logging.getLogger(__name__)

# The stick only talks to clients that look like the vendor's phone app.
STICK_HEADERS = {
    "Accept-Language": "en",
    "Accept-Encoding": "gzip, deflate",
    "User-Agent": "RainBird/2.0 CFNetwork/811.5.4 Darwin/16.7.0",
    "Accept": "*/*",
    "Content-Type": "application/octet-stream",
}


def hex_dump(data: Optional[bytes]) -> str:
    """Format bytes as offset / hex / printable ASCII rows of 16."""
    if data is None:
        return "<null>"
    rows = []
    for offset in range(0, len(data), 16):
        chunk = data[offset:offset + 16]
        hex_part = " ".join(f"{b:02X}" for b in chunk)
        text = "".join(chr(b) if 32 <= b <= 126 else "." for b in chunk)
        rows.append(f"{offset:04X}: {hex_part:<47}   {text}")
    return "\n".join(rows)


class StickTransport:
    """Posts request bodies to one stick endpoint."""

    def __init__(
        self,
        settings: StickSettings,
        client: Optional[httpx.Client] = None,
    ):
        # Raises ConfigurationError before anything touches the network
        self.endpoint: Endpoint = settings.endpoint
        self.timeout = settings.timeout
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=self.timeout, follow_redirects=False)

    @property
    def url(self) -> str:
        return self.endpoint.url

    def post(self, body: bytes) -> bytes:
        """Send one request body and return the response body.

        Raises StickTransportError (or a subclass) on connection failure,
        timeout or HTTP status >= 400.
        """
        logger.debug("HTTP POST %s (%d bytes)", self.url, len(body))
        try:
            resp = self._client.post(
                self.url,
                content=body,
                headers=STICK_HEADERS,
                timeout=self.timeout,
            )
            content = resp.content
        except httpx.TimeoutException as exc:
            raise StickTransportError(f"Timeout talking to {self.url}: {exc}") from exc
        except httpx.HTTPError as exc:
            raise StickTransportError(f"Error talking to {self.url}: {exc}") from exc

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "HTTP response %d %s from %s:\n%s",
                resp.status_code, resp.reason_phrase, self.url, hex_dump(content),
            )

        if resp.status_code == 403:
            raise StickAuthError(f"Stick at {self.url} refused the request (HTTP 403); check the password")
        if resp.status_code == 503:
            raise StickDeviceBusyError(f"Stick at {self.url} is busy (HTTP 503)")
        if resp.status_code >= 400:
            raise StickTransportError(f"Unexpected HTTP status {resp.status_code} from {self.url}")
        return content

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "StickTransport":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
