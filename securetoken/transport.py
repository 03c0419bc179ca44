"""HTTP transport for fetching the issuer's public keys."""

import time
from typing import NamedTuple, Protocol

import requests

# A read blocks until its chunk is full, so single-byte reads let the deadline
# be checked whenever the server sends anything. Key sets are a few KB.
_CHUNK_SIZE = 1


class TransportError(Exception):
    """Raised when a request to the key endpoint cannot be completed."""


class FetchResponse(NamedTuple):
    status_code: int
    body: bytes
    # Cache-Control max-age in seconds, None if not sent
    max_age: float | None


class Transport(Protocol):
    def fetch(self, url: str, timeout: float) -> FetchResponse: ...


def parse_max_age(cache_control: str | None) -> float | None:
    """Extract the max-age directive from a Cache-Control header value."""
    if not cache_control:
        return None

    for directive in cache_control.split(","):
        name, _, value = directive.strip().partition("=")
        if name.lower() != "max-age":
            continue
        try:
            seconds = int(value.strip().strip('"'))
        except ValueError:
            return None
        return float(seconds) if seconds >= 0 else None

    return None


class RequestsTransport:
    """Transport backed by a `requests.Session`.

    Pass a session to share one connection pool between several clients.
    """

    def __init__(self, session: requests.Session | None = None):
        self.session = session or requests.Session()

    def fetch(self, url: str, timeout: float) -> FetchResponse:
        """GET `url` and return status, body and max-age.

        `timeout` bounds the whole request including the body, not just each
        socket read, so a server that trickles bytes cannot hold the caller.

        Raises:
            TransportError: If the request fails or runs past `timeout`
        """
        deadline = time.monotonic() + timeout
        try:
            with self.session.get(
                url,
                headers={"Accept": "application/json"},
                timeout=timeout,
                stream=True,
            ) as response:
                body = bytearray()
                for chunk in response.iter_content(chunk_size=_CHUNK_SIZE):
                    body += chunk
                    if time.monotonic() > deadline:
                        raise TransportError(
                            f"Request to {url} timed out after {timeout}s"
                        )
                status_code = response.status_code
                cache_control = response.headers.get("Cache-Control")
        except requests.RequestException as e:
            raise TransportError(f"Request to {url} failed: {e}") from e

        return FetchResponse(
            status_code=status_code,
            body=bytes(body),
            max_age=parse_max_age(cache_control),
        )
