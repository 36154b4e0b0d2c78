"""
consulconf - Consul KV Client

HTTP client for the Consul key/value API. A source only ever needs one call:
list every pair under a prefix together with the store's modify index.

Patterns Applied:
- Connection pooling (one httpx.Client per source)
- Repository Pattern: Protocol for duck typing so FakeKVClient stands in for tests
- Custom namespaced exceptions (StoreClientError, ConfigurationError)

Anti-Patterns Avoided:
- Retrying inside the client: the refresh schedule is the only retry
"""

from __future__ import annotations

import base64
import binascii
import threading
from typing import Any, Final, Protocol
from urllib.parse import quote

import httpx

from consulconf.core.exceptions import ConfigurationError, StoreClientError

# =============================================================================
# Module Constants
# =============================================================================

ENDPOINT_KV: Final[str] = "/v1/kv/"
HEADER_INDEX: Final[str] = "X-Consul-Index"
HEADER_TOKEN: Final[str] = "X-Consul-Token"
UNIX_BASE_URL: Final[str] = "http://consul"
HTTP_SCHEMES: Final[frozenset[str]] = frozenset({"http", "https"})
MAX_PORT: Final[int] = 65535

Pair = tuple[str, str]


# =============================================================================
# Protocol for Duck Typing (Repository Pattern)
# =============================================================================


class KVClientProtocol(Protocol):
    """Protocol for key/value store clients.

    Enables FakeKVClient for testing without a Consul agent.
    """

    def list(self, prefix: str) -> tuple[list[Pair], int]:
        """List (key, value) pairs under prefix and the store version.

        Raises:
            StoreClientError: When the store cannot be read (an OSError
                such as ConnectionError is treated the same way)
        """
        ...

    def close(self) -> None:
        """Release connections."""
        ...


# =============================================================================
# Address handling
# =============================================================================


def parse_address(address: str) -> tuple[str, str | None]:
    """Turn a Consul address into an httpx base URL.

    Accepts "host:port", "http://host:port", "https://host:port" and
    "unix:///path/to/consul.sock".

    Args:
        address: Address as configured

    Returns:
        (base_url, unix_socket_path) - the socket path is None for TCP

    Raises:
        ConfigurationError: If the address is empty or malformed
    """
    address = address.strip()
    if not address:
        raise ConfigurationError("consul source: address is empty")

    socket_path: str | None = None
    if "://" in address:
        scheme, rest = address.split("://", 1)
        scheme = scheme.lower()
        if scheme == "unix":
            if not rest:
                raise ConfigurationError(f"consul source: bad unix socket address {address!r}")
            return UNIX_BASE_URL, rest
        if scheme not in HTTP_SCHEMES:
            raise ConfigurationError(f"consul source: unsupported scheme {scheme!r}")
        base_url = f"{scheme}://{rest}"
    else:
        base_url = f"http://{address}"

    try:
        url = httpx.URL(base_url)
    except httpx.InvalidURL as e:
        raise ConfigurationError(f"consul source: bad address {address!r}: {e}") from e

    if not url.host:
        raise ConfigurationError(f"consul source: address {address!r} has no host")
    if url.port is not None and url.port > MAX_PORT:
        raise ConfigurationError(f"consul source: address {address!r} has an invalid port")

    return base_url, socket_path


# =============================================================================
# ConsulKVClient Implementation
# =============================================================================


class ConsulKVClient:
    """HTTP client for the Consul KV endpoint.

    Attributes:
        address: Address the client was built from
        base_url: Resolved base URL
        timeout: Request timeout in seconds (None waits forever)
    """

    def __init__(
        self,
        address: str,
        username: str | None = None,
        password: str | None = None,
        token: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            address: Consul agent address
            username: HTTP basic auth user
            password: HTTP basic auth password
            token: Consul ACL token
            timeout: Request timeout in seconds
            transport: Custom httpx transport (tests use httpx.MockTransport)

        Raises:
            ConfigurationError: If the address is malformed
        """
        self.address = address
        self.base_url, socket_path = parse_address(address)
        self.timeout = timeout

        if transport is None and socket_path is not None:
            transport = httpx.HTTPTransport(uds=socket_path)

        auth: tuple[str, str] | None = None
        if username is not None or password is not None:
            auth = (username or "", password or "")

        headers: dict[str, str] = {}
        if token:
            headers[HEADER_TOKEN] = token

        # Connection pooling: single client instance
        self._client = httpx.Client(
            base_url=self.base_url,
            auth=auth,
            headers=headers,
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    def list(self, prefix: str) -> tuple[list[Pair], int]:
        """List every pair whose key starts with prefix.

        Args:
            prefix: Key prefix ("" lists the whole store)

        Returns:
            (pairs, index) where index is the X-Consul-Index of the listing

        Raises:
            StoreClientError: On connection failures, HTTP errors or bad payloads
        """
        try:
            response = self._client.get(
                ENDPOINT_KV + quote(prefix, safe="/"),
                params={"recurse": "true"},
            )
        except httpx.HTTPError as e:
            raise StoreClientError(f"consul request failed: {e}") from e

        if response.status_code == httpx.codes.NOT_FOUND:
            return [], self._parse_index(response)
        if response.status_code >= 400:
            raise StoreClientError(
                f"consul returned {response.status_code}: {response.text}",
                status_code=response.status_code,
            )

        index = self._parse_index(response)
        try:
            payload = response.json()
        except ValueError as e:
            raise StoreClientError(f"consul returned invalid JSON: {e}") from e
        return self._parse_pairs(payload), index

    @staticmethod
    def _parse_index(response: httpx.Response) -> int:
        """Read the store version from the X-Consul-Index header.

        Raises:
            StoreClientError: If the header is missing or not an integer
        """
        raw = response.headers.get(HEADER_INDEX)
        if raw is None:
            raise StoreClientError(f"consul response has no {HEADER_INDEX} header")
        try:
            return int(raw)
        except ValueError as e:
            raise StoreClientError(f"consul returned bad index {raw!r}") from e

    @staticmethod
    def _parse_pairs(payload: Any) -> list[Pair]:
        """Decode the KV listing into (key, value) pairs.

        Consul base64-encodes values and sends null for empty ones.

        Raises:
            StoreClientError: If the payload is not a list of KV entries
        """
        if not isinstance(payload, list):
            raise StoreClientError("consul KV listing is not a list")

        pairs: list[Pair] = []
        for item in payload:
            try:
                key = item["Key"]
                encoded = item.get("Value")
                value = ""
                if encoded:
                    value = base64.b64decode(encoded).decode("utf-8", errors="replace")
            except (KeyError, TypeError, AttributeError, binascii.Error) as e:
                raise StoreClientError(f"consul returned a malformed KV entry: {e}") from e
            pairs.append((key, value))
        return pairs

    def close(self) -> None:
        """Close the HTTP client connection pool."""
        self._client.close()


# =============================================================================
# FakeKVClient for Testing
# =============================================================================


class FakeKVClient:
    """Fake in-memory store for unit testing without Consul.

    Implements KVClientProtocol for duck typing. Every write bumps the
    index, the way Consul's modify index moves forward.
    """

    def __init__(self, values: dict[str, str] | None = None) -> None:
        """Initialize the fake store.

        Args:
            values: Initial pairs
        """
        self._lock = threading.Lock()
        self._values: dict[str, str] = dict(values or {})
        self.index = 1 if self._values else 0
        self.failing = False
        self.list_calls = 0
        self.closed = False

    def put(self, key: str, value: str) -> None:
        """Write a pair and bump the index."""
        with self._lock:
            self._values[key] = value
            self.index += 1

    def delete(self, key: str) -> None:
        """Remove a pair and bump the index."""
        with self._lock:
            self._values.pop(key, None)
            self.index += 1

    def set_index(self, index: int) -> None:
        """Force the reported index, e.g. to simulate a stale listing."""
        with self._lock:
            self.index = index

    def list(self, prefix: str) -> tuple[list[Pair], int]:
        """Return pairs under prefix, or raise while failing is set."""
        with self._lock:
            self.list_calls += 1
            if self.failing:
                raise StoreClientError("fake store unavailable")
            pairs = [(k, v) for k, v in self._values.items() if k.startswith(prefix)]
            return pairs, self.index

    def close(self) -> None:
        self.closed = True
