"""
Cache stores the debugger can wrap.

Any object providing read/write/delete/exists satisfies CacheStore. Two
implementations are bundled:
- MemoryStore: thread-safe in-process dictionary
- DaprStateStore: Dapr sidecar state API over HTTP, values packed with MsgPack
"""

import base64
import logging
import os
from threading import Lock
from typing import Any, Protocol, runtime_checkable
from urllib.parse import quote

import httpx
import msgpack

from .exceptions import StoreConnectionError, StoreOperationError, StoreSerializationError

logger = logging.getLogger(__name__)

DEFAULT_DAPR_HTTP_PORT = 3500
DEFAULT_TIMEOUT_SECONDS = 5.0


@runtime_checkable
class CacheStore(Protocol):
    """Protocol for key/value stores wrapped by CacheDebugger.

    Stores may raise any exception; the debugger re-raises it unchanged.
    """

    def read(self, key: str, **options: Any) -> Any | None:
        """Return the stored value, or None when absent."""
        ...

    def write(self, key: str, value: Any, **options: Any) -> bool:
        """Store a value. Returns True on success."""
        ...

    def delete(self, key: str, **options: Any) -> bool:
        """Remove a value. Returns True if something was removed."""
        ...

    def exists(self, key: str, **options: Any) -> bool:
        """Whether a value is stored under key."""
        ...


class MemoryStore:
    """In-process store backed by a dict (thread-safe)."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._data: dict[str, Any] = {}

    def read(self, key: str, **options: Any) -> Any | None:
        with self._lock:
            return self._data.get(key)

    def write(self, key: str, value: Any, **options: Any) -> bool:
        with self._lock:
            self._data[key] = value
        return True

    def delete(self, key: str, **options: Any) -> bool:
        with self._lock:
            return self._data.pop(key, None) is not None

    def exists(self, key: str, **options: Any) -> bool:
        with self._lock:
            return key in self._data

    def clear(self) -> None:
        with self._lock:
            self._data.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)


def _get_dapr_url() -> str:
    """Base URL of the Dapr sidecar from the environment."""
    host = os.getenv("DAPR_HTTP_HOST", "127.0.0.1")
    port = os.getenv("DAPR_HTTP_PORT", str(DEFAULT_DAPR_HTTP_PORT))
    return f"http://{host}:{port}"


class DaprStateStore:
    """Store backed by a Dapr state component, via the sidecar HTTP API.

    The Dapr state REST API:
    - GET /v1.0/state/{storename}/{key} - read value
    - POST /v1.0/state/{storename} - save value(s)
    - DELETE /v1.0/state/{storename}/{key} - delete value

    Values are packed with MsgPack and sent base64-encoded.

    Attributes:
        store_name: Dapr state store component name
        ttl_seconds: Optional TTL applied to every write
    """

    def __init__(
        self,
        store_name: str,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        dapr_url: str | None = None,
        ttl_seconds: int | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            store_name: Dapr state store name
            timeout: Timeout for HTTP operations, in seconds
            dapr_url: Sidecar URL (read from DAPR_HTTP_HOST/PORT if omitted)
            ttl_seconds: TTL applied to writes (None keeps values forever)

        Raises:
            ValueError: If store_name is empty or ttl_seconds < 1
        """
        if not store_name or not store_name.strip():
            raise ValueError("store_name cannot be empty")
        if ttl_seconds is not None and ttl_seconds < 1:
            raise ValueError(f"ttl_seconds must be >= 1 or None, got {ttl_seconds}")

        self._store_name = store_name
        self._timeout = timeout
        self._base_url = dapr_url or _get_dapr_url()
        self._ttl_seconds = ttl_seconds
        self._client: httpx.Client | None = None
        self._client_lock = Lock()

    @property
    def store_name(self) -> str:
        return self._store_name

    def _get_client(self) -> httpx.Client:
        """Get or create the HTTP client (double-checked locking)."""
        if self._client is None:
            with self._client_lock:
                if self._client is None:
                    self._client = httpx.Client(base_url=self._base_url, timeout=self._timeout)
        return self._client

    def _state_url(self, key: str | None = None) -> str:
        if key:
            return f"/v1.0/state/{self._store_name}/{quote(key, safe='')}"
        return f"/v1.0/state/{self._store_name}"

    def _pack(self, key: str, value: Any) -> str:
        try:
            packed = msgpack.packb(value, use_bin_type=True)
        except (TypeError, ValueError) as e:
            raise StoreSerializationError(f"Failed to pack value: {e}", key=key) from e
        return base64.b64encode(packed).decode("ascii")

    def _unpack(self, key: str, content: bytes) -> Any:
        try:
            # Dapr returns the saved string JSON-quoted
            text = content.decode("utf-8").strip().strip('"')
            return msgpack.unpackb(base64.b64decode(text), raw=False)
        except (UnicodeDecodeError, ValueError, msgpack.UnpackException) as e:
            raise StoreSerializationError(f"Failed to unpack value: {e}", key=key) from e

    def _request(self, method: str, url: str, key: str, **kwargs: Any) -> httpx.Response:
        try:
            return self._get_client().request(method, url, **kwargs)
        except httpx.ConnectError as e:
            raise StoreConnectionError(f"Could not connect to the Dapr sidecar: {e}", key=key) from e
        except httpx.HTTPError as e:
            raise StoreOperationError(f"Dapr state request failed: {e}", key=key) from e

    def read(self, key: str, **options: Any) -> Any | None:
        response = self._request("GET", self._state_url(key), key)
        if response.status_code == 204 or not response.content:
            logger.debug("Dapr state miss for key: %s", key)
            return None
        if response.status_code == 200:
            return self._unpack(key, response.content)
        raise StoreOperationError(f"Unexpected Dapr response: {response.status_code}", key=key)

    def write(self, key: str, value: Any, **options: Any) -> bool:
        entry: dict[str, Any] = {"key": key, "value": self._pack(key, value)}
        ttl_seconds = options.get("ttl_seconds", self._ttl_seconds)
        if ttl_seconds is not None:
            entry["metadata"] = {"ttlInSeconds": str(ttl_seconds)}

        response = self._request("POST", self._state_url(), key, json=[entry])
        if response.status_code in (200, 201, 204):
            return True
        logger.warning("Dapr state save failed for key %s: %s", key, response.status_code)
        return False

    def delete(self, key: str, **options: Any) -> bool:
        response = self._request("DELETE", self._state_url(key), key)
        return response.status_code in (200, 204)

    def exists(self, key: str, **options: Any) -> bool:
        response = self._request("GET", self._state_url(key), key)
        return response.status_code == 200 and bool(response.content)

    def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            self._client.close()
            self._client = None

    def __enter__(self) -> "DaprStateStore":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
