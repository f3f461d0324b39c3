"""Remote endpoints: the "other side" the sync engine reconciles against.

Two variants share one contract. ``HttpRemote`` talks to a notesync server
over HTTP; ``BlobRemote`` treats a snapshot blob in local storage as the
server. Every transport or server problem surfaces as ``RemoteUnavailable``
so callers have a single failure to fall back on.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx

from ..errors import MalformedNotesError, RemoteUnavailable, StorageError
from ..notes import Note, encode_notes, notes_from_list, parse_notes_or_empty
from ..storage import BlobStore

logger = logging.getLogger(__name__)

DEFAULT_SNAPSHOT_NAME = "server.json"


class RemoteEndpoint(ABC):
    """Abstract full-collection remote."""

    @abstractmethod
    async def fetch_all(self) -> list[Note]:
        """Fetch the remote's full collection.

        Raises:
            RemoteUnavailable: If the remote cannot be reached or misbehaves.
        """
        pass

    @abstractmethod
    async def replace_all(self, notes: list[Note]) -> None:
        """Replace the remote's full collection.

        Raises:
            RemoteUnavailable: If the remote cannot be reached or refuses.
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Return True if the remote is reachable and healthy."""
        pass

    @abstractmethod
    def describe(self) -> str:
        """Human-readable location of the remote."""
        pass

    async def close(self) -> None:
        """Release any held resources."""


class HttpRemote(RemoteEndpoint):
    """Remote reached over HTTP (``GET``/``POST /notes``, ``GET /health``).

    Each call is a single attempt; timeouts count as full failures.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 5.0,
        client: httpx.AsyncClient | None = None,
    ):
        """Initialize the HTTP remote.

        Args:
            base_url: Server base URL (e.g., "http://localhost:8080").
            timeout: Request timeout in seconds.
            client: Optional preconfigured client, mainly for tests.
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    def describe(self) -> str:
        return self.base_url

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
            self._owns_client = True
        return self._client

    async def close(self) -> None:
        """Close the HTTP client if this remote created it."""
        if self._client and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def _request(self, method: str, path: str, json_data: Any = None) -> Any:
        """Make one HTTP request and return the decoded JSON body.

        Raises:
            RemoteUnavailable: On connection errors, timeouts, non-200
                responses and bodies that are not JSON.
        """
        url = f"{self.base_url}{path}"
        client = await self._get_client()

        try:
            if method == "GET":
                response = await client.get(url)
            elif method == "POST":
                response = await client.post(url, json=json_data)
            else:
                raise ValueError(f"Unsupported method: {method}")
        except httpx.ConnectError as e:
            raise RemoteUnavailable(f"Connection to {url} failed: {e}") from e
        except httpx.TimeoutException as e:
            raise RemoteUnavailable(f"Request to {url} timed out") from e
        except httpx.HTTPError as e:
            raise RemoteUnavailable(f"Request to {url} failed: {e}") from e

        if response.status_code != 200:
            raise RemoteUnavailable(f"HTTP {response.status_code} from {url}: {response.text}")

        try:
            return response.json()
        except ValueError as e:
            raise RemoteUnavailable(f"Invalid JSON from {url}") from e

    async def fetch_all(self) -> list[Note]:
        data = await self._request("GET", "/notes")
        try:
            notes = notes_from_list(data)
        except MalformedNotesError as e:
            raise RemoteUnavailable(f"Server sent malformed notes: {e}") from e

        logger.debug(f"Fetched {len(notes)} notes from {self.base_url}")
        return notes

    async def replace_all(self, notes: list[Note]) -> None:
        data = await self._request("POST", "/notes", [n.to_dict() for n in notes])
        if not isinstance(data, dict) or not data.get("success"):
            raise RemoteUnavailable(f"Server rejected push: {data!r}")

        logger.debug(f"Pushed {len(notes)} notes to {self.base_url}")

    async def health_check(self) -> bool:
        try:
            data = await self._request("GET", "/health")
        except RemoteUnavailable as e:
            logger.debug(f"Health check failed: {e}")
            return False
        return isinstance(data, dict) and data.get("status") == "ok"


class BlobRemote(RemoteEndpoint):
    """A snapshot blob in local storage standing in for the server."""

    def __init__(self, blob_store: BlobStore, name: str = DEFAULT_SNAPSHOT_NAME):
        self._blobs = blob_store
        self.name = name

    def describe(self) -> str:
        return f"blob:{self.name}"

    async def fetch_all(self) -> list[Note]:
        try:
            content = await self._blobs.read(self.name)
        except StorageError as e:
            raise RemoteUnavailable(str(e)) from e
        return parse_notes_or_empty(content)

    async def replace_all(self, notes: list[Note]) -> None:
        try:
            await self._blobs.write(self.name, encode_notes(notes))
        except StorageError as e:
            raise RemoteUnavailable(str(e)) from e

    async def health_check(self) -> bool:
        return True
