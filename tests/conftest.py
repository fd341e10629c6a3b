"""
Shared fixtures: an in-memory backend patched over ``requests.request``
and a scripted hub connection.
"""

import asyncio
import itertools
import json
from typing import Any, Dict, List, Optional, Union
from unittest.mock import AsyncMock, patch
from urllib.parse import unquote, urlsplit

import pytest

from marcsync.models.config import ClientSettings
from marcsync.transport import HttpTransport

API_URL = "https://api.test.marcsync"
WS_URL = "wss://ws.test.marcsync/websocket"
TOKEN = "test-token"


class FakeResponse:
    """Minimal stand-in for requests.Response"""

    def __init__(self, status_code: int, body: Any):
        self.status_code = status_code
        self._body = body

    def json(self) -> Any:
        if isinstance(self._body, str):
            return json.loads(self._body)
        return self._body


class FakeBackend:
    """
    In-memory MarcSync REST backend.

    Implements the collection and entry endpoints closely enough to exercise
    request building and response classification end to end.
    """

    def __init__(self, token: str = TOKEN):
        self.token = token
        self.collections: Dict[str, List[Dict[str, Any]]] = {}
        self.requests: List[Dict[str, Any]] = []
        self._ids = itertools.count(1)
        self._forced: List[Any] = []

    def force(self, response: Any) -> None:
        """Queue a FakeResponse or exception for the next request"""
        self._forced.append(response)

    def handle(self, method: str, url: str, headers: Optional[Dict[str, str]] = None,
               json: Any = None, params: Optional[Dict[str, str]] = None, timeout: Any = None):
        self.requests.append({
            "method": method, "url": url, "headers": dict(headers or {}),
            "json": json, "params": params, "timeout": timeout,
        })

        if self._forced:
            forced = self._forced.pop(0)
            if isinstance(forced, BaseException):
                raise forced
            return forced

        if (headers or {}).get("authorization") != self.token:
            return FakeResponse(401, {"success": True})

        parts = urlsplit(url).path.strip("/").split("/")
        version, resource, name = parts[0], parts[1], unquote(parts[2])

        if (version, resource) == ("v0", "collection"):
            return self._collection(method, name, json)
        if (version, resource) == ("v1", "entries"):
            return self._entries(method, name, json or {}, params or {})
        return FakeResponse(404, {"success": False})

    def _collection(self, method: str, name: str, body: Any) -> FakeResponse:
        exists = name in self.collections
        if method == "GET":
            return FakeResponse(200 if exists else 404, {"success": exists})
        if method == "POST":
            if exists:
                return FakeResponse(400, {"success": False})
            self.collections[name] = []
            return FakeResponse(200, {"success": True})
        if method == "PUT":
            new_name = body["collectionName"]
            if not exists or new_name in self.collections:
                return FakeResponse(400, {"success": False})
            self.collections[new_name] = self.collections.pop(name)
            return FakeResponse(200, {"success": True})
        if method == "DELETE":
            if not exists:
                return FakeResponse(404, {"success": False})
            del self.collections[name]
            return FakeResponse(200, {"success": True})
        return FakeResponse(405, {"success": False})

    def _matches(self, entry: Dict[str, Any], filters: Dict[str, Any]) -> bool:
        return all(entry.get(key) == value for key, value in filters.items())

    def _entries(self, method: str, name: str, body: Dict[str, Any], params: Dict[str, str]) -> FakeResponse:
        if name not in self.collections:
            return FakeResponse(404, {"success": False})
        entries = self.collections[name]
        filters = body.get("filters") or {}

        if method == "POST":
            entry_id = f"e{next(self._ids)}"
            entries.append({**body["data"], "_id": entry_id})
            return FakeResponse(200, {"success": True, "objectId": entry_id})
        if method == "PATCH" and params.get("methodOverwrite") == "GET":
            found = [dict(e) for e in entries if self._matches(e, filters)]
            return FakeResponse(200, {"success": True, "entries": found})
        if method == "PUT":
            modified = 0
            for entry in entries:
                if self._matches(entry, filters):
                    entry.update(body["data"])
                    modified += 1
            return FakeResponse(200, {"success": True, "modifiedEntries": modified})
        if method == "DELETE":
            kept = [e for e in entries if not self._matches(e, filters)]
            deleted = len(entries) - len(kept)
            self.collections[name] = kept
            return FakeResponse(200, {"success": True, "deletedEntries": deleted})
        return FakeResponse(405, {"success": False})


class FakeHubConnection:
    """
    Scripted hub WebSocket connection.

    Queued exceptions are raised from the iterator, like a dropped socket.
    """

    def __init__(self, handshake: Union[str, bytes] = "{}\x1e", frames=()):
        self.sent: List[str] = []
        self.closed = False
        self._handshake = handshake
        self._frames: asyncio.Queue = asyncio.Queue()
        for frame in frames:
            self._frames.put_nowait(frame)

    def push(self, frame: str) -> None:
        self._frames.put_nowait(frame)

    async def send(self, data: str) -> None:
        self.sent.append(data)

    async def recv(self) -> Union[str, bytes]:
        return self._handshake

    def __aiter__(self):
        return self

    async def __anext__(self) -> str:
        if self.closed:
            raise StopAsyncIteration
        frame = await self._frames.get()
        if frame is None:
            raise StopAsyncIteration
        if isinstance(frame, BaseException):
            raise frame
        return frame

    async def close(self) -> None:
        if not self.closed:
            self.closed = True
            self._frames.put_nowait(None)


def invocation(target: str, payload: Dict[str, Any]) -> str:
    """Hub invocation frame carrying a JSON-encoded event"""
    return json.dumps({"type": 1, "target": target, "arguments": [json.dumps(payload)]}) + "\x1e"


async def wait_for_condition(predicate, timeout: float = 1.0) -> bool:
    """Poll ``predicate`` until it holds or ``timeout`` elapses"""
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            return False
        await asyncio.sleep(0.01)
    return True


@pytest.fixture(autouse=True)
def no_network_hub():
    """Never open a real hub connection from tests"""
    with patch(
        "marcsync.sync.subscriptions.websockets.connect",
        new=AsyncMock(side_effect=OSError("network disabled in tests"))
    ) as connect:
        yield connect


@pytest.fixture
def settings():
    return ClientSettings(api_url=API_URL, websocket_url=WS_URL, request_timeout=5.0)


@pytest.fixture
def transport(settings):
    return HttpTransport(TOKEN, settings.api_url, timeout=settings.request_timeout)


@pytest.fixture
def backend():
    """Fake backend wired into every HTTP request"""
    fake = FakeBackend()
    with patch("marcsync.transport.requests.request", side_effect=fake.handle):
        yield fake
