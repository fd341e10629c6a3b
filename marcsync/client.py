"""
marcsync client facade.

One client per access token: it owns the HTTP transport and the single
real-time subscription manager, and mints collection gateways on demand.
"""

import logging
from typing import Optional, Union

from marcsync.errors import CollectionAlreadyExists, CollectionNotFound, RequestFailed
from marcsync.models.config import ClientSettings
from marcsync.models.events import ClientEvent
from marcsync.storage.collection import Collection
from marcsync.sync.subscriptions import ChannelState, FailureCallback, Listener, SubscriptionManager
from marcsync.transport import HttpTransport, collection_path

logger = logging.getLogger(__name__)


class Client:
    """
    Entry point of the library.

    The real-time channel starts as soon as the client is constructed
    inside a running event loop; otherwise on ``connect()``.

    Usage:
        async with Client("<access token>") as client:
            client.on("entryCreated", lambda entry, database_id, timestamp: ...)
            collection = await client.fetch_collection("my-collection")
            entry = await collection.create_entry({"name": "MarcSync"})
    """

    def __init__(self, access_token: str, settings: Optional[ClientSettings] = None):
        """
        Initialize the client.

        Args:
            access_token: Token sent with every request and the hub connection
            settings: Endpoints and timeouts; read from ``MARCSYNC_*``
                environment variables when omitted
        """
        self._settings = settings or ClientSettings()
        self._transport = HttpTransport(
            access_token,
            self._settings.api_url,
            timeout=self._settings.request_timeout
        )
        self._subscriptions = SubscriptionManager(self._transport, self._settings)
        self._subscriptions.start()

        logger.info(f"Initialized marcsync client for {self._settings.api_url}")

    @property
    def settings(self) -> ClientSettings:
        return self._settings

    @property
    def subscriptions(self) -> SubscriptionManager:
        return self._subscriptions

    @property
    def channel_state(self) -> ChannelState:
        return self._subscriptions.state

    def get_collection(self, collection_name: str) -> Collection:
        """Return a gateway for ``collection_name`` without contacting the backend"""
        return Collection(self._transport, collection_name)

    async def fetch_collection(self, collection_name: str) -> Collection:
        """
        Return a gateway after checking the collection exists.

        Raises:
            Unauthorized: Access token rejected
            CollectionNotFound: The collection does not exist
        """
        collection = self.get_collection(collection_name)
        if not await collection.exists():
            raise CollectionNotFound()
        return collection

    async def create_collection(self, collection_name: str) -> Collection:
        """
        Create a collection and return its gateway.

        Raises:
            Unauthorized: Access token rejected
            CollectionAlreadyExists: The backend refused to create it
        """
        try:
            await self._transport.request("POST", collection_path(collection_name))
        except RequestFailed:
            raise CollectionAlreadyExists() from None

        logger.info(f"Created collection '{collection_name}'")
        return Collection(self._transport, collection_name)

    def on(self, event: Union[ClientEvent, str], listener: Listener) -> "Client":
        """
        Register a change notification listener.

        Returns:
            The client, for chaining
        """
        self._subscriptions.subscribe(event, listener)
        return self

    def on_channel_failure(self, callback: FailureCallback) -> "Client":
        """
        Register a callback for a failed real-time handshake.

        The channel does not recover from this state; the callback decides
        whether the host process should stop.
        """
        self._subscriptions.on_failure(callback)
        return self

    async def connect(self) -> "Client":
        """
        Start the real-time channel if needed and wait for the handshake.

        Raises:
            ChannelHandshakeFailed: The hub could not be reached or refused
        """
        await self._subscriptions.wait_until_connected()
        return self

    async def close(self) -> None:
        """Close the real-time channel"""
        await self._subscriptions.close()

    async def __aenter__(self) -> "Client":
        return await self.connect()

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
