"""
Collection gateway for marcsync.

Stateless facade over one named remote collection: collection lifecycle
plus single and bulk entry CRUD. Every call is an independent request; no
entry state is kept between calls.
"""

import logging
from typing import Any, Dict, Generic, List, Mapping, Optional

from marcsync.config.defaults import READ_OVERRIDE_PARAMS
from marcsync.errors import CollectionNotFound, EntryNotFound, RequestFailed
from marcsync.models.entry import ID_FIELD, Entry, T
from marcsync.transport import HttpTransport, collection_path, entries_path

logger = logging.getLogger(__name__)

# Failures that mean "the backend did not give us what we asked for"
_LOOKUP_ERRORS = (RequestFailed, KeyError, TypeError, IndexError, AttributeError)


class Collection(Generic[T]):
    """
    Gateway to one remote collection.

    Holds only the bound transport and the collection name. The name is not
    updated by ``set_name``; fetch a new gateway for the renamed collection.
    """

    def __init__(self, transport: HttpTransport, collection_name: str):
        """
        Initialize the gateway.

        Args:
            transport: Credential-bound HTTP transport
            collection_name: Name of the remote collection
        """
        self._transport = transport
        self._collection_name = collection_name

    def get_name(self) -> str:
        """Name this gateway is bound to (may be stale after ``set_name``)"""
        return self._collection_name

    def _entry(self, values: Dict[str, Any]) -> Entry[T]:
        return Entry(self._transport, self._collection_name, values)

    async def _entries_request(self, method: str, body: Dict[str, Any], read: bool = False) -> Dict[str, Any]:
        return await self._transport.request(
            method,
            entries_path(self._collection_name),
            body=body,
            params=READ_OVERRIDE_PARAMS if read else None
        )

    # ------------------------------------------------------------------
    # Collection lifecycle
    # ------------------------------------------------------------------

    async def exists(self) -> bool:
        """
        Probe the backend for this collection.

        Returns:
            True if the collection exists

        Raises:
            Unauthorized: Access token rejected
        """
        try:
            await self._transport.request("GET", collection_path(self._collection_name))
            return True
        except RequestFailed as e:
            logger.debug(f"Collection '{self._collection_name}' not found: {e}")
            return False

    async def drop(self) -> None:
        """
        Delete the collection and all of its entries.

        This cannot be undone.

        Raises:
            Unauthorized: Access token rejected
            CollectionNotFound: Backend rejected the request
        """
        try:
            await self._transport.request("DELETE", collection_path(self._collection_name))
        except RequestFailed:
            raise CollectionNotFound("Failed to drop collection") from None

        logger.info(f"Dropped collection '{self._collection_name}'")

    async def set_name(self, name: str) -> None:
        """
        Rename the collection on the backend.

        The gateway keeps its current name; obtain a new gateway for ``name``.

        Raises:
            Unauthorized: Access token rejected
            CollectionNotFound: Backend rejected the request
        """
        try:
            await self._transport.request(
                "PUT",
                collection_path(self._collection_name),
                body={"collectionName": name}
            )
        except RequestFailed:
            raise CollectionNotFound("Failed to set collection name") from None

        logger.info(f"Renamed collection '{self._collection_name}' to '{name}'")

    # ------------------------------------------------------------------
    # Entries
    # ------------------------------------------------------------------

    async def create_entry(self, data: Mapping[str, Any]) -> Entry[T]:
        """
        Create an entry.

        Args:
            data: Field values; must not carry an ``_id``

        Returns:
            Owned entry holding ``data`` plus the assigned identifier

        Raises:
            ValueError: ``data`` already has an identifier
            Unauthorized: Access token rejected
            CollectionNotFound: Backend rejected the request
        """
        if ID_FIELD in data:
            raise ValueError(f"Entry data must not contain '{ID_FIELD}'; it is assigned by the backend")

        try:
            result = await self._entries_request("POST", {"data": dict(data)})
            values = dict(data)
            values[ID_FIELD] = result["objectId"]
        except _LOOKUP_ERRORS:
            raise CollectionNotFound("Failed to create entry") from None

        return self._entry(values)

    async def get_entry_by_id(self, entry_id: Any) -> Entry[T]:
        """
        Fetch exactly one entry by identifier.

        Raises:
            Unauthorized: Access token rejected
            EntryNotFound: No entry has this identifier
            CollectionNotFound: Any other failure
        """
        try:
            result = await self._entries_request("PATCH", {"filters": {ID_FIELD: entry_id}}, read=True)
            entries = result["entries"]
            if len(entries) == 0:
                raise EntryNotFound()
            return self._entry(entries[0])
        except _LOOKUP_ERRORS:
            raise CollectionNotFound("Failed to fetch entry") from None

    async def get_entries(self, filters: Optional[Mapping[str, Any]] = None) -> List[Entry[T]]:
        """
        Fetch all entries matching an equality filter.

        Args:
            filters: Field values to match; omitted or empty matches all

        Returns:
            Owned entries in backend order (possibly empty)

        Raises:
            Unauthorized: Access token rejected
            CollectionNotFound: Any other failure
        """
        try:
            result = await self._entries_request("PATCH", {"filters": dict(filters or {})}, read=True)
            return [self._entry(values) for values in result["entries"]]
        except _LOOKUP_ERRORS:
            raise CollectionNotFound("Failed to fetch entries") from None

    async def delete_entry_by_id(self, entry_id: Any) -> Any:
        """
        Delete one entry by identifier.

        This cannot be undone.

        Returns:
            The identifier of the deleted entry

        Raises:
            Unauthorized: Access token rejected
            EntryNotFound: Nothing was deleted, or the request failed
        """
        try:
            result = await self._entries_request("DELETE", {"filters": {ID_FIELD: entry_id}})
            deleted = result["deletedEntries"]
        except _LOOKUP_ERRORS:
            raise EntryNotFound("Failed to delete entry") from None

        if deleted == 0:
            raise EntryNotFound("Failed to delete entry")
        return entry_id

    async def delete_entries(self, filters: Optional[Mapping[str, Any]] = None) -> int:
        """
        Delete every entry matching ``filters``.

        This cannot be undone.

        Returns:
            Number of deleted entries; zero is not an error

        Raises:
            Unauthorized: Access token rejected
            EntryNotFound: The request failed
        """
        try:
            result = await self._entries_request("DELETE", {"filters": dict(filters or {})})
            return int(result["deletedEntries"])
        except _LOOKUP_ERRORS + (ValueError,):
            raise EntryNotFound("Failed to delete entries") from None

    async def update_entry_by_id(self, entry_id: Any, data: Mapping[str, Any]) -> Any:
        """
        Merge ``data`` into one entry.

        Returns:
            The identifier of the updated entry

        Raises:
            Unauthorized: Access token rejected
            EntryNotFound: Nothing was modified, or the request failed
        """
        try:
            result = await self._entries_request(
                "PUT", {"filters": {ID_FIELD: entry_id}, "data": dict(data)}
            )
            modified = result["modifiedEntries"]
        except _LOOKUP_ERRORS:
            raise EntryNotFound("Failed to update entry") from None

        if modified == 0:
            raise EntryNotFound("Failed to update entry")
        return entry_id

    async def update_entries(self, filters: Mapping[str, Any], data: Mapping[str, Any]) -> int:
        """
        Merge ``data`` into every entry matching ``filters``.

        Returns:
            Number of modified entries; zero is not an error

        Raises:
            Unauthorized: Access token rejected
            EntryNotFound: The request failed
        """
        try:
            result = await self._entries_request("PUT", {"filters": dict(filters), "data": dict(data)})
            return int(result["modifiedEntries"])
        except _LOOKUP_ERRORS + (ValueError,):
            raise EntryNotFound("Failed to update entries") from None

    def __repr__(self) -> str:
        return f"Collection(name={self._collection_name!r})"
