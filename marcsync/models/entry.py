"""
Entry models: local mirrors of remote records.

BaseEntry is the read-only observed tier; Entry adds the bound transport,
the identifier and the operations that mutate the remote record. Instances
are independent value objects: two entries for the same identifier are not
kept in sync with each other.
"""

import logging
from typing import Any, Dict, Generic, Mapping, MutableMapping, Optional, Type, TypeVar, cast

from marcsync.errors import EntryUpdateFailed, MarcSyncError, Unauthorized
from marcsync.transport import HttpTransport, entries_path

logger = logging.getLogger(__name__)

EntryData = Dict[str, Any]

T = TypeVar('T', bound=MutableMapping)
V = TypeVar('V')

ID_FIELD = "_id"


class BaseEntry(Generic[T]):
    """Read-only view of an entry's values"""

    def __init__(self, values: T, collection_name: str):
        self._values = values
        self._collection_name = collection_name

    def get_values(self) -> T:
        """
        Return the full field mapping.

        The mapping is returned by reference; change it through the update
        operations only.
        """
        return self._values

    def get_value(self, key: str, default: Any = None) -> Any:
        """Return the value stored under ``key``, or ``default``"""
        return self._values.get(key, default)

    def get_value_as(self, key: str, type_: Type[V]) -> Optional[V]:
        """Return the value under ``key`` typed as ``type_`` (no runtime check)"""
        return cast(Optional[V], self._values.get(key))

    def get_collection_name(self) -> str:
        """Collection name as last known to this instance"""
        return self._collection_name

    def __repr__(self) -> str:
        return f"{type(self).__name__}(collection={self._collection_name!r}, values={self._values!r})"


class Entry(BaseEntry[T]):
    """
    Owned entry bound to a credential.

    Local values change only after the backend confirmed the mutation; a
    failed call leaves them untouched.
    """

    def __init__(self, transport: HttpTransport, collection_name: str, values: T):
        super().__init__(values, collection_name)
        self._transport = transport
        self._entry_id = values.get(ID_FIELD)

    @property
    def entry_id(self) -> Any:
        """Identifier assigned by the backend"""
        return self._entry_id

    async def _put(self, data: Mapping[str, Any]) -> None:
        await self._transport.request(
            "PUT",
            entries_path(self._collection_name),
            body={"filters": {ID_FIELD: self._entry_id}, "data": dict(data)}
        )

    async def update_value(self, key: str, value: Any) -> T:
        """
        Update a single field remotely, then locally.

        Returns:
            The full field mapping after the update

        Raises:
            ValueError: ``key`` is the identifier field
            Unauthorized: Access token rejected
            EntryUpdateFailed: Any other failure, with the cause attached
        """
        return await self.update_values({key: value})

    async def update_values(self, values: Mapping[str, Any]) -> T:
        """
        Merge ``values`` into the entry in one round trip.

        Fields not named in ``values`` are left untouched on both sides.

        Returns:
            The full field mapping after the update
        """
        if ID_FIELD in values:
            raise ValueError(f"'{ID_FIELD}' is assigned by the backend and cannot be updated")

        try:
            await self._put(values)
        except Unauthorized:
            raise
        except MarcSyncError as e:
            logger.debug(f"Update of entry {self._entry_id} in '{self._collection_name}' failed: {e}")
            raise EntryUpdateFailed(cause=e) from e

        self._values.update(values)
        return self._values

    async def delete(self) -> None:
        """
        Delete the entry on the backend.

        The instance must not be used afterwards.
        """
        try:
            await self._transport.request(
                "DELETE",
                entries_path(self._collection_name),
                body={"filters": {ID_FIELD: self._entry_id}}
            )
        except Unauthorized:
            raise
        except MarcSyncError as e:
            raise EntryUpdateFailed("Could not delete entry", cause=e) from e

    def __repr__(self) -> str:
        return (
            f"Entry(id={self._entry_id!r}, collection={self._collection_name!r}, "
            f"values={self._values!r})"
        )
