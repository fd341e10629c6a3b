"""
Change notification models.

Defines the event kinds pushed over the real-time channel and the
envelopes they arrive in.
"""

import json
from enum import Enum
from typing import Any, Dict, Mapping, Type, Union

from pydantic import BaseModel, ConfigDict, Field


class ClientEvent(str, Enum):
    """Event kinds a client can listen to"""
    ENTRY_CREATED = "entryCreated"
    ENTRY_DELETED = "entryDeleted"
    ENTRY_UPDATED = "entryUpdated"


class BaseEvent(BaseModel):
    """Common envelope: source database, timestamp and numeric type tag"""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    database_id: str = Field(alias="databaseId")
    timestamp: float
    type: int = 0


class EntryValuesData(BaseModel):
    """Payload of created and deleted notifications"""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    collection_name: str = Field(alias="collectionName")
    values: Dict[str, Any]


class EntryChangeData(BaseModel):
    """Payload of updated notifications"""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    collection_name: str = Field(alias="collectionName")
    old_values: Dict[str, Any] = Field(alias="oldValues")
    new_values: Dict[str, Any] = Field(alias="newValues")


class EntryCreatedEvent(BaseEvent):
    data: EntryValuesData


class EntryDeletedEvent(BaseEvent):
    data: EntryValuesData


class EntryUpdatedEvent(BaseEvent):
    data: EntryChangeData


EVENT_MODELS: Dict[ClientEvent, Type[BaseEvent]] = {
    ClientEvent.ENTRY_CREATED: EntryCreatedEvent,
    ClientEvent.ENTRY_DELETED: EntryDeletedEvent,
    ClientEvent.ENTRY_UPDATED: EntryUpdatedEvent,
}


def parse_event(kind: Union[ClientEvent, str], raw: Union[str, bytes, Mapping[str, Any]]) -> BaseEvent:
    """
    Decode one notification.

    The hub delivers each event as a JSON-encoded string argument; an
    already-decoded mapping is accepted too.

    Raises:
        ValueError: Unknown kind, invalid JSON or invalid envelope
    """
    model = EVENT_MODELS[ClientEvent(kind)]
    if isinstance(raw, (str, bytes)):
        raw = json.loads(raw)
    return model.model_validate(raw)
