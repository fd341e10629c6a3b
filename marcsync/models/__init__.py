"""
Data models for marcsync

Entries, change notification events and client settings.
"""

from .config import ClientSettings
from .entry import BaseEntry, Entry, EntryData
from .events import (
    ClientEvent, BaseEvent, EntryCreatedEvent, EntryDeletedEvent, EntryUpdatedEvent, parse_event
)

__all__ = [
    # Entries
    "BaseEntry",
    "Entry",
    "EntryData",

    # Events
    "ClientEvent",
    "BaseEvent",
    "EntryCreatedEvent",
    "EntryDeletedEvent",
    "EntryUpdatedEvent",
    "parse_event",

    # Configuration
    "ClientSettings",
]
