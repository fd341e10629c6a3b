"""
marcsync - Python client for the MarcSync document database.

Collections of schema-less entries over HTTP, plus real-time change
notifications over a persistent hub connection.
"""

__version__ = "1.0.0"

from .client import Client
from .errors import (
    MarcSyncError,
    Unauthorized,
    CollectionNotFound,
    CollectionAlreadyExists,
    EntryNotFound,
    EntryUpdateFailed,
    ChannelHandshakeFailed,
)
from .models import BaseEntry, Entry, EntryData, ClientEvent, ClientSettings
from .storage import Collection
from .sync import ChannelState

__all__ = [
    "Client",
    "Collection",
    "BaseEntry",
    "Entry",
    "EntryData",
    "ClientEvent",
    "ClientSettings",
    "ChannelState",
    "MarcSyncError",
    "Unauthorized",
    "CollectionNotFound",
    "CollectionAlreadyExists",
    "EntryNotFound",
    "EntryUpdateFailed",
    "ChannelHandshakeFailed",
    "__version__",
]
