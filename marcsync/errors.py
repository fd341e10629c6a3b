"""
Error taxonomy for the marcsync client.

Every condition raised by a public operation derives from MarcSyncError.
"""

from typing import Optional


class MarcSyncError(Exception):
    """Base class for all marcsync errors"""
    pass


class Unauthorized(MarcSyncError):
    """The access token was rejected by the backend"""

    def __init__(self, message: str = "Invalid access token"):
        super().__init__(message)


class CollectionNotFound(MarcSyncError):
    """Collection-level operation failed"""

    def __init__(self, message: str = "Failed to fetch collection"):
        super().__init__(message)


class CollectionAlreadyExists(MarcSyncError):
    """Collection could not be created"""

    def __init__(self, message: str = "Collection already exists"):
        super().__init__(message)


class EntryNotFound(MarcSyncError):
    """No entry matched the requested identifier or filter"""

    def __init__(self, message: str = "Failed to fetch entry by Id"):
        super().__init__(message)


class EntryUpdateFailed(MarcSyncError):
    """
    Mutation or deletion of a single entry failed.

    The underlying exception is kept on ``cause`` and chained as
    ``__cause__``.
    """

    def __init__(self, message: str = "Failed to update entry", cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class RequestFailed(MarcSyncError):
    """Transport failure, undecodable body or a falsy ``success`` flag"""

    def __init__(self, message: str = "Request failed", status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ChannelHandshakeFailed(MarcSyncError):
    """The real-time channel could not be established"""

    def __init__(self, message: str = "Real-time channel handshake failed", cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause
