"""
Storage package for marcsync.

Provides the collection gateway for request/response operations.
"""

from .collection import Collection

__all__ = ["Collection"]
