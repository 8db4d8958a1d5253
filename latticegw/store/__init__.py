"""Read access to cluster state."""

from latticegw.store.base import NotFoundError, ObjectStore, StoreError, WatchableStore, WatchEvent, get_or_none
from latticegw.store.decode import DecodeError, decode

__all__ = [
    "DecodeError",
    "NotFoundError",
    "ObjectStore",
    "StoreError",
    "WatchEvent",
    "WatchableStore",
    "decode",
    "get_or_none",
]
