"""Client-side cache mirroring one user's machine data."""

from .key_value import FileKeyValueStore, KeyValueStore, MemoryKeyValueStore
from .machine_data_cache import CACHE_KEY, MachineDataCache
from .view import CacheAction, CacheActionType, CacheView, EMPTY_VIEW, reduce

__all__ = [
    "CACHE_KEY",
    "CacheAction",
    "CacheActionType",
    "CacheView",
    "EMPTY_VIEW",
    "FileKeyValueStore",
    "KeyValueStore",
    "MachineDataCache",
    "MemoryKeyValueStore",
    "reduce",
]
