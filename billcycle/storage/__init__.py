"""Async JSON document storage."""

from billcycle.storage.json_store import JsonStore
from billcycle.storage.locks import KeyedMutex

__all__ = [
    "JsonStore",
    "KeyedMutex",
]
