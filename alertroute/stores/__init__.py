"""Dispatch storage backends."""

from alertroute.stores.base import DispatchStore, StoreFactory
from alertroute.stores.memory import MemoryDispatchStore
from alertroute.stores.sql import SqlDispatchStore, sql_store_session

__all__ = [
    "DispatchStore",
    "MemoryDispatchStore",
    "SqlDispatchStore",
    "StoreFactory",
    "sql_store_session",
]
