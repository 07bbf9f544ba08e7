"""
Models package — re-exports Base and all models.

Import models here so `Base.metadata.create_all` picks up every table.
"""

from ordersync.db.models.base import Base
from ordersync.db.models.kv_entry import KeyValueEntry

__all__ = [
    "Base",
    "KeyValueEntry",
]
