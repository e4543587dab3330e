"""存储层基础设施"""

from .store import (
    BaseStore,
    ThreadSafeConnectionMixin,
    get_database_url,
    get_store_instance,
    reset_store_instance,
)

__all__ = [
    "BaseStore",
    "ThreadSafeConnectionMixin",
    "get_database_url",
    "get_store_instance",
    "reset_store_instance",
]
