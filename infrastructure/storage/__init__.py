"""
Storage infrastructure - durable, per-browser key-value state.
"""

from .key_value_store import KeyValueStorage, MemoryKeyValueStorage, SQLiteKeyValueStorage

__all__ = ['KeyValueStorage', 'MemoryKeyValueStorage', 'SQLiteKeyValueStorage']
