"""
Persistent storage: JSON state files and the image blob store.
"""

from .images import ImageStore
from .persistence import JsonPersistence

__all__ = ["ImageStore", "JsonPersistence"]
