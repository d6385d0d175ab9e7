"""Object storage module."""

from .object_storage import IObjectStorage, LocalObjectStorage

__all__ = ["IObjectStorage", "LocalObjectStorage"]
