"""Storage module."""

from .storage import ChangeListener, IStore, Storage

__all__ = ["ChangeListener", "IStore", "Storage"]
