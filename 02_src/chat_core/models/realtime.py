"""Realtime change feed data models."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class ChangeType(str, Enum):
    """Row change kinds delivered by the change feed."""

    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


@dataclass
class ChangeEvent:
    """A single row change on a store table."""

    table: str
    event_type: ChangeType
    new: dict  # empty for DELETE
    old: dict  # empty for INSERT
    timestamp: datetime

    @property
    def record(self) -> dict:
        """The row the change is about (new row, or old row on DELETE)."""
        return self.new or self.old
