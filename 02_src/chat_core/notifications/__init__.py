"""Notifications module."""

from .fan_in import NotificationFanIn, summarize
from .notifier import INotifier, Notifier

__all__ = ["INotifier", "NotificationFanIn", "Notifier", "summarize"]
