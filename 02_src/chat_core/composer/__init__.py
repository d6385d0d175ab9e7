"""Composer module."""

from .mentions import MentionAutocomplete
from .typing_state import TypingPublisher, TypingWatcher, describe_typing, typing_topic

__all__ = [
    "MentionAutocomplete",
    "TypingPublisher",
    "TypingWatcher",
    "describe_typing",
    "typing_topic",
]
