"""Profiles module."""

from .presence import describe, is_online, relative_time
from .resolver import UNKNOWN_NAME, ProfileCache, ProfileResolver

__all__ = [
    "ProfileCache",
    "ProfileResolver",
    "UNKNOWN_NAME",
    "describe",
    "is_online",
    "relative_time",
]
