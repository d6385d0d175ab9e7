"""Realtime module."""

from .hub import ANY_EVENT, Channel, ChangeHandler, IRealtime, RealtimeHub

__all__ = ["ANY_EVENT", "Channel", "ChangeHandler", "IRealtime", "RealtimeHub"]
