"""In-process realtime change feed.

Channels are explicit subscription objects. A channel receives events only
between `subscribe()` and `unsubscribe()`; using it as an async context
manager ties that window to a scope so a mounted surface cannot leak it.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Protocol

from ..logging_config import get_logger
from ..models import ChangeEvent, ChangeType

logger = get_logger(__name__)


ChangeHandler = Callable[[ChangeEvent], Awaitable[None]]

ANY_EVENT = "*"


@dataclass
class Binding:
    """A handler registered for one table (and optional row filter)."""

    event: str  # a ChangeType value or "*"
    table: str
    handler: ChangeHandler
    filter: dict[str, Any] | None = None

    def matches(self, event: ChangeEvent) -> bool:
        if event.table != self.table:
            return False
        if self.event != ANY_EVENT and self.event != event.event_type.value:
            return False
        if self.filter:
            record = event.record
            return all(record.get(column) == value for column, value in self.filter.items())
        return True


class IRealtime(Protocol):
    """Change feed: channel(topic).on(...).subscribe()."""

    def channel(self, topic: str) -> "Channel":
        """Create a channel for a topic (not yet subscribed)."""
        ...

    async def publish(self, event: ChangeEvent) -> None:
        """Deliver a change to every subscribed channel that matches it."""
        ...


class Channel:
    """A named set of bindings with an explicit subscription window."""

    def __init__(self, hub: "RealtimeHub", topic: str):
        self._hub = hub
        self.topic = topic
        self._bindings: list[Binding] = []
        self._subscribed = False

    def on(
        self,
        event: ChangeType | str,
        table: str,
        handler: ChangeHandler,
        filter: dict[str, Any] | None = None,
    ) -> "Channel":
        """Register a handler; returns the channel for chaining."""
        event_name = event.value if isinstance(event, ChangeType) else event
        self._bindings.append(Binding(event_name, table, handler, filter))
        return self

    @property
    def subscribed(self) -> bool:
        return self._subscribed

    def handlers_for(self, event: ChangeEvent) -> list[ChangeHandler]:
        return [b.handler for b in self._bindings if b.matches(event)]

    async def subscribe(self) -> "Channel":
        if not self._subscribed:
            self._hub._attach(self)
            self._subscribed = True
        return self

    async def unsubscribe(self) -> None:
        if self._subscribed:
            self._hub._detach(self)
            self._subscribed = False

    async def __aenter__(self) -> "Channel":
        return await self.subscribe()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.unsubscribe()


class RealtimeHub:
    """In-memory pub/sub for row changes, keyed by channel topic."""

    def __init__(self):
        self._channels: dict[str, Channel] = {}

    def channel(self, topic: str) -> Channel:
        return Channel(self, topic)

    @property
    def active_topics(self) -> list[str]:
        return sorted(self._channels)

    async def publish(self, event: ChangeEvent) -> None:
        """Call every matching handler of every subscribed channel."""
        handlers = [
            handler
            for channel in list(self._channels.values())
            for handler in channel.handlers_for(event)
        ]
        if not handlers:
            return

        results = await asyncio.gather(
            *[handler(event) for handler in handlers],
            return_exceptions=True,
        )

        for i, result in enumerate(results):
            if isinstance(result, Exception):
                logger.error(
                    "Error in change handler %s for %s on %s: %s",
                    i,
                    event.event_type.value,
                    event.table,
                    result,
                )

    async def close(self) -> None:
        """Drop all channels; anything still open at shutdown is a leak."""
        for topic, channel in list(self._channels.items()):
            logger.warning("Channel %s still subscribed at shutdown", topic)
            await channel.unsubscribe()

    def _attach(self, channel: Channel) -> None:
        previous = self._channels.get(channel.topic)
        if previous is not None and previous is not channel:
            # Same rule as the hosted feed: one live channel per topic.
            logger.warning("Replacing live channel %s", channel.topic)
            previous._subscribed = False
        self._channels[channel.topic] = channel

    def _detach(self, channel: Channel) -> None:
        if self._channels.get(channel.topic) is channel:
            del self._channels[channel.topic]
