"""Typing indicator: publishing our own state and watching others'."""

import asyncio
from datetime import datetime, timezone

import aiosqlite

from ..config import TYPING_TIMEOUT_SECONDS
from ..context import ChatContext
from ..logging_config import get_logger
from ..models import ChangeEvent, TypingState
from ..models.messages import parse_timestamp
from ..realtime import ANY_EVENT, Channel

logger = get_logger(__name__)

TYPING_TABLE = "typing_indicators"


def typing_topic(group_id: str) -> str:
    return f"typing:{group_id}"


class TypingPublisher:
    """Marks the user as typing on every keystroke.

    The flag is cleared once no keystroke arrived for `timeout` seconds.
    """

    def __init__(
        self,
        context: ChatContext,
        group_id: str,
        timeout: float = TYPING_TIMEOUT_SECONDS,
    ):
        self._context = context
        self._group_id = group_id
        self._timeout = timeout
        self._expiry: asyncio.Task | None = None
        self.is_typing = False

    async def keystroke(self) -> None:
        if not self.is_typing:
            await self._write(True)
        self._rearm()

    async def stop(self) -> None:
        """Clear immediately, e.g. after the message was sent."""
        self._cancel_expiry()
        if self.is_typing:
            await self._write(False)

    async def close(self) -> None:
        await self.stop()

    def _rearm(self) -> None:
        self._cancel_expiry()
        self._expiry = asyncio.create_task(self._expire())

    def _cancel_expiry(self) -> None:
        if self._expiry is not None and not self._expiry.done():
            self._expiry.cancel()
        self._expiry = None

    async def _expire(self) -> None:
        try:
            await asyncio.sleep(self._timeout)
            self._expiry = None
            await self._write(False)
        except asyncio.CancelledError:
            pass
        except Exception as e:
            logger.error("Typing expiry failed: %s", e, exc_info=True)

    async def _write(self, typing: bool) -> None:
        user = self._context.session.get_current_user()
        if user is None:
            return
        self.is_typing = typing
        try:
            await self._context.store.upsert(
                TYPING_TABLE,
                {
                    "group_id": self._group_id,
                    "user_id": user.id,
                    "is_typing": typing,
                    "updated_at": datetime.now(timezone.utc).isoformat(),
                },
                on_conflict=("group_id", "user_id"),
            )
        except aiosqlite.Error as e:
            # Indicator only; the composer keeps working without it.
            logger.warning("Typing state not written: %s", e, extra={"container_id": self._group_id})


class TypingWatcher:
    """Display names of the members currently typing in a group."""

    def __init__(self, context: ChatContext, group_id: str, viewer_id: str | None = None):
        self._context = context
        self._group_id = group_id
        self._viewer_id = viewer_id
        self._typing: dict[str, str] = {}  # user_id -> display name, in arrival order
        self._channel: Channel | None = None

    @property
    def names(self) -> list[str]:
        return list(self._typing.values())

    async def subscribe(self) -> None:
        if self._channel is None:
            self._channel = self._context.realtime.channel(typing_topic(self._group_id)).on(
                ANY_EVENT, TYPING_TABLE, self._on_change, filter={"group_id": self._group_id}
            )
        await self._channel.subscribe()

    async def unsubscribe(self) -> None:
        if self._channel is not None:
            await self._channel.unsubscribe()
            self._channel = None

    async def __aenter__(self) -> "TypingWatcher":
        await self.subscribe()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.unsubscribe()

    async def _on_change(self, event: ChangeEvent) -> None:
        if not event.new:
            return
        state = TypingState(
            container_id=event.new["group_id"],
            user_id=event.new["user_id"],
            is_typing=bool(event.new.get("is_typing")),
            updated_at=parse_timestamp(event.new.get("updated_at"))
            or datetime.now(timezone.utc),
        )
        await self.apply(state)

    async def apply(self, state: TypingState) -> None:
        if state.user_id == self._viewer_id:
            return
        # Re-inserting moves the user to the end of the list
        self._typing.pop(state.user_id, None)
        if state.is_typing:
            await self._context.profiles.resolve([state.user_id])
            self._typing[state.user_id] = self._context.profiles.display_name_for(
                state.user_id
            )

    def describe(self) -> str:
        return describe_typing(self.names)


def describe_typing(names: list[str]) -> str:
    if not names:
        return ""
    if len(names) == 1:
        return f"{names[0]} is typing..."
    shown = ", ".join(names[:2])
    if len(names) > 2:
        return f"{shown} and {len(names) - 2} others are typing..."
    return f"{shown} are typing..."
