"""One mounted chat view: the stream plus everything needed to draw it."""

from contextlib import asynccontextmanager
from datetime import datetime

import aiosqlite

from .attachments import AttachmentPipeline
from .composer import MentionAutocomplete, TypingPublisher, TypingWatcher
from .context import ChatContext
from .errors import ChatError
from .logging_config import get_logger
from .models import (
    ContainerKind,
    DeletedKind,
    FileKind,
    Message,
    RenderedMessage,
    VoiceKind,
)
from .notifications import NotificationFanIn
from .profiles import describe
from .stream import Forwarder, MessageStreamAdapter, group, render_plan, reply_preview

logger = get_logger(__name__)


def available_actions(message: Message, viewer_id: str | None) -> tuple[str, ...]:
    """Message menu entries; deleted messages offer none."""
    if isinstance(message.kind, DeletedKind):
        return ()
    actions = ["reply", "forward"]
    if viewer_id is not None and message.sender_id == viewer_id:
        if message.is_plain_text:
            actions.append("edit")
        actions.append("delete")
    return tuple(actions)


class ChatSurface:
    """Composes stream, profiles, collages, replies and presence for a container."""

    def __init__(
        self,
        context: ChatContext,
        container_kind: ContainerKind,
        container_id: str,
        title: str = "",
        member_ids: list[str] | None = None,
        carry_remainder: bool = False,
    ):
        self._context = context
        self.container_kind = container_kind
        self.container_id = container_id
        self.title = title
        self._carry_remainder = carry_remainder

        self.attachments = AttachmentPipeline(context.objects)
        self.stream = MessageStreamAdapter(
            context, container_kind, container_id, attachments=self.attachments
        )
        self.forwarder = Forwarder(context)
        self.mentions = MentionAutocomplete(
            context.profiles,
            scope_ids=member_ids if container_kind is ContainerKind.GROUP else None,
        )

        viewer_id = self._viewer_id()
        self.fan_in = NotificationFanIn(context.notifier, viewer_id or "", title or "New message")
        self.typing: TypingPublisher | None = None
        self.typing_watcher: TypingWatcher | None = None
        if container_kind is ContainerKind.GROUP:
            self.typing = TypingPublisher(context, container_id)
            self.typing_watcher = TypingWatcher(context, container_id, viewer_id)

    def _viewer_id(self) -> str | None:
        user = self._context.session.get_current_user()
        return user.id if user else None

    async def mount(self) -> None:
        await self.stream.subscribe()
        self.fan_in.prime(self.stream.messages)
        self.stream.add_listener(self.fan_in.observe)
        if self.typing_watcher is not None:
            await self.typing_watcher.subscribe()
        logger.info("Mounted surface", extra={"container_id": self.container_id})

    async def unmount(self) -> None:
        if self.typing is not None:
            await self.typing.close()
        if self.typing_watcher is not None:
            await self.typing_watcher.unsubscribe()
        await self.stream.unsubscribe()

    @asynccontextmanager
    async def mounted(self):
        await self.mount()
        try:
            yield self
        finally:
            await self.unmount()

    async def render(self, now: datetime | None = None) -> list[RenderedMessage]:
        """View models in list order; profiles fetched for distinct senders."""
        messages = self.stream.messages
        viewer_id = self._viewer_id()

        try:
            profiles = await self._context.profiles.resolve(m.sender_id for m in messages)
        except (ChatError, aiosqlite.Error, OSError) as e:
            logger.error("Failed to load profiles: %s", e, exc_info=True)
            self._context.notifier.error(e, fallback="Failed to load profiles")
            cache = self._context.profile_cache
            profiles = {m.sender_id: cache.get(m.sender_id) for m in messages if m.sender_id in cache}
        names = {
            sender_id: self._context.profiles.display_name_for(sender_id)
            for sender_id in {m.sender_id for m in messages}
        }

        groups = group(messages, carry_remainder=self._carry_remainder)
        rendered = []
        for item in render_plan(messages, groups):
            message = item.message
            profile = profiles.get(message.sender_id)
            deleted = isinstance(message.kind, DeletedKind)

            collage_urls = []
            if item.collage is not None:
                collage_urls = [
                    self.attachments.view_url(m.attachment)
                    for m in item.collage.messages
                    if m.attachment is not None
                ]

            rendered.append(
                RenderedMessage(
                    message=message,
                    sender_name=names[message.sender_id],
                    sender_avatar_url=profile.avatar_url if profile else None,
                    is_own=message.sender_id == viewer_id,
                    presence=describe(profile.last_seen_at if profile else None, now),
                    reply=None if deleted else reply_preview(message, messages, names),
                    collage_urls=collage_urls,
                    attachment_url=self._attachment_url(message),
                    is_edited=message.edited_at is not None and not deleted,
                    actions=available_actions(message, viewer_id),
                )
            )
        return rendered

    def _attachment_url(self, message: Message) -> str | None:
        if isinstance(message.kind, (VoiceKind, FileKind)) and message.attachment:
            return self.attachments.view_url(message.attachment)
        return None

    # Composer
    async def on_input_change(self, text: str) -> None:
        if self.typing is not None and text:
            await self.typing.keystroke()
        await self.mentions.on_input_change(text)

    async def submit(self, text: str, reply_to_id: str | None = None):
        if self.typing is not None:
            await self.typing.stop()
        result = await self.stream.send(text, reply_to_id)
        if result.ok:
            self.mentions.dismiss()
        return result
