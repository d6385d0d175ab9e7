"""Live, ordered message list for one group or direct conversation.

The adapter owns the in-memory list of its container. Writes go to the store
first; the row the store hands back (and the change feed echo of it) is merged
into the list by id, so an insert seen twice is only kept once.
"""

import bisect
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Callable

import aiosqlite

from ..attachments import AttachmentPipeline, FileUpload, VoiceRecording
from ..context import ChatContext
from ..errors import (
    ChatError,
    NotFound,
    PermissionDenied,
    ServiceFailure,
    ValidationFailure,
)
from ..logging_config import get_logger
from ..models import (
    ChangeEvent,
    ChangeType,
    ContainerKind,
    Message,
    Result,
    VoiceKind,
    extract_link_preview,
)
from ..models.messages import link_preview_columns
from ..realtime import Channel

logger = get_logger(__name__)


OPERATION_ERRORS = (ChatError, aiosqlite.Error, OSError)

MessagesListener = Callable[[list[Message]], None]


class MessageStreamAdapter:
    """Message stream of a single container."""

    def __init__(
        self,
        context: ChatContext,
        container_kind: ContainerKind,
        container_id: str,
        attachments: AttachmentPipeline | None = None,
    ):
        self._context = context
        self.container_kind = container_kind
        self.container_id = container_id
        self._attachments = attachments or AttachmentPipeline(context.objects)

        self._messages: list[Message] = []
        self._ids: set[str] = set()
        self._channel: Channel | None = None
        self._listeners: list[MessagesListener] = []
        self.loaded = False

    @property
    def messages(self) -> list[Message]:
        """Oldest-first snapshot of the list."""
        return list(self._messages)

    @property
    def subscribed(self) -> bool:
        return self._channel is not None and self._channel.subscribed

    def add_listener(self, listener: MessagesListener) -> None:
        """Called with the new snapshot after every change to the list."""
        self._listeners.append(listener)

    # Subscription
    async def load(self) -> Result[list[Message]]:
        """Replace the list with the container's stored messages."""
        kind = self.container_kind
        try:
            rows = await self._context.store.select(
                kind.table,
                eq={kind.container_column: self.container_id},
                order_by="created_at",
            )
        except OPERATION_ERRORS as e:
            return self._fail(e, "Failed to load messages")

        self._messages = [Message.from_row(row, kind) for row in rows]
        self._ids = {m.id for m in self._messages}
        self.loaded = True
        logger.info(
            "Loaded %d messages",
            len(self._messages),
            extra={"container_id": self.container_id},
        )
        self._changed()
        return Result.success(self.messages)

    async def subscribe(self) -> Result[list[Message]]:
        """Initial load, then follow inserts and updates of the container."""
        result = await self.load()
        if self._channel is None:
            kind = self.container_kind
            row_filter = {kind.container_column: self.container_id}
            self._channel = (
                self._context.realtime.channel(kind.channel_topic(self.container_id))
                .on(ChangeType.INSERT, kind.table, self._on_insert, filter=row_filter)
                .on(ChangeType.UPDATE, kind.table, self._on_update, filter=row_filter)
            )
        await self._channel.subscribe()
        return result

    async def unsubscribe(self) -> None:
        if self._channel is not None:
            await self._channel.unsubscribe()
            self._channel = None

    @asynccontextmanager
    async def mounted(self):
        """Subscription scoped to a `async with` block."""
        await self.subscribe()
        try:
            yield self
        finally:
            await self.unsubscribe()

    # Mutations
    async def send(self, content: str, reply_to_id: str | None = None) -> Result[Message]:
        """Send a text message. Blank input is ignored without a toast."""
        text = content.strip()
        if not text:
            return Result.skip()

        try:
            user = self._context.require_user()
            row = self._base_row(user.id, text, reply_to_id)
            row.update(link_preview_columns(extract_link_preview(text)))
            stored = await self._insert(row)
        except OPERATION_ERRORS as e:
            return self._fail(e, "Failed to send message")

        return Result.success(self._ingest(stored))

    async def send_voice(
        self,
        recording: VoiceRecording | bytes,
        duration_seconds: float | None = None,
        reply_to_id: str | None = None,
    ) -> Result[Message]:
        """Upload a recording to the voice bucket and post a voice message."""
        if isinstance(recording, (bytes, bytearray)):
            recording = VoiceRecording(
                data=bytes(recording), duration_seconds=duration_seconds or 0.0
            )
        duration = (
            duration_seconds if duration_seconds is not None else recording.duration_seconds
        )

        try:
            user = self._context.require_user()
            if not recording.data:
                raise ValidationFailure("Recording is empty")
            uploaded = await self._attachments.upload(recording, user.id, purpose="voice")
            row = self._base_row(user.id, self.container_kind.voice_marker, reply_to_id)
            row.update({"voice_url": uploaded.url, "voice_duration": duration})
            stored = await self._insert(row)
        except OPERATION_ERRORS as e:
            return self._fail(e, "Failed to send voice message")

        return Result.success(self._ingest(stored))

    async def send_file(
        self, upload: FileUpload, reply_to_id: str | None = None
    ) -> Result[Message]:
        """Upload a file (or camera capture) and post it."""
        try:
            user = self._context.require_user()
            uploaded = await self._attachments.upload(upload, user.id, purpose="file")
            is_image = (upload.content_type or "").startswith("image/")
            content = "[Image]" if is_image else f"[{upload.file_name}]"
            row = self._base_row(user.id, content, reply_to_id)
            row.update(
                {
                    "file_url": uploaded.url,
                    "file_name": upload.file_name,
                    "file_size": uploaded.size,
                    "file_type": upload.content_type,
                }
            )
            stored = await self._insert(row)
        except OPERATION_ERRORS as e:
            return self._fail(e, "Failed to send file")

        return Result.success(self._ingest(stored))

    async def edit(self, message_id: str, new_content: str) -> Result[None]:
        """Edit one of the user's own plain-text messages."""
        text = new_content.strip()
        if not text:
            return Result.skip()

        try:
            user = self._context.require_user()
            message = await self._get(message_id)
            if message.sender_id != user.id:
                raise PermissionDenied("You can only edit your own messages")
            if message.is_deleted:
                raise ValidationFailure("Deleted messages cannot be edited")
            if not message.is_plain_text:
                raise ValidationFailure("Only text messages can be edited")

            values = {
                "content": text,
                "edited_at": datetime.now(timezone.utc).isoformat(),
            }
            values.update(link_preview_columns(extract_link_preview(text)))
            rows = await self._context.store.update(
                self.container_kind.table, values, eq={"id": message_id}
            )
            if not rows:
                raise NotFound("Message not found")
        except OPERATION_ERRORS as e:
            return self._fail(e, "Failed to edit message")

        self._replace(Message.from_row(rows[0], self.container_kind))
        self._context.notifier.notify("Success", "Message updated")
        return Result.success()

    async def soft_delete(
        self, message_id: str, attachment_url: str | None = None
    ) -> Result[None]:
        """Replace content with the placeholder and keep the row.

        Deleting an already deleted message changes nothing. A voice binary
        is removed from storage best-effort.
        """
        try:
            user = self._context.require_user()
            message = await self._get(message_id)
            if message.sender_id != user.id:
                raise PermissionDenied("You can only delete your own messages")
            if message.is_deleted:
                return Result.success()

            if isinstance(message.kind, VoiceKind):
                removed = await self._attachments.remove_voice(
                    attachment_url or message.kind.url
                )
                if not removed:
                    logger.warning(
                        "Voice binary not removed",
                        extra={"message_id": message_id},
                    )

            rows = await self._context.store.update(
                self.container_kind.table,
                {"is_deleted": True, "content": self.container_kind.deleted_placeholder},
                eq={"id": message_id},
            )
            if not rows:
                raise NotFound("Message not found")
        except OPERATION_ERRORS as e:
            return self._fail(e, "Failed to delete message")

        self._replace(Message.from_row(rows[0], self.container_kind))
        self._context.notifier.notify("Success", "Message deleted")
        return Result.success()

    def find(self, message_id: str) -> Message | None:
        for message in self._messages:
            if message.id == message_id:
                return message
        return None

    # Change feed
    async def _on_insert(self, event: ChangeEvent) -> None:
        self._ingest(event.new)

    async def _on_update(self, event: ChangeEvent) -> None:
        self._replace(Message.from_row(event.new, self.container_kind))

    # Helpers
    def _base_row(self, sender_id: str, content: str, reply_to_id: str | None) -> dict:
        kind = self.container_kind
        return {
            kind.container_column: self.container_id,
            kind.sender_column: sender_id,
            "content": content,
            "reply_to_message_id": reply_to_id,
        }

    async def _insert(self, row: dict) -> dict:
        stored = await self._context.store.insert(self.container_kind.table, row)
        if self.container_kind is ContainerKind.DIRECT:
            try:
                await self._context.store.update(
                    "conversations",
                    {"last_message_at": stored["created_at"]},
                    eq={"id": self.container_id},
                )
            except aiosqlite.Error as e:
                logger.warning(
                    "Conversation not bumped: %s", e, extra={"container_id": self.container_id}
                )
        return stored

    async def _get(self, message_id: str) -> Message:
        message = self.find(message_id)
        if message is not None:
            return message
        rows = await self._context.store.select(
            self.container_kind.table, eq={"id": message_id}, limit=1
        )
        if not rows:
            raise NotFound("Message not found")
        return Message.from_row(rows[0], self.container_kind)

    def _ingest(self, row: dict) -> Message:
        """Add a stored row unless its id is already in the list."""
        message = Message.from_row(row, self.container_kind)
        if message.id in self._ids:
            return self.find(message.id) or message

        # Equal timestamps keep arrival order
        index = bisect.bisect_right(
            self._messages, message.created_at, key=lambda m: m.created_at
        )
        self._messages.insert(index, message)
        self._ids.add(message.id)
        self._changed()
        return message

    def _replace(self, message: Message) -> None:
        for i, current in enumerate(self._messages):
            if current.id == message.id:
                self._messages[i] = message
                self._changed()
                return

    def _changed(self) -> None:
        snapshot = self.messages
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as e:
                logger.error("Messages listener failed: %s", e, exc_info=True)

    def _fail(self, error: Exception, action: str) -> Result:
        if isinstance(error, ChatError) and not isinstance(error, ServiceFailure):
            logger.warning(
                "%s: %s", action, error, extra={"container_id": self.container_id}
            )
        else:
            logger.error(
                "%s: %s",
                action,
                error,
                exc_info=True,
                extra={"container_id": self.container_id},
            )
        self._context.notifier.error(error, fallback=action)
        return Result.failure(str(error) or action, error)
