"""Pinned messages of a group."""

from dataclasses import dataclass
from datetime import datetime

import aiosqlite

from ..context import ChatContext
from ..errors import ChatError, NotFound, ValidationFailure
from ..logging_config import get_logger
from ..models import ContainerKind, Result
from ..models.messages import parse_timestamp

logger = get_logger(__name__)


@dataclass
class PinnedMessage:
    id: str
    group_id: str
    message_id: str
    pinned_by: str
    created_at: datetime | None
    content: str


class PinBoard:
    """Pin, unpin and list the pinned messages of one group."""

    def __init__(self, context: ChatContext, group_id: str):
        self._context = context
        self._group_id = group_id

    async def pin(self, message_id: str) -> Result[str]:
        try:
            user = self._context.require_user()
            rows = await self._context.store.select(
                "messages", eq={"id": message_id, "group_id": self._group_id}, limit=1
            )
            if not rows:
                raise NotFound("Message not found")
            if rows[0].get("is_deleted"):
                raise ValidationFailure("Deleted messages cannot be pinned")

            existing = await self._context.store.select(
                "pinned_messages",
                eq={"group_id": self._group_id, "message_id": message_id},
                limit=1,
            )
            if existing:
                return Result.success(existing[0]["id"])

            stored = await self._context.store.insert(
                "pinned_messages",
                {
                    "group_id": self._group_id,
                    "message_id": message_id,
                    "pinned_by": user.id,
                },
            )
        except (ChatError, aiosqlite.Error) as e:
            return self._fail(e, "Failed to pin message")

        logger.info("Pinned message", extra={"container_id": self._group_id, "message_id": message_id})
        return Result.success(stored["id"])

    async def unpin(self, pinned_id: str) -> Result[None]:
        try:
            self._context.require_user()
            await self._context.store.delete(
                "pinned_messages", eq={"id": pinned_id, "group_id": self._group_id}
            )
        except (ChatError, aiosqlite.Error) as e:
            return self._fail(e, "Failed to unpin message")
        return Result.success()

    async def list_pinned(self) -> list[PinnedMessage]:
        """Newest pin first; content falls back to the deleted placeholder."""
        pins = await self._context.store.select(
            "pinned_messages",
            eq={"group_id": self._group_id},
            order_by="created_at",
            descending=True,
        )
        if not pins:
            return []

        rows = await self._context.store.select(
            "messages", in_={"id": [p["message_id"] for p in pins]}
        )
        contents = {
            row["id"]: row["content"] for row in rows if not row.get("is_deleted")
        }
        placeholder = ContainerKind.GROUP.deleted_placeholder
        return [
            PinnedMessage(
                id=p["id"],
                group_id=p["group_id"],
                message_id=p["message_id"],
                pinned_by=p["pinned_by"],
                created_at=parse_timestamp(p.get("created_at")),
                content=contents.get(p["message_id"], placeholder),
            )
            for p in pins
        ]

    def _fail(self, error: Exception, action: str) -> Result:
        logger.error("%s: %s", action, error, extra={"container_id": self._group_id})
        self._context.notifier.error(error, fallback=action)
        return Result.failure(str(error) or action, error)
