"""One-to-one conversations."""

from dataclasses import dataclass
from datetime import datetime

import aiosqlite

from ..context import ChatContext
from ..errors import ChatError, ValidationFailure
from ..logging_config import get_logger
from ..models import Result
from ..models.messages import parse_timestamp

logger = get_logger(__name__)


@dataclass
class ConversationSummary:
    id: str
    other_user_id: str
    other_name: str
    other_avatar_url: str | None
    last_message_at: datetime | None


class ConversationDirectory:
    """Direct conversations of the current user.

    A pair of users shares exactly one conversation; the two ids are stored
    in sorted order.
    """

    def __init__(self, context: ChatContext):
        self._context = context

    async def get_or_create_conversation(self, other_user_id: str) -> Result[str]:
        try:
            user = self._context.require_user()
            if other_user_id == user.id:
                raise ValidationFailure("Cannot start a conversation with yourself")

            user1, user2 = sorted([user.id, other_user_id])
            existing = await self._context.store.select(
                "conversations", eq={"user1_id": user1, "user2_id": user2}, limit=1
            )
            if existing:
                return Result.success(existing[0]["id"])

            stored = await self._context.store.insert(
                "conversations", {"user1_id": user1, "user2_id": user2}
            )
        except (ChatError, aiosqlite.Error) as e:
            logger.error("Failed to create conversation: %s", e)
            self._context.notifier.error(e, fallback="Failed to create conversation")
            return Result.failure(str(e), e)

        logger.info("Created conversation", extra={"container_id": stored["id"]})
        return Result.success(stored["id"])

    async def list_conversations(self) -> list[ConversationSummary]:
        """Most recently active first; never-used conversations last."""
        user = self._context.session.get_current_user()
        if user is None:
            return []

        rows = await self._context.store.select(
            "conversations",
            or_eq={"user1_id": user.id, "user2_id": user.id},
            order_by="last_message_at",
            descending=True,
        )
        others = [
            row["user2_id"] if row["user1_id"] == user.id else row["user1_id"]
            for row in rows
        ]
        profiles = await self._context.profiles.resolve(others)

        summaries = []
        for row, other_id in zip(rows, others):
            profile = profiles.get(other_id)
            summaries.append(
                ConversationSummary(
                    id=row["id"],
                    other_user_id=other_id,
                    other_name=profile.name if profile else "User",
                    other_avatar_url=profile.avatar_url if profile else None,
                    last_message_at=parse_timestamp(row.get("last_message_at")),
                )
            )
        return summaries

    async def delete_conversation(self, conversation_id: str) -> Result[None]:
        try:
            self._context.require_user()
            await self._context.store.delete("conversations", eq={"id": conversation_id})
        except (ChatError, aiosqlite.Error) as e:
            logger.error("Failed to delete conversation: %s", e)
            self._context.notifier.error(e, fallback="Failed to delete conversation")
            return Result.failure(str(e), e)

        self._context.notifier.notify("Success", "Conversation deleted")
        return Result.success()
