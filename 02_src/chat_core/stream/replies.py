"""Reply lookups and forwarding fan-out."""

from typing import Iterable

import aiosqlite

from ..config import FORWARD_PREFIX
from ..context import ChatContext
from ..errors import ChatError, ValidationFailure
from ..logging_config import get_logger
from ..models import (
    ContainerKind,
    ForwardDestination,
    ForwardFailure,
    ForwardResult,
    Message,
    ReplyPreview,
)
from ..profiles import UNKNOWN_NAME

logger = get_logger(__name__)


def resolve_reply(message: Message, messages: Iterable[Message]) -> Message | None:
    """The message `message` replies to, if it is in `messages` and not deleted."""
    target_id = message.reply_to_message_id
    if not target_id or message.is_deleted:
        return None
    for candidate in messages:
        if candidate.id == target_id:
            return None if candidate.is_deleted else candidate
    return None


def reply_preview(
    message: Message, messages: Iterable[Message], names: dict[str, str]
) -> ReplyPreview | None:
    """Banner shown above a reply; `names` maps sender id to display name."""
    target = resolve_reply(message, messages)
    if target is None:
        return None
    return ReplyPreview(
        message_id=target.id,
        sender_name=names.get(target.sender_id, UNKNOWN_NAME),
        content=target.content,
    )


def forwarded_content(message: Message) -> str:
    return f"{FORWARD_PREFIX}{message.content}"


class Forwarder:
    """Copies a message into other groups and conversations, one at a time."""

    def __init__(self, context: ChatContext):
        self._context = context

    async def list_forward_targets(self, query: str = "") -> list[ForwardDestination]:
        """Groups the user belongs to plus their direct conversations.

        A failed lookup raises an error toast and yields no targets.
        """
        try:
            targets = await self._load_targets()
        except (ChatError, aiosqlite.Error, OSError) as e:
            logger.error("Failed to load forward targets: %s", e, exc_info=True)
            self._context.notifier.error(e, fallback="Failed to load chats")
            return []

        needle = query.strip().lower()
        if needle:
            targets = [t for t in targets if needle in t.name.lower()]
        return targets

    async def _load_targets(self) -> list[ForwardDestination]:
        user = self._context.require_user()
        store = self._context.store
        targets: list[ForwardDestination] = []

        memberships = await store.select("group_members", eq={"user_id": user.id})
        group_ids = [m["group_id"] for m in memberships]
        for row in await store.select("groups", in_={"id": group_ids}):
            targets.append(
                ForwardDestination(
                    id=row["id"],
                    kind="group",
                    name=row["name"],
                    avatar_url=row.get("avatar_url"),
                )
            )

        conversations = await store.select(
            "conversations", or_eq={"user1_id": user.id, "user2_id": user.id}
        )
        others = {
            c["id"]: c["user2_id"] if c["user1_id"] == user.id else c["user1_id"]
            for c in conversations
        }
        profiles = await self._context.profiles.resolve(others.values())
        for conversation_id, other_id in others.items():
            profile = profiles.get(other_id)
            targets.append(
                ForwardDestination(
                    id=conversation_id,
                    kind="conversation",
                    name=profile.name if profile else "User",
                    avatar_url=profile.avatar_url if profile else None,
                )
            )
        return targets

    async def forward(
        self,
        message: Message,
        destinations: Iterable[ForwardDestination],
        surface_failures: bool = False,
    ) -> ForwardResult:
        """Insert a forwarded copy into every destination.

        Destinations are tried in order and a failure does not stop the rest.
        One aggregate toast is raised; with `surface_failures` the failed
        destinations get their own error toast as well.
        """
        destinations = list(dict.fromkeys(destinations))
        result = ForwardResult()
        if not destinations:
            return result

        try:
            user = self._context.require_user()
            if message.is_deleted:
                raise ValidationFailure("Deleted messages cannot be forwarded")
        except ChatError as e:
            self._context.notifier.error(e)
            result.failed = [ForwardFailure(d, e.message) for d in destinations]
            return result

        content = forwarded_content(message)
        for destination in destinations:
            kind = (
                ContainerKind.GROUP if destination.kind == "group" else ContainerKind.DIRECT
            )
            row = {
                kind.container_column: destination.id,
                kind.sender_column: user.id,
                "content": content,
            }
            try:
                await self._context.store.insert(kind.table, row)
            except (ChatError, aiosqlite.Error, OSError) as e:
                logger.error(
                    "Forward to %s failed: %s",
                    destination.id,
                    e,
                    exc_info=True,
                    extra={"message_id": message.id},
                )
                result.failed.append(ForwardFailure(destination, str(e)))
                continue
            result.succeeded.append(destination)

        logger.info(
            "Forwarded to %d of %d destinations",
            len(result.succeeded),
            result.attempted,
            extra={"message_id": message.id},
        )
        self._context.notifier.notify("Success", result.summary())
        if surface_failures and result.failed:
            names = ", ".join(f.destination.name or f.destination.id for f in result.failed)
            self._context.notifier.error(f"Could not forward to {names}")
        return result
