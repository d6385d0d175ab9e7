"""Read receipts."""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Literal

import aiosqlite

from ..context import ChatContext
from ..logging_config import get_logger
from ..models import ContainerKind, Message

logger = get_logger(__name__)

ReceiptLevel = Literal["sent", "delivered", "read"]


@dataclass
class ReceiptStatus:
    level: ReceiptLevel
    tooltip: str


def reads_table(kind: ContainerKind) -> str:
    return "message_reads" if kind is ContainerKind.GROUP else "dm_reads"


def receipt_status(
    readers: Iterable[str], delivered: bool = True, show_names: bool = False
) -> ReceiptStatus:
    """Tick state of an own message; `readers` are display names."""
    readers = list(readers)
    if readers:
        if show_names:
            return ReceiptStatus("read", f"Read by {', '.join(readers)}")
        return ReceiptStatus("read", "Read")
    if delivered:
        return ReceiptStatus("delivered", "Delivered")
    return ReceiptStatus("sent", "Sent")


class ReadReceipts:
    """Records and looks up who has read which messages of a container."""

    def __init__(self, context: ChatContext, container_kind: ContainerKind):
        self._context = context
        self._kind = container_kind

    async def mark_read(self, messages: Iterable[Message]) -> int:
        """Mark other people's messages as read by the current user."""
        user = self._context.session.get_current_user()
        if user is None:
            return 0

        table = reads_table(self._kind)
        now = datetime.now(timezone.utc).isoformat()
        marked = 0
        for message in messages:
            if message.sender_id == user.id:
                continue
            try:
                await self._context.store.upsert(
                    table,
                    {"message_id": message.id, "user_id": user.id, "read_at": now},
                    on_conflict=("message_id", "user_id"),
                )
            except aiosqlite.Error as e:
                logger.warning("Read receipt not stored: %s", e, extra={"message_id": message.id})
                continue
            marked += 1
        return marked

    async def readers(self, messages: Iterable[Message]) -> dict[str, list[str]]:
        """Reader user ids per message id, excluding the sender."""
        messages = list(messages)
        senders = {m.id: m.sender_id for m in messages}
        rows = await self._context.store.select(
            reads_table(self._kind), in_={"message_id": list(senders)}, order_by="read_at"
        )
        result: dict[str, list[str]] = {message_id: [] for message_id in senders}
        for row in rows:
            if row["user_id"] != senders[row["message_id"]]:
                result[row["message_id"]].append(row["user_id"])
        return result

    async def status_for(self, message: Message, show_names: bool = False) -> ReceiptStatus:
        reader_ids = (await self.readers([message]))[message.id]
        await self._context.profiles.resolve(reader_ids)
        names = [self._context.profiles.display_name_for(uid) for uid in reader_ids]
        return receipt_status(names, show_names=show_names)
