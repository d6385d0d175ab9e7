"""Pending group invitations of the signed-in user, kept live."""

from dataclasses import dataclass
from datetime import datetime

import aiosqlite

from ..context import ChatContext
from ..errors import ChatError, NotFound, PermissionDenied, ValidationFailure
from ..logging_config import get_logger
from ..models import ChangeEvent, Result
from ..models.messages import parse_timestamp
from ..realtime import ANY_EVENT, Channel

logger = get_logger(__name__)

INVITATIONS_TABLE = "group_invitations"
PENDING = "pending"


def invitations_topic(user_id: str) -> str:
    return f"invitations:{user_id}"


@dataclass
class Invitation:
    id: str
    group_id: str
    group_name: str
    invited_by: str
    inviter_name: str
    created_at: datetime | None


class InvitationInbox:
    """Pending invitations, refreshed on every change to the user's rows."""

    def __init__(self, context: ChatContext):
        self._context = context
        self._pending: list[Invitation] = []
        self._channel: Channel | None = None

    @property
    def pending(self) -> list[Invitation]:
        return list(self._pending)

    async def subscribe(self) -> None:
        user = self._context.require_user()
        if self._channel is None:
            self._channel = self._context.realtime.channel(invitations_topic(user.id)).on(
                ANY_EVENT,
                INVITATIONS_TABLE,
                self._on_change,
                filter={"invited_user_id": user.id},
            )
        await self._channel.subscribe()
        await self.refresh()

    async def unsubscribe(self) -> None:
        if self._channel is not None:
            await self._channel.unsubscribe()
            self._channel = None

    async def _on_change(self, event: ChangeEvent) -> None:
        await self.refresh()

    async def refresh(self) -> list[Invitation]:
        """Newest first; on failure the previous list is kept."""
        try:
            user = self._context.require_user()
            rows = await self._context.store.select(
                INVITATIONS_TABLE,
                eq={"invited_user_id": user.id, "status": PENDING},
                order_by="created_at",
                descending=True,
            )
            groups = await self._context.store.select(
                "groups", in_={"id": [row["group_id"] for row in rows]}
            )
            await self._context.profiles.resolve(row["invited_by"] for row in rows)
        except (ChatError, aiosqlite.Error) as e:
            logger.error("Failed to load invitations: %s", e, exc_info=True)
            self._context.notifier.error(e, fallback="Failed to load invitations")
            return self.pending

        group_names = {g["id"]: g["name"] for g in groups}
        self._pending = [
            Invitation(
                id=row["id"],
                group_id=row["group_id"],
                group_name=group_names.get(row["group_id"], "Group"),
                invited_by=row["invited_by"],
                inviter_name=self._context.profiles.display_name_for(row["invited_by"]),
                created_at=parse_timestamp(row.get("created_at")),
            )
            for row in rows
        ]
        return self.pending

    async def accept(self, invitation_id: str) -> Result[None]:
        """Mark accepted and join the group."""
        return await self._respond(invitation_id, accept=True)

    async def decline(self, invitation_id: str) -> Result[None]:
        return await self._respond(invitation_id, accept=False)

    async def _respond(self, invitation_id: str, accept: bool) -> Result[None]:
        store = self._context.store
        try:
            user = self._context.require_user()
            rows = await store.select(INVITATIONS_TABLE, eq={"id": invitation_id}, limit=1)
            if not rows:
                raise NotFound("Invitation not found")
            invitation = rows[0]
            if invitation["invited_user_id"] != user.id:
                raise PermissionDenied("This invitation is not addressed to you")
            if invitation["status"] != PENDING:
                raise ValidationFailure("Invitation was already answered")

            await store.update(
                INVITATIONS_TABLE,
                {"status": "accepted" if accept else "rejected"},
                eq={"id": invitation_id},
            )
            if accept:
                await store.upsert(
                    "group_members",
                    {"group_id": invitation["group_id"], "user_id": user.id, "role": "member"},
                    on_conflict=("group_id", "user_id"),
                )
        except (ChatError, aiosqlite.Error) as e:
            logger.error("Failed to answer invitation %s: %s", invitation_id, e)
            self._context.notifier.error(e, fallback="Failed to answer invitation")
            return Result.failure(str(e), e)

        self._context.notifier.notify(
            "Success", "Invitation accepted!" if accept else "Invitation rejected."
        )
        await self.refresh()
        return Result.success()
