"""Render-only view models. Recomputed on every render pass, never persisted."""

from dataclasses import dataclass, field
from datetime import datetime

from .messages import Message


@dataclass(frozen=True)
class CollageGroup:
    """Consecutive image messages rendered as one 2x2 grid."""

    messages: tuple[Message, ...]

    @property
    def message_ids(self) -> tuple[str, ...]:
        return tuple(m.id for m in self.messages)

    @property
    def leader_id(self) -> str:
        return self.messages[0].id

    @property
    def image_urls(self) -> list[str]:
        return [m.attachment.url for m in self.messages if m.attachment]


@dataclass(frozen=True)
class RenderItem:
    """One slot of the message list: a single message or a collage."""

    message: Message
    collage: CollageGroup | None = None


@dataclass
class ReplyPreview:
    """Inline quotation of the message being replied to."""

    message_id: str
    sender_name: str
    content: str


@dataclass
class RenderedMessage:
    """Everything a chat surface needs to draw one list slot."""

    message: Message
    sender_name: str
    sender_avatar_url: str | None
    is_own: bool
    presence: str
    reply: ReplyPreview | None = None
    attachment_url: str | None = None  # freshly signed on every render
    collage_urls: list[str] = field(default_factory=list)
    is_edited: bool = False
    actions: tuple[str, ...] = ()


@dataclass
class TypingState:
    """Whether a user is composing in a container."""

    container_id: str
    user_id: str
    is_typing: bool
    updated_at: datetime
