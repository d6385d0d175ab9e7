"""Message-related data models.

Group messages (`messages` table) and direct messages (`direct_messages`
table) share one `Message` shape. The payload variant is resolved once, when a
row is ingested, into one of the `*Kind` classes below so that rendering code
never has to check optional columns.
"""

import re
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Union
from urllib.parse import urlparse

URL_PATTERN = re.compile(r"https?://[^\s]+")


class ContainerKind(str, Enum):
    """Scoping unit of a message stream."""

    GROUP = "group"
    DIRECT = "direct"

    @property
    def table(self) -> str:
        return "messages" if self is ContainerKind.GROUP else "direct_messages"

    @property
    def container_column(self) -> str:
        return "group_id" if self is ContainerKind.GROUP else "conversation_id"

    @property
    def sender_column(self) -> str:
        return "user_id" if self is ContainerKind.GROUP else "sender_id"

    @property
    def deleted_placeholder(self) -> str:
        return "Message deleted" if self is ContainerKind.GROUP else "[Message deleted]"

    @property
    def voice_marker(self) -> str:
        return "Voice message" if self is ContainerKind.GROUP else "[Voice Message]"

    def channel_topic(self, container_id: str) -> str:
        """Realtime topic name for a container's message feed."""
        if self is ContainerKind.GROUP:
            return f"messages:{container_id}"
        return f"direct-messages-{container_id}"


@dataclass(frozen=True)
class Attachment:
    """Content descriptor of an uploaded binary."""

    url: str
    file_name: str | None = None
    file_type: str | None = None  # MIME
    file_size: int | None = None
    voice_duration_seconds: float | None = None

    @property
    def is_image(self) -> bool:
        return bool(self.file_type and self.file_type.startswith("image/"))

    @property
    def is_voice(self) -> bool:
        return self.voice_duration_seconds is not None


@dataclass(frozen=True)
class LinkPreview:
    """Preview of the first link found in a message."""

    url: str
    title: str | None = None
    description: str | None = None
    image_url: str | None = None


@dataclass(frozen=True)
class TextKind:
    """Plain text message."""


@dataclass(frozen=True)
class VoiceKind:
    """Voice recording; `url` is the storage path in the voice bucket."""

    url: str
    duration_seconds: float | None


@dataclass(frozen=True)
class FileKind:
    """File, image or camera capture."""

    attachment: Attachment

    @property
    def is_image(self) -> bool:
        return self.attachment.is_image


@dataclass(frozen=True)
class LinkKind:
    """Text message carrying a link preview."""

    preview: LinkPreview


@dataclass(frozen=True)
class DeletedKind:
    """Soft-deleted message; only the placeholder is rendered."""


MessageKind = Union[TextKind, VoiceKind, FileKind, LinkKind, DeletedKind]


@dataclass
class Message:
    """A single message in a group or a direct conversation."""

    id: str
    container_id: str
    container_kind: ContainerKind
    sender_id: str
    content: str
    created_at: datetime
    edited_at: datetime | None = None
    is_deleted: bool = False
    attachment: Attachment | None = None
    reply_to_message_id: str | None = None
    link_preview: LinkPreview | None = None
    kind: MessageKind | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if self.kind is None:
            self.kind = resolve_kind(self)

    @property
    def is_plain_text(self) -> bool:
        """Only plain text messages (with or without a link) are editable."""
        return isinstance(self.kind, (TextKind, LinkKind))

    @property
    def is_image(self) -> bool:
        return isinstance(self.kind, FileKind) and self.kind.is_image

    @property
    def kind_name(self) -> str:
        """'text', 'voice', 'file', 'link' or 'deleted'."""
        return type(self.kind).__name__.removesuffix("Kind").lower()

    def with_changes(self, **changes: Any) -> "Message":
        """Copy with changed fields; the payload kind is resolved again."""
        return replace(self, kind=None, **changes)

    @classmethod
    def from_row(cls, row: dict, container_kind: ContainerKind) -> "Message":
        """Normalize a `messages` / `direct_messages` row."""
        attachment = None
        if row.get("voice_url"):
            attachment = Attachment(
                url=row["voice_url"],
                file_type="audio/webm",
                voice_duration_seconds=float(row.get("voice_duration") or 0),
            )
        elif row.get("file_url"):
            attachment = Attachment(
                url=row["file_url"],
                file_name=row.get("file_name"),
                file_type=row.get("file_type"),
                file_size=row.get("file_size"),
            )

        link_preview = None
        if row.get("link_url"):
            link_preview = LinkPreview(
                url=row["link_url"],
                title=row.get("link_title"),
                description=row.get("link_description"),
                image_url=row.get("link_image"),
            )

        return cls(
            id=row["id"],
            container_id=row[container_kind.container_column],
            container_kind=container_kind,
            sender_id=row[container_kind.sender_column],
            content=row.get("content") or "",
            created_at=parse_timestamp(row["created_at"]),
            edited_at=parse_timestamp(row.get("edited_at")),
            is_deleted=bool(row.get("is_deleted")),
            attachment=attachment,
            reply_to_message_id=row.get("reply_to_message_id"),
            link_preview=link_preview,
        )

    def to_row(self) -> dict:
        """Row for inserting into the container's table."""
        kind = self.container_kind
        row: dict[str, Any] = {
            "id": self.id,
            kind.container_column: self.container_id,
            kind.sender_column: self.sender_id,
            "content": self.content,
            "created_at": self.created_at.isoformat(),
            "edited_at": self.edited_at.isoformat() if self.edited_at else None,
            "is_deleted": self.is_deleted,
            "reply_to_message_id": self.reply_to_message_id,
        }
        row.update(link_preview_columns(self.link_preview))
        if self.attachment is not None:
            if self.attachment.is_voice:
                row["voice_url"] = self.attachment.url
                row["voice_duration"] = self.attachment.voice_duration_seconds
            else:
                row["file_url"] = self.attachment.url
                row["file_name"] = self.attachment.file_name
                row["file_size"] = self.attachment.file_size
                row["file_type"] = self.attachment.file_type
        return row


def resolve_kind(message: Message) -> MessageKind:
    """Resolve the payload variant. Voice wins over file, file over link."""
    if message.is_deleted:
        return DeletedKind()
    attachment = message.attachment
    if attachment is not None and attachment.is_voice:
        return VoiceKind(
            url=attachment.url, duration_seconds=attachment.voice_duration_seconds
        )
    if attachment is not None:
        return FileKind(attachment=attachment)
    if message.link_preview is not None:
        return LinkKind(preview=message.link_preview)
    return TextKind()


def extract_link_preview(content: str) -> LinkPreview | None:
    """Preview for the first http(s) URL in `content`, if it parses."""
    match = URL_PATTERN.search(content)
    if not match:
        return None

    url = match.group(0)
    try:
        hostname = urlparse(url).hostname
    except ValueError:
        return None
    if not hostname:
        return None

    return LinkPreview(url=url, title=hostname, description=url)


def link_preview_columns(preview: LinkPreview | None) -> dict:
    """Flatten a preview into the `link_*` columns (all None when absent)."""
    if preview is None:
        return {
            "link_url": None,
            "link_title": None,
            "link_description": None,
            "link_image": None,
        }
    return {
        "link_url": preview.url,
        "link_title": preview.title,
        "link_description": preview.description,
        "link_image": preview.image_url,
    }


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO timestamp column; naive values are taken as UTC."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        ts = value
    else:
        ts = datetime.fromisoformat(str(value))
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts
