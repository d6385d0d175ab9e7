"""In-session alert for the newest incoming message of a container."""

from ..config import NOTIFICATION_PREVIEW_LENGTH
from ..models import FileKind, Message, Toast, VoiceKind
from .notifier import INotifier


def summarize(message: Message, limit: int = NOTIFICATION_PREVIEW_LENGTH) -> str:
    """One-line description of a message for a toast."""
    if isinstance(message.kind, VoiceKind):
        return "🎤 Voice message"
    if isinstance(message.kind, FileKind):
        return f"📎 {message.kind.attachment.file_name or 'File'}"

    content = message.content
    if len(content) > limit:
        return content[:limit] + "..."
    return content


class NotificationFanIn:
    """Watches the tail of a message list and toasts once per new message."""

    def __init__(self, notifier: INotifier, viewer_id: str, title: str):
        self._notifier = notifier
        self._viewer_id = viewer_id
        self._title = title
        self._last_notified_id: str | None = None

    @property
    def last_notified_id(self) -> str | None:
        return self._last_notified_id

    def prime(self, messages: list[Message]) -> None:
        """Mark the current tail as seen, e.g. right after the initial load."""
        if messages:
            self._last_notified_id = messages[-1].id

    def observe(self, messages: list[Message]) -> Toast | None:
        """Call after every update of the container's message list."""
        if not messages:
            return None

        newest = messages[-1]
        if newest.id == self._last_notified_id or newest.sender_id == self._viewer_id:
            return None

        self._last_notified_id = newest.id
        return self._notifier.notify(f"💬 {self._title}", summarize(newest))
