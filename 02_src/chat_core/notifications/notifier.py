"""Toast sink: the user-visible end of every failure path."""

from collections import deque
from typing import Protocol

from ..errors import ChatError
from ..logging_config import get_logger
from ..models import Toast

logger = get_logger(__name__)


class INotifier(Protocol):
    """Raises transient notifications."""

    def notify(self, title: str, description: str) -> Toast:
        """Raise an informational toast."""
        ...

    def error(self, error: Exception | str, fallback: str = "Something went wrong") -> Toast:
        """Raise a destructive toast for a failure."""
        ...


class Notifier:
    """Keeps the most recent toasts for the surface to display."""

    def __init__(self, max_history: int = 100):
        self._history: deque[Toast] = deque(maxlen=max_history)

    def notify(self, title: str, description: str) -> Toast:
        toast = Toast(title=title, description=description)
        self._history.append(toast)
        logger.info("Toast: %s - %s", title, description)
        return toast

    def error(self, error: Exception | str, fallback: str = "Something went wrong") -> Toast:
        """Destructive toast; uses the error's own message when it has one."""
        if isinstance(error, ChatError):
            title, description = error.title, error.message
        elif isinstance(error, Exception):
            title, description = "Error", str(error) or fallback
        else:
            title, description = "Error", error or fallback

        toast = Toast(title=title, description=description, variant="destructive")
        self._history.append(toast)
        logger.warning("Error toast: %s - %s", title, description)
        return toast

    @property
    def toasts(self) -> list[Toast]:
        return list(self._history)

    def latest(self) -> Toast | None:
        return self._history[-1] if self._history else None

    def clear(self) -> None:
        self._history.clear()
