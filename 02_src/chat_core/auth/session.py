"""Auth session held as an explicit object rather than a module global."""

from typing import Callable, Protocol

from ..logging_config import get_logger
from ..models import CurrentUser

logger = get_logger(__name__)


AuthListener = Callable[[str, CurrentUser | None], None]


class IAuthSession(Protocol):
    """Read access to the signed-in user."""

    def get_current_user(self) -> CurrentUser | None:
        """Current user, or None when signed out."""
        ...

    def on_auth_state_change(self, listener: AuthListener) -> Callable[[], None]:
        """Register a listener; returns a function that removes it."""
        ...


class Session:
    """Single-user session for one page session / API process."""

    def __init__(self, user: CurrentUser | None = None):
        self._user = user
        self._listeners: list[AuthListener] = []

    def get_current_user(self) -> CurrentUser | None:
        return self._user

    @property
    def user_id(self) -> str | None:
        return self._user.id if self._user else None

    def on_auth_state_change(self, listener: AuthListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def sign_in(self, user: CurrentUser) -> None:
        self._user = user
        logger.info("Signed in", extra={"user_id": user.id})
        self._notify("SIGNED_IN")

    def sign_out(self) -> None:
        if self._user is None:
            return
        logger.info("Signed out", extra={"user_id": self._user.id})
        self._user = None
        self._notify("SIGNED_OUT")

    def _notify(self, event: str) -> None:
        for listener in list(self._listeners):
            try:
                listener(event, self._user)
            except Exception as e:
                logger.error("Auth listener failed on %s: %s", event, e, exc_info=True)
