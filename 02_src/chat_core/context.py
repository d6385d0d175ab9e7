"""Collaborators shared by every chat surface of one session."""

from dataclasses import dataclass, field

from .auth import IAuthSession
from .errors import NotAuthenticated
from .models import CurrentUser
from .notifications import INotifier
from .objects import IObjectStorage
from .profiles import ProfileCache, ProfileResolver
from .realtime import IRealtime
from .storage import IStore


@dataclass
class ChatContext:
    """Explicit replacement for process-wide client singletons."""

    session: IAuthSession
    store: IStore
    realtime: IRealtime
    objects: IObjectStorage
    notifier: INotifier
    profile_cache: ProfileCache = field(default_factory=ProfileCache)

    @property
    def profiles(self) -> ProfileResolver:
        return ProfileResolver(self.store, self.profile_cache)

    def require_user(self) -> CurrentUser:
        user = self.session.get_current_user()
        if user is None:
            raise NotAuthenticated()
        return user
