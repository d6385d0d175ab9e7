"""Batched profile lookups backed by a shared cache."""

from dataclasses import replace
from datetime import datetime, timezone
from typing import Iterable

from ..config import MENTION_SUGGESTION_LIMIT
from ..logging_config import get_logger
from ..models import Profile
from ..storage import IStore

logger = get_logger(__name__)

UNKNOWN_NAME = "Unknown"


class ProfileCache:
    """Profiles shared by every mounted surface; last write wins."""

    def __init__(self):
        self._profiles: dict[str, Profile] = {}

    def get(self, user_id: str) -> Profile | None:
        return self._profiles.get(user_id)

    def put(self, profile: Profile) -> None:
        self._profiles[profile.id] = profile

    def clear(self) -> None:
        self._profiles.clear()

    def missing(self, user_ids: Iterable[str]) -> list[str]:
        return [uid for uid in dict.fromkeys(user_ids) if uid not in self._profiles]

    def __contains__(self, user_id: str) -> bool:
        return user_id in self._profiles

    def __len__(self) -> int:
        return len(self._profiles)


class ProfileResolver:
    """Resolves display metadata for the senders of a message batch."""

    def __init__(self, store: IStore, cache: ProfileCache):
        self._store = store
        self._cache = cache

    @property
    def cache(self) -> ProfileCache:
        return self._cache

    async def resolve(
        self, user_ids: Iterable[str], refresh: bool = False
    ) -> dict[str, Profile]:
        """One `in` query for the ids not cached yet (all ids when refreshing)."""
        wanted = list(dict.fromkeys(user_ids))
        to_fetch = wanted if refresh else self._cache.missing(wanted)

        if to_fetch:
            rows = await self._store.select("profiles", in_={"id": to_fetch})
            for row in rows:
                self._cache.put(Profile.from_row(row))
            logger.debug("Fetched %d of %d profiles", len(rows), len(to_fetch))

        resolved = {}
        for uid in wanted:
            profile = self._cache.get(uid)
            if profile is not None:
                resolved[uid] = profile
        return resolved

    def display_name_for(self, user_id: str) -> str:
        profile = self._cache.get(user_id)
        return profile.name if profile else UNKNOWN_NAME

    async def search(
        self,
        partial: str,
        scope_ids: Iterable[str] | None = None,
        limit: int = MENTION_SUGGESTION_LIMIT,
    ) -> list[Profile]:
        """Profiles whose username or display name contains `partial`."""
        in_filter = None
        if scope_ids is not None:
            scope = list(scope_ids)
            if not scope:
                return []
            in_filter = {"id": scope}

        ilike = None
        if partial:
            pattern = f"%{partial}%"
            ilike = {"username": pattern, "display_name": pattern}

        rows = await self._store.select(
            "profiles", in_=in_filter, ilike=ilike, limit=limit
        )
        profiles = [Profile.from_row(row) for row in rows]
        for profile in profiles:
            self._cache.put(profile)
        return profiles

    async def touch_last_seen(self, user_id: str, now: datetime | None = None) -> None:
        """Presence heartbeat for the signed-in user."""
        now = now or datetime.now(timezone.utc)
        await self._store.update(
            "profiles", {"last_seen": now.isoformat()}, eq={"id": user_id}
        )
        cached = self._cache.get(user_id)
        if cached is not None:
            self._cache.put(replace(cached, last_seen_at=now))
