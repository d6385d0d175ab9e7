"""`@mention` suggestions for the message composer."""

import re
from typing import Iterable

import aiosqlite

from ..config import MENTION_SUGGESTION_LIMIT
from ..logging_config import get_logger
from ..models import Profile
from ..profiles import ProfileResolver

logger = get_logger(__name__)

TRAILING_MENTION = re.compile(r"@(\w*)$")


class MentionAutocomplete:
    """Suggestion state for one composer.

    `scope_ids` restricts suggestions to group members; without it (direct
    chats) any profile may be suggested.
    """

    def __init__(
        self,
        profiles: ProfileResolver,
        scope_ids: Iterable[str] | None = None,
        limit: int = MENTION_SUGGESTION_LIMIT,
    ):
        self._profiles = profiles
        self._scope_ids = list(scope_ids) if scope_ids is not None else None
        self._limit = limit

        self.text = ""
        self.cursor = 0
        self.query: str | None = None
        self.suggestions: list[Profile] = []
        self.selected_index = 0

    @property
    def open(self) -> bool:
        return self.query is not None

    @property
    def selected(self) -> Profile | None:
        if not self.open or not self.suggestions:
            return None
        return self.suggestions[self.selected_index]

    async def on_input_change(self, text: str) -> list[Profile]:
        """Track the composer text; query profiles while it ends in `@partial`."""
        self.text = text
        self.cursor = len(text)

        match = TRAILING_MENTION.search(text)
        if not match:
            self.dismiss()
            return []

        self.query = match.group(1)
        try:
            self.suggestions = await self._profiles.search(
                self.query, scope_ids=self._scope_ids, limit=self._limit
            )
        except aiosqlite.Error as e:
            logger.warning("Mention lookup failed: %s", e)
            self.suggestions = []
        self.selected_index = 0
        return self.suggestions

    def handle_key(self, key: str) -> bool:
        """Keyboard navigation; True when the key was consumed."""
        if not self.open or not self.suggestions:
            return False

        count = len(self.suggestions)
        if key == "ArrowDown":
            self.selected_index = (self.selected_index + 1) % count
            return True
        if key == "ArrowUp":
            self.selected_index = (self.selected_index - 1) % count
            return True
        if key == "Enter":
            self.commit(self.suggestions[self.selected_index])
            return True
        if key == "Escape":
            self.dismiss()
            return True
        return False

    def commit(self, profile: Profile) -> str:
        """Replace the trailing `@partial` with the profile's handle."""
        self.text = TRAILING_MENTION.sub(lambda _: f"@{profile.handle} ", self.text, count=1)
        self.cursor = len(self.text)
        self.dismiss()
        return self.text

    def dismiss(self) -> None:
        self.query = None
        self.suggestions = []
        self.selected_index = 0
