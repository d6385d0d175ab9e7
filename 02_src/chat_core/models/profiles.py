"""Profile and session data models."""

from dataclasses import dataclass
from datetime import datetime

from .messages import parse_timestamp


@dataclass
class CurrentUser:
    """The signed-in user as reported by the auth session."""

    id: str
    email: str | None = None


@dataclass
class Profile:
    """Display metadata of a user (externally owned, read-mostly)."""

    id: str
    display_name: str | None = None
    username: str | None = None
    avatar_url: str | None = None
    last_seen_at: datetime | None = None

    @property
    def name(self) -> str:
        return self.display_name or self.username or "User"

    @property
    def handle(self) -> str:
        """Text inserted after `@` when this profile is mentioned."""
        return self.username or self.display_name or "user"

    @property
    def initial(self) -> str:
        return self.name[0].upper()

    @classmethod
    def from_row(cls, row: dict) -> "Profile":
        return cls(
            id=row["id"],
            display_name=row.get("display_name"),
            username=row.get("username"),
            avatar_url=row.get("avatar_url"),
            last_seen_at=parse_timestamp(row.get("last_seen")),
        )

    def to_row(self) -> dict:
        return {
            "id": self.id,
            "display_name": self.display_name,
            "username": self.username,
            "avatar_url": self.avatar_url,
            "last_seen": self.last_seen_at.isoformat() if self.last_seen_at else None,
        }
