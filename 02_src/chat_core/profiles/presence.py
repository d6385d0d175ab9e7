"""Online / last-seen derivation.

Evaluated when a surface renders; nothing re-evaluates presence on a timer,
so a displayed status is as fresh as the last render.
"""

from datetime import datetime, timezone

from ..config import PRESENCE_WINDOW


def is_online(last_seen_at: datetime | None, now: datetime | None = None) -> bool:
    """True when `last_seen_at` lies within the presence window of `now`."""
    if last_seen_at is None:
        return False
    now = now or datetime.now(timezone.utc)
    return now - last_seen_at < PRESENCE_WINDOW


def describe(last_seen_at: datetime | None, now: datetime | None = None) -> str:
    """'Online', 'Offline' or 'Last seen ... ago'."""
    now = now or datetime.now(timezone.utc)
    if is_online(last_seen_at, now):
        return "Online"
    if last_seen_at is None:
        return "Offline"
    return f"Last seen {relative_time(last_seen_at, now)}"


def relative_time(ts: datetime, now: datetime | None = None) -> str:
    now = now or datetime.now(timezone.utc)
    seconds = max(int((now - ts).total_seconds()), 0)
    if seconds < 60:
        return "just now"
    minutes = seconds // 60
    if minutes < 60:
        return f"{minutes} minute{'s' if minutes != 1 else ''} ago"
    hours = minutes // 60
    if hours < 24:
        return f"{hours} hour{'s' if hours != 1 else ''} ago"
    days = hours // 24
    if days < 7:
        return f"{days} day{'s' if days != 1 else ''} ago"
    if days < 60:
        weeks = days // 7
        return f"{weeks} week{'s' if weeks != 1 else ''} ago"
    return f"on {ts.strftime('%b %d, %Y')}"
