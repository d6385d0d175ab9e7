"""Message stream module."""

from .adapter import MessageStreamAdapter
from .collage import group, image_runs, render_plan
from .replies import Forwarder, forwarded_content, reply_preview, resolve_reply

__all__ = [
    "Forwarder",
    "MessageStreamAdapter",
    "forwarded_content",
    "group",
    "image_runs",
    "render_plan",
    "reply_preview",
    "resolve_reply",
]
