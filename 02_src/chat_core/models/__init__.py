"""Core data models for School Chat."""

from .messages import (
    Attachment,
    ContainerKind,
    DeletedKind,
    FileKind,
    LinkKind,
    LinkPreview,
    Message,
    MessageKind,
    TextKind,
    VoiceKind,
    extract_link_preview,
)
from .profiles import CurrentUser, Profile
from .realtime import ChangeEvent, ChangeType
from .render import (
    CollageGroup,
    RenderedMessage,
    RenderItem,
    ReplyPreview,
    TypingState,
)
from .results import ForwardDestination, ForwardFailure, ForwardResult, Result, Toast

__all__ = [
    # Messages
    "Attachment",
    "ContainerKind",
    "DeletedKind",
    "FileKind",
    "LinkKind",
    "LinkPreview",
    "Message",
    "MessageKind",
    "TextKind",
    "VoiceKind",
    "extract_link_preview",
    # Profiles
    "CurrentUser",
    "Profile",
    # Realtime
    "ChangeEvent",
    "ChangeType",
    # Rendering
    "CollageGroup",
    "RenderedMessage",
    "RenderItem",
    "ReplyPreview",
    "TypingState",
    # Results
    "ForwardDestination",
    "ForwardFailure",
    "ForwardResult",
    "Result",
    "Toast",
]
