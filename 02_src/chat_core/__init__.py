"""School chat core module."""

from .app import Application, IApplication
from .attachments import AttachmentPipeline, FileUpload, VoiceRecorder, VoiceRecording
from .auth import IAuthSession, Session
from .composer import MentionAutocomplete, TypingPublisher, TypingWatcher
from .context import ChatContext
from .llm import ILLMProvider, LLMProvider
from .models import (
    Attachment,
    ContainerKind,
    CurrentUser,
    ForwardDestination,
    ForwardResult,
    Message,
    Profile,
    Result,
    Toast,
)
from .notifications import INotifier, NotificationFanIn, Notifier
from .objects import IObjectStorage, LocalObjectStorage
from .profiles import ProfileCache, ProfileResolver
from .realtime import IRealtime, RealtimeHub
from .rooms import ConversationDirectory, PinBoard, ReadReceipts
from .storage import IStore, Storage
from .stream import Forwarder, MessageStreamAdapter
from .surface import ChatSurface
from .transcription import TranscriptionClient, TranscriptSummarizer

__all__ = [
    # Application
    "Application",
    "IApplication",
    "ChatContext",
    "ChatSurface",
    # Models
    "Attachment",
    "ContainerKind",
    "CurrentUser",
    "ForwardDestination",
    "ForwardResult",
    "Message",
    "Profile",
    "Result",
    "Toast",
    # Collaborators
    "IAuthSession",
    "Session",
    "IStore",
    "Storage",
    "IRealtime",
    "RealtimeHub",
    "IObjectStorage",
    "LocalObjectStorage",
    "INotifier",
    "Notifier",
    "ILLMProvider",
    "LLMProvider",
    # Pipeline
    "AttachmentPipeline",
    "FileUpload",
    "VoiceRecorder",
    "VoiceRecording",
    "ConversationDirectory",
    "Forwarder",
    "MentionAutocomplete",
    "MessageStreamAdapter",
    "NotificationFanIn",
    "PinBoard",
    "ProfileCache",
    "ProfileResolver",
    "ReadReceipts",
    "TranscriptionClient",
    "TranscriptSummarizer",
    "TypingPublisher",
    "TypingWatcher",
]
