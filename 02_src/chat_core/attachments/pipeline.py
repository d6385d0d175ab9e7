"""Validation and upload of message attachments.

Limits are checked before any network call. An upload is a single call to
object storage; when it fails the whole send is aborted and no message row is
written.
"""

import mimetypes
import time
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Literal

from ..config import (
    CHAT_FILES_BUCKET,
    MAX_FILE_SIZE,
    MAX_TRANSCRIPTION_SIZE,
    MB,
    PRIVATE_BUCKETS,
    SIGNED_URL_TTL_SECONDS,
    VOICE_MESSAGES_BUCKET,
)
from ..errors import AttachmentValidationError, ServiceFailure, ValidationFailure
from ..logging_config import get_logger
from ..models import Attachment
from ..objects import IObjectStorage
from .recorder import VoiceRecording

logger = get_logger(__name__)


GENERIC_MIME_PREFIXES = ("image/", "video/")
GENERIC_MIME_TYPES = frozenset(
    {
        "application/pdf",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "text/plain",
        "application/vnd.ms-excel",
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    }
)
TRANSCRIPTION_MIME_PREFIXES = ("audio/", "video/")

UploadPurpose = Literal["file", "voice"]


class PayloadKind(str, Enum):
    """What the composer is about to send."""

    TEXT = "text"
    VOICE = "voice"
    FILE = "file"
    CAMERA = "camera"


@dataclass
class FileUpload:
    """A binary picked, dropped or captured by the user."""

    file_name: str
    data: bytes
    content_type: str | None = None
    source: Literal["picker", "drop", "camera"] = "picker"

    def __post_init__(self) -> None:
        if not self.content_type:
            guessed, _ = mimetypes.guess_type(self.file_name)
            self.content_type = guessed or "application/octet-stream"

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def extension(self) -> str:
        _, dot, ext = self.file_name.rpartition(".")
        return ext.lower() if dot and ext else "bin"


@dataclass
class UploadedObject:
    """Where an upload landed."""

    url: str  # what the message row references: the storage path
    path: str
    bucket: str
    size: int
    content_type: str | None


def classify(payload) -> PayloadKind:
    """Route a composer payload to its send path."""
    if isinstance(payload, str):
        return PayloadKind.TEXT
    if isinstance(payload, VoiceRecording):
        return PayloadKind.VOICE
    if isinstance(payload, FileUpload):
        return PayloadKind.CAMERA if payload.source == "camera" else PayloadKind.FILE
    raise ValidationFailure(f"Unsupported payload: {type(payload).__name__}")


def validate_attachment(upload: FileUpload) -> None:
    """Generic attachment rules: 50MB and the picker's allow-list."""
    if upload.size > MAX_FILE_SIZE:
        raise AttachmentValidationError(
            f"Maximum file size is {MAX_FILE_SIZE // MB}MB", limit_bytes=MAX_FILE_SIZE
        )
    content_type = (upload.content_type or "").lower()
    if not (
        content_type.startswith(GENERIC_MIME_PREFIXES)
        or content_type in GENERIC_MIME_TYPES
    ):
        raise AttachmentValidationError(f"File type not allowed: {content_type}")


def validate_transcription_upload(upload: FileUpload) -> None:
    """Transcription rules: 25MB, audio or video only."""
    if upload.size > MAX_TRANSCRIPTION_SIZE:
        raise AttachmentValidationError(
            f"Audio file is too large (max {MAX_TRANSCRIPTION_SIZE // MB}MB)",
            limit_bytes=MAX_TRANSCRIPTION_SIZE,
        )
    content_type = (upload.content_type or "").lower()
    if not content_type.startswith(TRANSCRIPTION_MIME_PREFIXES):
        raise AttachmentValidationError(
            f"Only audio or video files can be transcribed, got {content_type}"
        )


class AttachmentPipeline:
    """Uploads validated binaries to the chat buckets."""

    def __init__(self, objects: IObjectStorage, clock=time.time):
        self._objects = objects
        self._clock = clock

    async def upload(
        self,
        upload: FileUpload | VoiceRecording,
        owner_id: str,
        purpose: UploadPurpose = "file",
    ) -> UploadedObject:
        """Store one attachment in its bucket.

        Both chat buckets are private, so messages reference the storage path
        and a signed URL is requested each time the attachment is viewed.
        """
        stamp = int(self._clock() * 1000)
        suffix = uuid.uuid4().hex[:8]

        if purpose == "voice":
            if not isinstance(upload, VoiceRecording):
                raise ValidationFailure("Voice uploads need a recording")
            bucket = VOICE_MESSAGES_BUCKET
            path = f"{owner_id}/{stamp}-{suffix}.webm"
            data, content_type = upload.data, upload.mime_type
        else:
            if not isinstance(upload, FileUpload):
                raise ValidationFailure("File uploads need a file")
            validate_attachment(upload)
            bucket = CHAT_FILES_BUCKET
            path = f"{owner_id}-{stamp}-{suffix}.{upload.extension}"
            data, content_type = upload.data, upload.content_type

        try:
            stored = await self._objects.upload(bucket, path, data, content_type)
        except (OSError, ValueError) as e:
            logger.error("Upload to %s failed: %s", bucket, e, exc_info=True)
            raise ServiceFailure(f"Upload failed: {e}", original_error=e) from e

        return UploadedObject(
            url=stored["path"],
            path=stored["path"],
            bucket=bucket,
            size=stored["size"],
            content_type=content_type,
        )

    def signed_url(
        self, path: str, bucket: str = VOICE_MESSAGES_BUCKET, ttl_seconds: int = SIGNED_URL_TTL_SECONDS
    ) -> str:
        """Time-limited URL for a binary in a private bucket."""
        if bucket not in PRIVATE_BUCKETS:
            return self._objects.get_public_url(bucket, path)
        return self._objects.create_signed_url(bucket, path, ttl_seconds)

    def view_url(self, attachment: Attachment) -> str:
        """Fresh URL for displaying an attachment referenced by path."""
        if attachment.url.startswith(("http://", "https://")):
            return attachment.url
        bucket = VOICE_MESSAGES_BUCKET if attachment.is_voice else CHAT_FILES_BUCKET
        return self.signed_url(attachment.url, bucket)

    async def remove_voice(self, path: str) -> bool:
        """Best-effort removal of a voice binary; False when it did not happen."""
        try:
            removed = await self._objects.remove(VOICE_MESSAGES_BUCKET, [path])
        except (OSError, ValueError) as e:
            logger.warning("Could not remove voice binary %s: %s", path, e)
            return False
        return bool(removed)
