"""Attachments module."""

from .pipeline import (
    AttachmentPipeline,
    FileUpload,
    PayloadKind,
    UploadedObject,
    classify,
    validate_attachment,
    validate_transcription_upload,
)
from .recorder import VoiceRecorder, VoiceRecording

__all__ = [
    "AttachmentPipeline",
    "FileUpload",
    "PayloadKind",
    "UploadedObject",
    "VoiceRecorder",
    "VoiceRecording",
    "classify",
    "validate_attachment",
    "validate_transcription_upload",
]
