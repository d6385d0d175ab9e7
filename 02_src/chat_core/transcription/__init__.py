"""Transcription module."""

from .client import (
    ITranscriptionClient,
    Transcript,
    TranscriptionClient,
    map_language,
    validate_audio_url,
)
from .summarizer import TranscriptSummarizer

__all__ = [
    "ITranscriptionClient",
    "Transcript",
    "TranscriptSummarizer",
    "TranscriptionClient",
    "map_language",
    "validate_audio_url",
]
