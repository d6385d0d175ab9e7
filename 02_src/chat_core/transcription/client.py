"""Speech-to-text client for uploaded or linked audio."""

import base64
import ipaddress
from dataclasses import dataclass
from typing import Protocol
from urllib.parse import urlparse

import httpx

from ..attachments import FileUpload, validate_transcription_upload
from ..config import (
    LANGUAGE_ALIASES,
    MAX_TRANSCRIPTION_SIZE,
    MB,
    TRANSCRIPTION_FETCH_TIMEOUT_SECONDS,
    transcription_api_key,
    transcription_api_url,
)
from ..errors import AttachmentValidationError, ServiceFailure, ValidationFailure
from ..logging_config import get_logger

logger = get_logger(__name__)

BLOCKED_HOST_SUFFIXES = (".local", ".internal", ".localhost")


@dataclass
class Transcript:
    text: str
    original_text: str
    detected_language: str
    language_name: str
    was_translated: bool = False
    summary: str = ""
    notes: str = ""


class ITranscriptionClient(Protocol):
    async def transcribe(
        self,
        upload: FileUpload | None = None,
        url: str | None = None,
        language: str = "auto",
    ) -> Transcript:
        """Transcribe an uploaded file or the audio behind a URL."""
        ...


def map_language(language: str) -> str:
    return LANGUAGE_ALIASES.get(language.lower(), language)


def validate_audio_url(url: str) -> None:
    """Reject URLs that would make the service fetch from internal hosts."""
    try:
        parsed = urlparse(url)
        hostname = (parsed.hostname or "").lower()
    except ValueError:
        raise ValidationFailure("Invalid audio URL: Invalid URL format")

    if parsed.scheme not in ("http", "https"):
        raise ValidationFailure(
            "Invalid audio URL: Only HTTP and HTTPS protocols are allowed"
        )
    if not hostname:
        raise ValidationFailure("Invalid audio URL: Invalid URL format")
    if hostname == "localhost":
        raise ValidationFailure("Invalid audio URL: Localhost addresses are not allowed")

    try:
        address = ipaddress.ip_address(hostname)
    except ValueError:
        address = None
    if address is not None:
        if address.is_loopback:
            raise ValidationFailure(
                "Invalid audio URL: Localhost addresses are not allowed"
            )
        if address.is_private or address.is_link_local:
            raise ValidationFailure(
                "Invalid audio URL: Private IP addresses are not allowed"
            )
        raise ValidationFailure(
            "Invalid audio URL: Direct IP address access is not allowed"
        )

    if hostname.endswith(BLOCKED_HOST_SUFFIXES):
        raise ValidationFailure("Invalid audio URL: Internal hostnames are not allowed")


class TranscriptionClient:
    """Client of the external transcription endpoint."""

    def __init__(
        self,
        api_url: str | None = None,
        api_key: str | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        self._api_url = api_url or transcription_api_url()
        self._api_key = api_key or transcription_api_key()
        self._client = http_client or httpx.AsyncClient(
            timeout=TRANSCRIPTION_FETCH_TIMEOUT_SECONDS
        )
        self._owns_client = http_client is None

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def transcribe(
        self,
        upload: FileUpload | None = None,
        url: str | None = None,
        language: str = "auto",
    ) -> Transcript:
        """Validation happens before any request is made."""
        if upload is None and not url:
            raise ValidationFailure("Please provide an audio file or URL")
        if upload is not None:
            validate_transcription_upload(upload)
        else:
            validate_audio_url(url)
        if not self._api_key:
            raise ServiceFailure("Transcription service not configured")

        if upload is not None:
            data, file_name, mime_type = upload.data, upload.file_name, upload.content_type
        else:
            data, file_name, mime_type = await self._fetch_audio(url)

        mapped = map_language(language)
        logger.info("Transcribing %s (%d bytes, language %s)", file_name, len(data), mapped)

        try:
            response = await self._client.post(
                self._api_url,
                headers={"X-API-Key": self._api_key},
                json={
                    "audio": base64.b64encode(data).decode("ascii"),
                    "fileName": file_name,
                    "mimeType": mime_type,
                    "language": mapped,
                },
            )
        except httpx.HTTPError as e:
            logger.error("Transcription request failed: %s", e, exc_info=True)
            raise ServiceFailure(f"Transcription failed: {e}", original_error=e) from e

        if response.is_error:
            logger.error("Transcription API error: %s", response.text)
            raise ServiceFailure(f"Transcription failed: {response.reason_phrase}")

        return self._to_transcript(response.json(), language, mapped)

    async def _fetch_audio(self, url: str) -> tuple[bytes, str, str]:
        try:
            response = await self._client.get(url, follow_redirects=False)
        except httpx.TimeoutException as e:
            raise ServiceFailure("Request timed out while fetching audio", original_error=e) from e
        except httpx.HTTPError as e:
            raise ServiceFailure(f"Failed to fetch audio from URL: {e}", original_error=e) from e

        if response.is_redirect:
            raise ValidationFailure("URL redirects are not allowed for security reasons")
        if response.is_error:
            raise ServiceFailure(
                f"Failed to fetch audio from URL: {response.reason_phrase}"
            )

        too_large = AttachmentValidationError(
            f"Audio file is too large (max {MAX_TRANSCRIPTION_SIZE // MB}MB)",
            limit_bytes=MAX_TRANSCRIPTION_SIZE,
        )
        declared = response.headers.get("content-length")
        if declared and declared.isdigit() and int(declared) > MAX_TRANSCRIPTION_SIZE:
            raise too_large
        data = response.content
        if len(data) > MAX_TRANSCRIPTION_SIZE:
            raise too_large

        file_name = urlparse(url).path.rsplit("/", 1)[-1] or "audio.mp3"
        mime_type = response.headers.get("content-type", "audio/mpeg").split(";")[0]
        return data, file_name, mime_type

    @staticmethod
    def _to_transcript(payload: dict, language: str, mapped: str) -> Transcript:
        # An explicitly chosen language wins over the detected one
        if language != "auto":
            detected, name = mapped, mapped.capitalize()
        else:
            detected = payload.get("detectedLanguage") or "unknown"
            name = payload.get("languageName") or "Unknown"
        return Transcript(
            text=payload.get("text", ""),
            original_text=payload.get("originalText") or "",
            detected_language=detected,
            language_name=name,
            was_translated=bool(payload.get("wasTranslated")),
        )
