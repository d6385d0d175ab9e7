"""Project-level configuration, path helpers and chat constants."""

import os
from datetime import timedelta
from pathlib import Path
from typing import Union

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
DATA_DIR = PROJECT_ROOT / "03_data"
LOGS_DIR = PROJECT_ROOT / "04_logs"
DEFAULT_DB_PATH = DATA_DIR / "school_chat.db"
DEFAULT_LOG_PATH = LOGS_DIR / "app.log"
DEFAULT_STORAGE_DIR = DATA_DIR / "objects"

DATA_DIR.mkdir(parents=True, exist_ok=True)
LOGS_DIR.mkdir(parents=True, exist_ok=True)


PathLike = Union[str, Path]

# Presence and composer timing
PRESENCE_WINDOW = timedelta(minutes=5)
TYPING_TIMEOUT_SECONDS = 2.0

# Attachments
MB = 1024 * 1024
MAX_FILE_SIZE = 50 * MB
MAX_TRANSCRIPTION_SIZE = 25 * MB
SIGNED_URL_TTL_SECONDS = 3600

CHAT_FILES_BUCKET = "chat-files"
VOICE_MESSAGES_BUCKET = "voice-messages"
PRIVATE_BUCKETS = frozenset({CHAT_FILES_BUCKET, VOICE_MESSAGES_BUCKET})

# Message composition
FORWARD_PREFIX = "📨 Forwarded: "
NOTIFICATION_PREVIEW_LENGTH = 50
MENTION_SUGGESTION_LIMIT = 5

# Transcription
TRANSCRIPTION_FETCH_TIMEOUT_SECONDS = 30.0
LANGUAGE_ALIASES = {
    "auto": "auto",
    "en": "english",
    "hi": "hindi",
    "or": "odia",
    "english": "english",
    "hindi": "hindi",
    "odia": "odia",
}


def resolve_db_path(env_value: PathLike | None = None) -> PathLike:
    """Resolve DATABASE_URL to an absolute path."""
    if not env_value:
        return DEFAULT_DB_PATH

    if str(env_value) == ":memory:":
        return ":memory:"

    candidate = Path(env_value)
    return candidate if candidate.is_absolute() else PROJECT_ROOT / candidate


def resolve_storage_dir(env_value: PathLike | None = None) -> Path:
    """Resolve STORAGE_DIR to an absolute directory for object buckets."""
    if not env_value:
        return DEFAULT_STORAGE_DIR

    candidate = Path(env_value)
    return candidate if candidate.is_absolute() else PROJECT_ROOT / candidate


def storage_signing_secret() -> str:
    """Secret used to sign object storage URLs."""
    return os.getenv("STORAGE_SIGNING_SECRET", "local-development-secret")


def storage_public_base_url() -> str:
    """Base URL under which object storage paths are published."""
    return os.getenv("STORAGE_PUBLIC_BASE_URL", "http://localhost:8000/storage/v1")


def transcription_api_url() -> str:
    """Endpoint of the speech-to-text service."""
    return os.getenv("TRANSCRIBE_API_URL", "http://localhost:9000/transcribe")


def transcription_api_key() -> str | None:
    return os.getenv("TRANSCRIBE_API_KEY")
