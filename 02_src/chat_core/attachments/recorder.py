"""Voice recording capture."""

import time
from dataclasses import dataclass

VOICE_MIME_TYPE = "audio/webm;codecs=opus"


@dataclass
class VoiceRecording:
    """One finished recording."""

    data: bytes
    duration_seconds: float
    mime_type: str = VOICE_MIME_TYPE


class VoiceRecorder:
    """Collects encoded audio chunks into a single blob.

    Duration is the elapsed wall-clock time between `start()` and `stop()`;
    the audio itself is never decoded.
    """

    def __init__(self, clock=time.monotonic):
        self._clock = clock
        self._chunks: list[bytes] = []
        self._started_at: float | None = None

    @property
    def recording(self) -> bool:
        return self._started_at is not None

    def start(self) -> None:
        if self.recording:
            raise RuntimeError("Recorder already running")
        self._chunks = []
        self._started_at = self._clock()

    def add_chunk(self, chunk: bytes) -> None:
        if not self.recording:
            raise RuntimeError("Recorder not running")
        if chunk:
            self._chunks.append(chunk)

    def elapsed(self) -> float:
        if self._started_at is None:
            return 0.0
        return self._clock() - self._started_at

    def stop(self) -> VoiceRecording:
        if not self.recording:
            raise RuntimeError("Recorder not running")
        recording = VoiceRecording(
            data=b"".join(self._chunks), duration_seconds=self.elapsed()
        )
        self._reset()
        return recording

    def cancel(self) -> None:
        self._reset()

    def _reset(self) -> None:
        self._chunks = []
        self._started_at = None
