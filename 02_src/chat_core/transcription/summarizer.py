"""LLM summaries of transcripts."""

from dataclasses import replace

from ..errors import ServiceFailure
from ..llm import ILLMProvider
from ..logging_config import get_logger
from .client import Transcript

logger = get_logger(__name__)

SUMMARY_SYSTEM_PROMPT = (
    "You summarize classroom recordings for students. "
    "Answer with a short summary paragraph, then a blank line, "
    "then bullet-point study notes."
)


class TranscriptSummarizer:
    """Fills `summary` and `notes` of a transcript."""

    def __init__(self, llm: ILLMProvider, max_tokens: int = 1024):
        self._llm = llm
        self._max_tokens = max_tokens

    async def summarize(self, transcript: Transcript) -> Transcript:
        if not transcript.text.strip():
            return transcript

        try:
            completion = await self._llm.complete(
                messages=[{"role": "user", "content": transcript.text}],
                system=SUMMARY_SYSTEM_PROMPT,
                max_tokens=self._max_tokens,
            )
        except RuntimeError as e:
            logger.error("Summary failed: %s", e, exc_info=True)
            raise ServiceFailure("Could not summarize transcript", original_error=e) from e

        summary, _, notes = completion.strip().partition("\n\n")
        return replace(transcript, summary=summary.strip(), notes=notes.strip())
