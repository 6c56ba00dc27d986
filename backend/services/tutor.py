"""Claude API wrapper for tutor replies, including the trailing side-channel markers.

The model appends structured data to its reply as
``[CORRECTIONS: {"items": [...]}]`` and ``[PROGRESS: {"learned": [...], "difficult": [...]}]``.
Those markers are a serialization detail of this module: callers only ever see
a validated ``TutorReply`` with clean display content.
"""
import json
import logging
import random
import re
from typing import Protocol, Sequence

import anthropic
from pydantic import ValidationError

from config import settings
from prompts.conversation import build_system_prompt
from schemas.tutor import CorrectionsPayload, ProgressUpdate, TutorReply
from services.transcript import Message
from services.vocabulary import get_random_vocabulary
from topics import find_topic_by_name

logger = logging.getLogger(__name__)

CORRECTIONS_MARKER = "[CORRECTIONS:"
PROGRESS_MARKER = "[PROGRESS:"
VOCABULARY_SUGGESTIONS = 4
_TRAILING_BRACKET = re.compile(r"\]\s*$")


class TutorBackendError(Exception):
    """The tutor backend could not produce a reply."""

    def __init__(self, kind: str, message: str):
        super().__init__(f"{kind}: {message}")
        self.kind = kind
        self.message = message


class TutorClient(Protocol):
    async def reply(self, history: Sequence[Message], topic: str, level: str) -> TutorReply: ...


def _marker_payload(raw: str, start: int, marker: str, end: int) -> str:
    segment = raw[start + len(marker):end].strip()
    return _TRAILING_BRACKET.sub("", segment).strip()


def _parse_corrections(payload: str) -> CorrectionsPayload:
    try:
        return CorrectionsPayload.model_validate(json.loads(payload))
    except (json.JSONDecodeError, ValidationError) as e:
        logger.warning("Failed to parse corrections block: %s", e)
        return CorrectionsPayload()


def _parse_progress(payload: str) -> ProgressUpdate:
    try:
        return ProgressUpdate.model_validate(json.loads(payload))
    except (json.JSONDecodeError, ValidationError) as e:
        logger.warning("Failed to parse progress block: %s", e)
        return ProgressUpdate()


def extract_side_channel(raw: str) -> TutorReply:
    """Split raw model output into display content and parsed side-channel data.

    Content is everything before the first marker. The corrections payload runs
    up to the progress marker when progress follows it; the progress payload
    runs to the end of the text.
    """
    corrections_at = raw.find(CORRECTIONS_MARKER)
    progress_at = raw.find(PROGRESS_MARKER, corrections_at if corrections_at != -1 else 0)
    if progress_at == -1 and corrections_at != -1:
        # A progress marker placed before corrections still has to be stripped.
        progress_at = raw.find(PROGRESS_MARKER)

    positions = [p for p in (corrections_at, progress_at) if p != -1]
    if not positions:
        return TutorReply(content=raw.strip())

    content = raw[: min(positions)].strip()

    corrections = CorrectionsPayload()
    if corrections_at != -1:
        end = progress_at if progress_at > corrections_at else len(raw)
        corrections = _parse_corrections(_marker_payload(raw, corrections_at, CORRECTIONS_MARKER, end))

    progress = ProgressUpdate()
    if progress_at != -1:
        end = corrections_at if corrections_at > progress_at else len(raw)
        progress = _parse_progress(_marker_payload(raw, progress_at, PROGRESS_MARKER, end))

    return TutorReply(content=content, corrections=corrections.items, progress=progress)


def to_chat_messages(history: Sequence[Message]) -> list[dict]:
    """Role/content pairs for the Messages API.

    The API requires the conversation to open with a user turn, so a leading
    assistant greeting is carried as context in a synthetic user turn.
    """
    messages = [{"role": m.role, "content": m.content} for m in history]
    if messages and messages[0]["role"] == "assistant":
        messages.insert(0, {"role": "user", "content": "(The conversation continues.)"})
    return messages


class AnthropicTutorClient:
    """Tutor backend backed by Claude."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        max_tokens: int | None = None,
        rng: random.Random | None = None,
    ):
        self.api_key = api_key if api_key is not None else settings.ANTHROPIC_API_KEY
        self.model = model or settings.TUTOR_MODEL
        self.max_tokens = max_tokens or settings.TUTOR_MAX_TOKENS
        self._rng = rng
        self._client: anthropic.AsyncAnthropic | None = None

    def _get_client(self) -> anthropic.AsyncAnthropic:
        if not self.api_key:
            raise TutorBackendError("configuration", "ANTHROPIC_API_KEY is not configured")
        if self._client is None:
            self._client = anthropic.AsyncAnthropic(api_key=self.api_key)
        return self._client

    def build_prompt(self, topic: str, level: str) -> str:
        catalog_topic = find_topic_by_name(topic)
        vocabulary = []
        if catalog_topic:
            vocabulary = get_random_vocabulary(
                catalog_topic["id"], level, VOCABULARY_SUGGESTIONS, rng=self._rng
            )
        return build_system_prompt(topic, level, vocabulary=vocabulary)

    async def reply(self, history: Sequence[Message], topic: str, level: str) -> TutorReply:
        client = self._get_client()
        try:
            response = await client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                system=self.build_prompt(topic, level),
                messages=to_chat_messages(history),
            )
        except anthropic.APIStatusError as e:
            raise TutorBackendError("http", f"{e.status_code} {e.message}") from e
        except anthropic.APIError as e:
            raise TutorBackendError("transport", str(e)) from e

        text = "".join(block.text for block in response.content if block.type == "text")
        if not text.strip():
            raise TutorBackendError("empty", "Tutor returned no text")
        return extract_side_channel(text)
