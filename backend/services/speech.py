"""Speech capture and playback behind small capability interfaces.

Both directions hand back an explicit handle that can be awaited and
cancelled. Playback is a ``Playback`` whose ``wait()`` resolves to True when
the text was fully rendered and False when it failed or was cancelled.
Capture is a ``Listening`` stream of ``TranscriptUpdate`` items; an update
with ``is_final`` set marks the end of an utterance.

The browser is the audio device in this app: ``ClientSpeechSynthesizer``
publishes playback cues that the client renders (audio comes from
``/api/tts``) and acknowledges, and ``QueueSpeechRecognizer`` receives the
client's recognition results. The ``Null*`` variants stand in on platforms
without speech support.
"""
from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from typing import Literal, Protocol

logger = logging.getLogger(__name__)

Accent = Literal["american", "british"]
VoiceGender = Literal["male", "female"]


@dataclass(frozen=True)
class VoiceOptions:
    accent: Accent = "american"
    speed: float = 1.0
    gender: VoiceGender = "female"


@dataclass(frozen=True)
class TranscriptUpdate:
    text: str
    is_final: bool = False


class Playback:
    """Handle for one in-flight rendering of text to speech."""

    def __init__(self, cue_id: str | None = None):
        self.cue_id = cue_id or str(uuid.uuid4())
        self._result: asyncio.Future[bool] = asyncio.get_running_loop().create_future()

    @classmethod
    def finished(cls, success: bool) -> Playback:
        playback = cls()
        playback._resolve(success)
        return playback

    @property
    def done(self) -> bool:
        return self._result.done()

    def _resolve(self, success: bool) -> None:
        if not self._result.done():
            self._result.set_result(success)

    def complete(self, success: bool = True) -> None:
        self._resolve(success)

    def cancel(self) -> None:
        self._resolve(False)

    async def wait(self) -> bool:
        return await asyncio.shield(self._result)


class Listening:
    """Handle for one capture invocation: an async stream of transcript updates."""

    _CLOSED = object()

    def __init__(self):
        self._queue: asyncio.Queue = asyncio.Queue()
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def feed(self, update: TranscriptUpdate) -> None:
        if not self._cancelled:
            self._queue.put_nowait(update)

    def cancel(self) -> None:
        if not self._cancelled:
            self._cancelled = True
            self._queue.put_nowait(self._CLOSED)

    def __aiter__(self):
        return self

    async def __anext__(self) -> TranscriptUpdate:
        # updates still queued when the capture is cancelled are dropped
        if self._cancelled:
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is self._CLOSED or self._cancelled:
            raise StopAsyncIteration
        return item


class SpeechSynthesizer(Protocol):
    available: bool

    def speak(self, text: str, voice: VoiceOptions) -> Playback: ...

    def stop(self) -> None: ...


class SpeechRecognizer(Protocol):
    available: bool

    def start_listening(self, language_hint: str | None = None) -> Listening | None: ...

    def stop(self) -> None: ...


class NullSpeechSynthesizer:
    available = False

    def speak(self, text: str, voice: VoiceOptions) -> Playback:
        return Playback.finished(False)

    def stop(self) -> None:
        pass


class NullSpeechRecognizer:
    available = False

    def start_listening(self, language_hint: str | None = None) -> Listening | None:
        return None

    def stop(self) -> None:
        pass


@dataclass
class PlaybackCue:
    cue_id: str
    text: str
    voice: VoiceOptions
    status: Literal["pending", "completed", "failed", "cancelled"] = "pending"
    playback: Playback | None = field(default=None, repr=False)

    def to_dict(self) -> dict:
        return {
            "cue_id": self.cue_id,
            "text": self.text,
            "accent": self.voice.accent,
            "speed": self.voice.speed,
            "gender": self.voice.gender,
            "status": self.status,
        }


class ClientSpeechSynthesizer:
    """Publishes playback cues for the web client and waits for it to report completion.

    Only one cue is live at a time: speaking again cancels the previous cue.
    """

    available = True

    def __init__(self):
        self.current: PlaybackCue | None = None

    def speak(self, text: str, voice: VoiceOptions) -> Playback:
        self.stop()
        playback = Playback()
        self.current = PlaybackCue(cue_id=playback.cue_id, text=text, voice=voice, playback=playback)
        logger.debug("Published playback cue %s (%d chars)", playback.cue_id, len(text))
        return playback

    def acknowledge(self, cue_id: str, success: bool = True) -> bool:
        """Mark a cue as played. Returns False for unknown or stale cue ids."""
        cue = self.current
        if cue is None or cue.cue_id != cue_id or cue.status != "pending":
            return False
        cue.status = "completed" if success else "failed"
        cue.playback.complete(success)
        return True

    def stop(self) -> None:
        cue = self.current
        if cue is not None and cue.status == "pending":
            cue.status = "cancelled"
            cue.playback.cancel()


class QueueSpeechRecognizer:
    """Recognizer fed with results pushed by the client.

    Each ``start_listening`` opens a fresh stream; results pushed while no
    stream is open are dropped.
    """

    available = True

    def __init__(self):
        self._active: Listening | None = None
        self.language_hint: str | None = None

    @property
    def listening(self) -> bool:
        return self._active is not None and not self._active.cancelled

    def start_listening(self, language_hint: str | None = None) -> Listening | None:
        if self.listening:
            return self._active
        self.language_hint = language_hint
        self._active = Listening()
        return self._active

    def push(self, text: str, is_final: bool = False) -> bool:
        if not self.listening:
            logger.debug("Dropping transcript update received while not listening")
            return False
        self._active.feed(TranscriptUpdate(text=text, is_final=is_final))
        return True

    def stop(self) -> None:
        if self._active is not None:
            self._active.cancel()
            self._active = None
