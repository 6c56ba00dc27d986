"""Turn-taking state machine for one tutoring conversation.

The orchestrator is the single writer of the session transcript. Every
append is followed by a difficulty reassessment, so the level used for a
tutor request always reflects the transcript including the learner message
that triggered it.

States::

    idle -> greeting -> awaiting_input -> {listening | composing} -> sending
         -> awaiting_ai_response -> speaking -> awaiting_input ... -> ending -> ended

``paused`` is a separate flag: while set, playback and capture are
suspended but typed input still works.

Nothing raised by the tutor backend, the speech services or the progress
store escapes a turn. Failures are logged and replaced with fallback text.
"""
import asyncio
import inspect
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Sequence

from config import settings as app_settings
from prompts.conversation import START_SENTINEL, build_fallback_greeting
from schemas.settings import UserSettings
from schemas.tutor import TutorReply
from services.difficulty import DifficultyRecommendation, adapt
from services.progress_store import ProgressStore
from services.speech import Listening, Playback, SpeechRecognizer, SpeechSynthesizer, VoiceOptions
from services.transcript import Message, Session
from services.tutor import TutorBackendError, TutorClient
from topics import topic_key

logger = logging.getLogger(__name__)

END_PHRASES = (
    "i am done",
    "i'm done",
    "that's enough",
    "that is enough",
    "enough for today",
    "let's stop",
    "goodbye",
)

FAREWELL_MESSAGE = (
    "Great job today! Thank you for practicing with me. I hope to talk with you again soon. Goodbye!"
)
FALLBACK_REPLY = "I'm sorry, I had a problem answering just now. Could you please say that again?"

LANGUAGE_HINTS = {"american": "en-US", "british": "en-GB"}


class ConversationState(str, Enum):
    IDLE = "idle"
    GREETING = "greeting"
    AWAITING_INPUT = "awaiting_input"
    LISTENING = "listening"
    COMPOSING = "composing"
    SENDING = "sending"
    AWAITING_AI_RESPONSE = "awaiting_ai_response"
    SPEAKING = "speaking"
    ENDING = "ending"
    ENDED = "ended"


INPUT_STATES = (ConversationState.AWAITING_INPUT, ConversationState.COMPOSING, ConversationState.SPEAKING)
PAUSABLE_STATES = (ConversationState.AWAITING_INPUT, ConversationState.LISTENING, ConversationState.SPEAKING)


def is_end_phrase(text: str) -> bool:
    normalized = " ".join(text.lower().replace("’", "'").split())
    return any(phrase in normalized for phrase in END_PHRASES)


class TurnOrchestrator:
    def __init__(
        self,
        topic: str,
        settings: UserSettings,
        tutor: TutorClient,
        synthesizer: SpeechSynthesizer,
        recognizer: SpeechRecognizer,
        store: ProgressStore,
        *,
        history_window: int | None = None,
        difficulty_window: int | None = None,
        reply_timeout: float | None = None,
        farewell_delay: float | None = None,
        on_ended: Callable[[Session], Awaitable[Any] | Any] | None = None,
    ):
        self.session = Session(topic=topic)
        self.settings = settings.model_copy()
        self._tutor = tutor
        self._synthesizer = synthesizer
        self._recognizer = recognizer
        self._store = store
        self._history_window = app_settings.HISTORY_WINDOW if history_window is None else history_window
        self._difficulty_window = app_settings.DIFFICULTY_WINDOW if difficulty_window is None else difficulty_window
        self._reply_timeout = app_settings.TUTOR_TIMEOUT_SECONDS if reply_timeout is None else reply_timeout
        self._farewell_delay = app_settings.FAREWELL_DELAY_SECONDS if farewell_delay is None else farewell_delay
        self._on_ended = on_ended

        self.state = ConversationState.IDLE
        self.paused = False
        self.live_transcript = ""
        self.recommendation = DifficultyRecommendation(
            effective_level=self.settings.difficulty_level, signal="neutral"
        )

        self._turn_lock = asyncio.Lock()
        self._tasks: set[asyncio.Task] = set()
        self._playback: Playback | None = None
        self._listening: Listening | None = None
        self._end_timer: asyncio.Task | None = None
        self._ended = False
        self._closed = False

    # -- read-only views -------------------------------------------------

    @property
    def effective_level(self) -> str:
        return self.recommendation.effective_level

    @property
    def signal(self) -> str:
        return self.recommendation.signal

    @property
    def ended(self) -> bool:
        return self._ended

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def end_pending(self) -> bool:
        return self._end_timer is not None and not self._end_timer.done()

    @property
    def messages(self) -> Sequence[Message]:
        return tuple(self.session.messages)

    def snapshot(self) -> dict:
        return {
            "session_id": self.session.id,
            "topic": self.session.topic,
            "state": self.state.value,
            "paused": self.paused,
            "base_level": self.settings.difficulty_level,
            "effective_level": self.effective_level,
            "signal": self.signal,
            "average_score": self.recommendation.average_score,
            "live_transcript": self.live_transcript,
            "messages": [m.to_dict() for m in self.session.messages],
            "started_at": self.session.started_at,
            "ended_at": self.session.ended_at,
        }

    # -- internals -------------------------------------------------------

    def _set_state(self, state: ConversationState) -> None:
        if state is not self.state:
            logger.debug("Conversation %s: %s -> %s", self.session.id, self.state.value, state.value)
            self.state = state

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _append(self, role: str, content: str) -> Message:
        message = self.session.append(role, content)
        self._reassess()
        return message

    def _reassess(self) -> None:
        previous = self.recommendation.effective_level
        self.recommendation = adapt(
            self.session.messages, self.settings.difficulty_level, self._difficulty_window
        )
        if self.recommendation.effective_level != previous:
            logger.info(
                "Effective level for session %s: %s -> %s (avg=%.2f, signal=%s)",
                self.session.id,
                previous,
                self.recommendation.effective_level,
                self.recommendation.average_score,
                self.recommendation.signal,
            )

    def _voice(self) -> VoiceOptions:
        return VoiceOptions(
            accent=self.settings.accent,
            speed=self.settings.speaking_speed,
            gender=self.settings.voice_gender,
        )

    def _stop_playback(self) -> None:
        playback, self._playback = self._playback, None
        if playback is not None:
            playback.cancel()
            self._synthesizer.stop()
        if self.state is ConversationState.SPEAKING:
            self._set_state(ConversationState.AWAITING_INPUT)

    def _stop_listening(self) -> None:
        listening, self._listening = self._listening, None
        if listening is not None:
            listening.cancel()
            self._recognizer.stop()
        self.live_transcript = ""
        if self.state is ConversationState.LISTENING:
            self._set_state(ConversationState.AWAITING_INPUT)

    def _speak(self, text: str) -> Playback | None:
        self._stop_playback()
        if self.paused or self._closed or not self._synthesizer.available:
            return None
        try:
            playback = self._synthesizer.speak(text, self._voice())
        except Exception:
            logger.exception("Speech playback could not start")
            return None
        self._playback = playback
        self._spawn(self._watch_playback(playback))
        return playback

    async def _watch_playback(self, playback: Playback) -> None:
        completed = await playback.wait()
        if not completed:
            logger.debug("Playback %s did not complete", playback.cue_id)
        if self._playback is playback:
            self._playback = None
            if self.state is ConversationState.SPEAKING:
                self._set_state(ConversationState.AWAITING_INPUT)

    def _deliver(self, text: str) -> None:
        """Speak an assistant message and move to speaking, or straight back to input."""
        if self._speak(text) is None:
            self._set_state(ConversationState.AWAITING_INPUT)
        else:
            self._set_state(ConversationState.SPEAKING)

    async def _request_reply(self, history: Sequence[Message], level: str) -> TutorReply | None:
        try:
            return await asyncio.wait_for(
                self._tutor.reply(history, self.session.topic, level),
                timeout=self._reply_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("Tutor reply timed out after %.1fs", self._reply_timeout)
        except TutorBackendError as e:
            logger.warning("Tutor backend error (%s): %s", e.kind, e.message)
        except Exception:
            logger.exception("Unexpected error while requesting a tutor reply")
        return None

    async def _merge_progress(self, reply: TutorReply) -> None:
        try:
            for correction in reply.corrections:
                await self._store.record_grammar_pattern(correction)
            for word in reply.progress.learned:
                await self._store.add_learned_word(word)
                await self._store.update_vocabulary_progress(word)
            for phrase in reply.progress.difficult:
                await self._store.add_difficult_phrase(phrase)
        except Exception:
            logger.exception("Failed to record progress for session %s", self.session.id)

    def _begin_farewell(self) -> None:
        self._append("assistant", FAREWELL_MESSAGE)
        self._set_state(ConversationState.ENDING)
        self._speak(FAREWELL_MESSAGE)
        self._end_timer = self._spawn(self._end_after_delay())

    async def _end_after_delay(self) -> None:
        await asyncio.sleep(self._farewell_delay)
        await self.end()

    async def _send(self, text: str) -> None:
        if self._ended or self._closed:
            return
        self._set_state(ConversationState.SENDING)
        self.live_transcript = ""
        async with self._turn_lock:
            self._append("user", text)

            if is_end_phrase(text):
                logger.info("Learner ended session %s", self.session.id)
                self._begin_farewell()
                return

            level = self.recommendation.effective_level
            history = self.session.recent(self._history_window)
            self._set_state(ConversationState.AWAITING_AI_RESPONSE)
            reply = await self._request_reply(history, level)
            if self._ended or self._closed:
                return

            content = reply.content if reply is not None and reply.content else FALLBACK_REPLY
            self._append("assistant", content)
            if reply is not None:
                await self._merge_progress(reply)
            self._deliver(content)

    async def _consume_transcript(self, listening: Listening) -> None:
        try:
            async for update in listening:
                self.live_transcript = update.text
                if not update.is_final:
                    continue
                if self._listening is not listening or self._ended or self._closed:
                    return
                text = update.text.strip()
                self._stop_listening()
                if text:
                    await self._send(text)
                return
        except Exception:
            logger.exception("Speech capture failed for session %s", self.session.id)
        finally:
            if self._listening is listening:
                self._stop_listening()

    # -- operations ------------------------------------------------------

    async def start(self) -> Message | None:
        """Open the conversation with a tutor greeting."""
        if self.state is not ConversationState.IDLE:
            return None
        self._set_state(ConversationState.GREETING)

        reply = await self._request_reply(
            [Message(role="user", content=START_SENTINEL)], self.effective_level
        )
        if self._ended or self._closed:
            return None

        greeting = reply.content if reply is not None and reply.content else build_fallback_greeting(self.session.topic)
        message = self._append("assistant", greeting)
        self._deliver(greeting)
        return message

    def compose(self) -> bool:
        """The learner started typing."""
        if self.state is ConversationState.AWAITING_INPUT:
            self._set_state(ConversationState.COMPOSING)
            return True
        return self.state in INPUT_STATES

    async def submit_text(self, text: str) -> bool:
        """Send typed input. Empty input and input outside an input state are rejected."""
        if not text or not text.strip():
            return False
        if self.state not in INPUT_STATES:
            return False
        await self._send(text.strip())
        return True

    def start_listening(self) -> bool:
        """Open voice capture, interrupting any tutor playback first."""
        if self.paused or self._closed or self.state not in INPUT_STATES:
            return False
        if not self._recognizer.available:
            return False

        self._stop_playback()
        listening = self._recognizer.start_listening(LANGUAGE_HINTS.get(self.settings.accent))
        if listening is None:
            return False

        self._listening = listening
        self.live_transcript = ""
        self._set_state(ConversationState.LISTENING)
        self._spawn(self._consume_transcript(listening))
        return True

    def stop_listening(self) -> bool:
        if self.state is not ConversationState.LISTENING:
            return False
        self._stop_listening()
        return True

    def pause(self) -> bool:
        if self.paused or self.state not in PAUSABLE_STATES:
            return False
        self.paused = True
        self._stop_playback()
        self._stop_listening()
        return True

    def resume(self) -> bool:
        """Clear the pause and replay the latest tutor message; no new turn starts."""
        if not self.paused:
            return False
        self.paused = False
        last = self.session.last_assistant_message()
        if last is not None and self.state is ConversationState.AWAITING_INPUT:
            self._deliver(last.content)
        return True

    async def end(self) -> bool:
        """Finalize and persist the session. Only the first call has any effect
        beyond clearing a pending farewell timer."""
        timer, self._end_timer = self._end_timer, None
        if timer is not None and timer is not asyncio.current_task():
            timer.cancel()
        if self._ended:
            return False
        self._ended = True

        self._set_state(ConversationState.ENDING)
        self._stop_listening()
        self.session.finalize()
        try:
            await self._store.append_session(self.session)
            await self._store.mark_topic_completed(topic_key(self.session.topic))
        except Exception:
            logger.exception("Failed to persist session %s", self.session.id)
        self._set_state(ConversationState.ENDED)

        if self._on_ended is not None and not self._closed:
            try:
                result = self._on_ended(self.session)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Session end callback failed")
        return True

    async def close(self) -> None:
        """Tear down: cancel pending tasks and timers and stop speech I/O."""
        if self._closed:
            return
        self._closed = True
        timer, self._end_timer = self._end_timer, None
        if timer is not None:
            timer.cancel()
        self._stop_playback()
        self._stop_listening()

        current = asyncio.current_task()
        pending = [t for t in self._tasks if t is not current]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
