"""
Unit Tests for the turn orchestrator.

Covers greeting, the text and voice turn paths, difficulty-aware requests,
fallbacks, pause/resume, and session termination.
"""

import asyncio

import pytest

from conftest import FakeTutor, settle
from prompts.conversation import START_SENTINEL
from schemas.settings import UserSettings
from schemas.tutor import GrammarCorrection, ProgressUpdate, TutorReply
from services.orchestrator import (
    FALLBACK_REPLY,
    FAREWELL_MESSAGE,
    ConversationState,
    TurnOrchestrator,
    is_end_phrase,
)
from services.speech import (
    ClientSpeechSynthesizer,
    NullSpeechRecognizer,
    NullSpeechSynthesizer,
    QueueSpeechRecognizer,
)
from services.tutor import TutorBackendError

HIKING = (
    "I love hiking because it helps me relax, however sometimes I prefer staying at home with a good book."
)


@pytest.fixture
def ended_sessions():
    return []


@pytest.fixture
def make_orchestrator(tutor, store, ended_sessions):
    def factory(
        topic="Daily Routines",
        level="A2",
        synthesizer=None,
        recognizer=None,
        tutor_client=None,
        **kwargs,
    ):
        kwargs.setdefault("farewell_delay", 0.01)
        return TurnOrchestrator(
            topic=topic,
            settings=UserSettings(difficulty_level=level),
            tutor=tutor_client or tutor,
            synthesizer=synthesizer or NullSpeechSynthesizer(),
            recognizer=recognizer or NullSpeechRecognizer(),
            store=store,
            on_ended=ended_sessions.append,
            **kwargs,
        )

    return factory


class TestGreeting:
    """Session start."""

    @pytest.mark.asyncio
    async def test_greeting_uses_sentinel_and_hides_it(self, make_orchestrator, tutor):
        tutor.replies = ["Hello! Let's talk about your day. When do you wake up?"]
        orch = make_orchestrator()

        message = await orch.start()

        assert tutor.calls[0]["history"][0].content == START_SENTINEL
        assert len(tutor.calls[0]["history"]) == 1
        assert message.role == "assistant"
        assert [m.content for m in orch.messages] == [message.content]
        assert all(START_SENTINEL not in m.content for m in orch.messages)
        assert orch.state is ConversationState.AWAITING_INPUT

    @pytest.mark.asyncio
    async def test_greeting_falls_back_when_backend_fails(self, make_orchestrator):
        orch = make_orchestrator(
            topic="Travel & Holidays",
            tutor_client=FakeTutor(error=TutorBackendError("transport", "offline")),
        )

        message = await orch.start()

        assert "Travel & Holidays" in message.content
        assert orch.state is ConversationState.AWAITING_INPUT

    @pytest.mark.asyncio
    async def test_greeting_is_spoken(self, make_orchestrator):
        synth = ClientSpeechSynthesizer()
        orch = make_orchestrator(synthesizer=synth)

        message = await orch.start()

        assert orch.state is ConversationState.SPEAKING
        assert synth.current.text == message.content
        assert synth.acknowledge(synth.current.cue_id)
        await settle()
        assert orch.state is ConversationState.AWAITING_INPUT

    @pytest.mark.asyncio
    async def test_start_only_once(self, make_orchestrator, tutor):
        orch = make_orchestrator()
        await orch.start()
        assert await orch.start() is None
        assert len(tutor.calls) == 1


class TestTextTurn:
    """Typed input path."""

    @pytest.mark.asyncio
    async def test_user_message_precedes_request(self, make_orchestrator, tutor):
        orch = make_orchestrator()
        await orch.start()

        assert await orch.submit_text("  I wake up at seven  ")

        history = tutor.calls[-1]["history"]
        assert history[-1].role == "user"
        assert history[-1].content == "I wake up at seven"
        roles = [m.role for m in orch.messages]
        assert roles == ["assistant", "user", "assistant"]
        assert orch.state is ConversationState.AWAITING_INPUT

    @pytest.mark.asyncio
    async def test_empty_input_is_rejected(self, make_orchestrator, tutor):
        orch = make_orchestrator()
        await orch.start()

        assert not await orch.submit_text("   ")
        assert not await orch.submit_text("")

        assert len(orch.messages) == 1
        assert len(tutor.calls) == 1
        assert orch.state is ConversationState.AWAITING_INPUT

    @pytest.mark.asyncio
    async def test_compose_marks_typing(self, make_orchestrator):
        orch = make_orchestrator()
        await orch.start()

        assert orch.compose()
        assert orch.state is ConversationState.COMPOSING
        assert await orch.submit_text("Hello")
        assert orch.state is ConversationState.AWAITING_INPUT

    @pytest.mark.asyncio
    async def test_input_rejected_before_start(self, make_orchestrator):
        orch = make_orchestrator()
        assert not await orch.submit_text("Hello")
        assert orch.messages == ()

    @pytest.mark.asyncio
    async def test_typing_allowed_while_speaking(self, make_orchestrator, tutor):
        synth = ClientSpeechSynthesizer()
        orch = make_orchestrator(synthesizer=synth)
        await orch.start()
        assert orch.state is ConversationState.SPEAKING

        assert await orch.submit_text("Sorry, I was slow")
        assert len(tutor.calls) == 2
        assert orch.state is ConversationState.SPEAKING
        assert synth.current.text == orch.messages[-1].content


class TestDifficultyAwareRequests:
    @pytest.mark.asyncio
    async def test_request_uses_effective_level(self, make_orchestrator, tutor):
        orch = make_orchestrator(level="B1")
        await orch.start()
        assert tutor.calls[0]["level"] == "B1"

        await orch.submit_text(HIKING)

        assert tutor.calls[-1]["level"] == "B2"
        assert orch.effective_level == "B2"
        assert orch.signal == "confident"
        assert orch.settings.difficulty_level == "B1"

    @pytest.mark.asyncio
    async def test_struggling_learner_gets_easier_level(self, make_orchestrator, tutor):
        orch = make_orchestrator(level="A2")
        await orch.start()

        await orch.submit_text("I don't know")

        assert tutor.calls[-1]["level"] == "A1"

    @pytest.mark.asyncio
    async def test_zero_difficulty_window_keeps_base_level(self, make_orchestrator, tutor):
        orch = make_orchestrator(level="B1", difficulty_window=0)
        await orch.start()

        await orch.submit_text(HIKING)

        assert tutor.calls[-1]["level"] == "B1"
        assert orch.signal == "neutral"

    @pytest.mark.asyncio
    async def test_history_is_capped(self, make_orchestrator, tutor):
        orch = make_orchestrator()
        await orch.start()

        for i in range(12):
            await orch.submit_text(f"Answer number {i}")

        history = tutor.calls[-1]["history"]
        assert len(history) == 20
        assert history[-1].content == "Answer number 11"

    @pytest.mark.asyncio
    async def test_history_window_is_configurable(self, make_orchestrator, tutor):
        orch = make_orchestrator(history_window=4)
        await orch.start()
        for text in ("one two three", "four five six", "seven eight nine"):
            await orch.submit_text(text)

        history = tutor.calls[-1]["history"]
        assert [m.role for m in history] == ["assistant", "user", "assistant", "user"]
        assert history[-1].content == "seven eight nine"


class TestFailures:
    @pytest.mark.asyncio
    async def test_backend_error_gives_fallback(self, make_orchestrator):
        tutor = FakeTutor(replies=["Hi there!"])
        orch = make_orchestrator(tutor_client=tutor)
        await orch.start()
        tutor.error = TutorBackendError("http", "500 Internal Server Error")

        assert await orch.submit_text("I cook pasta on Sundays")

        assert orch.messages[-1].role == "assistant"
        assert orch.messages[-1].content == FALLBACK_REPLY
        assert orch.state is ConversationState.AWAITING_INPUT

    @pytest.mark.asyncio
    async def test_timeout_gives_fallback(self, make_orchestrator):
        tutor = FakeTutor()
        orch = make_orchestrator(tutor_client=tutor, reply_timeout=0.05)
        await orch.start()
        tutor.delay = 1.0

        await orch.submit_text("Tell me something")

        assert orch.messages[-1].content == FALLBACK_REPLY
        assert orch.state is ConversationState.AWAITING_INPUT

    @pytest.mark.asyncio
    async def test_fallback_is_still_spoken(self, make_orchestrator):
        synth = ClientSpeechSynthesizer()
        tutor = FakeTutor()
        orch = make_orchestrator(tutor_client=tutor, synthesizer=synth)
        await orch.start()
        tutor.error = RuntimeError("boom")

        await orch.submit_text("Hello")

        assert synth.current.text == FALLBACK_REPLY
        assert orch.state is ConversationState.SPEAKING


class TestProgressMerge:
    @pytest.mark.asyncio
    async def test_side_channel_is_recorded(self, make_orchestrator, store, tutor):
        tutor.replies = [
            "Hello!",
            TutorReply(
                content="Nice sentence!",
                corrections=[GrammarCorrection(original="I goed", corrected="I went", rule="past simple")],
                progress=ProgressUpdate(learned=["commute"], difficult=["went"]),
            ),
        ]
        orch = make_orchestrator()
        await orch.start()

        await orch.submit_text("Yesterday I goed to work")

        assert orch.messages[-1].content == "Nice sentence!"
        assert store.called("record_grammar_pattern") == ["I went"]
        assert store.called("add_learned_word") == ["commute"]
        assert store.called("update_vocabulary_progress") == ["commute"]
        assert store.called("add_difficult_phrase") == ["went"]


class TestVoiceTurn:
    @pytest.mark.asyncio
    async def test_listening_preempts_speaking(self, make_orchestrator):
        synth = ClientSpeechSynthesizer()
        recognizer = QueueSpeechRecognizer()
        orch = make_orchestrator(synthesizer=synth, recognizer=recognizer)
        await orch.start()
        greeting_cue = synth.current

        assert orch.start_listening()

        assert greeting_cue.status == "cancelled"
        assert orch.state is ConversationState.LISTENING
        assert recognizer.language_hint == "en-US"

    @pytest.mark.asyncio
    async def test_partial_then_final_transcript(self, make_orchestrator, tutor):
        recognizer = QueueSpeechRecognizer()
        orch = make_orchestrator(recognizer=recognizer)
        await orch.start()
        assert orch.start_listening()

        recognizer.push("I usually", is_final=False)
        await settle()
        assert orch.live_transcript == "I usually"
        assert orch.state is ConversationState.LISTENING

        recognizer.push("I usually walk to work", is_final=True)
        await settle()

        assert tutor.calls[-1]["history"][-1].content == "I usually walk to work"
        assert orch.live_transcript == ""
        assert orch.state is ConversationState.AWAITING_INPUT
        assert not recognizer.listening

    @pytest.mark.asyncio
    async def test_stop_listening_returns_to_input(self, make_orchestrator, tutor):
        recognizer = QueueSpeechRecognizer()
        orch = make_orchestrator(recognizer=recognizer)
        await orch.start()
        orch.start_listening()

        assert orch.stop_listening()
        await settle()

        assert orch.state is ConversationState.AWAITING_INPUT
        assert not recognizer.push("too late", is_final=True)
        assert len(tutor.calls) == 1

    @pytest.mark.asyncio
    async def test_final_transcript_dropped_when_session_ends_first(self, make_orchestrator, tutor, store):
        recognizer = QueueSpeechRecognizer()
        orch = make_orchestrator(recognizer=recognizer)
        await orch.start()
        orch.start_listening()

        recognizer.push("hello there friend", is_final=True)
        await orch.end()
        await settle()

        assert orch.state is ConversationState.ENDED
        assert len(tutor.calls) == 1
        assert [m.role for m in orch.messages] == ["assistant"]
        assert len(store.called("append_session")) == 1

    @pytest.mark.asyncio
    async def test_final_transcript_dropped_when_paused_first(self, make_orchestrator, tutor):
        recognizer = QueueSpeechRecognizer()
        orch = make_orchestrator(recognizer=recognizer)
        await orch.start()
        orch.start_listening()

        recognizer.push("hello there friend", is_final=True)
        assert orch.pause()
        await settle()

        assert orch.paused
        assert orch.state is ConversationState.AWAITING_INPUT
        assert len(tutor.calls) == 1
        assert len(orch.messages) == 1

    @pytest.mark.asyncio
    async def test_unavailable_recognizer(self, make_orchestrator):
        orch = make_orchestrator()
        await orch.start()
        assert not orch.start_listening()
        assert orch.state is ConversationState.AWAITING_INPUT


class TestPauseResume:
    @pytest.mark.asyncio
    async def test_pause_stops_playback_and_blocks_listening(self, make_orchestrator):
        synth = ClientSpeechSynthesizer()
        orch = make_orchestrator(synthesizer=synth, recognizer=QueueSpeechRecognizer())
        await orch.start()

        assert orch.pause()

        assert orch.paused
        assert synth.current.status == "cancelled"
        assert orch.state is ConversationState.AWAITING_INPUT
        assert not orch.start_listening()

    @pytest.mark.asyncio
    async def test_typing_while_paused_is_not_spoken(self, make_orchestrator):
        synth = ClientSpeechSynthesizer()
        orch = make_orchestrator(synthesizer=synth)
        await orch.start()
        orch.pause()
        paused_cue = synth.current

        assert await orch.submit_text("Can I still type?")

        assert synth.current is paused_cue
        assert orch.state is ConversationState.AWAITING_INPUT

    @pytest.mark.asyncio
    async def test_resume_replays_last_tutor_message(self, make_orchestrator, tutor):
        synth = ClientSpeechSynthesizer()
        orch = make_orchestrator(synthesizer=synth)
        await orch.start()
        orch.pause()

        assert orch.resume()

        assert not orch.paused
        assert synth.current.status == "pending"
        assert synth.current.text == orch.messages[-1].content
        assert orch.state is ConversationState.SPEAKING
        assert len(tutor.calls) == 1

    @pytest.mark.asyncio
    async def test_resume_without_pause(self, make_orchestrator):
        orch = make_orchestrator()
        await orch.start()
        assert not orch.resume()


class TestTermination:
    @pytest.mark.parametrize("text", [
        "I am done",
        "OK, I'm done for today",
        "That’s enough",
        "that is enough, thanks",
        "Goodbye!",
    ])
    def test_end_phrases(self, text):
        assert is_end_phrase(text)

    def test_ordinary_text_is_not_an_end_phrase(self):
        assert not is_end_phrase("I finished my homework early")

    @pytest.mark.asyncio
    async def test_end_phrase_says_farewell_and_ends(self, make_orchestrator, tutor, store, ended_sessions):
        orch = make_orchestrator()
        await orch.start()

        assert await orch.submit_text("I am done")

        assert len(tutor.calls) == 1
        assert orch.messages[-1].content == FAREWELL_MESSAGE
        assert orch.state is ConversationState.ENDING
        assert orch.end_pending

        await asyncio.sleep(0.05)

        assert orch.state is ConversationState.ENDED
        assert orch.session.ended_at is not None
        assert len(store.called("append_session")) == 1
        assert store.called("mark_topic_completed") == ["daily-routines"]
        assert ended_sessions == [orch.session]

    @pytest.mark.asyncio
    async def test_end_is_idempotent(self, make_orchestrator, store, ended_sessions):
        orch = make_orchestrator()
        await orch.start()

        assert await orch.end()
        assert not await orch.end()

        assert len(store.called("append_session")) == 1
        assert len(ended_sessions) == 1

    @pytest.mark.asyncio
    async def test_manual_end_cancels_farewell_timer(self, make_orchestrator, store, ended_sessions):
        orch = make_orchestrator(farewell_delay=10)
        await orch.start()
        await orch.submit_text("That's enough for today")
        assert orch.end_pending

        assert await orch.end()

        assert not orch.end_pending
        await settle()
        assert len(store.called("append_session")) == 1
        assert len(ended_sessions) == 1

    @pytest.mark.asyncio
    async def test_close_cancels_farewell_timer(self, make_orchestrator, store, ended_sessions):
        orch = make_orchestrator(farewell_delay=0.02)
        await orch.start()
        await orch.submit_text("goodbye")

        await orch.close()
        await asyncio.sleep(0.05)

        assert orch.state is ConversationState.ENDING
        assert store.called("append_session") == []
        assert ended_sessions == []

    @pytest.mark.asyncio
    async def test_custom_topic_completion_key(self, make_orchestrator, store):
        orch = make_orchestrator(topic="  My garden  ")
        await orch.start()
        await orch.end()
        assert store.called("mark_topic_completed") == ["My garden"]

    @pytest.mark.asyncio
    async def test_no_input_after_end(self, make_orchestrator, tutor):
        orch = make_orchestrator()
        await orch.start()
        await orch.end()

        assert not await orch.submit_text("Hello again")
        assert not orch.start_listening()
        assert len(tutor.calls) == 1

    @pytest.mark.asyncio
    async def test_end_during_pending_reply_discards_it(self, make_orchestrator, store):
        tutor = FakeTutor()
        orch = make_orchestrator(tutor_client=tutor)
        await orch.start()
        tutor.delay = 0.05

        turn = asyncio.create_task(orch.submit_text("Tell me a story"))
        await settle()
        assert orch.state is ConversationState.AWAITING_AI_RESPONSE
        await orch.end()
        await turn

        assert orch.state is ConversationState.ENDED
        assert orch.messages[-1].role == "user"


class TestSnapshot:
    @pytest.mark.asyncio
    async def test_snapshot_fields(self, make_orchestrator):
        orch = make_orchestrator(level="B1")
        await orch.start()
        await orch.submit_text(HIKING)

        snap = orch.snapshot()

        assert snap["topic"] == "Daily Routines"
        assert snap["state"] == "awaiting_input"
        assert snap["base_level"] == "B1"
        assert snap["effective_level"] == "B2"
        assert snap["signal"] == "confident"
        assert len(snap["messages"]) == 3
        assert snap["paused"] is False
