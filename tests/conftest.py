"""Shared fakes for the tutor backend and the progress store."""

import asyncio

import pytest

from schemas.progress import SessionRead, UserProgress
from schemas.settings import UserSettings
from schemas.tutor import TutorReply


class FakeTutor:
    """Scripted tutor backend that records every request."""

    def __init__(self, replies=None, error=None, delay=0.0):
        self.replies = list(replies or [])
        self.error = error
        self.delay = delay
        self.calls = []

    async def reply(self, history, topic, level):
        self.calls.append({"history": list(history), "topic": topic, "level": level})
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if self.replies:
            reply = self.replies.pop(0)
            return reply if isinstance(reply, TutorReply) else TutorReply(content=reply)
        return TutorReply(content="That sounds lovely! Can you tell me more?")


class FakeStore:
    """In-memory progress store that records calls."""

    def __init__(self):
        self.settings = UserSettings()
        self.progress = UserProgress()
        self.sessions = []
        self.calls = []

    async def get_settings(self):
        return self.settings

    async def save_settings(self, settings):
        self.settings = settings
        return True

    async def get_progress(self):
        return self.progress

    async def save_progress(self, progress):
        self.progress = progress
        return True

    async def append_session(self, session):
        self.calls.append(("append_session", session.id))
        self.sessions.append(SessionRead.model_validate(session.to_dict()))
        return True

    async def list_sessions(self):
        return list(self.sessions)

    async def mark_topic_completed(self, topic_id):
        self.calls.append(("mark_topic_completed", topic_id))
        return True

    async def add_learned_word(self, word):
        self.calls.append(("add_learned_word", word))
        return True

    async def add_difficult_phrase(self, phrase):
        self.calls.append(("add_difficult_phrase", phrase))
        return True

    async def record_grammar_pattern(self, correction):
        self.calls.append(("record_grammar_pattern", correction.corrected))
        return True

    async def update_vocabulary_progress(self, word):
        self.calls.append(("update_vocabulary_progress", word))
        return True

    async def get_custom_topics(self):
        return list(self.progress.custom_topics)

    async def save_custom_topic(self, topic):
        if topic in self.progress.custom_topics:
            return False
        self.progress.custom_topics.append(topic)
        return True

    async def remove_custom_topic(self, topic):
        if topic not in self.progress.custom_topics:
            return False
        self.progress.custom_topics.remove(topic)
        return True

    async def clear_all(self):
        self.__init__()
        return True

    def called(self, name):
        return [args for call, args in self.calls if call == name]


async def settle(rounds: int = 20):
    """Let pending tasks and future callbacks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def tutor():
    return FakeTutor()


@pytest.fixture
def store():
    return FakeStore()
