"""
Unit Tests for the SQLite-backed progress store.
"""

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from database import init_db
from schemas.progress import UserProgress
from schemas.settings import UserSettings
from schemas.tutor import GrammarCorrection
from services.progress_store import SqlProgressStore
from services.transcript import Session


@pytest_asyncio.fixture
async def sql_store(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await init_db(bind=engine)
    yield SqlProgressStore(async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False))
    await engine.dispose()


def finished_session(topic="Daily Routines"):
    session = Session(topic=topic)
    session.append("assistant", "Hello! How is your day?")
    session.append("user", "It is fine, thank you")
    session.finalize()
    return session


class TestSettings:
    @pytest.mark.asyncio
    async def test_defaults_when_nothing_saved(self, sql_store):
        settings = await sql_store.get_settings()
        assert settings == UserSettings()

    @pytest.mark.asyncio
    async def test_save_and_load(self, sql_store):
        wanted = UserSettings(difficulty_level="B2", speaking_speed=1.25, accent="british", voice_gender="male")
        assert await sql_store.save_settings(wanted)
        assert await sql_store.get_settings() == wanted


class TestProgress:
    @pytest.mark.asyncio
    async def test_defaults_when_nothing_saved(self, sql_store):
        progress = await sql_store.get_progress()
        assert progress.learned_words == []
        assert progress.sessions_completed == 0

    @pytest.mark.asyncio
    async def test_learned_words_are_unique(self, sql_store):
        assert await sql_store.add_learned_word("commute")
        assert not await sql_store.add_learned_word("commute")
        assert await sql_store.add_learned_word("schedule")
        assert (await sql_store.get_progress()).learned_words == ["commute", "schedule"]

    @pytest.mark.asyncio
    async def test_blank_words_ignored(self, sql_store):
        assert not await sql_store.add_learned_word("   ")
        assert not await sql_store.add_difficult_phrase("")
        assert (await sql_store.get_progress()).learned_words == []

    @pytest.mark.asyncio
    async def test_difficult_phrases(self, sql_store):
        await sql_store.add_difficult_phrase("went")
        await sql_store.add_difficult_phrase("went")
        assert (await sql_store.get_progress()).difficult_phrases == ["went"]

    @pytest.mark.asyncio
    async def test_grammar_patterns_are_counted_by_rule(self, sql_store):
        await sql_store.record_grammar_pattern(
            GrammarCorrection(original="I goed", corrected="I went", rule="Past simple")
        )
        await sql_store.record_grammar_pattern(
            GrammarCorrection(original="she eated", corrected="she ate", rule="past simple")
        )
        patterns = (await sql_store.get_progress()).grammar_patterns
        assert len(patterns) == 1
        assert patterns[0]["count"] == 2
        assert patterns[0]["corrected"] == "she ate"

    @pytest.mark.asyncio
    async def test_vocabulary_practice_counter(self, sql_store):
        await sql_store.update_vocabulary_progress("commute")
        await sql_store.update_vocabulary_progress("commute")
        entry = (await sql_store.get_progress()).vocabulary_progress["commute"]
        assert entry.practiced == 2
        assert entry.last_practiced is not None

    @pytest.mark.asyncio
    async def test_topics_completed_are_unique(self, sql_store):
        await sql_store.mark_topic_completed("travel")
        await sql_store.mark_topic_completed("travel")
        assert (await sql_store.get_progress()).topics_completed == ["travel"]

    @pytest.mark.asyncio
    async def test_save_progress_overwrites(self, sql_store):
        await sql_store.add_learned_word("old")
        assert await sql_store.save_progress(UserProgress(learned_words=["new"], sessions_completed=4))
        progress = await sql_store.get_progress()
        assert progress.learned_words == ["new"]
        assert progress.sessions_completed == 4


class TestCustomTopics:
    @pytest.mark.asyncio
    async def test_add_and_remove(self, sql_store):
        assert await sql_store.save_custom_topic("  My garden ")
        assert not await sql_store.save_custom_topic("My garden")
        assert await sql_store.get_custom_topics() == ["My garden"]

        assert await sql_store.remove_custom_topic("My garden")
        assert not await sql_store.remove_custom_topic("My garden")
        assert await sql_store.get_custom_topics() == []


class TestSessions:
    @pytest.mark.asyncio
    async def test_append_session_updates_counters(self, sql_store):
        first = finished_session()
        assert await sql_store.append_session(first)
        assert await sql_store.append_session(finished_session("Travel & Holidays"))

        progress = await sql_store.get_progress()
        assert progress.sessions_completed == 2
        assert progress.last_session_date is not None

        sessions = await sql_store.list_sessions()
        assert {s.topic for s in sessions} == {"Daily Routines", "Travel & Holidays"}
        stored = next(s for s in sessions if s.id == first.id)
        assert [m["role"] for m in stored.messages] == ["assistant", "user"]
        assert stored.ended_at is not None

    @pytest.mark.asyncio
    async def test_append_same_session_twice_is_upsert(self, sql_store):
        session = finished_session()
        await sql_store.append_session(session)
        await sql_store.append_session(session)
        assert len(await sql_store.list_sessions()) == 1
        assert (await sql_store.get_progress()).sessions_completed == 1

    @pytest.mark.asyncio
    async def test_clear_all(self, sql_store):
        await sql_store.append_session(finished_session())
        await sql_store.add_learned_word("commute")
        await sql_store.save_settings(UserSettings(difficulty_level="C1"))

        assert await sql_store.clear_all()

        assert await sql_store.list_sessions() == []
        assert (await sql_store.get_progress()).learned_words == []
        assert (await sql_store.get_settings()).difficulty_level == "A2"
