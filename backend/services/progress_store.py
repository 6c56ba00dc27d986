"""Best-effort local persistence of learner settings, progress and finished sessions.

Every operation swallows database errors after logging them and degrades to
defaults: losing a progress increment must never interrupt a conversation.
"""
import logging
from datetime import datetime, timezone
from typing import Callable, Protocol

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from models.conversation import ConversationRecord
from models.learner import LEARNER_ROW_ID, LearnerProgress, LearnerSettings
from schemas.progress import SessionRead, UserProgress
from schemas.settings import UserSettings
from schemas.tutor import GrammarCorrection
from services.transcript import Session

logger = logging.getLogger(__name__)


class ProgressStore(Protocol):
    async def get_settings(self) -> UserSettings: ...

    async def save_settings(self, settings: UserSettings) -> bool: ...

    async def get_progress(self) -> UserProgress: ...

    async def save_progress(self, progress: UserProgress) -> bool: ...

    async def append_session(self, session: Session) -> bool: ...

    async def mark_topic_completed(self, topic_id: str) -> bool: ...

    async def add_learned_word(self, word: str) -> bool: ...

    async def add_difficult_phrase(self, phrase: str) -> bool: ...

    async def record_grammar_pattern(self, correction: GrammarCorrection) -> bool: ...

    async def update_vocabulary_progress(self, word: str) -> bool: ...


def _append_unique(values: list | None, value: str) -> list | None:
    """New list with ``value`` appended, or None when it is already present."""
    current = list(values or [])
    if value in current:
        return None
    current.append(value)
    return current


class SqlProgressStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def _progress_row(self, db: AsyncSession) -> LearnerProgress:
        row = await db.get(LearnerProgress, LEARNER_ROW_ID)
        if row is None:
            row = LearnerProgress(
                id=LEARNER_ROW_ID,
                learned_words=[],
                difficult_phrases=[],
                topics_completed=[],
                grammar_patterns=[],
                vocabulary_progress={},
                custom_topics=[],
                sessions_completed=0,
            )
            db.add(row)
        return row

    async def _update_progress(self, mutate: Callable[[LearnerProgress], bool], action: str) -> bool:
        try:
            async with self._session_factory() as db:
                row = await self._progress_row(db)
                changed = mutate(row)
                if changed:
                    await db.commit()
                return changed
        except SQLAlchemyError as e:
            logger.error("Progress store could not %s: %s", action, e)
            return False

    # -- settings --------------------------------------------------------

    async def get_settings(self) -> UserSettings:
        try:
            async with self._session_factory() as db:
                row = await db.get(LearnerSettings, LEARNER_ROW_ID)
                if row is None:
                    return UserSettings()
                return UserSettings.model_validate(row)
        except SQLAlchemyError as e:
            logger.error("Failed to load settings, using defaults: %s", e)
        except ValueError as e:
            logger.warning("Stored settings are invalid, using defaults: %s", e)
        return UserSettings()

    async def save_settings(self, settings: UserSettings) -> bool:
        try:
            async with self._session_factory() as db:
                row = await db.get(LearnerSettings, LEARNER_ROW_ID)
                if row is None:
                    row = LearnerSettings(id=LEARNER_ROW_ID)
                    db.add(row)
                row.difficulty_level = settings.difficulty_level
                row.speaking_speed = settings.speaking_speed
                row.accent = settings.accent
                row.voice_gender = settings.voice_gender
                row.updated_at = datetime.now(timezone.utc)
                await db.commit()
                return True
        except SQLAlchemyError as e:
            logger.error("Failed to save settings: %s", e)
            return False

    # -- progress --------------------------------------------------------

    async def get_progress(self) -> UserProgress:
        try:
            async with self._session_factory() as db:
                row = await db.get(LearnerProgress, LEARNER_ROW_ID)
                if row is None:
                    return UserProgress()
                return UserProgress.model_validate(row)
        except SQLAlchemyError as e:
            logger.error("Failed to load progress, using defaults: %s", e)
        except ValueError as e:
            logger.warning("Stored progress is invalid, using defaults: %s", e)
        return UserProgress()

    async def save_progress(self, progress: UserProgress) -> bool:
        data = progress.model_dump(mode="json")

        def mutate(row: LearnerProgress) -> bool:
            row.learned_words = data["learned_words"]
            row.difficult_phrases = data["difficult_phrases"]
            row.topics_completed = data["topics_completed"]
            row.grammar_patterns = data["grammar_patterns"]
            row.vocabulary_progress = data["vocabulary_progress"]
            row.custom_topics = data["custom_topics"]
            row.sessions_completed = progress.sessions_completed
            row.last_session_date = progress.last_session_date
            return True

        return await self._update_progress(mutate, "save progress")

    async def mark_topic_completed(self, topic_id: str) -> bool:
        def mutate(row: LearnerProgress) -> bool:
            updated = _append_unique(row.topics_completed, topic_id)
            if updated is None:
                return False
            row.topics_completed = updated
            return True

        return await self._update_progress(mutate, "mark topic completed")

    async def add_learned_word(self, word: str) -> bool:
        word = word.strip()
        if not word:
            return False

        def mutate(row: LearnerProgress) -> bool:
            updated = _append_unique(row.learned_words, word)
            if updated is None:
                return False
            row.learned_words = updated
            return True

        return await self._update_progress(mutate, "add learned word")

    async def add_difficult_phrase(self, phrase: str) -> bool:
        phrase = phrase.strip()
        if not phrase:
            return False

        def mutate(row: LearnerProgress) -> bool:
            updated = _append_unique(row.difficult_phrases, phrase)
            if updated is None:
                return False
            row.difficult_phrases = updated
            return True

        return await self._update_progress(mutate, "add difficult phrase")

    async def record_grammar_pattern(self, correction: GrammarCorrection) -> bool:
        """Count corrections per grammar rule, keeping the latest example."""
        key = (correction.rule or correction.corrected).strip().lower()
        if not key:
            return False

        def mutate(row: LearnerProgress) -> bool:
            patterns = [dict(p) for p in (row.grammar_patterns or [])]
            for pattern in patterns:
                if pattern.get("key") == key:
                    pattern["count"] = pattern.get("count", 0) + 1
                    pattern["original"] = correction.original
                    pattern["corrected"] = correction.corrected
                    break
            else:
                patterns.append({
                    "key": key,
                    "rule": correction.rule,
                    "original": correction.original,
                    "corrected": correction.corrected,
                    "count": 1,
                })
            row.grammar_patterns = patterns
            return True

        return await self._update_progress(mutate, "record grammar pattern")

    async def update_vocabulary_progress(self, word: str) -> bool:
        word = word.strip()
        if not word:
            return False

        def mutate(row: LearnerProgress) -> bool:
            vocabulary = dict(row.vocabulary_progress or {})
            entry = dict(vocabulary.get(word) or {"practiced": 0})
            entry["practiced"] = entry.get("practiced", 0) + 1
            entry["last_practiced"] = datetime.now(timezone.utc).isoformat()
            vocabulary[word] = entry
            row.vocabulary_progress = vocabulary
            return True

        return await self._update_progress(mutate, "update vocabulary progress")

    # -- custom topics ---------------------------------------------------

    async def get_custom_topics(self) -> list[str]:
        return (await self.get_progress()).custom_topics

    async def save_custom_topic(self, topic: str) -> bool:
        topic = topic.strip()
        if not topic:
            return False

        def mutate(row: LearnerProgress) -> bool:
            updated = _append_unique(row.custom_topics, topic)
            if updated is None:
                return False
            row.custom_topics = updated
            return True

        return await self._update_progress(mutate, "save custom topic")

    async def remove_custom_topic(self, topic: str) -> bool:
        def mutate(row: LearnerProgress) -> bool:
            current = list(row.custom_topics or [])
            if topic not in current:
                return False
            row.custom_topics = [t for t in current if t != topic]
            return True

        return await self._update_progress(mutate, "remove custom topic")

    # -- sessions --------------------------------------------------------

    async def append_session(self, session: Session) -> bool:
        """Store a finished session (upsert by id) and bump the session counters."""
        try:
            async with self._session_factory() as db:
                record = await db.get(ConversationRecord, session.id)
                if record is None:
                    record = ConversationRecord(id=session.id)
                    db.add(record)
                record.topic = session.topic
                record.messages = [m.to_dict() for m in session.messages]
                record.started_at = session.started_at
                record.ended_at = session.ended_at
                await db.flush()

                total = await db.scalar(select(func.count()).select_from(ConversationRecord))
                progress = await self._progress_row(db)
                progress.sessions_completed = total or 0
                progress.last_session_date = datetime.now(timezone.utc)
                await db.commit()
            logger.info("Saved session %s (%d messages)", session.id, len(session.messages))
            return True
        except SQLAlchemyError as e:
            logger.error("Failed to save session %s: %s", session.id, e)
            return False

    async def list_sessions(self) -> list[SessionRead]:
        try:
            async with self._session_factory() as db:
                result = await db.execute(
                    select(ConversationRecord).order_by(ConversationRecord.started_at.desc())
                )
                return [SessionRead.model_validate(r) for r in result.scalars().all()]
        except SQLAlchemyError as e:
            logger.error("Failed to load sessions: %s", e)
            return []

    async def clear_all(self) -> bool:
        try:
            async with self._session_factory() as db:
                await db.execute(delete(ConversationRecord))
                await db.execute(delete(LearnerProgress))
                await db.execute(delete(LearnerSettings))
                await db.commit()
            return True
        except SQLAlchemyError as e:
            logger.error("Failed to clear stored data: %s", e)
            return False
