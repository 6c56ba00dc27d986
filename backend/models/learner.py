from datetime import datetime, timezone

from sqlalchemy import String, Integer, Float, DateTime, JSON
from sqlalchemy.orm import Mapped, mapped_column

from database import Base

# Single-learner app: settings and progress each live in one row.
LEARNER_ROW_ID = 1


class LearnerSettings(Base):
    __tablename__ = "learner_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=LEARNER_ROW_ID)
    difficulty_level: Mapped[str] = mapped_column(String, nullable=False, default="A2")
    speaking_speed: Mapped[float] = mapped_column(Float, nullable=False, default=1.0)
    accent: Mapped[str] = mapped_column(String, nullable=False, default="american")
    voice_gender: Mapped[str] = mapped_column(String, nullable=False, default="female")
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=lambda: datetime.now(timezone.utc)
    )


class LearnerProgress(Base):
    __tablename__ = "learner_progress"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=LEARNER_ROW_ID)
    learned_words: Mapped[list] = mapped_column(JSON, default=list)
    difficult_phrases: Mapped[list] = mapped_column(JSON, default=list)
    topics_completed: Mapped[list] = mapped_column(JSON, default=list)
    grammar_patterns: Mapped[list] = mapped_column(JSON, default=list)  # [{"original", "corrected", "rule", "count"}]
    vocabulary_progress: Mapped[dict] = mapped_column(JSON, default=dict)  # {"word": {"practiced": 2, "last_practiced": iso}}
    custom_topics: Mapped[list] = mapped_column(JSON, default=list)
    sessions_completed: Mapped[int] = mapped_column(Integer, default=0)
    last_session_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
