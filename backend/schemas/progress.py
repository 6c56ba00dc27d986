from datetime import datetime

from pydantic import BaseModel, Field


class VocabularyPractice(BaseModel):
    practiced: int = 0
    last_practiced: datetime | None = None


class UserProgress(BaseModel):
    learned_words: list[str] = Field(default_factory=list)
    difficult_phrases: list[str] = Field(default_factory=list)
    topics_completed: list[str] = Field(default_factory=list)
    grammar_patterns: list[dict] = Field(default_factory=list)
    vocabulary_progress: dict[str, VocabularyPractice] = Field(default_factory=dict)
    custom_topics: list[str] = Field(default_factory=list)
    sessions_completed: int = 0
    last_session_date: datetime | None = None

    model_config = {"from_attributes": True}


class SessionRead(BaseModel):
    id: str
    topic: str
    messages: list[dict]
    started_at: datetime
    ended_at: datetime | None

    model_config = {"from_attributes": True}


class SessionList(BaseModel):
    sessions: list[SessionRead]


class ProgressStats(BaseModel):
    total_sessions: int
    total_minutes: int
    unique_topics: list[str]
    average_minutes_per_session: int
    suggested_topics: list[dict] = Field(default_factory=list)


class CustomTopic(BaseModel):
    topic: str = Field(min_length=1, max_length=120)
