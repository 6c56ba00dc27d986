from datetime import datetime

from pydantic import BaseModel, Field


class ConversationStart(BaseModel):
    topic: str = Field(min_length=1, max_length=120)


class TextSubmission(BaseModel):
    text: str


class TranscriptIn(BaseModel):
    text: str = ""
    is_final: bool = False


class PlaybackAck(BaseModel):
    success: bool = True


class MessageRead(BaseModel):
    id: str
    role: str
    content: str
    timestamp: datetime


class PlaybackCueRead(BaseModel):
    cue_id: str
    text: str
    accent: str
    speed: float
    gender: str
    status: str


class ConversationSnapshot(BaseModel):
    session_id: str
    topic: str
    state: str
    paused: bool
    base_level: str
    effective_level: str
    signal: str
    average_score: float
    live_transcript: str
    messages: list[MessageRead]
    started_at: datetime
    ended_at: datetime | None = None
    playback: PlaybackCueRead | None = None
    listening: bool = False
