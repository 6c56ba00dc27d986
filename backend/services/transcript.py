"""Conversation transcript: immutable messages and the session that owns them."""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal

Role = Literal["user", "assistant"]


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Message:
    role: Role
    content: str
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = field(default_factory=_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "role": self.role,
            "content": self.content,
            "timestamp": self.timestamp.isoformat(),
        }


class SessionFinalizedError(RuntimeError):
    pass


@dataclass
class Session:
    """A single conversation about one topic.

    Messages are append-only while the session is live. Once ``finalize`` has
    stamped ``ended_at`` the session rejects further changes.
    """

    topic: str
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    messages: list[Message] = field(default_factory=list)
    started_at: datetime = field(default_factory=_now)
    ended_at: datetime | None = None

    @property
    def finalized(self) -> bool:
        return self.ended_at is not None

    def append(self, role: Role, content: str) -> Message:
        if self.finalized:
            raise SessionFinalizedError(f"Session {self.id} has already ended")
        message = Message(role=role, content=content)
        self.messages.append(message)
        return message

    def last_assistant_message(self) -> Message | None:
        for message in reversed(self.messages):
            if message.role == "assistant":
                return message
        return None

    def recent(self, limit: int) -> list[Message]:
        if limit <= 0:
            return []
        return list(self.messages[-limit:])

    def finalize(self) -> None:
        if not self.finalized:
            self.ended_at = _now()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "topic": self.topic,
            "messages": [m.to_dict() for m in self.messages],
            "started_at": self.started_at.isoformat(),
            "ended_at": self.ended_at.isoformat() if self.ended_at else None,
        }
