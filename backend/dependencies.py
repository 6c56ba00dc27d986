from fastapi import HTTPException, Request

from services.orchestrator import TurnOrchestrator
from services.progress_store import SqlProgressStore


def get_store(request: Request) -> SqlProgressStore:
    return request.app.state.store


def get_conversation(request: Request) -> TurnOrchestrator:
    conversation = getattr(request.app.state, "conversation", None)
    if conversation is None:
        raise HTTPException(status_code=404, detail="No active conversation")
    return conversation
