"""Conversation endpoints: one live tutoring session driven by the web client.

The browser renders speech itself. It polls the snapshot for the current
playback cue, reports when a cue finished playing, and pushes speech
recognition results to ``/transcript`` while listening.
"""
import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from config import settings
from dependencies import get_conversation, get_store
from schemas.conversation import (
    ConversationSnapshot,
    ConversationStart,
    PlaybackAck,
    TextSubmission,
    TranscriptIn,
)
from services.orchestrator import TurnOrchestrator
from services.progress_store import SqlProgressStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/conversation", tags=["conversation"])


def _snapshot(request: Request, conversation: TurnOrchestrator) -> ConversationSnapshot:
    data = conversation.snapshot()
    cue = getattr(request.app.state.synthesizer, "current", None)
    data["playback"] = cue.to_dict() if cue is not None and cue.status == "pending" else None
    data["listening"] = getattr(request.app.state.recognizer, "listening", False)
    return ConversationSnapshot(**data)


@router.post("/start", response_model=ConversationSnapshot)
async def start_conversation(
    data: ConversationStart,
    request: Request,
    store: SqlProgressStore = Depends(get_store),
):
    if not settings.ANTHROPIC_API_KEY:
        raise HTTPException(status_code=503, detail="ANTHROPIC_API_KEY is not configured")
    topic = data.topic.strip()
    if not topic:
        raise HTTPException(status_code=400, detail="Topic must not be empty")

    previous = getattr(request.app.state, "conversation", None)
    if previous is not None:
        await previous.close()

    conversation = TurnOrchestrator(
        topic=topic,
        settings=await store.get_settings(),
        tutor=request.app.state.tutor,
        synthesizer=request.app.state.synthesizer,
        recognizer=request.app.state.recognizer,
        store=store,
    )
    request.app.state.conversation = conversation
    logger.info("Starting conversation %s on %r", conversation.session.id, topic)
    await conversation.start()
    return _snapshot(request, conversation)


@router.get("", response_model=ConversationSnapshot)
async def get_snapshot(request: Request, conversation: TurnOrchestrator = Depends(get_conversation)):
    return _snapshot(request, conversation)


@router.post("/message", response_model=ConversationSnapshot)
async def send_message(
    data: TextSubmission,
    request: Request,
    conversation: TurnOrchestrator = Depends(get_conversation),
):
    if not data.text.strip():
        raise HTTPException(status_code=400, detail="Message must not be empty")
    if not await conversation.submit_text(data.text):
        raise HTTPException(status_code=409, detail=f"Cannot send a message while {conversation.state.value}")
    return _snapshot(request, conversation)


@router.post("/compose", response_model=ConversationSnapshot)
async def compose(request: Request, conversation: TurnOrchestrator = Depends(get_conversation)):
    if not conversation.compose():
        raise HTTPException(status_code=409, detail=f"Cannot type while {conversation.state.value}")
    return _snapshot(request, conversation)


@router.post("/listen", response_model=ConversationSnapshot)
async def start_listening(request: Request, conversation: TurnOrchestrator = Depends(get_conversation)):
    if not conversation.start_listening():
        raise HTTPException(status_code=409, detail="Listening is not possible right now")
    return _snapshot(request, conversation)


@router.post("/listen/stop", response_model=ConversationSnapshot)
async def stop_listening(request: Request, conversation: TurnOrchestrator = Depends(get_conversation)):
    if not conversation.stop_listening():
        raise HTTPException(status_code=409, detail="Not listening")
    return _snapshot(request, conversation)


@router.post("/transcript", response_model=ConversationSnapshot)
async def push_transcript(
    data: TranscriptIn,
    request: Request,
    conversation: TurnOrchestrator = Depends(get_conversation),
):
    if not request.app.state.recognizer.push(data.text, data.is_final):
        raise HTTPException(status_code=409, detail="Not listening")
    # let the capture task consume the update before reporting state
    await asyncio.sleep(0)
    return _snapshot(request, conversation)


@router.post("/playback/{cue_id}/done", response_model=ConversationSnapshot)
async def playback_done(
    cue_id: str,
    data: PlaybackAck,
    request: Request,
    conversation: TurnOrchestrator = Depends(get_conversation),
):
    if not request.app.state.synthesizer.acknowledge(cue_id, data.success):
        raise HTTPException(status_code=404, detail="Unknown or stale playback cue")
    await asyncio.sleep(0)
    return _snapshot(request, conversation)


@router.post("/pause", response_model=ConversationSnapshot)
async def pause(request: Request, conversation: TurnOrchestrator = Depends(get_conversation)):
    if not conversation.pause():
        raise HTTPException(status_code=409, detail="Cannot pause right now")
    return _snapshot(request, conversation)


@router.post("/resume", response_model=ConversationSnapshot)
async def resume(request: Request, conversation: TurnOrchestrator = Depends(get_conversation)):
    if not conversation.resume():
        raise HTTPException(status_code=409, detail="Conversation is not paused")
    return _snapshot(request, conversation)


@router.post("/end", response_model=ConversationSnapshot)
async def end_conversation(request: Request, conversation: TurnOrchestrator = Depends(get_conversation)):
    await conversation.end()
    return _snapshot(request, conversation)
