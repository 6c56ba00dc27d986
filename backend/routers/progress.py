"""Learner progress, session history and dashboard statistics."""
from fastapi import APIRouter, Depends

from dependencies import get_store
from schemas.progress import ProgressStats, SessionList, UserProgress
from services.progress_store import SqlProgressStore
from services.stats import compute_stats, suggested_topics

router = APIRouter(prefix="/api", tags=["progress"])


@router.get("/progress", response_model=UserProgress)
async def get_progress(store: SqlProgressStore = Depends(get_store)):
    return await store.get_progress()


@router.get("/progress/stats", response_model=ProgressStats)
async def get_stats(store: SqlProgressStore = Depends(get_store)):
    sessions = await store.list_sessions()
    stats = compute_stats(sessions)
    stats.suggested_topics = suggested_topics(await store.get_progress())
    return stats


@router.delete("/progress", status_code=204)
async def clear_progress(store: SqlProgressStore = Depends(get_store)):
    await store.clear_all()


@router.get("/sessions", response_model=SessionList)
async def list_sessions(store: SqlProgressStore = Depends(get_store)):
    return SessionList(sessions=await store.list_sessions())
