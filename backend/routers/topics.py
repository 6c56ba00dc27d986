from fastapi import APIRouter, Depends, HTTPException, Query

from dependencies import get_store
from levels import normalize_level
from schemas.progress import CustomTopic
from services.progress_store import SqlProgressStore
from services.vocabulary import get_vocabulary_for_topic
from topics import TOPICS, get_topic

router = APIRouter(prefix="/api/topics", tags=["topics"])


@router.get("")
async def list_topics(store: SqlProgressStore = Depends(get_store)):
    return {"topics": TOPICS, "custom_topics": await store.get_custom_topics()}


@router.get("/{topic_id}/vocabulary")
async def topic_vocabulary(topic_id: str, level: str | None = Query(None)):
    if get_topic(topic_id) is None:
        raise HTTPException(status_code=404, detail="Topic not found")
    if level is not None and normalize_level(level) is None:
        raise HTTPException(status_code=400, detail=f"Unknown level: {level}")
    items = get_vocabulary_for_topic(topic_id, level)
    return {"topic": topic_id, "items": [i.to_dict() for i in items]}


@router.post("/custom", status_code=201)
async def add_custom_topic(data: CustomTopic, store: SqlProgressStore = Depends(get_store)):
    topic = data.topic.strip()
    if not topic:
        raise HTTPException(status_code=400, detail="Topic must not be empty")
    await store.save_custom_topic(topic)
    return {"custom_topics": await store.get_custom_topics()}


@router.delete("/custom")
async def remove_custom_topic(data: CustomTopic, store: SqlProgressStore = Depends(get_store)):
    if not await store.remove_custom_topic(data.topic):
        raise HTTPException(status_code=404, detail="Custom topic not found")
    return {"custom_topics": await store.get_custom_topics()}
