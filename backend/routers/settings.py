from fastapi import APIRouter, Depends, HTTPException

from dependencies import get_store
from schemas.settings import UserSettings
from services.progress_store import SqlProgressStore

router = APIRouter(prefix="/api/settings", tags=["settings"])


@router.get("", response_model=UserSettings)
async def get_settings(store: SqlProgressStore = Depends(get_store)):
    return await store.get_settings()


@router.put("", response_model=UserSettings)
async def update_settings(data: UserSettings, store: SqlProgressStore = Depends(get_store)):
    if not await store.save_settings(data):
        raise HTTPException(status_code=500, detail="Settings could not be saved")
    return data
