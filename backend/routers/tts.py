from fastapi import APIRouter, HTTPException
from fastapi.responses import Response
from openai import OpenAIError
from pydantic import BaseModel, Field

from config import settings
from services.tts import synthesize

router = APIRouter(prefix="/api/tts", tags=["tts"])


class SpeechRequest(BaseModel):
    text: str
    accent: str = "american"
    gender: str = "female"
    speed: float = Field(default=1.0, gt=0)


@router.post("")
async def text_to_speech(data: SpeechRequest):
    if not data.text.strip():
        raise HTTPException(status_code=400, detail="Text is required")
    if not settings.OPENAI_API_KEY:
        raise HTTPException(status_code=503, detail="OPENAI_API_KEY is not configured")
    try:
        audio = await synthesize(data.text, data.accent, data.gender, data.speed)
    except OpenAIError as exc:
        raise HTTPException(status_code=502, detail=f"Speech generation failed: {exc}") from exc
    return Response(content=audio, media_type="audio/mpeg", headers={"Cache-Control": "no-cache"})
