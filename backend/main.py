from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import settings
from database import init_db, async_session
from routers import conversation, progress, settings as settings_router, topics, tts
from services.progress_store import SqlProgressStore
from services.speech import ClientSpeechSynthesizer, QueueSpeechRecognizer
from services.tutor import AnthropicTutorClient


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    app.state.store = SqlProgressStore(async_session)
    app.state.tutor = AnthropicTutorClient()
    app.state.synthesizer = ClientSpeechSynthesizer()
    app.state.recognizer = QueueSpeechRecognizer()
    app.state.conversation = None
    yield
    if app.state.conversation is not None:
        await app.state.conversation.close()


app = FastAPI(title="Speaking Partner", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(settings_router.router)
app.include_router(progress.router)
app.include_router(topics.router)
app.include_router(conversation.router)
app.include_router(tts.router)


@app.get("/api/health")
async def health():
    return {"status": "ok"}
