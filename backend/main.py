from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from agent.service import build_turn_runner
from backend.api.endpoints import router as api_router
from backend.core.database import init_db
from backend.core.session import ChatRepository
from core.client import get_http_client
from core.config import settings
from core.logger import logger

app = FastAPI(title="Weather & News Chat API")

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Chat-Id"],
)

@app.on_event("startup")
async def on_startup():
    await init_db()
    app.state.http_client = get_http_client(settings)
    app.state.repository = ChatRepository()
    app.state.turn_runner = build_turn_runner(settings, app.state.http_client)
    logger.info(f"Chat API started with model {settings.MODEL_NAME}")

@app.on_event("shutdown")
async def on_shutdown():
    await app.state.http_client.aclose()

app.include_router(api_router, prefix="/api")

@app.get("/")
async def root():
    return {"message": "Chat API is running"}
