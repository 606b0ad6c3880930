import httpx
from openai import AsyncOpenAI
from core.config import Settings, settings as default_settings

def get_client(settings: Settings = default_settings) -> AsyncOpenAI:
    # Retries are decided by the turn runner, not the SDK
    return AsyncOpenAI(
        api_key=settings.API_KEY,
        base_url=settings.MODEL_BASE_URL,
        max_retries=0,
    )

def get_http_client(settings: Settings = default_settings) -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT)
