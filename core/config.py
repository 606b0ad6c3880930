from pydantic_settings import BaseSettings
from typing import Optional

class Settings(BaseSettings):
    # Model provider
    API_KEY: Optional[str] = None
    MODEL_BASE_URL: str = "https://openrouter.ai/api/v1"
    MODEL_NAME: str = "anthropic/claude-sonnet-4.5"
    MODEL_TEMPERATURE: float = 0.7
    MODEL_RETRIES: int = 0
    SYSTEM_PROMPT: Optional[str] = None

    # Agent loop
    MAX_STEPS: int = 10
    PARALLEL_TOOL_CALLS: bool = True

    LOG_LEVEL: str = "INFO"

    # Turns per caller per period
    RATE_LIMIT_CALLS: int = 10
    RATE_LIMIT_PERIOD: int = 60

    # Tools
    WEATHER_API_KEY: Optional[str] = None
    NEWS_API_KEY: Optional[str] = None
    HTTP_TIMEOUT: float = 10.0

    # Persistence
    DATABASE_URL: str = "sqlite+aiosqlite:///./chat.db"
    CHAT_TITLE_LENGTH: int = 50

    # Identity cookie; disable Secure only for plain-http local development
    COOKIE_SECURE: bool = True

    # UI
    API_URL: str = "http://localhost:8000/api"

    class Config:
        env_file = ".env"
        extra = "ignore"

settings = Settings()
