from datetime import datetime
from typing import Any, Dict, Optional

import httpx
from pydantic import BaseModel, Field, field_validator

from agent.tools import ToolRegistry
from core.config import Settings
from core.logger import logger

WEATHER_URL = "https://api.weatherapi.com/v1/current.json"
NEWS_URL = "https://newsapi.org/v2/everything"
MAX_NEWS_ARTICLES = 10


class WeatherInput(BaseModel):
    location: str = Field(description='City name or location (e.g., "New York", "London")')


class NewsInput(BaseModel):
    query: str = Field(description="News topic, keyword, or search term")
    limit: int = Field(default=5, description=f"Number of articles to return (max {MAX_NEWS_ARTICLES})")

    @field_validator("limit")
    @classmethod
    def clamp_limit(cls, value: int) -> int:
        return max(1, min(value, MAX_NEWS_ARTICLES))


def format_weather(data: Dict[str, Any]) -> str:
    location = data["location"]
    current = data["current"]
    return (
        f"Weather in {location['name']}, {location['country']}:\n"
        f"- Temperature: {current['temp_c']}°C ({current['temp_f']}°F)\n"
        f"- Condition: {current['condition']['text']}\n"
        f"- Humidity: {current['humidity']}%\n"
        f"- Wind: {current['wind_kph']} km/h ({current['wind_mph']} mph)\n"
        f"- Feels like: {current['feelslike_c']}°C"
    )


def format_published(value: Optional[str]) -> str:
    if not value:
        return "unknown"
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).strftime("%Y-%m-%d")
    except ValueError:
        return value


def format_news(query: str, articles: list, limit: int) -> str:
    entries = []
    for index, article in enumerate(articles[:limit], start=1):
        source = (article.get("source") or {}).get("name") or "Unknown source"
        entries.append(
            f"{index}. {article.get('title')}\n"
            f"   Source: {source}\n"
            f"   Published: {format_published(article.get('publishedAt'))}\n"
            f"   {article.get('url')}"
        )
    return f'Latest news about "{query}":\n\n' + "\n\n".join(entries)


def make_weather_executor(http_client: httpx.AsyncClient, api_key: Optional[str]):
    async def get_weather(args: WeatherInput) -> str:
        if not api_key:
            return "Weather API key not configured"
        try:
            response = await http_client.get(WEATHER_URL, params={"key": api_key, "q": args.location})
            if response.is_error:
                logger.warning(f"Weather API returned {response.status_code} for {args.location!r}")
                return f"Weather API error: {response.reason_phrase}"
            return format_weather(response.json())
        except (httpx.HTTPError, ValueError, KeyError, TypeError) as e:
            logger.error(f"Weather lookup failed: {e}")
            return f"Error fetching weather: {e}"

    return get_weather


def make_news_executor(http_client: httpx.AsyncClient, api_key: Optional[str]):
    async def get_news(args: NewsInput) -> str:
        if not api_key:
            return "News API key not configured"
        try:
            response = await http_client.get(
                NEWS_URL,
                params={
                    "q": args.query,
                    "apiKey": api_key,
                    "pageSize": args.limit,
                    "sortBy": "publishedAt",
                },
            )
            if response.is_error:
                logger.warning(f"News API returned {response.status_code} for {args.query!r}")
                return f"News API error: {response.reason_phrase}"
            articles = response.json().get("articles") or []
            if not articles:
                return f'No news articles found for "{args.query}"'
            return format_news(args.query, articles, args.limit)
        except (httpx.HTTPError, ValueError, KeyError, TypeError, AttributeError) as e:
            logger.error(f"News lookup failed: {e}")
            return f"Error fetching news: {e}"

    return get_news


def build_default_registry(settings: Settings, http_client: httpx.AsyncClient) -> ToolRegistry:
    registry = ToolRegistry()
    registry.register(
        "get_weather",
        WeatherInput,
        make_weather_executor(http_client, settings.WEATHER_API_KEY),
        description="Get current weather information for a location",
    )
    registry.register(
        "get_news",
        NewsInput,
        make_news_executor(http_client, settings.NEWS_API_KEY),
        description="Get latest news articles for a topic, keyword, or location",
    )
    if not settings.WEATHER_API_KEY:
        logger.warning("WEATHER_API_KEY is not set; get_weather will report it is unconfigured")
    if not settings.NEWS_API_KEY:
        logger.warning("NEWS_API_KEY is not set; get_news will report it is unconfigured")
    return registry
