from functools import lru_cache
from typing import List, Optional

from fastapi import Request
from pydantic_settings import BaseSettings, SettingsConfigDict


# Always allowed in addition to ALLOWED_ORIGIN
FALLBACK_ORIGINS: List[str] = [
    "https://adityakumar8632-web.github.io/Hate-Speach-Frontend",
    "http://localhost:5500",
    "http://127.0.0.1:5500",
    "http://localhost:3000",
]


class Settings(BaseSettings):
    # App settings
    SERVICE_NAME: str = "ClearText Moderation Proxy"
    VERSION: str = "1.0.1"
    HOST: str = "0.0.0.0"
    PORT: int = 3000
    LOG_LEVEL: str = "INFO"

    # CORS
    ALLOWED_ORIGIN: str = "https://adityakumar8632-web.github.io"

    # OpenAI
    OPENAI_API_KEY: str = ""
    MODERATION_MODEL: str = "omni-moderation-latest"
    OPENAI_TIMEOUT_S: Optional[float] = None  # None keeps the SDK default

    # Request limits
    MAX_TEXT_LENGTH: int = 5000
    MAX_BODY_BYTES: int = 20 * 1024  # 20kb

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
        frozen=True,
    )

    @property
    def allowed_origins(self) -> List[str]:
        origins = [self.ALLOWED_ORIGIN]
        for origin in FALLBACK_ORIGINS:
            if origin not in origins:
                origins.append(origin)
        return origins


def validate_settings(settings: Settings) -> Settings:
    """Refuse configurations the proxy cannot serve traffic with."""
    if not (settings.OPENAI_API_KEY or "").strip():
        raise ValueError(
            "OPENAI_API_KEY is not set. Add it to your .env file or hosting environment."
        )
    return settings


@lru_cache()
def get_settings() -> Settings:
    return validate_settings(Settings())


def get_app_settings(request: Request) -> Settings:
    """Settings the running app was built with."""
    return request.app.state.settings
