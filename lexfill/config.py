# config.py
"""
Process settings, loaded from the environment (or .env) by the app entry point.

Env:
  OPENAI_API_KEY          # enables the oracle (placeholder detection + chat extraction)
  OPENAI_BASE_URL         # any OpenAI-compatible endpoint, e.g. https://api.groq.com/openai/v1
  OPENAI_MODEL=gpt-4o
  LLM_ENABLED=1           # "0" forces regex detection and echo chat
  LLM_TIMEOUT=30
  DETECTION_MODE=enhance  # or "full"
  CONTEXT_CHARS=2000
  UNNUMBERED_FILL=first   # or "all"
  CORS_ALLOW_ORIGINS=*    # comma separated
  LOG_LEVEL=INFO
"""
import logging
from typing import List, Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from .resolver import FillMode


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Oracle (env: OPENAI_API_KEY, OPENAI_BASE_URL)
    openai_api_key: Optional[str] = None
    openai_base_url: Optional[str] = None
    openai_model: str = "gpt-4o"
    llm_enabled: bool = True
    llm_timeout: float = 30.0

    # Detection / filling
    detection_mode: Literal["enhance", "full"] = "enhance"
    context_chars: int = 2000
    unnumbered_fill: FillMode = FillMode.FIRST

    # Application
    cors_allow_origins: str = "*"
    log_level: str = "INFO"

    @property
    def oracle_enabled(self) -> bool:
        return self.llm_enabled and bool(self.openai_api_key)

    @property
    def allowed_origins(self) -> List[str]:
        return [o.strip() for o in self.cors_allow_origins.split(",") if o.strip()]


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
