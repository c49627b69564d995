"""
IntelliCard configuration.

Two sources, each cached on first read:

- ``Settings``: environment variables (and ``.env``), validated by
  pydantic-settings. Secrets and deployment-specific values live here.
- ``config/default.yaml``: non-secret tuning, currently the connection
  pool sizes read by intellicard.db.base.

Usage:
    from intellicard.config import settings, yaml_config

    settings.POSTGRES_URL
    yaml_config.get("database", {})
"""

from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL

PROJECT_ROOT = Path(__file__).resolve().parents[3]
DEFAULT_CONFIG_PATH = PROJECT_ROOT / "config" / "default.yaml"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    APP_NAME: str = "IntelliCard"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    API_PREFIX: str = "/api/v1"
    CORS_ORIGINS: list[str] = ["*"]

    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "intellicard"
    POSTGRES_PASSWORD: str = ""
    POSTGRES_DB: str = "intellicard"

    # provider/model-name, resolved by LiteLLM
    TEXT_MODEL: str = "openai/gpt-3.5-turbo"
    OPENAI_API_KEY: str = ""
    ANTHROPIC_API_KEY: str = ""

    CARD_GENERATION_TEMPERATURE: float = 0.7
    CARD_GENERATION_MAX_TOKENS: int = 2500
    CARD_GENERATION_MAX_QUESTIONS: int = 50
    GENERATED_DEFINITION_MIN_LENGTH: int = 10

    DOCUMENT_MAX_SIZE_MB: int = 10
    DOCUMENT_MIN_CHARACTERS: int = 100

    DUE_CARDS_DEFAULT_LIMIT: int = 100

    @property
    def POSTGRES_URL(self) -> str:
        """asyncpg connection URL; credentials are percent-escaped."""
        url = URL.create(
            "postgresql+asyncpg",
            username=self.POSTGRES_USER,
            password=self.POSTGRES_PASSWORD or None,
            host=self.POSTGRES_HOST,
            port=self.POSTGRES_PORT,
            database=self.POSTGRES_DB,
        )
        return url.render_as_string(hide_password=False)


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()


@lru_cache()
def load_yaml_config(path: Path = DEFAULT_CONFIG_PATH) -> dict[str, Any]:
    """Parse the YAML config file; a missing or empty file yields ``{}``."""
    if not path.is_file():
        return {}
    with path.open(encoding="utf-8") as handle:
        return yaml.safe_load(handle) or {}


yaml_config: dict[str, Any] = load_yaml_config()
