from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, BaseModel, Field, PostgresDsn, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class CustomSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


class AppSettings(CustomSettings):
    ENVIRONMENT: Literal["local", "dev", "prod"] = Field(default="local")
    LOG_LEVEL: str = Field(default="INFO")
    HOST: str = Field(default="0.0.0.0")
    PORT: int = Field(default=3000)


class PgDbSettings(CustomSettings):
    POSTGRES_ENGINE: str = Field(default="postgresql+asyncpg")
    POSTGRES_USER: str = Field(default="postgres")
    POSTGRES_PASSWORD: SecretStr = Field(default="postgres")
    POSTGRES_DB: str = Field(default="support_chat")
    POSTGRES_HOST: str = Field(default="localhost")
    POSTGRES_PORT: int = Field(default=5432)
    DATABASE_URL: PostgresDsn | str = Field(default="")
    DATABASE_SSL: bool = Field(default=False)

    @model_validator(mode="before")
    def validate_postgres_dsn(cls, data: dict):
        if not isinstance(data, dict):
            return data
        url = data.get("DATABASE_URL")
        if not url:
            _built_uri = PostgresDsn.build(
                scheme=data.get("POSTGRES_ENGINE", "postgresql+asyncpg"),
                username=data.get("POSTGRES_USER", "postgres"),
                password=data.get("POSTGRES_PASSWORD", "postgres"),
                host=data.get("POSTGRES_HOST", "localhost"),
                port=int(data.get("POSTGRES_PORT", 5432)),
                path=data.get("POSTGRES_DB", "support_chat"),
            ).unicode_string()
            data["DATABASE_URL"] = _built_uri
        else:
            data["DATABASE_URL"] = normalize_database_url(str(url))
        return data


class CompletionSettings(CustomSettings):
    """Configuration for the OpenAI-compatible chat completion endpoint.

    Set via env vars:
    - LLM_API_KEY (or GROQ_API_KEY)
    - LLM_BASE_URL
    - LLM_MODEL
    - LLM_TIMEOUT_SECONDS
    - LLM_MAX_RETRIES
    """

    LLM_API_KEY: SecretStr = Field(
        default="", validation_alias=AliasChoices("LLM_API_KEY", "GROQ_API_KEY")
    )
    LLM_BASE_URL: str = Field(default="https://api.groq.com/openai/v1")
    LLM_MODEL: str = Field(default="llama-3.3-70b-versatile")
    LLM_TIMEOUT_SECONDS: float = Field(default=30.0)
    LLM_MAX_RETRIES: int = Field(default=0)


class ChatSettings(CustomSettings):
    """Static store knowledge fed to the support agent.

    Set via env vars:
    - STORE_NAME
    - STORE_KNOWLEDGE
    """

    STORE_NAME: str = Field(default="Spur Gadgets")
    STORE_KNOWLEDGE: str = Field(
        default=(
            "Store Name: Spur Gadgets. Shipping: USA/Canada only (3-5 days). "
            "Returns: 30 days. Support: 9am-5pm."
        )
    )


def normalize_database_url(url: str) -> str:
    """Point plain postgres URLs at the asyncpg driver."""
    for prefix in ("postgres://", "postgresql://"):
        if url.startswith(prefix):
            return "postgresql+asyncpg://" + url[len(prefix):]
    return url


class Settings(BaseModel):
    APP: AppSettings = Field(default_factory=AppSettings)
    DATABASE: PgDbSettings = Field(default_factory=PgDbSettings)
    COMPLETION: CompletionSettings = Field(default_factory=CompletionSettings)
    CHAT: ChatSettings = Field(default_factory=ChatSettings)


@lru_cache
def get_settings() -> Settings:
    return Settings()


SETTINGS = get_settings()
