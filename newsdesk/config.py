# newsdesk/config.py
"""
Centralized configuration with validation.

Uses pydantic-settings to load and validate all environment variables at startup.
Every empirical threshold used by extraction and the quality gate lives here
so it can be tuned per deployment without a code change.
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


def split_csv(value: str) -> list[str]:
    """Split a comma-separated setting into a list of stripped, lowercased names."""
    return [part.strip().lower() for part in value.split(",") if part.strip()]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = Field(
        ...,
        description="Database connection URL (PostgreSQL in production, SQLite in tests)",
    )

    # Authentication
    ADMIN_API_KEY: str | None = Field(
        default=None,
        description="API key for admin endpoints. Admin routes fail closed when unset.",
    )

    # Generation
    GENERATION_PROVIDER: str = Field(
        default="openai",
        description="Generative provider for article drafts: openai, anthropic",
    )
    OPENAI_API_KEY: str | None = Field(default=None, description="OpenAI API key")
    OPENAI_MODEL: str = Field(default="gpt-4o-mini", description="OpenAI model for generation")
    ANTHROPIC_API_KEY: str | None = Field(default=None, description="Anthropic API key")
    ANTHROPIC_MODEL: str = Field(default="claude-haiku-4-5", description="Anthropic model for generation")
    GENERATION_TEMPERATURE: float = Field(default=0.6, description="Sampling temperature for generation")
    GENERATION_TIMEOUT_SECONDS: float = Field(default=60.0, description="Timeout for a generation call")
    GENERATION_RICH_CONTENT_LENGTH: int = Field(
        default=1000,
        description="Source content longer than this makes placeholder output a quality failure",
    )

    # Translation
    TRANSLATION_PROVIDER_ORDER: str = Field(
        default="gemini,mymemory",
        description="Comma-separated provider chain: gemini, openai, libretranslate, mymemory",
    )
    TRANSLATION_SOURCE_LANG: str = Field(default="en", description="Source language code")
    TRANSLATION_TARGET_LANG: str = Field(default="si", description="Target language code")
    TRANSLATION_TIMEOUT_SECONDS: float = Field(default=30.0, description="Timeout per translation call")
    GEMINI_API_KEY: str | None = Field(default=None, description="Gemini API key")
    GEMINI_MODEL: str | None = Field(
        default=None,
        description="Pin a single Gemini model and skip model discovery",
    )
    GEMINI_FALLBACK_MODELS: str = Field(
        default="gemini-2.0-flash,gemini-1.5-flash-latest,gemini-1.5-pro-latest,gemini-1.5-flash,gemini-1.5-pro",
        description="Preference list used when model discovery fails",
    )
    LIBRETRANSLATE_URL: str | None = Field(default=None, description="LibreTranslate /translate endpoint")
    LIBRETRANSLATE_API_KEY: str | None = Field(default=None, description="LibreTranslate API key")

    # Ingestion
    NEWSAPI_KEY: str | None = Field(default=None, description="newsapi.org API key")
    FEED_USER_AGENT: str = Field(default="NewsdeskBot/1.0", description="User agent for feed downloads")
    FEED_TIMEOUT_SECONDS: float = Field(default=30.0, description="Timeout for feed downloads")
    MAX_ITEMS_PER_SOURCE: int = Field(default=50, description="Max entries ingested per source per run")

    # Extraction
    EXTRACTION_TIMEOUT_SECONDS: float = Field(default=20.0, description="Wall-clock bound for a page fetch")
    EXTRACTION_MIN_LENGTH: int = Field(default=200, description="Minimum chars for an extraction tier to succeed")
    EXTRACTION_MAX_CHARS: int = Field(default=15000, description="Hard cap on extracted article text")
    EXTRACTION_BLOCK_PRIVATE_HOSTS: bool = Field(
        default=True,
        description="Refuse to fetch article URLs whose host resolves to a private address",
    )
    EXTRACTION_READABILITY_ENABLED: bool = Field(
        default=True,
        description="Use the readability tier. When disabled, the aggressive block tier runs instead.",
    )

    # Quality gate
    QUALITY_MIN_ARTICLE_LENGTH: int = Field(default=2000, description="Below this, content is a likely snippet")
    QUALITY_SUBSTANTIAL_LENGTH: int = Field(
        default=3000,
        description="Substantial content shorter than this still counts as showing snippet markers",
    )
    QUALITY_SIGNIFICANT_GAIN_RATIO: float = Field(
        default=1.3,
        description="Fetched text must be this many times longer to replace substantial content",
    )
    QUALITY_FALLBACK_MIN_LENGTH: int = Field(
        default=100,
        description="Minimum length for existing content or description to be used as fallback",
    )

    # Background backfill
    BACKFILL_ENABLED: bool = Field(default=True, description="Backfill API article bodies after ingestion")
    BACKFILL_MAX_WORKERS: int = Field(default=2, description="Worker threads for content backfill")

    # Logging
    LOG_LEVEL: str = Field(default="INFO", description="Root log level")
    LOG_JSON: bool = Field(default=True, description="Emit single-line JSON logs")

    @field_validator("DATABASE_URL")
    @classmethod
    def fix_database_url(cls, v: str) -> str:
        """Hosted Postgres URLs use postgresql:// but SQLAlchemy needs postgresql+psycopg2://"""
        if v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+psycopg2://", 1)
        return v

    @field_validator("GENERATION_PROVIDER")
    @classmethod
    def normalize_provider(cls, v: str) -> str:
        return v.strip().lower()

    @property
    def translation_providers(self) -> list[str]:
        return split_csv(self.TRANSLATION_PROVIDER_ORDER)

    @property
    def gemini_fallback_models(self) -> list[str]:
        return split_csv(self.GEMINI_FALLBACK_MODELS)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached application settings. Call at startup to validate config."""
    return Settings()
