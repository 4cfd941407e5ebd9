# newsdesk/schemas/admin.py
"""
Schemas for admin pipeline endpoints.
"""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from newsdesk.models import SourceCategory, SourceType


class ErrorResponse(BaseModel):
    """Body of every failed request."""

    ok: bool = False
    error: str
    existing_id: str | None = None


# -----------------------------------------------------------------------------
# Ingest
# -----------------------------------------------------------------------------


class IngestRunRequest(BaseModel):
    """Request to trigger ingestion."""

    source_type: SourceType | None = Field(None, description="Only ingest sources of this type (default: all)")


class IngestError(BaseModel):
    source: str
    message: str


class IngestRunResponse(BaseModel):
    """Response from ingestion run."""

    ok: bool = True
    sources: int
    inserted: int
    skipped: int
    errors: list[IngestError] = Field(default_factory=list)
    trace_id: str | None = None
    duration_ms: int = 0


# -----------------------------------------------------------------------------
# Generate
# -----------------------------------------------------------------------------


class GenerationStatusResponse(BaseModel):
    ok: bool = True
    queued: int = Field(..., description="RawArticles with status=queued")
    unprocessed: int = Field(..., description="Queued RawArticles without a generated post")
    drafts: int = Field(..., description="Generated posts in draft status")


class GenerateRunRequest(BaseModel):
    """Request to generate posts for pending articles."""

    limit: int = Field(10, ge=1, le=25, description="Max articles to process")


class GenerateRunError(BaseModel):
    article_id: str
    message: str


class GenerateRunResponse(BaseModel):
    ok: bool = True
    processed: int
    created: int
    skipped: int
    errors: list[GenerateRunError] = Field(default_factory=list)


class GeneratedArticleOut(BaseModel):
    """A generated post, with its translation if one exists."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    raw_article_id: uuid.UUID
    category: str | None = None
    headline: str
    summary: str
    body: str
    hashtags: list[str] = Field(default_factory=list)
    source_attribution: str
    generation_method: str
    generation_model: str | None = None
    status: str

    translated_language: str | None = None
    translated_headline: str | None = None
    translated_summary: str | None = None
    translated_body: str | None = None
    translated_hashtags: list[str] | None = None
    translated_attribution: str | None = None
    translated_at: datetime | None = None

    created_at: datetime
    updated_at: datetime | None = None


class PostResponse(BaseModel):
    ok: bool = True
    post: GeneratedArticleOut


class ReloadResponse(BaseModel):
    ok: bool = True
    article_id: uuid.UUID
    status: str


# -----------------------------------------------------------------------------
# Translate
# -----------------------------------------------------------------------------


class TranslateRequest(BaseModel):
    """Single-text translation."""

    text: str = Field(..., min_length=1, description="Source-language text")
    raw_article_id: str | None = Field(None, description="RawArticle whose title/description are used as context")
    context: str | None = Field(None, description="Explicit context; overrides raw_article_id")


class TranslateResponse(BaseModel):
    ok: bool = True
    translation: str
    language: str


# -----------------------------------------------------------------------------
# Sources
# -----------------------------------------------------------------------------


class SourceUpsertRequest(BaseModel):
    name: str = Field(..., min_length=1)
    type: SourceType
    url: str | None = Field(None, description="Feed URL (required for rss) or full NewsAPI request URL")
    category: SourceCategory = SourceCategory.GLOBAL
    enabled: bool = True


class SourceUpdateRequest(BaseModel):
    """Partial update of an existing source."""

    name: str = Field(..., min_length=1)
    enabled: bool | None = None
    url: str | None = None
    category: SourceCategory | None = None
    reset_failures: bool = False


class SourceOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    type: str
    url: str | None = None
    category: str
    enabled: bool
    failure_count: int
    last_error: str | None = None
    last_fetched_at: datetime | None = None
    created_at: datetime
    updated_at: datetime | None = None


class SourceResponse(BaseModel):
    ok: bool = True
    source: SourceOut


class SourceListResponse(BaseModel):
    ok: bool = True
    sources: list[SourceOut]
