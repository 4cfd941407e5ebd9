# newsdesk/routers/admin.py
"""
Admin pipeline endpoints.

POST /v1/ingest/run              - Ingest enabled sources (optionally one type)
GET  /v1/generate/status         - Queue and draft counts
POST /v1/generate/run            - Generate posts for pending articles
POST /v1/articles/{id}/generate  - Generate the post for one article
POST /v1/articles/{id}/reload    - Reset an article to queued
POST /v1/translate               - Translate a single text
POST /v1/posts/{id}/regenerate   - Re-run generation for an existing post
POST /v1/posts/{id}/translate    - Translate every field of a post
GET  /v1/sources                 - List sources
PUT  /v1/sources                 - Create or replace a source
PATCH /v1/sources                - Partially update a source

Every route requires the X-API-Key header. Service failures are turned into
{ok: false, error} responses by the handlers registered in newsdesk.main.
"""

import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from newsdesk.auth import get_app_settings, require_admin_key
from newsdesk.config import Settings
from newsdesk.database import get_db
from newsdesk.schemas.admin import (
    GeneratedArticleOut,
    GenerateRunRequest,
    GenerateRunResponse,
    GenerationStatusResponse,
    IngestRunRequest,
    IngestRunResponse,
    PostResponse,
    ReloadResponse,
    SourceListResponse,
    SourceOut,
    SourceResponse,
    SourceUpdateRequest,
    SourceUpsertRequest,
    TranslateRequest,
    TranslateResponse,
)
from newsdesk.services import sources as source_service
from newsdesk.services.generation import GenerationOrchestrator, generation_status
from newsdesk.services.ingestion import IngestionService
from newsdesk.services.translation import TranslationOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1", tags=["admin"], dependencies=[Depends(require_admin_key)])


def get_ingestion_service(request: Request, settings: Settings = Depends(get_app_settings)) -> IngestionService:
    return IngestionService(settings=settings, backfill=request.app.state.backfill)


def get_generation_orchestrator(settings: Settings = Depends(get_app_settings)) -> GenerationOrchestrator:
    return GenerationOrchestrator(settings=settings)


def get_translation_orchestrator(settings: Settings = Depends(get_app_settings)) -> TranslationOrchestrator:
    return TranslationOrchestrator(settings=settings)


# -----------------------------------------------------------------------------
# Ingest
# -----------------------------------------------------------------------------


@router.post("/ingest/run", response_model=IngestRunResponse)
def run_ingest(
    request: IngestRunRequest | None = None,
    db: Session = Depends(get_db),
    service: IngestionService = Depends(get_ingestion_service),
) -> IngestRunResponse:
    source_type = request.source_type.value if request and request.source_type else None
    result = service.ingest_all(db, source_type=source_type)
    return IngestRunResponse(**result)


# -----------------------------------------------------------------------------
# Generate
# -----------------------------------------------------------------------------


@router.get("/generate/status", response_model=GenerationStatusResponse)
def get_generation_status(db: Session = Depends(get_db)) -> GenerationStatusResponse:
    return GenerationStatusResponse(**generation_status(db))


@router.post("/generate/run", response_model=GenerateRunResponse)
def run_generation(
    request: GenerateRunRequest | None = None,
    db: Session = Depends(get_db),
    orchestrator: GenerationOrchestrator = Depends(get_generation_orchestrator),
) -> GenerateRunResponse:
    limit = request.limit if request else 10
    return GenerateRunResponse(**orchestrator.generate_pending(db, limit=limit))


@router.post("/articles/{article_id}/generate", response_model=PostResponse)
def generate_article(
    article_id: str,
    db: Session = Depends(get_db),
    orchestrator: GenerationOrchestrator = Depends(get_generation_orchestrator),
) -> PostResponse:
    post = orchestrator.generate_for_article(db, article_id)
    return PostResponse(post=GeneratedArticleOut.model_validate(post))


@router.post("/articles/{article_id}/reload", response_model=ReloadResponse)
def reload_article(article_id: str, db: Session = Depends(get_db)) -> ReloadResponse:
    article = source_service.reload_article(db, article_id)
    return ReloadResponse(article_id=article.id, status=article.status)


@router.post("/posts/{post_id}/regenerate", response_model=PostResponse)
def regenerate_post(
    post_id: str,
    db: Session = Depends(get_db),
    orchestrator: GenerationOrchestrator = Depends(get_generation_orchestrator),
) -> PostResponse:
    post = orchestrator.regenerate(db, post_id)
    return PostResponse(post=GeneratedArticleOut.model_validate(post))


# -----------------------------------------------------------------------------
# Translate
# -----------------------------------------------------------------------------


@router.post("/translate", response_model=TranslateResponse)
def translate_text(
    request: TranslateRequest,
    db: Session = Depends(get_db),
    translator: TranslationOrchestrator = Depends(get_translation_orchestrator),
) -> TranslateResponse:
    translation = translator.translate_text(
        db, request.text, raw_article_id=request.raw_article_id, context=request.context
    )
    return TranslateResponse(translation=translation, language=translator.target_lang)


@router.post("/posts/{post_id}/translate", response_model=PostResponse)
def translate_post(
    post_id: str,
    db: Session = Depends(get_db),
    translator: TranslationOrchestrator = Depends(get_translation_orchestrator),
) -> PostResponse:
    post = translator.translate_article(db, post_id)
    return PostResponse(post=GeneratedArticleOut.model_validate(post))


# -----------------------------------------------------------------------------
# Sources
# -----------------------------------------------------------------------------


@router.get("/sources", response_model=SourceListResponse)
def list_sources(db: Session = Depends(get_db)) -> SourceListResponse:
    return SourceListResponse(sources=[SourceOut.model_validate(s) for s in source_service.list_sources(db)])


@router.put("/sources", response_model=SourceResponse)
def upsert_source(request: SourceUpsertRequest, db: Session = Depends(get_db)) -> SourceResponse:
    source = source_service.upsert_source(
        db,
        name=request.name,
        type=request.type.value,
        url=request.url,
        category=request.category.value,
        enabled=request.enabled,
    )
    return SourceResponse(source=SourceOut.model_validate(source))


@router.patch("/sources", response_model=SourceResponse)
def update_source(request: SourceUpdateRequest, db: Session = Depends(get_db)) -> SourceResponse:
    source = source_service.update_source(
        db,
        name=request.name,
        enabled=request.enabled,
        url=request.url,
        category=request.category.value if request.category else None,
        reset_failures=request.reset_failures,
    )
    return SourceResponse(source=SourceOut.model_validate(source))
