# newsdesk/services/generation.py
"""
Generation orchestrator.

Turns a RawArticle into a GeneratedArticle:
1. Backfill the body through the content quality gate
2. Ask the configured LLM provider for structured JSON
3. Validate the JSON and reject placeholder output on rich input
4. On any provider failure, fall back to the heuristic generator
5. Insert the GeneratedArticle (unique per RawArticle) and mark the RawArticle processed
"""

import logging
import re
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sqlalchemy import func, update
from sqlalchemy.orm import Session

from newsdesk import models
from newsdesk.config import Settings, get_settings
from newsdesk.llm import LLMProvider, extract_json, get_llm_provider
from newsdesk.llm.prompts import GENERIC_PHRASES, build_generation_prompt
from newsdesk.logging_config import log_provider_call
from newsdesk.services import heuristic_generator
from newsdesk.services.deduper import insert_if_absent
from newsdesk.services.quality_gate import ContentQualityGate
from newsdesk.services.resilience import (
    ConfigurationFailure,
    ConflictFailure,
    NotFoundFailure,
    PipelineError,
    QualityFailure,
    UpstreamFormatFailure,
)

logger = logging.getLogger(__name__)

MAX_BATCH_SIZE = 25
MAX_HASHTAGS = 5


@dataclass
class GenerationResult:
    """Validated article fields plus how they were produced."""

    headline: str
    summary: str
    body: str
    hashtags: list[str] = field(default_factory=list)
    attribution: str = ""
    method: models.GenerationMethod = models.GenerationMethod.LLM
    model: str | None = None
    fallback_reason: str | None = None


# -----------------------------------------------------------------------------
# Validation
# -----------------------------------------------------------------------------


def normalize_hashtags(values: Any) -> list[str]:
    """Leading '#', no spaces or punctuation, case-insensitive de-dup, at most 5."""
    if isinstance(values, str):
        values = values.split()
    if not isinstance(values, list):
        return []

    tags: list[str] = []
    seen: set[str] = set()
    for value in values:
        if not isinstance(value, str):
            continue
        body = re.sub(r"[^\w]", "", value.strip().lstrip("#"))
        if not body or body.lower() in seen:
            continue
        seen.add(body.lower())
        tags.append(f"#{body}")
        if len(tags) == MAX_HASHTAGS:
            break
    return tags


def validate_generation(data: dict[str, Any], source_name: str) -> GenerationResult:
    """Check the mandatory keys of a provider response."""
    missing = [
        key for key in ("headline", "summary", "body")
        if not isinstance(data.get(key), str) or not data[key].strip()
    ]
    if missing:
        raise UpstreamFormatFailure(f"Generation response missing fields: {', '.join(missing)}")

    hashtags = normalize_hashtags(data.get("hashtags"))
    if not hashtags:
        raise UpstreamFormatFailure("Generation response has no usable hashtags")

    attribution = data.get("attribution")
    if not isinstance(attribution, str) or not attribution.strip():
        attribution = f"Source: {source_name}"

    return GenerationResult(
        headline=data["headline"].strip(),
        summary=data["summary"].strip(),
        body=data["body"].strip(),
        hashtags=hashtags,
        attribution=attribution.strip(),
    )


def find_generic_phrases(result: GenerationResult) -> list[str]:
    text = " ".join([result.headline, result.summary, result.body]).lower()
    return [phrase for phrase in GENERIC_PHRASES if phrase in text]


# -----------------------------------------------------------------------------
# Orchestrator
# -----------------------------------------------------------------------------


class GenerationOrchestrator:
    """Provider call with validation, quality check and heuristic fallback."""

    def __init__(
        self,
        settings: Settings | None = None,
        provider_factory: Callable[[], LLMProvider] | None = None,
        gate: ContentQualityGate | None = None,
    ):
        self.settings = settings or get_settings()
        self._provider_factory = provider_factory or (lambda: get_llm_provider(settings=self.settings))
        self.gate = gate or ContentQualityGate(self.settings)

    def _heuristic(self, article: models.RawArticle, content: str, reason: str) -> GenerationResult:
        draft = heuristic_generator.generate(
            title=article.title,
            description=article.description,
            content=content,
            source_name=article.source_name,
            category=article.category,
        )
        return GenerationResult(
            headline=draft.headline,
            summary=draft.summary,
            body=draft.body,
            hashtags=draft.hashtags,
            attribution=draft.attribution,
            method=models.GenerationMethod.HEURISTIC,
            fallback_reason=reason,
        )

    def _call_provider(self, provider: LLMProvider, article: models.RawArticle, content: str) -> GenerationResult:
        system_prompt, user_prompt = build_generation_prompt(
            title=article.title,
            description=article.description,
            content=content,
            source_name=article.source_name,
            url=article.url,
            category=article.category,
        )
        with log_provider_call(provider.name, provider.model_name, "generate"):
            raw = provider.complete(system_prompt, user_prompt, json_mode=True)

        result = validate_generation(extract_json(raw), article.source_name)
        result.model = provider.model_name

        phrases = find_generic_phrases(result)
        if phrases and len(content) > self.settings.GENERATION_RICH_CONTENT_LENGTH:
            raise QualityFailure(f"Placeholder output on {len(content)}-char input: {phrases}")
        return result

    def generate(self, article: models.RawArticle, content: str | None = None) -> GenerationResult:
        """
        Produce article fields for a RawArticle. Never raises: every provider
        failure demotes to the heuristic generator.
        """
        content = content if content is not None else (article.content or article.description or "")

        try:
            provider = self._provider_factory()
        except ConfigurationFailure as e:
            logger.warning(f"[GENERATE] Provider unavailable ({e}); using heuristic generator")
            return self._heuristic(article, content, "provider_unavailable")

        try:
            return self._call_provider(provider, article, content)
        except QualityFailure as e:
            logger.warning(f"[GENERATE] Quality check failed for {article.id}: {e}")
            return self._heuristic(article, content, "quality")
        except PipelineError as e:
            logger.warning(f"[GENERATE] {provider.name} failed for {article.id}: {e}")
            return self._heuristic(article, content, type(e).__name__)
        except Exception as e:
            logger.error(f"[GENERATE] Unexpected provider error for {article.id}: {e}", exc_info=True)
            return self._heuristic(article, content, "unexpected_error")

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    @staticmethod
    def _load_raw(db: Session, raw_article_id: Any) -> models.RawArticle:
        try:
            key = raw_article_id if isinstance(raw_article_id, uuid.UUID) else uuid.UUID(str(raw_article_id))
        except ValueError:
            raise NotFoundFailure(f"Raw article {raw_article_id} not found")
        raw = db.get(models.RawArticle, key)
        if raw is None:
            raise NotFoundFailure(f"Raw article {raw_article_id} not found")
        return raw

    def generate_for_article(self, db: Session, raw_article_id: Any) -> models.GeneratedArticle:
        """
        Generate and store the GeneratedArticle for one RawArticle.

        Raises:
            NotFoundFailure: unknown raw article id
            ConflictFailure: a GeneratedArticle already exists for it
        """
        raw = self._load_raw(db, raw_article_id)

        existing = (
            db.query(models.GeneratedArticle.id)
            .filter(models.GeneratedArticle.raw_article_id == raw.id)
            .first()
        )
        if existing:
            raise ConflictFailure(f"Article {raw.id} already has a generated post", existing_id=existing.id)

        gated = self.gate.ensure_article_content(raw.url, raw.content, raw.description)
        if gated and gated != (raw.content or ""):
            db.execute(
                update(models.RawArticle)
                .where(models.RawArticle.id == raw.id)
                .values(content=gated, updated_at=datetime.utcnow())
            )
            db.commit()
            db.refresh(raw)
        content = gated or raw.content or raw.description or ""

        result = self.generate(raw, content)

        now = datetime.utcnow()
        generated_id = uuid.uuid4()
        inserted = insert_if_absent(
            db,
            models.GeneratedArticle,
            {
                "id": generated_id,
                "raw_article_id": raw.id,
                "category": raw.category,
                "headline": result.headline,
                "summary": result.summary,
                "body": result.body,
                "hashtags": result.hashtags,
                "source_attribution": result.attribution,
                "generation_method": result.method.value,
                "generation_model": result.model,
                "status": models.GeneratedArticleStatus.DRAFT.value,
                "created_at": now,
                "updated_at": now,
            },
            "raw_article_id",
        )
        if not inserted:
            db.rollback()
            raise ConflictFailure(f"Article {raw.id} was generated concurrently")

        db.execute(
            update(models.RawArticle)
            .where(models.RawArticle.id == raw.id)
            .values(status=models.RawArticleStatus.PROCESSED.value, error_message=None, updated_at=now)
        )
        db.commit()

        logger.info(
            f"[GENERATE] Created post {generated_id} for {raw.id} via {result.method.value}",
            extra={"event": "generated", "article_id": str(raw.id), "model": result.model},
        )
        return db.get(models.GeneratedArticle, generated_id)

    def regenerate(self, db: Session, generated_article_id: Any) -> models.GeneratedArticle:
        """
        Re-run generation for an existing post and overwrite it in place.

        The post goes back to draft and any stored translation is cleared,
        since it no longer matches the new text.

        Raises:
            NotFoundFailure: unknown post id, or its raw article is gone
        """
        try:
            key = (
                generated_article_id
                if isinstance(generated_article_id, uuid.UUID)
                else uuid.UUID(str(generated_article_id))
            )
        except ValueError:
            raise NotFoundFailure(f"Generated article {generated_article_id} not found")
        post = db.get(models.GeneratedArticle, key)
        if post is None:
            raise NotFoundFailure(f"Generated article {generated_article_id} not found")
        raw = db.get(models.RawArticle, post.raw_article_id)
        if raw is None:
            raise NotFoundFailure(f"Raw article {post.raw_article_id} not found")

        result = self.generate(raw, raw.content or raw.description or "")

        db.execute(
            update(models.GeneratedArticle)
            .where(models.GeneratedArticle.id == post.id)
            .values(
                headline=result.headline,
                summary=result.summary,
                body=result.body,
                hashtags=result.hashtags,
                source_attribution=result.attribution,
                generation_method=result.method.value,
                generation_model=result.model,
                status=models.GeneratedArticleStatus.DRAFT.value,
                translated_language=None,
                translated_headline=None,
                translated_summary=None,
                translated_body=None,
                translated_hashtags=None,
                translated_attribution=None,
                translated_at=None,
                updated_at=datetime.utcnow(),
            )
        )
        db.commit()
        db.refresh(post)

        logger.info(
            f"[GENERATE] Regenerated post {post.id} via {result.method.value}",
            extra={"event": "regenerated", "article_id": str(raw.id), "model": result.model},
        )
        return post

    def generate_pending(self, db: Session, limit: int = 10) -> dict[str, Any]:
        """Generate posts for queued RawArticles that have none yet."""
        limit = max(1, min(limit, MAX_BATCH_SIZE))
        pending = (
            db.query(models.RawArticle.id)
            .outerjoin(models.GeneratedArticle, models.GeneratedArticle.raw_article_id == models.RawArticle.id)
            .filter(
                models.RawArticle.status == models.RawArticleStatus.QUEUED.value,
                models.GeneratedArticle.id.is_(None),
            )
            .order_by(models.RawArticle.created_at.desc())
            .limit(limit)
            .all()
        )

        result = {"processed": 0, "created": 0, "skipped": 0, "errors": []}
        for (article_id,) in pending:
            result["processed"] += 1
            try:
                self.generate_for_article(db, article_id)
                result["created"] += 1
            except ConflictFailure:
                result["skipped"] += 1
            except Exception as e:
                db.rollback()
                logger.error(f"[GENERATE] Batch item {article_id} failed: {e}")
                result["errors"].append({"article_id": str(article_id), "message": str(e)})
                db.execute(
                    update(models.RawArticle)
                    .where(models.RawArticle.id == article_id)
                    .values(status=models.RawArticleStatus.FAILED.value, error_message=str(e)[:1000])
                )
                db.commit()
        return result


def generation_status(db: Session) -> dict[str, int]:
    """Counts for the generation dashboard."""
    queued = (
        db.query(func.count(models.RawArticle.id))
        .filter(models.RawArticle.status == models.RawArticleStatus.QUEUED.value)
        .scalar()
    )
    unprocessed = (
        db.query(func.count(models.RawArticle.id))
        .outerjoin(models.GeneratedArticle, models.GeneratedArticle.raw_article_id == models.RawArticle.id)
        .filter(
            models.RawArticle.status == models.RawArticleStatus.QUEUED.value,
            models.GeneratedArticle.id.is_(None),
        )
        .scalar()
    )
    drafts = (
        db.query(func.count(models.GeneratedArticle.id))
        .filter(models.GeneratedArticle.status == models.GeneratedArticleStatus.DRAFT.value)
        .scalar()
    )
    return {"queued": queued or 0, "unprocessed": unprocessed or 0, "drafts": drafts or 0}
