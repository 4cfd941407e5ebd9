# newsdesk/services/translation.py
"""
Translation orchestrator.

Provider chain (order from TRANSLATION_PROVIDER_ORDER, unconfigured ones skipped):
- gemini: model-catalog provider. Discovers the caller's models, then walks
  (model, API version) pairs. Only "not found" moves on to the next pair;
  auth, quota and every other error abort the provider.
- openai, libretranslate, mymemory: fixed-catalog providers, one call each.

A translation equal to its input (case/space-normalized) is never accepted,
whichever provider returned it.
"""

import hashlib
import logging
import re
import threading
import uuid
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any

import httpx
from cachetools import TTLCache
from sqlalchemy import update
from sqlalchemy.orm import Session

from newsdesk import models
from newsdesk.config import Settings, get_settings
from newsdesk.llm.openai_provider import OpenAIProvider
from newsdesk.llm.prompts import build_translation_prompt
from newsdesk.logging_config import log_provider_call
from newsdesk.services.resilience import (
    ConfigurationFailure,
    NotFoundFailure,
    PipelineError,
    QualityFailure,
    RetryDecision,
    TransportFailure,
    UpstreamFormatFailure,
    classify_provider_error,
)
from newsdesk.utils.content_sanitizer import collapse_whitespace

logger = logging.getLogger(__name__)

PARAGRAPH_BREAK = re.compile(r"\n\s*\n")


def is_noop_translation(source_text: str, translated: str | None) -> bool:
    """True when the 'translation' is just the input again."""
    if not translated or not translated.strip():
        return True
    return collapse_whitespace(source_text).casefold() == collapse_whitespace(translated).casefold()


def _response_error(provider: str, response: httpx.Response) -> TransportFailure:
    return TransportFailure(
        f"{provider} returned HTTP {response.status_code}: {response.text[:200]}",
        status_code=response.status_code,
    )


# -----------------------------------------------------------------------------
# Providers
# -----------------------------------------------------------------------------


class TranslationProvider(ABC):
    """One translation backend."""

    name: str = ""

    @abstractmethod
    def is_configured(self) -> bool:
        pass

    @abstractmethod
    def translate(self, text: str, source_lang: str, target_lang: str, context: str | None = None) -> str:
        """
        Translate one piece of text.

        Raises:
            TransportFailure, UpstreamFormatFailure, QualityFailure
        """
        pass


class GeminiTranslationProvider(TranslationProvider):
    """Gemini generateContent over REST, with model discovery and version fallback."""

    name = "gemini"
    BASE_URL = "https://generativelanguage.googleapis.com"
    API_VERSIONS = ("v1beta", "v1")
    DISCOVERY_TTL_SECONDS = 3600

    # Discovered model lists, shared across instances and keyed by API key digest
    _model_cache: TTLCache = TTLCache(maxsize=16, ttl=DISCOVERY_TTL_SECONDS)
    _cache_lock = threading.Lock()

    def __init__(
        self,
        api_key: str | None,
        pinned_model: str | None = None,
        fallback_models: list[str] | None = None,
        temperature: float = 0.6,
        timeout: float = 30.0,
        client: httpx.Client | None = None,
    ):
        self.api_key = api_key
        self.pinned_model = pinned_model
        self.fallback_models = fallback_models or []
        self.temperature = temperature
        self.client = client or httpx.Client(timeout=timeout)
        self._working: tuple[str, str] | None = None

    def is_configured(self) -> bool:
        return bool(self.api_key)

    def _cache_key(self) -> str:
        return hashlib.sha256((self.api_key or "").encode("utf-8")).hexdigest()[:16]

    def discover_models(self) -> list[str]:
        """Models that support generateContent for this key, preferred ones first."""
        key = self._cache_key()
        with self._cache_lock:
            cached = self._model_cache.get(key)
        if cached is not None:
            return cached

        try:
            response = self.client.get(
                f"{self.BASE_URL}/v1beta/models",
                params={"key": self.api_key},
            )
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.info(f"[TRANSLATE] Gemini model discovery failed, using fallback list: {e}")
            return list(self.fallback_models)

        available = [
            m["name"].removeprefix("models/")
            for m in payload.get("models", [])
            if isinstance(m, dict)
            and m.get("name")
            and "generateContent" in (m.get("supportedGenerationMethods") or [])
        ]
        if not available:
            return list(self.fallback_models)

        preferred = [m for m in self.fallback_models if m in available]
        ordered = preferred + [m for m in available if m not in preferred]
        with self._cache_lock:
            self._model_cache[key] = ordered
        return ordered

    def candidates(self) -> list[tuple[str, str]]:
        """Ordered (model, api_version) pairs; the last pair that worked goes first."""
        models_to_try = [self.pinned_model] if self.pinned_model else self.discover_models()
        pairs = [(model, version) for model in models_to_try for version in self.API_VERSIONS]
        if self._working in pairs:
            pairs.remove(self._working)
            pairs.insert(0, self._working)
        return pairs

    def _generate(self, model: str, version: str, prompt: str) -> str:
        try:
            response = self.client.post(
                f"{self.BASE_URL}/{version}/models/{model}:generateContent",
                params={"key": self.api_key},
                json={
                    "contents": [{"parts": [{"text": prompt}]}],
                    "generationConfig": {"temperature": self.temperature},
                },
            )
        except httpx.HTTPError as e:
            raise TransportFailure(f"gemini {version}/{model} request failed: {e}") from e

        if not response.is_success:
            raise _response_error(f"gemini {version}/{model}", response)

        try:
            data = response.json()
            parts = data["candidates"][0]["content"]["parts"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise UpstreamFormatFailure(f"gemini {version}/{model} returned no text") from e
        return "".join(part.get("text", "") for part in parts if isinstance(part, dict)).strip()

    def translate(self, text: str, source_lang: str, target_lang: str, context: str | None = None) -> str:
        system_prompt, user_prompt = build_translation_prompt(text, source_lang, target_lang, context)
        prompt = f"{system_prompt}\n\n{user_prompt}"

        last_error: PipelineError | None = None
        for model, version in self.candidates():
            try:
                with log_provider_call(self.name, f"{version}/{model}", "translate"):
                    translated = self._generate(model, version, prompt)
            except TransportFailure as e:
                if classify_provider_error(e.status_code, str(e)) is RetryDecision.RETRY_NEXT:
                    last_error = e
                    continue
                raise
            except UpstreamFormatFailure as e:
                last_error = e
                continue

            if not translated:
                last_error = UpstreamFormatFailure(f"gemini {version}/{model} returned empty text")
                continue
            if is_noop_translation(text, translated):
                raise QualityFailure(f"gemini {version}/{model} echoed the input")

            self._working = (model, version)
            return translated

        raise TransportFailure(
            f"gemini: no working model/version found. Last error: {last_error or 'no candidates'}"
        )


class OpenAITranslationProvider(TranslationProvider):
    """Chat-completion translation through the OpenAI SDK."""

    name = "openai"

    def __init__(self, api_key: str | None, model: str, timeout: float = 30.0):
        self.api_key = api_key
        self.model = model
        self.timeout = timeout

    def is_configured(self) -> bool:
        return bool(self.api_key)

    def translate(self, text: str, source_lang: str, target_lang: str, context: str | None = None) -> str:
        provider = OpenAIProvider(api_key=self.api_key, model=self.model, temperature=0.3, timeout=self.timeout)
        system_prompt, user_prompt = build_translation_prompt(text, source_lang, target_lang, context)
        with log_provider_call(self.name, self.model, "translate"):
            return provider.complete(system_prompt, user_prompt, json_mode=False).strip()


class LibreTranslateProvider(TranslationProvider):
    """Self-hosted or public LibreTranslate instance."""

    name = "libretranslate"

    def __init__(self, url: str | None, api_key: str | None = None, timeout: float = 30.0,
                 client: httpx.Client | None = None):
        self.url = url
        self.api_key = api_key
        self.client = client or httpx.Client(timeout=timeout)

    def is_configured(self) -> bool:
        return bool(self.url)

    def translate(self, text: str, source_lang: str, target_lang: str, context: str | None = None) -> str:
        payload = {"q": text, "source": source_lang, "target": target_lang, "format": "text"}
        if self.api_key:
            payload["api_key"] = self.api_key
        try:
            response = self.client.post(self.url, json=payload)
        except httpx.HTTPError as e:
            raise TransportFailure(f"libretranslate request failed: {e}") from e
        if not response.is_success:
            raise _response_error("libretranslate", response)
        try:
            translated = response.json().get("translatedText")
        except ValueError as e:
            raise UpstreamFormatFailure("libretranslate returned invalid JSON") from e
        if not translated:
            raise UpstreamFormatFailure("libretranslate returned empty text")
        return translated.strip()


class MyMemoryProvider(TranslationProvider):
    """MyMemory public API. No key needed; queries are limited to 500 bytes, so text is chunked."""

    name = "mymemory"
    URL = "https://api.mymemory.translated.net/get"
    CHUNK_CHARS = 450

    def __init__(self, timeout: float = 30.0, client: httpx.Client | None = None):
        self.client = client or httpx.Client(timeout=timeout)

    def is_configured(self) -> bool:
        return True

    @classmethod
    def chunk(cls, text: str) -> list[str]:
        """Split on sentence boundaries into pieces under CHUNK_CHARS."""
        pieces: list[str] = []
        current = ""
        for sentence in re.split(r"(?<=[.!?])\s+", text.strip()):
            while len(sentence) > cls.CHUNK_CHARS:
                cut = sentence.rfind(" ", 0, cls.CHUNK_CHARS)
                cut = cut if cut > 0 else cls.CHUNK_CHARS
                if current:
                    pieces.append(current)
                    current = ""
                pieces.append(sentence[:cut].strip())
                sentence = sentence[cut:].strip()
            if current and len(current) + 1 + len(sentence) > cls.CHUNK_CHARS:
                pieces.append(current)
                current = sentence
            else:
                current = f"{current} {sentence}".strip()
        if current:
            pieces.append(current)
        return pieces

    def _translate_chunk(self, chunk: str, source_lang: str, target_lang: str) -> str:
        try:
            response = self.client.get(self.URL, params={"q": chunk, "langpair": f"{source_lang}|{target_lang}"})
        except httpx.HTTPError as e:
            raise TransportFailure(f"mymemory request failed: {e}") from e
        if not response.is_success:
            raise _response_error("mymemory", response)
        try:
            data = response.json()
        except ValueError as e:
            raise UpstreamFormatFailure("mymemory returned invalid JSON") from e
        if not isinstance(data, dict):
            raise UpstreamFormatFailure(f"mymemory returned {type(data).__name__} instead of an object")

        status = str(data.get("responseStatus", "200"))
        if status != "200":
            raise TransportFailure(f"mymemory error {status}: {data.get('responseDetails', '')}")
        translated = (data.get("responseData") or {}).get("translatedText")
        if not translated:
            raise UpstreamFormatFailure("mymemory returned empty text")
        return translated.strip()

    def translate(self, text: str, source_lang: str, target_lang: str, context: str | None = None) -> str:
        """Translate paragraph by paragraph so blank-line breaks survive."""
        paragraphs = [p for p in PARAGRAPH_BREAK.split(text.strip()) if p.strip()]
        with log_provider_call(self.name, None, "translate"):
            return "\n\n".join(
                " ".join(self._translate_chunk(c, source_lang, target_lang) for c in self.chunk(paragraph))
                for paragraph in paragraphs
            )


def build_providers(settings: Settings) -> list[TranslationProvider]:
    """Instantiate providers in configured order."""
    factories = {
        "gemini": lambda: GeminiTranslationProvider(
            api_key=settings.GEMINI_API_KEY,
            pinned_model=settings.GEMINI_MODEL,
            fallback_models=settings.gemini_fallback_models,
            timeout=settings.TRANSLATION_TIMEOUT_SECONDS,
        ),
        "openai": lambda: OpenAITranslationProvider(
            api_key=settings.OPENAI_API_KEY,
            model=settings.OPENAI_MODEL,
            timeout=settings.TRANSLATION_TIMEOUT_SECONDS,
        ),
        "libretranslate": lambda: LibreTranslateProvider(
            url=settings.LIBRETRANSLATE_URL,
            api_key=settings.LIBRETRANSLATE_API_KEY,
            timeout=settings.TRANSLATION_TIMEOUT_SECONDS,
        ),
        "mymemory": lambda: MyMemoryProvider(timeout=settings.TRANSLATION_TIMEOUT_SECONDS),
    }
    providers = []
    for name in settings.translation_providers:
        if name not in factories:
            logger.warning(f"[TRANSLATE] Unknown translation provider '{name}' ignored")
            continue
        providers.append(factories[name]())
    return providers


# -----------------------------------------------------------------------------
# Orchestrator
# -----------------------------------------------------------------------------


class TranslationOrchestrator:
    """Walk the provider chain until one returns a real translation."""

    def __init__(self, settings: Settings | None = None, providers: list[TranslationProvider] | None = None):
        self.settings = settings or get_settings()
        self.providers = providers if providers is not None else build_providers(self.settings)
        self.source_lang = self.settings.TRANSLATION_SOURCE_LANG
        self.target_lang = self.settings.TRANSLATION_TARGET_LANG

    def translate(self, text: str, context: str | None = None) -> str:
        """
        Translate text with the first provider that succeeds.

        Raises:
            ConfigurationFailure: no provider in the chain is configured
            PipelineError subclass: every provider failed (the last failure's type)
        """
        if not text or not text.strip():
            return ""

        chain = [p for p in self.providers if p.is_configured()]
        if not chain:
            raise ConfigurationFailure("No translation provider is configured")

        failures: list[str] = []
        last_error: PipelineError | None = None
        for provider in chain:
            try:
                translated = provider.translate(text, self.source_lang, self.target_lang, context)
            except PipelineError as e:
                logger.warning(f"[TRANSLATE] {provider.name} failed: {e}")
                failures.append(f"{provider.name}: {e}")
                last_error = e
                continue
            except Exception as e:
                logger.exception(f"[TRANSLATE] {provider.name} failed unexpectedly")
                last_error = TransportFailure(f"{provider.name} failed unexpectedly: {type(e).__name__}: {e}")
                failures.append(str(last_error))
                continue

            if is_noop_translation(text, translated):
                last_error = QualityFailure(f"{provider.name} returned the input unchanged")
                logger.warning(f"[TRANSLATE] {last_error}")
                failures.append(str(last_error))
                continue

            return translated

        raise type(last_error)(f"Translation failed: {'; '.join(failures)}") from last_error

    def translate_hashtag(self, tag: str) -> str:
        translated = self.translate(tag.lstrip("#"))
        return "#" + re.sub(r"[\s#]+", "", translated)

    @staticmethod
    def context_for(db: Session, raw_article_id: Any) -> str | None:
        """'<title>. <description>' of a RawArticle, or None if it cannot be found."""
        try:
            key = raw_article_id if isinstance(raw_article_id, uuid.UUID) else uuid.UUID(str(raw_article_id))
        except ValueError:
            return None
        raw = db.get(models.RawArticle, key)
        if raw is None:
            return None
        return ". ".join(part for part in (raw.title, raw.description) if part) or None

    def translate_text(
        self,
        db: Session,
        text: str,
        raw_article_id: Any = None,
        context: str | None = None,
    ) -> str:
        """Single-text translation; context defaults to the referenced RawArticle."""
        if context is None and raw_article_id is not None:
            context = self.context_for(db, raw_article_id)
        return self.translate(text, context)

    def translate_article(self, db: Session, generated_article_id: Any) -> models.GeneratedArticle:
        """
        Translate every field of a GeneratedArticle and store them in one UPDATE.

        Nothing is written unless every field translated.
        """
        try:
            key = (
                generated_article_id
                if isinstance(generated_article_id, uuid.UUID)
                else uuid.UUID(str(generated_article_id))
            )
        except ValueError:
            raise NotFoundFailure(f"Generated article {generated_article_id} not found")
        article = db.get(models.GeneratedArticle, key)
        if article is None:
            raise NotFoundFailure(f"Generated article {generated_article_id} not found")
        if not (article.headline and article.summary and article.body):
            raise UpstreamFormatFailure("Article has no source-language content to translate")

        context = self.context_for(db, article.raw_article_id)
        translated = {
            "translated_headline": self.translate(article.headline, context),
            "translated_summary": self.translate(article.summary, context),
            "translated_body": self.translate(article.body, context),
            "translated_hashtags": [self.translate_hashtag(tag) for tag in (article.hashtags or [])],
            "translated_attribution": self.translate(article.source_attribution),
        }

        now = datetime.utcnow()
        db.execute(
            update(models.GeneratedArticle)
            .where(models.GeneratedArticle.id == article.id)
            .values(**translated, translated_language=self.target_lang, translated_at=now, updated_at=now)
        )
        db.commit()
        logger.info(
            f"[TRANSLATE] Stored {self.target_lang} translation for {article.id}",
            extra={"event": "translated", "article_id": str(article.id)},
        )
        db.refresh(article)
        return article
