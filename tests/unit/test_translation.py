# tests/unit/test_translation.py
"""
Unit tests for the translation orchestrator and its providers.

Covers:
- Echo (no-op) rejection across the provider chain
- Gemini model discovery, (model, version) cycling and abort rules
- MyMemory chunking
- translate_article(): all fields in one update, nothing written on failure
"""

import json

import httpx
import pytest

from newsdesk import models
from newsdesk.services.resilience import (
    ConfigurationFailure,
    NotFoundFailure,
    QualityFailure,
    TransportFailure,
    UpstreamFormatFailure,
)
from newsdesk.services.translation import (
    GeminiTranslationProvider,
    LibreTranslateProvider,
    MyMemoryProvider,
    TranslationOrchestrator,
    TranslationProvider,
    build_providers,
    is_noop_translation,
)


class StubProvider(TranslationProvider):
    """Provider returning a fixed transform of its input."""

    def __init__(self, name, transform=None, error=None, configured=True):
        self.name = name
        self.transform = transform or (lambda text: f"SI:{text}")
        self.error = error
        self.configured = configured
        self.calls = []

    def is_configured(self):
        return self.configured

    def translate(self, text, source_lang, target_lang, context=None):
        self.calls.append((text, context))
        if self.error is not None:
            raise self.error
        return self.transform(text)


@pytest.fixture(autouse=True)
def clear_gemini_cache():
    GeminiTranslationProvider._model_cache.clear()
    yield
    GeminiTranslationProvider._model_cache.clear()


def _gemini_reply(text):
    return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": text}]}}]})


class TestNoopDetection:
    """Tests for is_noop_translation()."""

    @pytest.mark.parametrize(
        "translated",
        [None, "", "  ", "Breaking News", "breaking   news", " BREAKING NEWS "],
    )
    def test_echo_or_empty(self, translated):
        assert is_noop_translation("Breaking News", translated) is True

    def test_real_translation(self):
        assert is_noop_translation("Breaking News", "ප්‍රවෘත්ති") is False


class TestOrchestrator:
    """Provider chain in TranslationOrchestrator.translate()."""

    def test_echo_falls_through_to_next_provider(self, settings):
        echo = StubProvider("gemini", transform=lambda text: text.upper())
        real = StubProvider("mymemory")

        result = TranslationOrchestrator(settings, [echo, real]).translate("Breaking News")

        assert result == "SI:Breaking News"
        assert len(echo.calls) == 1
        assert len(real.calls) == 1

    def test_first_success_wins(self, settings):
        first = StubProvider("gemini")
        second = StubProvider("mymemory")

        TranslationOrchestrator(settings, [first, second]).translate("Hello")

        assert second.calls == []

    def test_failure_moves_to_next(self, settings):
        broken = StubProvider("gemini", error=TransportFailure("gemini returned HTTP 401", 401))
        real = StubProvider("mymemory")

        assert TranslationOrchestrator(settings, [broken, real]).translate("Hello") == "SI:Hello"

    def test_bad_payload_and_unexpected_error_move_to_next(self, settings):
        def handler(request):
            return httpx.Response(200, json=["not", "an", "object"])

        mymemory = MyMemoryProvider(client=httpx.Client(transport=httpx.MockTransport(handler)))
        crashing = StubProvider("libretranslate", error=AttributeError("'list' object has no attribute 'get'"))
        real = StubProvider("openai")

        result = TranslationOrchestrator(settings, [mymemory, crashing, real]).translate("Hello")

        assert result == "SI:Hello"
        assert len(real.calls) == 1

    def test_unexpected_error_reported_as_transport_failure(self, settings):
        crashing = StubProvider("gemini", error=KeyError("candidates"))

        with pytest.raises(TransportFailure, match="gemini failed unexpectedly"):
            TranslationOrchestrator(settings, [crashing]).translate("Hello")

    def test_unconfigured_providers_skipped(self, settings):
        missing = StubProvider("gemini", configured=False)
        real = StubProvider("mymemory")

        TranslationOrchestrator(settings, [missing, real]).translate("Hello")

        assert missing.calls == []

    def test_no_configured_provider(self, settings):
        with pytest.raises(ConfigurationFailure):
            TranslationOrchestrator(settings, [StubProvider("gemini", configured=False)]).translate("Hello")

    def test_all_fail_raises_last_error_type(self, settings):
        providers = [
            StubProvider("gemini", error=TransportFailure("gemini down")),
            StubProvider("mymemory", transform=lambda text: text),
        ]

        with pytest.raises(QualityFailure) as exc_info:
            TranslationOrchestrator(settings, providers).translate("Hello")

        assert "gemini down" in str(exc_info.value)
        assert "mymemory" in str(exc_info.value)

    def test_empty_input(self, settings):
        provider = StubProvider("gemini")
        assert TranslationOrchestrator(settings, [provider]).translate("   ") == ""
        assert provider.calls == []

    def test_hashtag_translation(self, settings):
        provider = StubProvider("gemini", transform=lambda text: "තාක්ෂණ # පුවත්")
        assert TranslationOrchestrator(settings, [provider]).translate_hashtag("#Technology") == "#තාක්ෂණපුවත්"

    def test_translate_text_uses_raw_article_context(self, settings, db, make_raw_article):
        raw = make_raw_article(title="Council vote", description="Transit plan approved")
        provider = StubProvider("gemini")

        TranslationOrchestrator(settings, [provider]).translate_text(db, "Hello", raw_article_id=raw.id)

        assert provider.calls == [("Hello", "Council vote. Transit plan approved")]

    def test_build_providers_order(self, settings):
        configured = settings.model_copy(
            update={"TRANSLATION_PROVIDER_ORDER": "libretranslate, bogus, mymemory, gemini"}
        )
        names = [p.name for p in build_providers(configured)]
        assert names == ["libretranslate", "mymemory", "gemini"]


class TestGeminiProvider:
    """Model discovery and (model, version) cycling."""

    def _provider(self, handler, **kwargs):
        client = httpx.Client(transport=httpx.MockTransport(handler))
        kwargs.setdefault("fallback_models", ["gemini-fast", "gemini-pro"])
        return GeminiTranslationProvider(api_key="test-key", client=client, **kwargs)

    def test_discovery_filters_and_orders(self):
        def handler(request):
            return httpx.Response(
                200,
                json={
                    "models": [
                        {"name": "models/gemini-exp", "supportedGenerationMethods": ["generateContent"]},
                        {"name": "models/embedding", "supportedGenerationMethods": ["embedContent"]},
                        {"name": "models/gemini-pro", "supportedGenerationMethods": ["generateContent"]},
                    ]
                },
            )

        assert self._provider(handler).discover_models() == ["gemini-pro", "gemini-exp"]

    def test_discovery_failure_uses_fallback_list(self):
        provider = self._provider(lambda request: httpx.Response(500, text="boom"))
        assert provider.discover_models() == ["gemini-fast", "gemini-pro"]

    def test_not_found_cycles_to_next_pair_and_sticks(self):
        posts = []

        def handler(request):
            if request.method == "GET":
                return httpx.Response(500)
            version = request.url.path.split("/")[1]
            posts.append((version, "gemini-fast" in request.url.path))
            if version == "v1beta":
                return httpx.Response(404, json={"error": {"message": "model not found"}})
            return _gemini_reply("ආයුබෝවන්")

        provider = self._provider(handler)

        assert provider.translate("Hello", "en", "si") == "ආයුබෝවන්"
        assert posts == [("v1beta", True), ("v1", True)]
        assert provider.candidates()[0] == ("gemini-fast", "v1")

        posts.clear()
        provider.translate("Hello again", "en", "si")
        assert posts == [("v1", True)]

    def test_auth_error_aborts_provider(self):
        posts = []

        def handler(request):
            if request.method == "GET":
                return httpx.Response(500)
            posts.append(request.url.path)
            return httpx.Response(401, text="API key not valid")

        with pytest.raises(TransportFailure) as exc_info:
            self._provider(handler).translate("Hello", "en", "si")

        assert exc_info.value.status_code == 401
        assert len(posts) == 1

    def test_server_error_aborts_provider(self):
        posts = []

        def handler(request):
            if request.method == "GET":
                return httpx.Response(500)
            posts.append(request.url.path)
            return httpx.Response(500, text="Internal error")

        with pytest.raises(TransportFailure) as exc_info:
            self._provider(handler).translate("Hello", "en", "si")

        assert exc_info.value.status_code == 500
        assert len(posts) == 1

    def test_exhausted_candidates(self):
        def handler(request):
            if request.method == "GET":
                return httpx.Response(500)
            return httpx.Response(404, text="not found")

        with pytest.raises(TransportFailure, match="no working model/version"):
            self._provider(handler).translate("Hello", "en", "si")

    def test_empty_text_tries_next_pair(self):
        replies = iter([_gemini_reply("  "), _gemini_reply("ආයුබෝවන්")])

        def handler(request):
            if request.method == "GET":
                return httpx.Response(500)
            return next(replies)

        assert self._provider(handler).translate("Hello", "en", "si") == "ආයුබෝවන්"

    def test_echo_raises_quality_failure(self):
        def handler(request):
            if request.method == "GET":
                return httpx.Response(500)
            return _gemini_reply("Hello")

        with pytest.raises(QualityFailure):
            self._provider(handler).translate("Hello", "en", "si")

    def test_pinned_model_skips_discovery(self):
        paths = []

        def handler(request):
            paths.append((request.method, request.url.path))
            return _gemini_reply("ආයුබෝවන්")

        self._provider(handler, pinned_model="gemini-pinned").translate("Hello", "en", "si")

        assert all(method == "POST" for method, _ in paths)
        assert "gemini-pinned" in paths[0][1]


class TestFixedCatalogProviders:
    """MyMemory and LibreTranslate request handling."""

    def test_mymemory_chunks_long_text(self):
        queries = []

        def handler(request):
            q = request.url.params["q"]
            queries.append(q)
            assert request.url.params["langpair"] == "en|si"
            return httpx.Response(200, json={"responseStatus": 200, "responseData": {"translatedText": "T"}})

        text = " ".join(f"Sentence number {i} about the council transit vote." for i in range(30))
        provider = MyMemoryProvider(client=httpx.Client(transport=httpx.MockTransport(handler)))

        result = provider.translate(text, "en", "si")

        assert len(queries) > 1
        assert all(len(q) <= MyMemoryProvider.CHUNK_CHARS for q in queries)
        assert " ".join(queries) == text
        assert result == " ".join(["T"] * len(queries))

    def test_mymemory_keeps_paragraph_breaks(self):
        queries = []

        def handler(request):
            queries.append(request.url.params["q"])
            reply = {"translatedText": f"T{len(queries)}"}
            return httpx.Response(200, json={"responseStatus": 200, "responseData": reply})

        provider = MyMemoryProvider(client=httpx.Client(transport=httpx.MockTransport(handler)))

        result = provider.translate("First paragraph here.\n\nSecond paragraph here.", "en", "si")

        assert queries == ["First paragraph here.", "Second paragraph here."]
        assert result == "T1\n\nT2"

    def test_mymemory_non_object_json(self):
        provider = MyMemoryProvider(
            client=httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(200, json="quota")))
        )
        with pytest.raises(UpstreamFormatFailure):
            provider.translate("Hello", "en", "si")

    def test_mymemory_error_status(self):
        def handler(request):
            return httpx.Response(200, json={"responseStatus": "403", "responseDetails": "INVALID LANGUAGE PAIR"})

        provider = MyMemoryProvider(client=httpx.Client(transport=httpx.MockTransport(handler)))
        with pytest.raises(TransportFailure, match="INVALID LANGUAGE PAIR"):
            provider.translate("Hello", "en", "si")

    def test_libretranslate_payload(self):
        seen = {}

        def handler(request):
            seen.update(json.loads(request.content))
            return httpx.Response(200, json={"translatedText": "ආයුබෝවන්"})

        provider = LibreTranslateProvider(
            "https://libre.example.com/translate",
            api_key="secret",
            client=httpx.Client(transport=httpx.MockTransport(handler)),
        )

        assert provider.translate("Hello", "en", "si") == "ආයුබෝවන්"
        assert seen == {"q": "Hello", "source": "en", "target": "si", "format": "text", "api_key": "secret"}


class TestTranslateArticle:
    """TranslationOrchestrator.translate_article()."""

    def test_all_fields_stored(self, settings, db, make_raw_article, make_generated_article):
        post = make_generated_article(make_raw_article())
        provider = StubProvider("gemini")

        result = TranslationOrchestrator(settings, [provider]).translate_article(db, post.id)

        assert result.translated_headline == "SI:Council approves new transit plan"
        assert result.translated_summary.startswith("SI:")
        assert result.translated_body.startswith("SI:")
        assert result.translated_hashtags == ["#SI:Transit", "#SI:City", "#SI:Council", "#SI:News", "#SI:Update"]
        assert result.translated_attribution == "SI:Source: Example News"
        assert result.translated_language == "si"
        assert result.translated_at is not None
        assert result.headline == "Council approves new transit plan"

    def test_failure_writes_nothing(self, settings, db, make_raw_article, make_generated_article):
        post = make_generated_article(make_raw_article())

        def transform(text):
            if text.startswith("The city council voted"):
                return text
            return f"SI:{text}"

        with pytest.raises(QualityFailure):
            TranslationOrchestrator(settings, [StubProvider("gemini", transform=transform)]).translate_article(
                db, post.id
            )

        db.expire_all()
        stored = db.get(models.GeneratedArticle, post.id)
        assert stored.translated_headline is None
        assert stored.translated_at is None

    def test_unknown_article(self, settings, db):
        with pytest.raises(NotFoundFailure):
            TranslationOrchestrator(settings, [StubProvider("gemini")]).translate_article(db, "missing")
