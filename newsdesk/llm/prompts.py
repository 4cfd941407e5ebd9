"""
Prompts for article generation and translation.
"""

PROMPT_CONTENT_LIMIT = 12000

# Phrases a provider falls back to when it ignores the supplied article.
# Output containing any of them on rich input is treated as a quality failure.
GENERIC_PHRASES = (
    "check the original source",
    "check the source",
    "refer to the article",
    "please refer",
    "for details",
    "for more information, visit the source",
    "this news was reported by",
)

GENERATION_SYSTEM_PROMPT = """You are a professional news writer.
Task: Create a complete English news article with the following structure:
1. A compelling headline
2. A short summary (10-50 words) that captures the essence
3. A full detailed article that expands on all the information
4. 5 relevant hashtags
5. Source attribution

Style: Clear, neutral, engaging, professional. Keep it safe and non-defamatory.
Always include source attribution using the source name.

You must respond with valid JSON in this exact format:
{
  "headline": "Headline under 80 characters",
  "summary": "10-50 word summary with specific facts from the article",
  "body": "Full article, 300-800 words, in news style with paragraphs",
  "hashtags": ["#One", "#Two", "#Three", "#Four", "#Five"],
  "attribution": "Source: <source name>"
}"""

GENERATION_USER_TEMPLATE = """TITLE: {title}

DESCRIPTION: {description}

FULL ARTICLE CONTENT:
{content}

SOURCE: {source_name}
URL: {url}
CATEGORY: {category}

Instructions:
1. Read the full article content and extract the real facts: names, dates, numbers, quotes.
2. Write a headline under 80 characters that represents the main story.
3. Write a 10-50 word summary containing specific details from the content, not generic text.
4. Write the full article starting with the most important information. If the content is short,
   expand logically from the title and description.
5. Generate 5 hashtags; no spaces, no punctuation besides #.
6. Attribution must read: "Source: {source_name}"

FORBIDDEN PHRASES (never use): "check the source", "refer to the article", "check the original source",
"for details", "please refer". Write as if you are reporting the news directly.

Respond with JSON only."""


TRANSLATION_SYSTEM_PROMPT = """You are a professional news translator.
Translate the user's text from {source_language} to {target_language}.
Keep names, numbers and hashtags accurate. Keep the tone neutral and journalistic.
Return only the translated text, with no notes, quotes or explanations."""

TRANSLATION_USER_TEMPLATE = """{context_block}Text to translate:
{text}"""

TRANSLATION_CONTEXT_BLOCK = """Context (for reference only, do not translate):
{context}

"""

LANGUAGE_NAMES = {
    "en": "English",
    "si": "Sinhala",
    "ta": "Tamil",
}


def build_generation_prompt(
    title: str,
    description: str | None,
    content: str | None,
    source_name: str,
    url: str,
    category: str | None,
) -> tuple[str, str]:
    """Return the (system, user) prompt pair for article generation."""
    user = GENERATION_USER_TEMPLATE.format(
        title=title or "No title",
        description=description or "No description",
        content=(content or "No content")[:PROMPT_CONTENT_LIMIT],
        source_name=source_name,
        url=url,
        category=category or "general",
    )
    return GENERATION_SYSTEM_PROMPT, user


def build_translation_prompt(
    text: str,
    source_language: str,
    target_language: str,
    context: str | None = None,
) -> tuple[str, str]:
    """Return the (system, user) prompt pair for translating one field."""
    system = TRANSLATION_SYSTEM_PROMPT.format(
        source_language=LANGUAGE_NAMES.get(source_language, source_language),
        target_language=LANGUAGE_NAMES.get(target_language, target_language),
    )
    context_block = TRANSLATION_CONTEXT_BLOCK.format(context=context) if context else ""
    return system, TRANSLATION_USER_TEMPLATE.format(context_block=context_block, text=text)
