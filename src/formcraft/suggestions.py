"""AI field suggestions.

A provider is picked once from settings when the app is built and stored on
``app.state``; routes never look at the provider name again.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Protocol

import httpx
import orjson

from formcraft.config import Settings
from formcraft.errors import UpstreamError, ValidationFailed
from formcraft.fields import FIELD_TYPES, FieldType
from formcraft.utils import new_ulid

logger = logging.getLogger(__name__)

ANTHROPIC_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_MODEL = "claude-3-5-haiku-latest"
ANTHROPIC_VERSION = "2023-06-01"
GROQ_URL = "https://api.groq.com/openai/v1/chat/completions"
GROQ_MODEL = "llama-3.3-70b-versatile"
MAX_TOKENS = 1024

_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$")


class SuggestionProvider(Protocol):
    name: str

    async def complete(self, prompt: str) -> str: ...


def build_prompt(purpose: str) -> str:
    return f"""You are a form design expert. Based on the following form purpose, suggest relevant form fields that would help collect the necessary information.

Form Purpose: {purpose}

Please provide 8-12 field suggestions in JSON format. Include a variety of field types to make the form comprehensive. Each field should have:
- fieldType: one of "text", "email", "textarea", "select", "radio", "checkbox", "date", "rating", "file"
- label: the field label
- placeholder: optional placeholder text (not for date, rating, file types)
- required: boolean indicating if the field is required
- options: array of options (only for select, radio, checkbox types)
- reasoning: brief explanation of why this field is useful

Return ONLY a valid JSON array of field objects, no additional text or markdown formatting.

Example format:
[
  {{"fieldType": "text", "label": "Full Name", "placeholder": "Enter your full name", "required": true, "reasoning": "Essential for identifying respondents"}},
  {{"fieldType": "select", "label": "Age Range", "required": false, "options": ["18-25", "26-35", "36-45", "46+"], "reasoning": "Helps segment responses by age group"}}
]"""


def parse_suggestions(text: str) -> list[dict[str, Any]]:
    cleaned = _FENCE.sub("", text.strip()).strip()
    try:
        parsed = orjson.loads(cleaned)
    except orjson.JSONDecodeError as exc:
        logger.error("AI response is not valid JSON: %s", text[:200])
        raise UpstreamError("Failed to parse AI suggestions. Please try again.") from exc
    if not isinstance(parsed, list):
        raise UpstreamError("Failed to parse AI suggestions. Please try again.")

    batch = new_ulid()
    suggestions: list[dict[str, Any]] = []
    for index, item in enumerate(parsed):
        if not isinstance(item, dict) or not item.get("fieldType") or not item.get("label"):
            raise UpstreamError(
                "Failed to parse AI suggestions. Please try again.",
                [f"Suggestion {index} missing required fields"],
            )
        field_type = str(item["fieldType"])
        if field_type not in FIELD_TYPES:
            logger.warning("Invalid field type %s, defaulting to text", field_type)
            field_type = FieldType.TEXT.value
        suggestion: dict[str, Any] = {
            "id": f"ai-suggestion-{batch}-{index}",
            "fieldType": field_type,
            "label": str(item["label"]),
            "required": bool(item.get("required", False)),
        }
        for key in ("placeholder", "options", "validation", "reasoning"):
            if item.get(key) is not None:
                suggestion[key] = item[key]
        suggestions.append(suggestion)
    return suggestions


class HTTPSuggestionProvider:
    name = "http"

    def __init__(
        self,
        api_key: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._timeout = timeout
        self._transport = transport

    async def _post(self, url: str, headers: dict[str, str], body: dict[str, Any]) -> dict[str, Any]:
        if not self._api_key:
            raise UpstreamError(f"{self.name} API key is not configured", status_code=503)
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(url, headers=headers, json=body)
        except httpx.HTTPError as exc:
            logger.error("%s API request failed: %s", self.name, exc)
            raise UpstreamError(
                f"{self.name} API is currently unavailable. Please try again later.",
                status_code=503,
            ) from exc

        if response.status_code == 401:
            raise UpstreamError(f"Invalid {self.name} API key")
        if response.status_code == 429:
            raise UpstreamError(
                f"{self.name} API rate limit exceeded. Please try again later.",
                status_code=429,
            )
        if response.status_code >= 500:
            raise UpstreamError(
                f"{self.name} API is currently unavailable. Please try again later.",
                status_code=503,
            )
        if response.status_code >= 400:
            logger.error("%s API returned %s: %s", self.name, response.status_code, response.text[:200])
            raise UpstreamError(f"Failed to generate AI suggestions ({response.status_code})")
        try:
            payload = orjson.loads(response.content)
        except orjson.JSONDecodeError as exc:
            logger.error("%s API returned a non-JSON body: %s", self.name, response.text[:200])
            raise UpstreamError(f"Unexpected response from {self.name} API") from exc
        if not isinstance(payload, dict):
            raise UpstreamError(f"Unexpected response from {self.name} API")
        return payload


class AnthropicProvider(HTTPSuggestionProvider):
    name = "anthropic"

    async def complete(self, prompt: str) -> str:
        payload = await self._post(
            ANTHROPIC_URL,
            {"x-api-key": self._api_key, "anthropic-version": ANTHROPIC_VERSION},
            {
                "model": ANTHROPIC_MODEL,
                "max_tokens": MAX_TOKENS,
                "messages": [{"role": "user", "content": prompt}],
            },
        )
        blocks = payload.get("content")
        for block in blocks if isinstance(blocks, list) else []:
            if not isinstance(block, dict) or block.get("type") != "text":
                continue
            text = block.get("text")
            if isinstance(text, str) and text:
                return text
        raise UpstreamError("No text content in anthropic response")


class GroqProvider(HTTPSuggestionProvider):
    name = "groq"

    async def complete(self, prompt: str) -> str:
        payload = await self._post(
            GROQ_URL,
            {"Authorization": f"Bearer {self._api_key}"},
            {
                "model": GROQ_MODEL,
                "messages": [{"role": "user", "content": prompt}],
                "temperature": 0.7,
                "max_tokens": MAX_TOKENS,
            },
        )
        choices = payload.get("choices")
        first = choices[0] if isinstance(choices, list) and choices else None
        message = first.get("message") if isinstance(first, dict) else None
        content = message.get("content") if isinstance(message, dict) else None
        if not isinstance(content, str) or not content:
            raise UpstreamError("No content in groq response")
        return content


class DisabledProvider:
    name = "none"

    async def complete(self, prompt: str) -> str:
        raise UpstreamError("AI suggestions are disabled", status_code=503)


def get_suggestion_provider(settings: Settings) -> SuggestionProvider:
    if settings.ai_provider == "anthropic":
        return AnthropicProvider(settings.claude_api_key, settings.ai_timeout)
    if settings.ai_provider == "groq":
        return GroqProvider(settings.groq_api_key, settings.ai_timeout)
    if settings.ai_provider != "none":
        logger.warning("Unknown AI_PROVIDER %r; AI suggestions are disabled", settings.ai_provider)
    return DisabledProvider()


async def generate_suggestions(
    provider: SuggestionProvider, purpose: Any, user_id: str
) -> list[dict[str, Any]]:
    if not isinstance(purpose, str) or not purpose.strip():
        raise ValidationFailed("Form purpose is required and must be a string")
    logger.info("Requesting AI suggestions from %s for user %s", provider.name, user_id)
    suggestions = parse_suggestions(await provider.complete(build_prompt(purpose.strip())))
    logger.info(
        "Generated %d AI suggestions using %s for user %s",
        len(suggestions),
        provider.name,
        user_id,
    )
    return suggestions
