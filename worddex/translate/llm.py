"""
LLM-based translation backends.

This module provides:
- Anthropic Claude translator
- OpenAI GPT translator (also usable with OpenAI-compatible endpoints)

Both ask the model for a JSON object with ``translatedText`` and
``readingsText`` (see worddex.translate.prompting) and share the response
parsing in BaseLLMTranslator.
"""

from __future__ import annotations

import json
import logging
import re
from abc import ABC
from dataclasses import dataclass
from typing import Optional

from worddex.errors import ProviderError
from worddex.keys import get_api_key
from worddex.script import AUTO
from worddex.translate.base import Translator, TranslatorResponse
from worddex.translate.prompting import build_system_prompt, build_user_prompt

logger = logging.getLogger(__name__)

READING_FIELDS = ("readingsText", "furiganaText", "pinyinText")

# Fallback for replies that are almost, but not quite, valid JSON
FIELD_PATTERN = r'"{name}"\s*:\s*"((?:[^"\\]|\\.)*)"'


@dataclass
class LLMConfig:
    """Configuration for LLM translators."""
    model: str = "claude-3-5-sonnet-latest"
    temperature: float = 0.2
    max_tokens: int = 2048
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    timeout: float = 60.0
    max_retries: int = 2


def _extract_field(body: str, name: str) -> Optional[str]:
    match = re.search(FIELD_PATTERN.format(name=re.escape(name)), body)
    if not match:
        return None
    try:
        return json.loads(f'"{match.group(1)}"')
    except json.JSONDecodeError:
        return match.group(1)


class BaseLLMTranslator(Translator, ABC):
    """Base class for LLM-based translators.

    Provides common functionality:
    - Prompt construction
    - Response parsing into TranslatorResponse
    """

    provider = "llm"

    def __init__(self, config: Optional[LLMConfig] = None):
        self.config = config or LLMConfig()

    @property
    def name(self) -> str:
        return f"{self.provider}-{self.config.model}"

    def build_messages(self, text: str, target_language: str, forced_language: str) -> tuple[str, str]:
        """Return (system prompt, user prompt)."""
        return build_system_prompt(forced_language, target_language), build_user_prompt(text)

    def parse_response(self, response: str) -> TranslatorResponse:
        """Parse the model reply into a TranslatorResponse.

        Raises:
            ProviderError: If no translation can be found in the reply
        """
        cleaned = response.strip()

        # Remove markdown code blocks if present
        if cleaned.startswith("```"):
            lines = cleaned.split("\n")
            if lines[-1].strip() == "```":
                lines = lines[1:-1]
            else:
                lines = lines[1:]
            cleaned = "\n".join(lines)

        first, last = cleaned.find("{"), cleaned.rfind("}")
        body = cleaned[first:last + 1] if 0 <= first < last else cleaned

        try:
            data = json.loads(body)
            if not isinstance(data, dict):
                raise ValueError("reply is not a JSON object")
            translated = data.get("translatedText")
            reading = next((data[f] for f in READING_FIELDS if data.get(f)), None)
        except ValueError:
            logger.debug("Reply is not valid JSON, extracting fields by pattern")
            translated = _extract_field(body, "translatedText")
            reading = next(
                (value for value in (_extract_field(body, f) for f in READING_FIELDS) if value),
                None,
            )

        if not isinstance(translated, str) or not translated.strip():
            raise ProviderError("Translator reply has no translatedText", provider=self.name)

        reading = reading.strip() if isinstance(reading, str) else None
        return TranslatorResponse(
            translated_text=translated.strip(),
            reading_text=reading or None,
            metadata={"translator": self.name, "model": self.config.model},
        )


class AnthropicTranslator(BaseLLMTranslator):
    """Anthropic Claude translator.

    Usage:
        translator = AnthropicTranslator(config=LLMConfig(model="claude-3-5-haiku-latest"))
        response = await translator.translate("東京に行きます", "en", "ja")
    """

    provider = "anthropic"

    def __init__(
        self,
        config: Optional[LLMConfig] = None,
        api_key: Optional[str] = None,
    ):
        super().__init__(config)
        self.api_key = api_key or self.config.api_key or get_api_key("anthropic")
        self._client = None

    def _get_client(self):
        """Lazy initialization of the async Anthropic client."""
        if self._client is None:
            import anthropic

            if not self.api_key:
                raise ValueError(
                    "Anthropic API key required. Set ANTHROPIC_API_KEY environment variable "
                    "or run: worddex keys set anthropic"
                )

            self._client = anthropic.AsyncAnthropic(
                api_key=self.api_key,
                timeout=self.config.timeout,
                max_retries=self.config.max_retries,
            )

        return self._client

    async def translate(
        self,
        text: str,
        target_language: str,
        forced_language: str = AUTO,
    ) -> TranslatorResponse:
        client = self._get_client()
        system_prompt, user_prompt = self.build_messages(text, target_language, forced_language)

        try:
            response = await client.messages.create(
                model=self.config.model,
                max_tokens=self.config.max_tokens,
                temperature=self.config.temperature,
                system=system_prompt,
                messages=[{"role": "user", "content": user_prompt}],
            )
        except Exception as e:
            raise ProviderError(f"Anthropic translation failed: {e}", provider=self.name) from e

        reply = "".join(block.text for block in response.content if getattr(block, "type", "") == "text")
        return self.parse_response(reply)


class OpenAITranslator(BaseLLMTranslator):
    """OpenAI GPT translator.

    Supports GPT-4o, GPT-4o mini and OpenAI-compatible endpoints via
    ``LLMConfig.base_url``.
    """

    provider = "openai"

    def __init__(
        self,
        config: Optional[LLMConfig] = None,
        api_key: Optional[str] = None,
    ):
        config = config or LLMConfig(model="gpt-4o")
        super().__init__(config)
        self.api_key = api_key or self.config.api_key or get_api_key("openai")
        self._client = None

    def _get_client(self):
        """Lazy initialization of the async OpenAI client."""
        if self._client is None:
            from openai import AsyncOpenAI

            if not self.api_key:
                raise ValueError(
                    "OpenAI API key required. Set OPENAI_API_KEY environment variable "
                    "or run: worddex keys set openai"
                )

            kwargs = {
                "api_key": self.api_key,
                "timeout": self.config.timeout,
                "max_retries": self.config.max_retries,
            }
            if self.config.base_url:
                kwargs["base_url"] = self.config.base_url

            self._client = AsyncOpenAI(**kwargs)

        return self._client

    async def translate(
        self,
        text: str,
        target_language: str,
        forced_language: str = AUTO,
    ) -> TranslatorResponse:
        client = self._get_client()
        system_prompt, user_prompt = self.build_messages(text, target_language, forced_language)

        try:
            response = await client.chat.completions.create(
                model=self.config.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=self.config.temperature,
                max_tokens=self.config.max_tokens,
                response_format={"type": "json_object"},
            )
        except Exception as e:
            raise ProviderError(f"OpenAI translation failed: {e}", provider=self.name) from e

        return self.parse_response(response.choices[0].message.content or "")
