"""
Translator collaborator interface.

This module defines:
- TranslatorResponse returned by every backend
- Abstract async Translator interface
- DummyTranslator for tests and offline runs
- create_translator() factory

Design:
- Translators are stateless: each call receives the text, the target
  language and the forced source language (or "auto").
- Backends raise on failure; the orchestrator turns any exception into a
  ProviderError outcome.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

from worddex.script import AUTO


@dataclass
class TranslatorResponse:
    """Result of one translate call.

    Attributes:
        translated_text: Translation in the target language
        reading_text: Source text with inline readings, e.g. 東京(とうきょう);
            None when the backend produced no readings
        metadata: Backend info (model, tokens used, etc.)
    """
    translated_text: str
    reading_text: Optional[str] = None
    metadata: dict = field(default_factory=dict)

    @property
    def has_reading(self) -> bool:
        return bool(self.reading_text)


class Translator(ABC):
    """Abstract base class for all translation backends."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the translator name (e.g., 'anthropic', 'dummy')."""
        pass

    @abstractmethod
    async def translate(
        self,
        text: str,
        target_language: str,
        forced_language: str = AUTO,
    ) -> TranslatorResponse:
        """Translate ``text`` into ``target_language``.

        Args:
            text: Source text
            target_language: Target language code
            forced_language: Source language code, or "auto"

        Returns:
            TranslatorResponse with translation and optional readings
        """
        pass


class DummyTranslator(Translator):
    """A dummy translator for testing.

    Modes:
    - 'echo': Return the input unchanged
    - 'upper': Return uppercase version
    - 'prefix': Add [TRANSLATED] prefix

    ``reading`` is returned as the reading text, ``delay`` simulates a slow
    provider, and ``fail`` makes every call raise. ``calls`` records each
    request so tests can assert whether the provider was reached.
    """

    def __init__(
        self,
        mode: str = "prefix",
        reading: Optional[str] = None,
        delay: float = 0.0,
        fail: Optional[str] = None,
    ):
        self.mode = mode
        self.reading = reading
        self.delay = delay
        self.fail = fail
        self.calls: list[tuple[str, str, str]] = []

    @property
    def name(self) -> str:
        return f"dummy-{self.mode}"

    async def translate(
        self,
        text: str,
        target_language: str,
        forced_language: str = AUTO,
    ) -> TranslatorResponse:
        self.calls.append((text, target_language, forced_language))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise RuntimeError(self.fail)

        if self.mode == "echo":
            translated = text
        elif self.mode == "upper":
            translated = text.upper()
        else:  # prefix
            translated = f"[TRANSLATED] {text}"

        return TranslatorResponse(
            translated_text=translated,
            reading_text=self.reading,
            metadata={"translator": self.name, "mode": self.mode},
        )


def create_translator(backend: str, **kwargs) -> Translator:
    """Factory function to create a translator by name.

    Supported backends and aliases:
        - dummy, echo, test: Test translator (no network)
        - anthropic, claude: Anthropic Claude models
        - claude-haiku: Claude Haiku (cheaper)
        - openai, gpt: OpenAI GPT models
        - gpt-4o-mini, gpt4mini: GPT-4o mini (cheaper)
    """
    backend_lower = backend.lower().replace("_", "-")

    if backend_lower in ("dummy", "echo", "test"):
        mode = kwargs.get("mode", "echo" if backend_lower == "echo" else "prefix")
        return DummyTranslator(mode=mode, reading=kwargs.get("reading"))

    elif backend_lower in ("claude-haiku", "haiku"):
        from worddex.translate.llm import AnthropicTranslator, LLMConfig
        config = kwargs.get("config") or LLMConfig(model="claude-3-5-haiku-latest")
        return AnthropicTranslator(config=config, api_key=kwargs.get("api_key"))

    elif backend_lower in ("anthropic", "claude"):
        from worddex.translate.llm import AnthropicTranslator, LLMConfig
        config = kwargs.get("config") or LLMConfig(model=kwargs.get("model", "claude-3-5-sonnet-latest"))
        return AnthropicTranslator(config=config, api_key=kwargs.get("api_key"))

    elif backend_lower in ("gpt-4o-mini", "gpt4mini", "gpt4o-mini"):
        from worddex.translate.llm import OpenAITranslator, LLMConfig
        config = kwargs.get("config") or LLMConfig(model="gpt-4o-mini")
        return OpenAITranslator(config=config, api_key=kwargs.get("api_key"))

    elif backend_lower in ("openai", "gpt", "gpt-4o", "gpt4o"):
        from worddex.translate.llm import OpenAITranslator, LLMConfig
        config = kwargs.get("config") or LLMConfig(model=kwargs.get("model", "gpt-4o"))
        return OpenAITranslator(config=config, api_key=kwargs.get("api_key"))

    else:
        available = ["dummy", "anthropic", "claude-haiku", "openai", "gpt-4o-mini"]
        raise ValueError(
            f"Unknown translator backend: {backend}. "
            f"Available backends: {', '.join(available)}"
        )
