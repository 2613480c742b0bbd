"""Translator collaborator interface and LLM backends."""

from worddex.translate.base import DummyTranslator, Translator, TranslatorResponse, create_translator

__all__ = ["DummyTranslator", "Translator", "TranslatorResponse", "create_translator"]
